# portal/app/dependencies/auth.py
from typing import Callable

from fastapi import Depends, HTTPException, Request

from portal.app.dependencies.store import get_store
from portal.app.errors import IdentityError, NotFound
from portal.app.models import AuthUser, UserProfile
from portal.app.services.document_store import DocumentStore
from portal.app.services.identity import IdentityProvider, get_identity_provider
from portal.app.services.profiles import get_profile


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=401, detail={"ok": False, "error": "unauthorized"})


def bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise _unauthorized()
    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1].strip():
        raise _unauthorized()
    return parts[1].strip()


def current_user(
    token: str = Depends(bearer_token),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> AuthUser:
    """Resolve the caller's ID token with the identity provider."""
    try:
        return identity.lookup(token)
    except IdentityError:
        raise _unauthorized()


def current_profile(
    user: AuthUser = Depends(current_user),
    store: DocumentStore = Depends(get_store),
) -> UserProfile:
    try:
        return get_profile(store, user.uid)
    except NotFound:
        raise HTTPException(
            status_code=403, detail={"ok": False, "error": "profile not found"}
        )


def require_roles(*roles: str) -> Callable[..., UserProfile]:
    """Dependency factory: the caller's profile must have one of `roles`."""

    def _check(profile: UserProfile = Depends(current_profile)) -> UserProfile:
        if profile.role not in roles:
            raise HTTPException(
                status_code=403, detail={"ok": False, "error": "forbidden"}
            )
        return profile

    return _check
