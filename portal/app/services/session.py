# portal/app/services/session.py
"""
Observable session state.

One `SessionState` per consumer (a request, a CLI run, a test). Listeners
subscribe explicitly and receive a `SessionSnapshot` after every auth-state
change; `subscribe` returns the matching unsubscribe callable.

On every change the `users/<uid>` profile is (re)loaded from the document
store. A missing profile or a store failure leaves `profile` as None.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from portal.app.errors import IdentityError
from portal.app.models import AuthUser, UserProfile
from portal.app.services.document_store import USERS, DocumentStore
from portal.app.services.identity import IdentityProvider
from portal.app.telemetry import telemetry

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    user: Optional[AuthUser]
    profile: Optional[UserProfile]
    loading: bool


Listener = Callable[[SessionSnapshot], None]


class SessionState:
    def __init__(self, identity: IdentityProvider, store: DocumentStore):
        self._identity = identity
        self._store = store
        self._listeners: List[Listener] = []
        self._user: Optional[AuthUser] = None
        self._profile: Optional[UserProfile] = None
        self._loading = False

    # -------------------------- Observation --------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    @property
    def loading(self) -> bool:
        return self._loading

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(user=self._user, profile=self._profile, loading=self._loading)

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception as e:
                log.error(f"[session] listener failed: {e}", exc_info=True)

    # -------------------------- Auth operations --------------------------

    async def _call(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def _auth_state_changed(self, user: Optional[AuthUser]) -> None:
        self._loading = True
        self._user = user
        self._notify()
        if user is None:
            self._profile = None
        else:
            self._profile = await self._load_profile(user)
        self._loading = False
        self._notify()

    async def _load_profile(self, user: AuthUser) -> Optional[UserProfile]:
        try:
            doc = await self._call(self._store.get, USERS, user.uid)
        except Exception as e:
            log.error(f"[session] error fetching profile for {user.uid}: {e}")
            return None
        if doc is None:
            log.warning(f"[session] profile not found for uid {user.uid}")
            return None
        doc.update({"uid": user.uid, "email": user.email or doc.get("email")})
        return UserProfile.model_validate(doc)

    async def restore(self, id_token: str) -> AuthUser:
        """Resume a session from an existing ID token."""
        user = await self._call(self._identity.lookup, id_token)
        await self._auth_state_changed(user)
        return user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        self._loading = True
        telemetry.increment("sign_in_total")
        try:
            user = await self._call(self._identity.sign_in, email, password)
        except IdentityError as e:
            telemetry.record_failure("sign_in_failed", f"sign_in: {e.code}", "sign_in_failed", code=e.code)
            self._loading = False
            self._notify()
            raise
        await self._auth_state_changed(user)
        return user

    async def sign_up(self, email: str, password: str) -> AuthUser:
        user = await self._call(self._identity.sign_up, email, password)
        await self._auth_state_changed(user)
        return user

    async def sign_out(self) -> None:
        user = self._user
        # Local state is cleared before the provider call.
        self._user = None
        self._profile = None
        self._notify()
        if user is not None and user.id_token:
            await self._call(self._identity.sign_out, user.id_token)

    async def send_password_reset(self, email: str) -> None:
        await self._call(self._identity.send_password_reset, email)
