# portal/app/services/identity.py
"""
Identity provider clients.

`FirebaseIdentityProvider` talks to the Identity Toolkit REST API:

    POST {IDENTITY_URL}/accounts:signUp?key=...              {email, password}
    POST {IDENTITY_URL}/accounts:signInWithPassword?key=...  {email, password}
    POST {IDENTITY_URL}/accounts:lookup?key=...              {idToken}
    POST {IDENTITY_URL}/accounts:sendOobCode?key=...         {requestType, email}

Errors come back as HTTP 400 with {"error": {"message": "EMAIL_EXISTS"}} (the
message may carry a " : detail" suffix); they surface as IdentityError(code).

`InMemoryIdentityProvider` implements the same contract in-process for dev
mode and tests.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import threading
from functools import lru_cache
from typing import Dict, List, Optional, Protocol, Tuple

import requests

from portal.app.config import settings
from portal.app.errors import IdentityError
from portal.app.models import AuthUser

log = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def sign_up(self, email: str, password: str) -> AuthUser: ...

    def sign_in(self, email: str, password: str) -> AuthUser: ...

    def lookup(self, id_token: str) -> AuthUser: ...

    def send_password_reset(self, email: str) -> None: ...

    def sign_out(self, id_token: str) -> None: ...


def _error_code(response: requests.Response) -> str:
    try:
        message = response.json().get("error", {}).get("message", "")
    except Exception:
        message = ""
    code = str(message).split(" : ", 1)[0].strip()
    return code or f"HTTP_{response.status_code}"


class FirebaseIdentityProvider:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.IDENTITY_API_KEY
        self.base_url = (base_url or settings.IDENTITY_URL).rstrip("/")
        self.timeout = timeout or settings.IDENTITY_TIMEOUT_S

    def _post(self, method: str, body: Dict) -> Dict:
        url = f"{self.base_url}/accounts:{method}"
        try:
            r = requests.post(url, params={"key": self.api_key}, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise IdentityError("NETWORK_ERROR", f"identity provider unreachable: {e}") from e
        if not (200 <= r.status_code < 300):
            code = _error_code(r)
            log.info(f"[identity] {method} rejected: {code}")
            raise IdentityError(code)
        return r.json()

    def sign_up(self, email: str, password: str) -> AuthUser:
        data = self._post("signUp", {"email": email, "password": password, "returnSecureToken": True})
        return AuthUser(uid=data["localId"], email=data.get("email", email), id_token=data.get("idToken"))

    def sign_in(self, email: str, password: str) -> AuthUser:
        data = self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return AuthUser(uid=data["localId"], email=data.get("email", email), id_token=data.get("idToken"))

    def lookup(self, id_token: str) -> AuthUser:
        data = self._post("lookup", {"idToken": id_token})
        users: List[Dict] = data.get("users") or []
        if not users:
            raise IdentityError("USER_NOT_FOUND")
        return AuthUser(uid=users[0]["localId"], email=users[0].get("email"), id_token=id_token)

    def send_password_reset(self, email: str) -> None:
        self._post("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    def sign_out(self, id_token: str) -> None:
        # ID tokens are stateless JWTs; signing out means the client drops it.
        return None


class InMemoryIdentityProvider:
    """Process-local accounts with PBKDF2 password hashes and opaque tokens."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: Dict[str, Tuple[str, bytes, bytes]] = {}  # email -> (uid, salt, hash)
        self._tokens: Dict[str, str] = {}  # token -> uid
        self._emails: Dict[str, str] = {}  # uid -> email
        self.reset_requests: List[str] = []

    @staticmethod
    def _hash(password: str, salt: bytes) -> bytes:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 100_000)

    def _issue(self, uid: str) -> AuthUser:
        token = secrets.token_urlsafe(32)
        self._tokens[token] = uid
        return AuthUser(uid=uid, email=self._emails.get(uid), id_token=token)

    def sign_up(self, email: str, password: str) -> AuthUser:
        email = email.strip().lower()
        if len(password) < 6:
            raise IdentityError("WEAK_PASSWORD")
        with self._lock:
            if email in self._accounts:
                raise IdentityError("EMAIL_EXISTS")
            uid = secrets.token_hex(14)
            salt = secrets.token_bytes(16)
            self._accounts[email] = (uid, salt, self._hash(password, salt))
            self._emails[uid] = email
            return self._issue(uid)

    def sign_in(self, email: str, password: str) -> AuthUser:
        email = email.strip().lower()
        with self._lock:
            account = self._accounts.get(email)
            if account is None:
                raise IdentityError("INVALID_LOGIN_CREDENTIALS")
            uid, salt, expected = account
            if not hmac.compare_digest(expected, self._hash(password, salt)):
                raise IdentityError("INVALID_LOGIN_CREDENTIALS")
            return self._issue(uid)

    def lookup(self, id_token: str) -> AuthUser:
        with self._lock:
            uid = self._tokens.get(id_token)
            if uid is None:
                raise IdentityError("INVALID_ID_TOKEN")
            return AuthUser(uid=uid, email=self._emails.get(uid), id_token=id_token)

    def send_password_reset(self, email: str) -> None:
        email = email.strip().lower()
        with self._lock:
            if email not in self._accounts:
                raise IdentityError("EMAIL_NOT_FOUND")
            self.reset_requests.append(email)

    def sign_out(self, id_token: str) -> None:
        with self._lock:
            self._tokens.pop(id_token, None)


@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProvider:
    if settings.IDENTITY_DEV_MODE:
        log.warning("[identity] IDENTITY_DEV_MODE=1: using in-process accounts")
        return InMemoryIdentityProvider()
    return FirebaseIdentityProvider()
