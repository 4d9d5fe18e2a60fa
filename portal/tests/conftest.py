# portal/tests/conftest.py
from __future__ import annotations

# Import/bootstrap so "import portal" works when running pytest from repo root
import os
import sys
import tempfile
from pathlib import Path
import pytest

TESTS_DIR = Path(__file__).resolve().parent  # .../portal/tests
PORTAL_DIR = TESTS_DIR.parent  # .../portal
REPO_ROOT = PORTAL_DIR.parent  # repo root

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# Fast, deterministic test defaults: no Ollama, no identity service, in-process Qdrant.
os.environ.setdefault("OCR_DEV_MODE", "1")
os.environ.setdefault("IDENTITY_DEV_MODE", "1")
os.environ.setdefault("QDRANT_URL", ":memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="eventdesk-logs-"))

from qdrant_client import QdrantClient  # noqa: E402

from portal.app.services.document_store import USERS, DocumentStore  # noqa: E402
from portal.app.services.identity import InMemoryIdentityProvider  # noqa: E402


@pytest.fixture
def store() -> DocumentStore:
    return DocumentStore(client=QdrantClient(location=":memory:"), prefix="test")


@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def make_profile(store):
    """Write a users/<uid> document and return it as a UserProfile."""
    from portal.app.models import UserProfile

    def _make(uid: str, role: str = "student", **fields) -> UserProfile:
        profile = UserProfile(uid=uid, email=f"{uid}@example.com", role=role, **fields)
        store.set(USERS, uid, profile.to_doc())
        return profile

    return _make


class FakeExtractor:
    """Extraction capability double; records every call."""

    def __init__(self, response=None, error: BaseException | None = None):
        self.response = response
        self.error = error
        self.calls: list[str] = []

    async def extract(self, form_data_uri: str):
        self.calls.append(form_data_uri)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_extractor_cls():
    return FakeExtractor
