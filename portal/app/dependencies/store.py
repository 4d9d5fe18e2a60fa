# portal/app/dependencies/store.py
from functools import lru_cache

from portal.app.services.document_store import DocumentStore


@lru_cache(maxsize=1)
def get_store() -> DocumentStore:
    """Process-wide store; tests override this dependency."""
    return DocumentStore()
