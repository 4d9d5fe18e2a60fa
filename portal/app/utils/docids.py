"""Single source of truth for document ids and their Qdrant point ids.

Qdrant only accepts unsigned integers or UUIDs as point ids, while documents
are addressed by arbitrary strings (identity-provider uids, generated ids).
Point ids are therefore uuid5(collection-namespace, document id): stable, so
re-writing a document replaces its point instead of duplicating it.

Stdlib-only to avoid circular imports.
"""

from __future__ import annotations

import re
import secrets
import uuid

DEFAULT_NAMESPACE = uuid.UUID("6f1c2d0e-5b7a-5e0c-9a57-3e1c0b8d2f40")

_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def point_id_for(collection: str, doc_id: str) -> str:
    return str(uuid.uuid5(uuid.uuid5(DEFAULT_NAMESPACE, collection), doc_id))


def new_doc_id(length: int = 20) -> str:
    """Random alphanumeric id in the style of hosted document stores."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or new_doc_id(8).lower()


__all__ = [
    "DEFAULT_NAMESPACE",
    "point_id_for",
    "new_doc_id",
    "slugify",
]
