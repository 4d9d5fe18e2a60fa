# portal/app/routers/status.py
from __future__ import annotations

import time

import requests
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from portal.app.config import settings
from portal.app.dependencies.store import get_store
from portal.app.services.document_store import (
    BOARDS,
    EVENTS,
    REGISTRATIONS,
    TASKS,
    USERS,
    DocumentStore,
)
from portal.app.telemetry import telemetry

router = APIRouter(tags=["status"])

# Ollama reachability, memoized for 15s
_ollama_cache: tuple = (0.0, False)


def _ollama_reachable() -> bool:
    global _ollama_cache
    now = time.time()
    last_ts, last_bool = _ollama_cache
    if now - last_ts < 15.0:
        return last_bool

    try:
        resp = requests.get(f"{settings.OLLAMA_URL.rstrip('/')}/api/tags", timeout=2.0)
        reachable = resp.status_code == 200
    except requests.RequestException:
        reachable = False

    _ollama_cache = (now, reachable)
    return reachable


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/status")
def status(store: DocumentStore = Depends(get_store)):
    """
    Service snapshot: collection counts, counters and OCR backend state.
    The OCR backend is not probed in dev mode.
    """
    stats = telemetry.get_stats()
    dev_mode = bool(settings.OCR_DEV_MODE)

    data = {
        "ok": True,
        "qdrant_url": settings.QDRANT_URL,
        "store_prefix": settings.STORE_PREFIX,
        "counts": {
            "users": store.count(USERS),
            "events": store.count(EVENTS),
            "registrations": store.count(REGISTRATIONS),
            "tasks": store.count(TASKS),
            "boards": store.count(BOARDS),
        },
        "ocr": {
            "model": settings.OCR_MODEL,
            "dev_mode": dev_mode,
            "reachable": True if dev_mode else _ollama_reachable(),
            "total": stats["ocr_total"],
            "failed": stats["ocr_failed"],
        },
        "identity": {"dev_mode": bool(settings.IDENTITY_DEV_MODE)},
        "uptime_s": stats["uptime_s"],
        "sign_in_total": stats["sign_in_total"],
        "sign_in_failed": stats["sign_in_failed"],
        "registration_updates_total": stats["registration_updates_total"],
        "last_error": stats["last_error"],
    }
    return JSONResponse(data)
