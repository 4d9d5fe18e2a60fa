"""
Ollama vision provider for registration-form extraction.

Usage:
    from portal.providers.llm.ollama_vision import OllamaFormExtractor

    extractor = OllamaFormExtractor(model="llama3.2-vision")
    result = await extractor.extract("data:image/png;base64,....")
    # -> {"studentData": [{"name": ..., "school": ..., ...}, ...]}

The provider owns the transport policy (timeout); callers get either the
parsed JSON object or an exception.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from typing import Any, Dict, Optional, Tuple

import requests

from portal.app.config import settings

log = logging.getLogger(__name__)

PROMPT = (
    "You are an expert data extraction specialist. You will receive a "
    "registration form, and you will extract the student data from it. "
    "Extract all student names, schools, grades, contact numbers and email "
    'addresses. Respond with JSON of the form {"studentData": [{"name": ..., '
    '"school": ..., "grade": ..., "contactNumber": ..., "email": ...}]}. '
    "Use an empty string for any value that is not on the form."
)

STUDENT_DATA_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "studentData": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "school": {"type": "string"},
                    "grade": {"type": "string"},
                    "contactNumber": {"type": "string"},
                    "email": {"type": "string"},
                },
                "required": ["name", "school", "grade", "contactNumber", "email"],
            },
        }
    },
    "required": ["studentData"],
}

_DEV_RECORD = {
    "name": "Dev Student",
    "school": "Dev School",
    "grade": "10",
    "contactNumber": "000-0000",
    "email": "dev.student@example.com",
}


class ExtractionError(RuntimeError):
    pass


def _guess_mime(b: bytes) -> str:
    if b.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if b[0:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if b[0:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if b[0:4] == b"RIFF" and b[8:12] == b"WEBP":
        return "image/webp"
    if b.startswith(b"%PDF"):
        return "application/pdf"
    return "application/octet-stream"


def to_data_uri(data: bytes, mime: Optional[str] = None) -> str:
    mime = mime or _guess_mime(data)
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{b64}"


def split_data_uri(uri: str) -> Tuple[str, str]:
    """Return (mime, base64 payload) of a base64 data URI."""
    header, sep, payload = uri.partition(",")
    if not sep or not header.startswith("data:"):
        raise ExtractionError("malformed data URI")
    meta = header[len("data:") :].split(";")
    if "base64" not in meta[1:]:
        raise ExtractionError("data URI must be base64-encoded")
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ExtractionError(f"data URI payload is not valid base64: {e}") from e
    return (meta[0] or "application/octet-stream"), payload


def _strip_code_fences(text: str) -> str:
    t = text.strip()
    if t.startswith("```"):
        nl = t.find("\n")
        if nl != -1:
            t = t[nl + 1 :]
        if t.endswith("```"):
            t = t[:-3]
    return t.strip()


class OllamaFormExtractor:
    """Scan a registration form image with an Ollama vision model."""

    def __init__(
        self,
        host: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        dev_mode: Optional[bool] = None,
    ):
        self.host = (host or settings.OLLAMA_URL).rstrip("/")
        self.model = model or settings.OCR_MODEL
        self.timeout = timeout or settings.OCR_TIMEOUT_S
        self.dev_mode = bool(settings.OCR_DEV_MODE) if dev_mode is None else dev_mode

    async def extract(self, form_data_uri: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._extract_sync, form_data_uri)

    def _extract_sync(self, form_data_uri: str) -> Dict[str, Any]:
        _mime, payload = split_data_uri(form_data_uri)
        if self.dev_mode:
            return {"studentData": [dict(_DEV_RECORD)]}

        try:
            response = requests.post(
                f"{self.host}/api/generate",
                json={
                    "model": self.model,
                    "prompt": PROMPT,
                    "images": [payload],
                    "format": STUDENT_DATA_SCHEMA,
                    "stream": False,
                    "options": {"temperature": settings.OCR_TEMPERATURE},
                },
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise ExtractionError("timeout") from e

        if not (200 <= response.status_code < 300):
            raise ExtractionError(f"Ollama returned HTTP {response.status_code}")

        text = _strip_code_fences(response.json().get("response", ""))
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"model returned invalid JSON: {e}") from e

        # Some models answer with the bare array the prompt describes.
        if isinstance(data, list):
            data = {"studentData": data}
        log.info(
            f"[ocr] {self.model} returned {len(data.get('studentData') or []) if isinstance(data, dict) else 0} record(s)"
        )
        return data
