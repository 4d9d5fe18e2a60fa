# portal/app/services/ocr_intake.py
"""
Registration-form OCR intake.

`process_registration_form` validates a data URI, hands it to an extraction
capability exactly once and folds every outcome into OcrSuccess / OcrFailure.
It always returns; nothing raised by the extractor reaches the caller.

The extractor answers with an object exposing the extracted records, either as
a mapping key (`studentData`) or an attribute (`student_data`). Anything else,
including None, is an unexpected format. An empty records list is a success
with zero records.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Protocol

from portal.app.models import OcrFailure, OcrOutcome, OcrSuccess, StudentRecord
from portal.app.telemetry import telemetry

log = logging.getLogger(__name__)

INVALID_URI_MESSAGE = "Invalid form data URI provided."
UNEXPECTED_FORMAT_MESSAGE = "AI could not extract data or returned an unexpected format."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during OCR processing."


class FormExtractor(Protocol):
    async def extract(self, form_data_uri: str) -> Any: ...


def _records_field(response: Any) -> Any:
    if response is None:
        return None
    if isinstance(response, Mapping):
        return response.get("studentData", response.get("student_data"))
    return getattr(response, "student_data", getattr(response, "studentData", None))


def default_extractor() -> FormExtractor:
    from portal.providers.llm.ollama_vision import OllamaFormExtractor

    return OllamaFormExtractor()


async def process_registration_form(
    form_data_uri: Any, extractor: Optional[FormExtractor] = None
) -> OcrOutcome:
    if not isinstance(form_data_uri, str) or not form_data_uri or not form_data_uri.startswith("data:"):
        return OcrFailure(error=INVALID_URI_MESSAGE)

    telemetry.increment("ocr_total")
    try:
        if extractor is None:
            extractor = default_extractor()
        response = await extractor.extract(form_data_uri)
        records = _records_field(response)
        if not isinstance(records, (list, tuple)):
            return OcrFailure(error=UNEXPECTED_FORMAT_MESSAGE)
        return OcrSuccess(data=[StudentRecord.model_validate(r) for r in records])
    except Exception as e:
        message = str(e).strip() or UNKNOWN_ERROR_MESSAGE
        log.error(f"Error processing registration form with AI: {e!r}", exc_info=True)
        telemetry.record_failure("ocr_failed", f"ocr: {message}", "ocr_failed", error_type=type(e).__name__)
        return OcrFailure(error=f"AI processing failed: {message}")
