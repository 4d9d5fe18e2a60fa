# portal/app/routers/ocr.py
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from portal.app.config import settings
from portal.app.services.ocr_intake import (
    FormExtractor,
    default_extractor,
    process_registration_form,
)
from portal.providers.llm.ollama_vision import to_data_uri

router = APIRouter(prefix="/ocr", tags=["ocr"])


def get_form_extractor() -> FormExtractor:
    return default_extractor()


class RegistrationFormIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Left untyped: the intake boundary owns input validation.
    form_data_uri: Optional[Any] = Field(default=None, alias="formDataUri")


@router.post("/registration-form")
async def scan_registration_form(
    body: RegistrationFormIn,
    extractor: FormExtractor = Depends(get_form_extractor),
):
    outcome = await process_registration_form(body.form_data_uri, extractor)
    return outcome.to_wire()


@router.post("/registration-form/upload")
async def scan_registration_form_upload(
    file: UploadFile = File(...),
    extractor: FormExtractor = Depends(get_form_extractor),
):
    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail={"ok": False, "error": f"file exceeds {settings.MAX_UPLOAD_BYTES} bytes"},
        )
    mime = file.content_type if file.content_type and file.content_type != "application/octet-stream" else None
    form_data_uri = to_data_uri(data, mime) if data else ""
    outcome = await process_registration_form(form_data_uri, extractor)
    return outcome.to_wire()
