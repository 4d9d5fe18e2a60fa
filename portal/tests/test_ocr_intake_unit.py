import asyncio
from types import SimpleNamespace

import pytest

from portal.app.models import OcrFailure, OcrSuccess
from portal.app.services.ocr_intake import (
    INVALID_URI_MESSAGE,
    UNEXPECTED_FORMAT_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
    process_registration_form,
)
from portal.app.telemetry import telemetry
from portal.providers.llm.ollama_vision import OllamaFormExtractor, to_data_uri

PNG_URI = to_data_uri(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16)

JANE = {
    "name": "Jane Doe",
    "school": "Springfield High",
    "grade": "10",
    "contactNumber": "555-1234",
    "email": "jane@example.com",
}


def run(coro):
    return asyncio.run(coro)


class TestInputValidation:
    """Inputs that never reach the extractor."""

    @pytest.mark.parametrize("bad", ["", None, 42, "http://example.com/form.png", " data:image/png;base64,AA=="])
    def test_rejected_without_extraction(self, bad, fake_extractor_cls):
        extractor = fake_extractor_cls(response={"studentData": [JANE]})
        outcome = run(process_registration_form(bad, extractor))
        assert isinstance(outcome, OcrFailure)
        assert outcome.to_wire() == {"success": False, "error": INVALID_URI_MESSAGE}
        assert extractor.calls == []

    def test_bare_data_prefix_is_handed_to_extractor(self, fake_extractor_cls):
        extractor = fake_extractor_cls(response={"studentData": []})
        outcome = run(process_registration_form("data:", extractor))
        assert outcome.success is True
        assert extractor.calls == ["data:"]


class TestExtraction:
    def test_single_student(self, fake_extractor_cls):
        extractor = fake_extractor_cls(response={"studentData": [JANE]})
        outcome = run(process_registration_form(PNG_URI, extractor))
        assert isinstance(outcome, OcrSuccess)
        assert outcome.to_wire() == {"success": True, "data": [JANE]}
        assert extractor.calls == [PNG_URI]

    def test_records_are_passed_through_in_order(self, fake_extractor_cls):
        second = {**JANE, "name": "John Roe", "email": ""}
        extractor = fake_extractor_cls(response={"studentData": [JANE, second]})
        outcome = run(process_registration_form(PNG_URI, extractor))
        assert [r["name"] for r in outcome.to_wire()["data"]] == ["Jane Doe", "John Roe"]
        assert outcome.data[1].email == ""

    def test_attribute_style_response(self, fake_extractor_cls):
        extractor = fake_extractor_cls(response=SimpleNamespace(student_data=[JANE]))
        outcome = run(process_registration_form(PNG_URI, extractor))
        assert outcome.success is True
        assert outcome.data[0].contact_number == "555-1234"

    def test_empty_record_list_is_success(self, fake_extractor_cls):
        extractor = fake_extractor_cls(response={"studentData": []})
        outcome = run(process_registration_form(PNG_URI, extractor))
        assert outcome.to_wire() == {"success": True, "data": []}

    def test_missing_fields_stay_absent(self, fake_extractor_cls):
        extractor = fake_extractor_cls(response={"studentData": [{"name": "Only Name"}]})
        outcome = run(process_registration_form(PNG_URI, extractor))
        record = outcome.to_wire()["data"][0]
        assert record["name"] == "Only Name"
        assert record["school"] is None

    def test_numeric_values_become_strings(self, fake_extractor_cls):
        extractor = fake_extractor_cls(response={"studentData": [{**JANE, "grade": 10}]})
        outcome = run(process_registration_form(PNG_URI, extractor))
        assert outcome.data[0].grade == "10"

    @pytest.mark.parametrize(
        "response",
        [None, {}, {"studentData": None}, {"studentData": "Jane Doe"}, {"students": [JANE]}],
    )
    def test_unexpected_shapes(self, response, fake_extractor_cls):
        extractor = fake_extractor_cls(response=response)
        outcome = run(process_registration_form(PNG_URI, extractor))
        assert outcome.to_wire() == {"success": False, "error": UNEXPECTED_FORMAT_MESSAGE}
        assert len(extractor.calls) == 1

    def test_same_input_same_outcome(self, fake_extractor_cls):
        extractor = fake_extractor_cls(response={"studentData": [JANE]})
        first = run(process_registration_form(PNG_URI, extractor))
        second = run(process_registration_form(PNG_URI, extractor))
        assert first.to_wire() == second.to_wire()
        assert len(extractor.calls) == 2


class TestFailures:
    def test_extractor_error_message_is_carried(self, fake_extractor_cls):
        extractor = fake_extractor_cls(error=RuntimeError("timeout"))
        outcome = run(process_registration_form(PNG_URI, extractor))
        assert outcome.to_wire() == {"success": False, "error": "AI processing failed: timeout"}

    def test_blank_error_message_uses_fallback(self, fake_extractor_cls):
        extractor = fake_extractor_cls(error=ValueError(""))
        outcome = run(process_registration_form(PNG_URI, extractor))
        assert outcome.error == f"AI processing failed: {UNKNOWN_ERROR_MESSAGE}"

    def test_failure_is_counted(self, fake_extractor_cls):
        before = telemetry.get_stats()
        extractor = fake_extractor_cls(error=ConnectionError("model unavailable"))
        run(process_registration_form(PNG_URI, extractor))
        after = telemetry.get_stats()
        assert after["ocr_total"] == before["ocr_total"] + 1
        assert after["ocr_failed"] == before["ocr_failed"] + 1
        assert after["last_error"] == "ocr: model unavailable"

    def test_cancellation_is_not_swallowed(self, fake_extractor_cls):
        extractor = fake_extractor_cls(error=asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            run(process_registration_form(PNG_URI, extractor))


def test_lincoln_high_scenario(fake_extractor_cls):
    record = {
        "name": "Jane Doe",
        "school": "Lincoln High",
        "grade": "10",
        "contactNumber": "555-0100",
        "email": "jane@example.com",
    }
    extractor = fake_extractor_cls(response={"studentData": [record]})
    outcome = run(process_registration_form("data:image/png;base64,AAAA", extractor))
    assert outcome.to_wire() == {"success": True, "data": [record]}


def test_bare_exception_uses_fallback(fake_extractor_cls):
    extractor = fake_extractor_cls(error=Exception())
    outcome = run(process_registration_form(PNG_URI, extractor))
    assert outcome.to_wire() == {
        "success": False,
        "error": f"AI processing failed: {UNKNOWN_ERROR_MESSAGE}",
    }


def test_concurrent_calls_do_not_interfere(fake_extractor_cls):
    jane = fake_extractor_cls(response={"studentData": [JANE]})
    broken = fake_extractor_cls(error=RuntimeError("timeout"))

    async def both():
        return await asyncio.gather(
            process_registration_form(PNG_URI, jane),
            process_registration_form("data:image/jpeg;base64,AAAA", broken),
        )

    ok, failed = run(both())
    assert ok.to_wire() == {"success": True, "data": [JANE]}
    assert failed.error == "AI processing failed: timeout"
    assert jane.calls == [PNG_URI]
    assert broken.calls == ["data:image/jpeg;base64,AAAA"]


def test_default_extractor_in_dev_mode():
    extractor = OllamaFormExtractor(dev_mode=True)
    outcome = run(process_registration_form(PNG_URI, extractor))
    assert outcome.success is True
    assert outcome.data[0].name == "Dev Student"


def test_dev_mode_still_rejects_non_base64_uri():
    extractor = OllamaFormExtractor(dev_mode=True)
    outcome = run(process_registration_form("data:text/plain,hello", extractor))
    assert outcome.success is False
    assert outcome.error.startswith("AI processing failed: data URI must be base64-encoded")


def test_falsy_injected_extractor_is_used(fake_extractor_cls, monkeypatch):
    class EmptyExtractor(fake_extractor_cls):
        def __len__(self):
            return 0

    extractor = EmptyExtractor(response={"studentData": [JANE]})
    assert not extractor

    def fail():
        raise AssertionError("default extractor should not be built")

    monkeypatch.setattr("portal.app.services.ocr_intake.default_extractor", fail)
    outcome = run(process_registration_form(PNG_URI, extractor))
    assert outcome.to_wire() == {"success": True, "data": [JANE]}
    assert extractor.calls == [PNG_URI]
