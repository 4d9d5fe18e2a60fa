import json

from portal.app.telemetry import COUNTERS, Telemetry


def test_counters_and_stats(tmp_path):
    t = Telemetry(log_dir=tmp_path)
    t.increment("ocr_total")
    t.increment("ocr_total")
    t.increment("not_a_counter")
    t.set_error("ocr: timeout")

    stats = t.get_stats()
    assert stats["ocr_total"] == 2
    assert stats["last_error"] == "ocr: timeout"
    assert set(COUNTERS) <= set(stats)
    assert "not_a_counter" not in stats


def test_log_json_writes_lines(tmp_path):
    t = Telemetry(log_dir=tmp_path)
    t.log_json("ocr_failed", level="error", error="timeout")

    lines = t.log_file.read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["event"] == "ocr_failed"
    assert entry["level"] == "error"
    assert entry["subsystem"] == "portal"
    assert entry["error"] == "timeout"


def test_log_rotation(tmp_path):
    t = Telemetry(log_dir=tmp_path)
    t._max_log_bytes = 10
    for i in range(4):
        t.log_json("tick", n=i)

    assert t.log_file.exists()
    assert t.log_file.with_suffix(".jsonl.1").exists()
    assert t.log_file.with_suffix(".jsonl.2").exists()
    assert len(t.log_file.read_text(encoding="utf-8").splitlines()) == 1


def test_record_failure(tmp_path):
    t = Telemetry(log_dir=tmp_path)
    t.record_failure("sign_in_failed", "sign_in: INVALID_LOGIN_CREDENTIALS", "sign_in_failed", code="INVALID_LOGIN_CREDENTIALS")

    assert t.get_stats()["sign_in_failed"] == 1
    assert t.get_stats()["last_error"] == "sign_in: INVALID_LOGIN_CREDENTIALS"
    entry = json.loads(t.log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert entry["level"] == "error"
    assert entry["code"] == "INVALID_LOGIN_CREDENTIALS"


class _Unprintable:
    def __str__(self):
        raise ValueError("no text form")


def test_log_json_never_raises(tmp_path):
    t = Telemetry(log_dir=tmp_path)
    t.log_json("odd_field", value=_Unprintable())
    t.record_failure("ocr_failed", "ocr: boom", "ocr_failed", detail=_Unprintable())

    assert t.get_stats()["ocr_failed"] == 1
    assert not t.log_file.exists()


def test_log_json_unwritable_dir(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    t = Telemetry(log_dir=blocker)
    t.log_json("tick")
    assert t.get_stats()["last_error"] is None
