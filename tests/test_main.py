import io
import json
import sys

import main
from floodguard import logger


def test_invalid_limit_is_fatal(log_records) -> None:
    assert main.main(["--limit", "0", "--no-status"]) == 2
    assert log_records()[-1]["level"] == "ERROR"


def test_missing_log_dir_is_fatal(tmp_path, log_records) -> None:
    assert main.main(["--log-dir", str(tmp_path / "nope"), "--no-status"]) == 2
    assert "not found" in log_records()[-1]["error"]


def test_reads_stdin_and_blocks_in_dry_run(tmp_path, monkeypatch, log_records) -> None:
    cfg = tmp_path / "floodguard.json"
    cfg.write_text(json.dumps({
        "alerts_file": str(tmp_path / "alerts.json"),
        "blacklist_file": str(tmp_path / "blacklist.txt"),
        "whitelist_file": str(tmp_path / "whitelist.txt"),
    }), encoding="utf-8")
    monkeypatch.setattr("sys.stdin", io.StringIO("9.9.9.9 GET /\n" * 3))

    code = main.main(["--config", str(cfg), "--limit", "2", "--period", "60", "--no-status", "--dry-run"])

    assert code == 0
    assert (tmp_path / "blacklist.txt").read_text(encoding="utf-8") == "9.9.9.9\n"
    records = log_records()
    assert any(r.get("action") == "block_simulated" for r in records)
    assert any("whitelist" in r["message"].lower() for r in records)


def test_invalid_regex_is_fatal(log_records) -> None:
    assert main.main(["--regex", "(unclosed", "--no-status"]) == 2
    record = log_records()[-1]
    assert record["level"] == "ERROR"
    assert "(unclosed" in record["error"]


def test_log_file_is_closed_at_exit(tmp_path, monkeypatch) -> None:
    log_path = tmp_path / "floodguard.log"
    monkeypatch.setattr(logger, "LOG_STREAM", sys.stdout)
    monkeypatch.setattr("sys.stdin", io.StringIO("1.1.1.1 GET /\n"))

    code = main.main([
        "--whitelist", str(tmp_path / "whitelist.txt"),
        "--log-file", str(log_path),
        "--no-status",
    ])

    assert code == 0
    assert logger._LOG_FILE is None
    assert logger.LOG_STREAM is sys.stdout
    messages = [json.loads(line)["message"] for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert messages[-1] == "Detection run complete"
