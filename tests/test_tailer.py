import io
import os

from floodguard.tailer import LogMultiplexer, StdinSource


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def append(path, text: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


def test_stdin_source_reads_until_eof() -> None:
    source = StdinSource(io.StringIO("1.1.1.1 GET /\r\n2.2.2.2 GET /\n"))
    assert source.next_line() == "1.1.1.1 GET /"
    assert source.next_line() == "2.2.2.2 GET /"
    assert source.finished is False
    assert source.next_line() is None
    assert source.finished is True


def test_newest_file_by_mtime_then_name(tmp_path) -> None:
    older = tmp_path / "access.log.1"
    newer = tmp_path / "access.log"
    other = tmp_path / "error.log"
    for p in (older, newer, other):
        p.write_text("", encoding="utf-8")
    os.utime(older, (100, 100))
    os.utime(newer, (200, 200))
    os.utime(other, (300, 300))

    mux = LogMultiplexer(tmp_path, ["access.log*"])
    assert mux.newest_file() == newer

    os.utime(older, (200, 200))
    assert mux.newest_file() == older  # same mtime, greater name wins


def test_starts_at_end_and_follows_new_lines(tmp_path, log_records) -> None:
    log = tmp_path / "access.log"
    log.write_text("1.1.1.1 old line\n", encoding="utf-8")
    mux = LogMultiplexer(tmp_path, ["access.log*"], clock=FakeClock())

    assert mux.next_line() is None
    append(log, "2.2.2.2 GET /\n")
    assert mux.next_line() == "2.2.2.2 GET /"
    assert mux.next_line() is None
    mux.close()


def test_partial_line_waits_for_newline(tmp_path, log_records) -> None:
    log = tmp_path / "access.log"
    log.write_text("", encoding="utf-8")
    mux = LogMultiplexer(tmp_path, ["access.log"], clock=FakeClock())
    mux.next_line()

    append(log, "3.3.3.3 GE")
    assert mux.next_line() is None
    append(log, "T /\n")
    assert mux.next_line() == "3.3.3.3 GET /"
    mux.close()


def test_switches_to_newer_file_after_draining_old_one(tmp_path, log_records) -> None:
    clock = FakeClock()
    first = tmp_path / "access.log.2024-01-01"
    first.write_text("", encoding="utf-8")
    os.utime(first, (100, 100))
    mux = LogMultiplexer(tmp_path, ["access.log.*"], rotation_check=5, clock=clock)
    assert mux.next_line() is None
    assert mux.path == first

    append(first, "1.1.1.1 last line of old file\n")
    second = tmp_path / "access.log.2024-01-02"
    second.write_text("2.2.2.2 first line of new file\n", encoding="utf-8")

    clock.now = 1  # too soon to rescan
    assert mux.next_line() == "1.1.1.1 last line of old file"
    assert mux.next_line() is None
    assert mux.path == first

    clock.now = 10
    assert mux.next_line() == "2.2.2.2 first line of new file"
    assert mux.path == second
    mux.close()


def test_no_matching_file_yields_nothing(tmp_path) -> None:
    mux = LogMultiplexer(tmp_path, ["access.log*"], clock=FakeClock())
    assert mux.next_line() is None
    assert mux.path is None
    assert mux.finished is False


def test_stdin_source_with_timeout_returns_none_while_idle() -> None:
    read_fd, write_fd = os.pipe()
    stream = os.fdopen(read_fd, "r", encoding="utf-8")
    source = StdinSource(stream, timeout=0)
    try:
        assert source.next_line() is None
        assert source.finished is False

        os.write(write_fd, b"1.1.1.1 GET /\r\n2.2.2.2 GE")
        assert source.next_line() == "1.1.1.1 GET /"
        assert source.next_line() is None

        os.write(write_fd, b"T /\n3.3.3.3 tail")
        assert source.next_line() == "2.2.2.2 GET /"

        os.close(write_fd)
        assert source.next_line() == "3.3.3.3 tail"
        assert source.finished is True
        assert source.next_line() is None
    finally:
        source.close()
        stream.close()


def test_fragment_at_end_of_old_file_is_kept_on_switch(tmp_path, log_records) -> None:
    clock = FakeClock()
    first = tmp_path / "access.log.1"
    first.write_text("", encoding="utf-8")
    os.utime(first, (100, 100))
    mux = LogMultiplexer(tmp_path, ["access.log.*"], rotation_check=5, clock=clock)
    mux.next_line()

    append(first, "1.1.1.1 no newline")
    assert mux.next_line() is None

    second = tmp_path / "access.log.2"
    second.write_text("2.2.2.2 GET /\n", encoding="utf-8")
    clock.now = 10
    assert mux.next_line() == "1.1.1.1 no newline"
    assert mux.next_line() == "2.2.2.2 GET /"
    assert mux.path == second
    mux.close()
