"""Tests for warden.logs."""

import io
import threading

from warden.logs import TeeWriter


def test_tee_writes_to_all_destinations(tmp_path):
    console = io.StringIO()
    writer = TeeWriter.open_log(tmp_path / "stdout.log", console)
    writer.write("one\n")
    writer.write("two\n")
    writer.close()

    assert console.getvalue() == "one\ntwo\n"
    assert (tmp_path / "stdout.log").read_text() == "one\ntwo\n"
    assert writer.closed
    # Borrowed destinations stay open.
    assert not console.closed


def test_tee_skips_closed_destinations(tmp_path):
    console = io.StringIO()
    writer = TeeWriter.open_log(tmp_path / "stderr.log", console)
    writer.close()
    writer.write("late\n")
    assert console.getvalue() == "late\n"
    assert (tmp_path / "stderr.log").read_text() == ""


def test_tee_ignores_missing_destinations():
    console = io.StringIO()
    writer = TeeWriter(None, console)
    assert writer.write("x") == 1
    assert list(writer.destinations) == [console]
    assert not writer.closed


def test_tee_keeps_lines_whole_across_threads():
    console = io.StringIO()
    writer = TeeWriter(console)

    def spam(tag):
        for i in range(200):
            writer.write(f"{tag}-{i}\n")

    threads = [threading.Thread(target=spam, args=(t,)) for t in "abc"]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = console.getvalue().splitlines()
    assert len(lines) == 600
    assert all(line[0] in "abc" and line[1] == "-" for line in lines)
