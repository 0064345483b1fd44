from datetime import timedelta
from pathlib import Path

import pytest

from quick_gif.services.logging_service import EncoderOutputLog, format_stderr_excerpt
from quick_gif.utils.format_utils import contains_any_extensions, format_timedelta, formatted_size


@pytest.mark.parametrize("size, expected", [
    (0, "0 B"),
    (512, "512 B"),
    (1536, "1.50 KB"),
    (2 * 1024 * 1024, "2 MB"),
])
def test_formatted_size(size, expected):
    assert formatted_size(size) == expected


def test_format_timedelta():
    assert format_timedelta(timedelta(hours=2, seconds=61, milliseconds=250)) == "02:01:01.250"
    assert format_timedelta("nope") == "00:00:00.000"


def test_contains_any_extensions_is_case_insensitive():
    assert contains_any_extensions(Path("a/B.PNG"), ["png"])
    assert contains_any_extensions(Path("a/b.jpeg"), [".JPEG"])
    assert not contains_any_extensions(Path("a/README"), ["png"])
    assert not contains_any_extensions(Path("a/b.png"), [])


def test_encoder_output_log_keeps_stderr_tail(tmp_path):
    log = EncoderOutputLog(tmp_path, tail_lines=2)
    log.write("stderr", b"line one\nline tw")
    log.write("stderr", b"o\nline three\n")
    log.write("stdout", b"ignored for tail\n")
    log.write_summary("Result: ok")

    assert log.stderr_tail() == "line two\nline three"
    text = log.log_file_path.read_text(encoding="utf-8")
    assert "[stdout] ignored for tail" in text
    assert "Result: ok" in text


def test_format_stderr_excerpt_keeps_the_end():
    assert format_stderr_excerpt("a\n\nb\n") == "a | b"
    assert format_stderr_excerpt("x" * 20, limit=5) == "...xxxxx"
    assert format_stderr_excerpt(None) == ""
