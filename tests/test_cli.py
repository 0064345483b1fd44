import io
import sys

import pytest

import main
from quick_gif.cli import get_args

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="fake encoder is a POSIX shell script")


def test_defaults(tmp_path):
    args = get_args([str(tmp_path / "a.png")])
    assert args.framerate == "15"
    assert args.resolution == "640"
    assert args.export is None
    assert args.log_level == "INFO"


def test_work_dir_is_created(tmp_path):
    target = tmp_path / "ram" / "disk"
    args = get_args(["a.png", "--work-dir", str(target)])
    assert target.is_dir()
    assert args.work_dir == target.resolve()


@posix_only
def test_main_creates_and_exports_gif(fake_encoder_factory, make_images, tmp_path):
    encoder = fake_encoder_factory()
    sources = make_images("1.png", "2.png", "3.png")
    destination = tmp_path / "final.gif"

    code = main.main([
        *map(str, sources), "-r", "12", "-s", "320",
        "--ffmpeg", str(encoder.path), "--work-dir", str(tmp_path / "work"),
        "-o", str(destination),
    ])

    assert code == 0
    assert destination.read_bytes() == b"GIF89a"
    assert not (tmp_path / "work" / "ffmpeg_input").exists()
    assert list((tmp_path / "work").glob("output_*.gif")) == []


@posix_only
def test_main_reports_failure(fake_encoder_factory, make_images, tmp_path):
    encoder = fake_encoder_factory()
    code = main.main([
        *map(str, make_images("1.png")), "-r", "0",
        "--ffmpeg", str(encoder.path), "--work-dir", str(tmp_path / "work"),
    ])
    assert code == 1


@posix_only
def test_main_keeps_unexported_gif(fake_encoder_factory, make_images, tmp_path):
    encoder = fake_encoder_factory()
    code = main.main([
        *map(str, make_images("1.png")), "--ffmpeg", str(encoder.path), "--work-dir", str(tmp_path / "work"),
    ])
    assert code == 0
    assert len(list((tmp_path / "work").glob("output_*.gif"))) == 1


@posix_only
def test_main_rejects_encoder_failing_version_check(fake_encoder_factory, make_images, tmp_path):
    encoder = fake_encoder_factory(exit_code=1)
    code = main.main([
        *map(str, make_images("1.png")), "--ffmpeg", str(encoder.path), "--work-dir", str(tmp_path / "work"),
    ])
    assert code == 1
    assert encoder.calls == [["-version"]]
    assert not (tmp_path / "work" / "ffmpeg_input").exists()

def test_main_without_encoder_fails(make_images, tmp_path):
    code = main.main([
        *map(str, make_images("1.png")), "--ffmpeg", str(tmp_path / "missing-ffmpeg"),
        "--work-dir", str(tmp_path / "work"),
    ])
    assert code == 1


def test_progress_printer_renders_each_percent_once():
    stream = io.StringIO()
    printer = main.ProgressPrinter(stream)
    for value in (0.0, 0.001, 0.5, 1.0):
        printer(value)
    assert stream.getvalue() == "\rEncoding:   0%\rEncoding:  50%\rEncoding: 100%\n"
