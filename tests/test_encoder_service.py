import sys
import threading

import pytest

from quick_gif.domain.exceptions import EncoderMissing, JobAlreadyActive, LaunchFailed
from quick_gif.services.encoder_service import EncoderSupervisor
from quick_gif.services.logging_service import EncoderOutputLog

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake encoder is a POSIX shell script")


class ExitRecorder:
    def __init__(self):
        self.codes = []
        self.event = threading.Event()

    def __call__(self, code):
        self.codes.append(code)
        self.event.set()


def launch(supervisor, encoder, tmp_path, recorder, output_name="out.gif"):
    sink = EncoderOutputLog(tmp_path)
    output = tmp_path / output_name
    supervisor.launch([str(encoder.path), "-i", "pattern", str(output)], output, sink, recorder)
    return sink, output


def test_success_reports_zero_once(fake_encoder_factory, tmp_path):
    encoder = fake_encoder_factory(exit_code=0)
    supervisor = EncoderSupervisor(encoder.path)
    recorder = ExitRecorder()

    sink, output = launch(supervisor, encoder, tmp_path, recorder)
    assert recorder.event.wait(20)
    assert supervisor.wait(20)

    assert recorder.codes == [0]
    assert output.read_bytes() == b"GIF89a"
    assert not supervisor.terminate()
    assert not supervisor.terminated
    assert not supervisor.is_busy
    assert "fake encoder starting" in sink.log_file_path.read_text(encoding="utf-8")


def test_non_zero_exit_is_surfaced_verbatim(fake_encoder_factory, tmp_path):
    encoder = fake_encoder_factory(exit_code=3, create_output=False)
    supervisor = EncoderSupervisor(encoder.path)
    recorder = ExitRecorder()

    sink, _ = launch(supervisor, encoder, tmp_path, recorder)
    assert supervisor.wait(20)
    assert recorder.codes == [3]
    assert "last stderr line" in sink.stderr_tail()


def test_large_output_does_not_deadlock(fake_encoder_factory, tmp_path):
    # Far more than a pipe buffer holds.
    encoder = fake_encoder_factory(stderr_bytes=2 * 1024 * 1024)
    supervisor = EncoderSupervisor(encoder.path)
    recorder = ExitRecorder()

    launch(supervisor, encoder, tmp_path, recorder)
    assert recorder.event.wait(30)
    assert recorder.codes == [0]


def test_second_launch_while_running_is_refused(fake_encoder_factory, tmp_path):
    encoder = fake_encoder_factory(gated=True)
    supervisor = EncoderSupervisor(encoder.path)
    recorder = ExitRecorder()
    launch(supervisor, encoder, tmp_path, recorder)

    other = tmp_path / "other.gif"
    other.write_bytes(b"keep me")
    with pytest.raises(JobAlreadyActive):
        supervisor.launch([str(encoder.path), str(other)], other, EncoderOutputLog(tmp_path), ExitRecorder())
    assert other.read_bytes() == b"keep me"

    encoder.open_gate()
    assert supervisor.wait(20)
    assert recorder.codes == [0]
    assert len(encoder.calls) == 1


def test_previous_output_is_removed_before_launch(fake_encoder_factory, tmp_path):
    encoder = fake_encoder_factory(exit_code=1, create_output=False)
    supervisor = EncoderSupervisor(encoder.path)
    stale = tmp_path / "out.gif"
    stale.write_bytes(b"old partial gif")

    launch(supervisor, encoder, tmp_path, ExitRecorder())
    assert supervisor.wait(20)
    assert not stale.exists()


def test_missing_executable_releases_the_flag(tmp_path):
    supervisor = EncoderSupervisor(tmp_path / "nope")
    with pytest.raises(EncoderMissing):
        supervisor.ensure_encoder()
    with pytest.raises(EncoderMissing):
        supervisor.launch([str(tmp_path / "nope")], tmp_path / "o.gif", EncoderOutputLog(tmp_path), ExitRecorder())
    assert not supervisor.is_busy


def test_spawn_denied_is_launch_failed(tmp_path):
    not_executable = tmp_path / "ffmpeg"
    not_executable.write_text("#!/bin/sh\nexit 0\n")
    not_executable.chmod(0o644)
    supervisor = EncoderSupervisor(not_executable)

    with pytest.raises(EncoderMissing):
        supervisor.ensure_encoder()
    with pytest.raises(LaunchFailed):
        supervisor.launch([str(not_executable)], tmp_path / "o.gif", EncoderOutputLog(tmp_path), ExitRecorder())
    assert not supervisor.is_busy


def test_no_encoder_configured():
    with pytest.raises(EncoderMissing):
        EncoderSupervisor(None).ensure_encoder()


def test_terminate_stops_a_running_encoder(fake_encoder_factory, tmp_path):
    encoder = fake_encoder_factory(gated=True)
    supervisor = EncoderSupervisor(encoder.path)
    recorder = ExitRecorder()
    launch(supervisor, encoder, tmp_path, recorder)

    assert supervisor.terminate(timeout=5)
    assert supervisor.wait(20)
    assert len(recorder.codes) == 1
    assert recorder.codes[0] != 0
    assert supervisor.terminated
    assert not supervisor.terminate()
