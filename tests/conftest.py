import json
import stat
import sys
import textwrap
from pathlib import Path

import pytest
from loguru import logger

from quick_gif.pipeline.conversion_pipeline import ConversionCoordinator

# A stand-in for FFmpeg: records its argv, writes some output to both pipes,
# optionally waits for a gate file, creates the output file (last argument) and
# exits with the configured status.
FAKE_ENCODER_SOURCE = textwrap.dedent(
    """
    import json, os, sys, time

    config = json.loads({config!r})
    argv = sys.argv[1:]
    with open(config["record"], "a", encoding="utf-8") as f:
        f.write(json.dumps(argv) + "\\n")

    sys.stdout.write("fake encoder starting\\n")
    sys.stdout.flush()
    sys.stderr.write("x" * config["stderr_bytes"] + "\\n")
    sys.stderr.write("last stderr line\\n")
    sys.stderr.flush()

    gate = config.get("gate")
    if gate:
        deadline = time.time() + 20
        while not os.path.exists(gate) and time.time() < deadline:
            time.sleep(0.02)

    if config["create_output"] and argv and argv[-1].endswith(".gif"):
        with open(argv[-1], "wb") as f:
            f.write(b"GIF89a")
    sys.exit(config["exit_code"])
    """
)

class FakeEncoder:
    def __init__(self, path: Path, record: Path, gate: Path):
        self.path = path
        self.record = record
        self.gate = gate

    @property
    def calls(self):
        if not self.record.exists():
            return []
        return [json.loads(line) for line in self.record.read_text(encoding="utf-8").splitlines() if line]

    def open_gate(self):
        self.gate.write_text("go", encoding="utf-8")


@pytest.fixture
def fake_encoder_factory(tmp_path):
    """Builds an executable fake encoder: factory(exit_code=0, create_output=True, stderr_bytes=0, gated=False)."""
    counter = {"n": 0}

    def factory(exit_code=0, create_output=True, stderr_bytes=0, gated=False):
        counter["n"] += 1
        base = tmp_path / f"fake_encoder_{counter['n']}"
        base.mkdir()
        record = base / "calls.jsonl"
        gate = base / "gate"
        config = json.dumps({
            "record": str(record),
            "exit_code": exit_code,
            "create_output": create_output,
            "stderr_bytes": stderr_bytes,
            "gate": str(gate) if gated else None,
        })
        script = base / "fake_ffmpeg.py"
        script.write_text(FAKE_ENCODER_SOURCE.format(config=config), encoding="utf-8")
        wrapper = base / "ffmpeg"
        wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n', encoding="utf-8")
        wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeEncoder(wrapper, record, gate)

    return factory


@pytest.fixture
def make_images(tmp_path):
    """Creates small dummy image files: make_images("a.png", "b.jpg", folder="shots")."""

    def factory(*names, folder="images"):
        directory = tmp_path / folder
        directory.mkdir(exist_ok=True)
        paths = []
        for name in names:
            path = directory / name
            path.write_bytes(f"image:{name}".encode("utf-8"))
            paths.append(path)
        return paths

    return factory


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def coordinator_factory(work_dir):
    created = []

    def factory(encoder_path=None):
        coordinator = ConversionCoordinator(encoder_path=encoder_path, work_dir=work_dir)
        created.append(coordinator)
        return coordinator

    yield factory
    for coordinator in created:
        coordinator.shutdown(timeout=10)


def staged_names(directory: Path):
    return sorted(p.name for p in directory.iterdir() if not p.name.endswith(".log"))


@pytest.fixture
def list_staged():
    return staged_names



@pytest.fixture
def caplog_loguru():
    """Collects loguru messages emitted during the test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
