"""
This module provides the diagnostic sink for the encoder's output.

The encoder's stdout and stderr are drained continuously while it runs. Every
chunk ends up here: it is logged at TRACE level, appended to a plain text log
inside the staging directory (so it lives and dies with the job) and the tail
of stderr is kept in memory for the failure message of a job.

The output is never parsed for control decisions; success or failure is
decided by the exit status alone.
"""

import threading
from collections import deque
from pathlib import Path
from typing import Deque, Optional

from loguru import logger

from ..config.common import ENCODER_LOG_FILE_NAME, STDERR_TAIL_LINES


class Log:
    """
    A base class for the text logs of the application.

    It handles the setup of the log file path and its directory.
    """

    # A decorative separator line used in text-based logs for better readability.
    linesep_marker: str = "=" * 50

    def __init__(self, log_base_path: Path):
        """
        Args:
            log_base_path: If it's a directory, the log file is created inside it.
                           If it's a file path, its parent is used as the log directory.
        """
        self.log_file_path: Path
        if log_base_path.is_dir() or not log_base_path.suffix:
            self.log_dir: Path = log_base_path.resolve()
        else:
            self.log_dir = log_base_path.parent.resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, *args, **kwargs):
        raise NotImplementedError("Subclasses must implement the write() method.")


class EncoderOutputLog(Log):
    """
    Collects the drained stdout/stderr chunks of one encoder run.

    Both reader threads write concurrently, so writes are serialized by a lock.
    A failure to write the file never interrupts draining; it is reported once
    and the log falls back to loguru only.
    """

    def __init__(self, log_dir: Path, filename: str = ENCODER_LOG_FILE_NAME, tail_lines: int = STDERR_TAIL_LINES):
        super().__init__(log_dir)
        self.log_file_path = self.log_dir / filename
        self._lock = threading.Lock()
        self._stderr_tail: Deque[str] = deque(maxlen=tail_lines)
        self._partial_stderr = ""
        self._file_ok = True

    def write(self, stream_name: str, data: bytes):
        """
        Records one drained chunk.

        Args:
            stream_name: "stdout" or "stderr".
            data: The raw bytes read from the pipe.
        """
        if not data:
            return
        text = data.decode("utf-8", errors="replace")
        logger.trace(f"[{stream_name}] {text.rstrip()}")

        with self._lock:
            if stream_name == "stderr":
                self._remember_stderr(text)
            self._append(f"[{stream_name}] {text}")

    def write_summary(self, *lines: str):
        """Appends a block of summary lines followed by a separator line."""
        if not lines:
            return
        with self._lock:
            self._append("\n".join(lines) + "\n" + self.linesep_marker + "\n")

    def stderr_tail(self) -> str:
        """The last lines the encoder wrote to stderr."""
        with self._lock:
            lines = list(self._stderr_tail)
            if self._partial_stderr:
                lines.append(self._partial_stderr)
        return "\n".join(line for line in lines if line.strip())

    def _remember_stderr(self, text: str):
        # Chunks do not align with lines, carry the unfinished line over.
        combined = self._partial_stderr + text.replace("\r", "\n")
        *complete, self._partial_stderr = combined.split("\n")
        self._stderr_tail.extend(complete)

    def _append(self, content: str):
        if not self._file_ok:
            return
        try:
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            self._file_ok = False
            logger.warning(f"Failed to write encoder output to {self.log_file_path}: {e}")


def format_stderr_excerpt(stderr_tail: Optional[str], limit: int = 500) -> str:
    """Shortens a stderr tail for a one line status message, keeping its end."""
    if not stderr_tail:
        return ""
    text = " | ".join(line.strip() for line in stderr_tail.splitlines() if line.strip())
    if len(text) > limit:
        text = "..." + text[-limit:]
    return text
