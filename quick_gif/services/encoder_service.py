"""
Runs the external encoder and reports its exit status.

The supervisor launches FFmpeg with a prepared argument vector and then gets
out of the caller's way: two reader threads drain stdout and stderr so the
child never blocks on a full pipe, and a waiter thread collects the exit
status once both streams are closed. The outcome is delivered through a single
callback, exactly once.
"""

import os
import subprocess
import threading
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Sequence

from loguru import logger

from ..config.common import TERMINATE_TIMEOUT_SECONDS
from ..domain.exceptions import EncoderMissing, JobAlreadyActive, LaunchFailed
from .logging_service import EncoderOutputLog

ExitCallback = Callable[[int], None]

# Bytes requested per read from an output pipe.
READ_CHUNK_SIZE = 64 * 1024


class EncoderSupervisor:
    """
    Owns the encoder executable and at most one running encoder process.

    Attributes:
        encoder_path (Optional[Path]): The configured FFmpeg executable, None if unresolved.
        process (Optional[subprocess.Popen]): The running child, None when idle.
        terminated (bool): Whether the current or last launch was sent a stop signal.
    """

    def __init__(self, encoder_path: Optional[Path] = None):
        self.encoder_path = Path(encoder_path) if encoder_path else None
        self.process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._active = False
        self._waiter: Optional[threading.Thread] = None
        self.terminated = False

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._active

    def ensure_encoder(self) -> Path:
        """
        Checks that the configured encoder exists and can be executed.

        Raises:
            EncoderMissing: If no encoder is configured or the file is not executable.
        """
        if self.encoder_path is None:
            raise EncoderMissing("ffmpeg binary not found")
        if not self.encoder_path.is_file() or not os.access(self.encoder_path, os.X_OK):
            raise EncoderMissing(f"ffmpeg binary not found or not executable: {self.encoder_path}")
        return self.encoder_path

    def launch(
        self,
        command: Sequence[str],
        output_path: Path,
        sink: EncoderOutputLog,
        on_exit: ExitCallback,
    ):
        """
        Starts the encoder and returns immediately.

        Any file already at `output_path` is removed first; the encoder's own
        overwrite flag is not relied on to clear a partial file from an earlier run.

        Args:
            command: The full argument vector, executable first.
            output_path: The file the encoder will write.
            sink: Receives every drained chunk of stdout and stderr.
            on_exit: Called once with the exit status, after both streams closed.

        Raises:
            JobAlreadyActive: If an encoder process is still running. Nothing is touched.
            EncoderMissing: If the executable does not exist.
            LaunchFailed: If the old output cannot be removed or the OS refuses the spawn.
        """
        with self._lock:
            if self._active:
                raise JobAlreadyActive("Already generating, please wait...")
            self._active = True
            self.terminated = False

        try:
            self._remove_previous_output(Path(output_path))
            process = subprocess.Popen(
                list(command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                shell=False,
            )
        except FileNotFoundError as e:
            self._release()
            raise EncoderMissing(f"ffmpeg binary not found: {command[0]}") from e
        except OSError as e:
            self._release()
            raise LaunchFailed(f"Error running ffmpeg: {e}") from e

        with self._lock:
            self.process = process
        logger.debug(f"Encoder started with PID {process.pid}")

        readers = [
            threading.Thread(
                target=self._drain, args=(process.stdout, "stdout", sink),
                name=f"encoder-stdout-{process.pid}", daemon=True,
            ),
            threading.Thread(
                target=self._drain, args=(process.stderr, "stderr", sink),
                name=f"encoder-stderr-{process.pid}", daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        self._waiter = threading.Thread(
            target=self._wait_for_exit, args=(process, readers, on_exit),
            name=f"encoder-wait-{process.pid}", daemon=True,
        )
        self._waiter.start()

    @staticmethod
    def _remove_previous_output(output_path: Path):
        try:
            output_path.unlink(missing_ok=True)
        except OSError as e:
            raise LaunchFailed(f"Could not remove previous output '{output_path}': {e}") from e

    @staticmethod
    def _drain(stream: BinaryIO, stream_name: str, sink: EncoderOutputLog):
        """Reads `stream` until EOF and forwards every chunk to `sink`."""
        try:
            for chunk in iter(lambda: stream.read1(READ_CHUNK_SIZE), b""):
                sink.write(stream_name, chunk)
        except (OSError, ValueError) as e:
            logger.warning(f"Stopped reading encoder {stream_name}: {e}")
        finally:
            stream.close()

    def _wait_for_exit(self, process: subprocess.Popen, readers: List[threading.Thread], on_exit: ExitCallback):
        return_code = process.wait()
        for reader in readers:
            reader.join()
        logger.debug(f"Encoder PID {process.pid} exited with code {return_code}")

        with self._lock:
            self.process = None
            self._active = False

        try:
            on_exit(return_code)
        except Exception:
            logger.exception("Encoder exit callback failed")

    def _release(self):
        with self._lock:
            self.process = None
            self._active = False

    def terminate(self, timeout: float = TERMINATE_TIMEOUT_SECONDS) -> bool:
        """
        Stops the running encoder: terminate first, kill if it ignores that.

        The exit callback still fires as usual once the process is gone.

        Returns:
            True if a process was running and has been signalled. `terminated` is
            set before the signal goes out, so the exit callback always sees it.
        """
        with self._lock:
            process = self.process
        if process is None or process.poll() is not None:
            return False

        with self._lock:
            self.terminated = True
        logger.info(f"Terminating encoder PID {process.pid}")
        process.terminate()
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Encoder PID {process.pid} did not exit after {timeout}s, killing it.")
            process.kill()
            process.wait()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Blocks until the exit callback of the last launch has run. Returns False on timeout."""
        waiter = self._waiter
        if waiter is None:
            return True
        waiter.join(timeout)
        return not waiter.is_alive()
