import shutil
import threading
import uuid
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from loguru import logger

from ..config.common import (
    DEFAULT_EXPORT_NAME,
    JOB_STATE_CANCELLED,
    JOB_STATE_COMPLETED,
    JOB_STATE_ENCODING,
    JOB_STATE_FAILED,
    JOB_STATE_IDLE,
    JOB_STATE_STAGING,
    JOB_STATE_VALIDATING,
    OUTPUT_FILE_PREFIX,
    OUTPUT_FILE_SUFFIX,
    WORK_DIR,
)
from ..config.image import IMAGE_EXTENSIONS
from ..domain.exceptions import (
    EmptySelection,
    EncoderException,
    EncoderExitedNonZero,
    ExportFailed,
    JobAlreadyActive,
    JobCancelled,
    QuickGifException,
)
from ..domain.models import ConversionRequest, ConversionResult, EncodeJob, EncodeParameters, JobState
from ..services.encoder_service import EncoderSupervisor
from ..services.format_service import resolve_format
from ..services.input_service import normalize_selection
from ..services.logging_service import EncoderOutputLog, format_stderr_excerpt
from ..services.progress_service import ProgressCallback, ProgressEstimator
from ..services.staging_service import StagingArea
from ..utils.ffmpeg_utils import build_gif_command, format_cmd_for_display
from ..utils.format_utils import format_timedelta, formatted_size

StateCallback = Callable[[JobState], None]

# Kind reported when a stage fails with an exception outside the taxonomy.
INTERNAL_ERROR_KIND = "InternalError"


class ConversionCoordinator:
    """
    Runs conversions one at a time: selection -> candidates -> format -> staging ->
    command -> encoder, with a progress estimate alongside.

    The coordinator is the sole owner of the single-flight flag. It is set before
    validation starts and cleared exactly once, right before the terminal
    `ConversionResult` is delivered. A request made while the flag is set is
    answered with `JobAlreadyActive` without touching the filesystem.

    Validation, staging and the process launch run synchronously in the caller's
    thread; draining the encoder output and the progress estimate run in the
    background. Every outcome, including failures, is delivered through the
    returned future.

    Attributes:
        work_dir (Path): Holds the staging directory and the produced GIFs.
        staging (StagingArea): The staging directory of the active job.
        supervisor (EncoderSupervisor): Runs the encoder.
    """

    def __init__(
        self,
        encoder_path: Optional[Path] = None,
        work_dir: Path = WORK_DIR,
        allowed_extensions: Iterable[str] = IMAGE_EXTENSIONS,
    ):
        self.work_dir = Path(work_dir)
        self.allowed_extensions = tuple(allowed_extensions)
        self.staging = StagingArea(self.work_dir)
        self.supervisor = EncoderSupervisor(encoder_path)

        self._lock = threading.Lock()
        self._busy = False
        self._cancel_requested = False
        self._active_job: Optional[EncodeJob] = None
        self._active_future: Optional[Future] = None
        self._outputs: List[Path] = []
        self._state = JobState(JOB_STATE_IDLE)

    # --- Public API ---

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._busy

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    def convert(
        self,
        request: ConversionRequest,
        on_progress: Optional[ProgressCallback] = None,
        on_state: Optional[StateCallback] = None,
    ) -> ConversionResult:
        """Runs one conversion and blocks until its terminal result is known."""
        return self.submit(request, on_progress=on_progress, on_state=on_state).result()

    def submit(
        self,
        request: ConversionRequest,
        on_progress: Optional[ProgressCallback] = None,
        on_state: Optional[StateCallback] = None,
    ) -> "Future[ConversionResult]":
        """
        Starts one conversion.

        Args:
            request: The selection and the frame rate / resolution text.
            on_progress: Receives the progress estimate in [0, 1]; 1.0 is sent exactly
                         once, when the job has ended.
            on_state: Receives a `JobState` snapshot on every state transition.

        Returns:
            A future resolved with the job's `ConversionResult`. It never raises.
        """
        started_at = datetime.now()
        future: "Future[ConversionResult]" = Future()

        with self._lock:
            if self._busy:
                refused = True
            else:
                refused = False
                self._busy = True
                self._cancel_requested = False
                self._active_future = future
        if refused:
            logger.warning("Conversion requested while another one is running; refused.")
            error = JobAlreadyActive("Already generating, please wait...")
            future.set_result(ConversionResult.failure(error.kind, str(error), elapsed=datetime.now() - started_at))
            return future

        job_id = uuid.uuid4().hex
        estimator = ProgressEstimator(on_progress)
        try:
            job = self._prepare(request, job_id, on_state)
            self._launch(job, estimator, future, on_state, started_at)
        except QuickGifException as e:
            result = ConversionResult.failure(
                e.kind, str(e), job_id=job_id, elapsed=datetime.now() - started_at
            )
            self._complete(future, result, estimator, on_state)
        except Exception as e:
            logger.exception(f"Unexpected error while preparing conversion {job_id}")
            result = ConversionResult.failure(
                INTERNAL_ERROR_KIND, f"{type(e).__name__}: {e}", job_id=job_id,
                elapsed=datetime.now() - started_at,
            )
            self._complete(future, result, estimator, on_state)
        return future

    def cancel(self) -> bool:
        """
        Cancels the active job. The encoder is terminated and the staging directory removed.

        A cancel that arrives after the encoder already finished leaves the result alone.

        Returns:
            True if a job was active.
        """
        with self._lock:
            if not self._busy:
                return False
            self._cancel_requested = True
        logger.info("Cancellation requested.")
        self.supervisor.terminate()
        return True

    def wait(self, timeout: Optional[float] = None) -> Optional[ConversionResult]:
        """Waits for the active (or last) job and returns its result, None on timeout."""
        with self._lock:
            future = self._active_future
        if future is None:
            return None
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            return None

    def shutdown(self, timeout: Optional[float] = None, discard_outputs: bool = False):
        """
        Cancels any active job, waits for it and removes the staging directory.

        Produced GIFs are kept unless `discard_outputs` is set; exported copies are never touched.
        """
        if self.cancel():
            self.wait(timeout)
        self.staging.clear()
        if discard_outputs:
            self.discard_outputs()

    def discard_outputs(self) -> int:
        """Deletes the GIFs this coordinator produced in the work directory. Returns how many were removed."""
        with self._lock:
            outputs, self._outputs = self._outputs, []
        removed = 0
        for output_path in outputs:
            try:
                output_path.unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                logger.warning(f"Could not remove produced GIF '{output_path}': {e}")
        logger.debug(f"Removed {removed} produced GIF(s) from {self.work_dir}")
        return removed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False

    @staticmethod
    def export(output_path: Path, destination: Path) -> Path:
        """
        Copies a produced GIF to a user-chosen destination.

        An existing file at the destination is replaced. If `destination` is a
        directory, the GIF is saved there as "output.gif".

        Returns:
            The path of the exported copy.

        Raises:
            ExportFailed: If the GIF is missing or the copy fails.
        """
        output_path = Path(output_path)
        destination = Path(destination)
        if destination.is_dir():
            destination = destination / DEFAULT_EXPORT_NAME
        if not output_path.is_file():
            raise ExportFailed(f"Failed to export GIF: '{output_path}' does not exist")
        try:
            if destination.exists():
                destination.unlink()
            shutil.copy2(output_path, destination)
        except OSError as e:
            logger.error(f"Failed to export GIF to '{destination}': {e}")
            raise ExportFailed(f"Failed to export GIF: {e}") from e
        logger.info(f"GIF exported to {destination}")
        return destination

    # --- Stages ---

    def _prepare(self, request: ConversionRequest, job_id: str, on_state: Optional[StateCallback]) -> EncodeJob:
        """Validation, format resolution and staging. Nothing on disk changes before staging."""
        self._set_state(on_state, JOB_STATE_VALIDATING, job_id=job_id)

        if not request.sources:
            raise EmptySelection("No files selected")
        parameters = EncodeParameters.parse(request.frame_rate_text, request.resolution_text)
        encoder_path = self.supervisor.ensure_encoder()

        candidates = normalize_selection(request.selection, self.allowed_extensions)
        logger.info(f"Imported {len(candidates)} image(s) from {len(request.sources)} selected path(s).")
        resolution = resolve_format(candidates)
        self._check_cancelled()

        self._set_state(on_state, JOB_STATE_STAGING, job_id=job_id)
        staged = self.staging.stage(resolution.candidates, resolution.family.key)

        output_path = self.work_dir / f"{OUTPUT_FILE_PREFIX}{job_id}{OUTPUT_FILE_SUFFIX}"
        command = build_gif_command(str(encoder_path), staged.input_pattern, parameters, output_path)
        return EncodeJob(
            job_id=job_id,
            staged=staged,
            parameters=parameters,
            output_path=output_path,
            command=tuple(command),
        )

    def _launch(
        self,
        job: EncodeJob,
        estimator: ProgressEstimator,
        future: Future,
        on_state: Optional[StateCallback],
        started_at: datetime,
    ):
        self._check_cancelled()
        sink = EncoderOutputLog(job.staged.directory)
        display_cmd = format_cmd_for_display(job.command)
        sink.write_summary(f"Job: {job.job_id}", f"Command: {display_cmd}")
        logger.debug(f"Encoder command: {display_cmd}")

        with self._lock:
            self._active_job = job
        self._set_state(on_state, JOB_STATE_ENCODING, job_id=job.job_id)

        def on_exit(return_code: int):
            self._on_encoder_exit(job, return_code, sink, estimator, future, on_state, started_at)

        estimator.start(job.staged.frame_count)
        self.supervisor.launch(job.command, job.output_path, sink, on_exit)

        # A cancel that arrived between the last check and the spawn.
        with self._lock:
            cancel_now = self._cancel_requested
        if cancel_now:
            self.supervisor.terminate()

    def _on_encoder_exit(
        self,
        job: EncodeJob,
        return_code: int,
        sink: EncoderOutputLog,
        estimator: ProgressEstimator,
        future: Future,
        on_state: Optional[StateCallback],
        started_at: datetime,
    ):
        elapsed = datetime.now() - started_at
        finished = return_code == 0 and job.output_path.is_file()
        # A cancel counts only if it reached the encoder before it finished on its own.
        cancelled = self.supervisor.terminated and not finished

        if cancelled:
            error: QuickGifException = JobCancelled(f"Cancelled (ffmpeg exited with code {return_code})")
        elif return_code != 0:
            error = EncoderExitedNonZero(return_code, sink.stderr_tail())
        elif not finished:
            error = EncoderException(f"ffmpeg exited with code 0 but did not create {job.output_path}")
        else:
            size = formatted_size(job.output_path.stat().st_size)
            logger.success(
                f"GIF created at {job.output_path} ({job.staged.frame_count} frames, {size}, "
                f"{format_timedelta(elapsed)})"
            )
            with self._lock:
                self._outputs.append(job.output_path)
            result = ConversionResult.success(
                job.output_path, return_code=return_code, job_id=job.job_id, elapsed=elapsed
            )
            self._complete(future, result, estimator, on_state)
            return

        message = str(error)
        if isinstance(error, EncoderExitedNonZero):
            excerpt = format_stderr_excerpt(error.stderr_tail)
            if excerpt:
                message = f"{message}: {excerpt}"
            logger.error(f"Encoder failed for job {job.job_id} (rc={return_code}):\n{error.stderr_tail}")
        sink.write_summary(f"Result: {error.kind}", f"Return code: {return_code}")

        result = ConversionResult.failure(
            error.kind, message, return_code=return_code, job_id=job.job_id, elapsed=elapsed
        )
        self._complete(future, result, estimator, on_state)

    def _complete(
        self,
        future: Future,
        result: ConversionResult,
        estimator: ProgressEstimator,
        on_state: Optional[StateCallback],
    ):
        """Delivers the terminal result: progress 1.0, flag released, then the future."""
        estimator.finish()

        if result.error_kind == JobCancelled.kind:
            self.staging.clear()

        with self._lock:
            self._busy = False
            self._cancel_requested = False
            self._active_job = None

        if result.ok:
            state = JOB_STATE_COMPLETED
        elif result.error_kind == JobCancelled.kind:
            state = JOB_STATE_CANCELLED
        else:
            state = JOB_STATE_FAILED
            logger.error(result.status_message)
        self._set_state(on_state, state, progress=1.0, message=result.status_message, job_id=result.job_id)

        future.set_result(result)

    # --- Helpers ---

    def _check_cancelled(self):
        with self._lock:
            if self._cancel_requested:
                raise JobCancelled("Cancelled before the encoder was started")

    def _set_state(
        self,
        on_state: Optional[StateCallback],
        state: str,
        progress: float = 0.0,
        message: str = "",
        job_id: Optional[str] = None,
    ):
        snapshot = JobState(state=state, progress=progress, message=message, job_id=job_id)
        with self._lock:
            self._state = snapshot
        logger.debug(f"Job state -> {state}")
        if on_state is None:
            return
        try:
            on_state(snapshot)
        except Exception as e:
            logger.error(f"State callback raised: {e}")
