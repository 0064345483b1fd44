"""
Time based progress estimate for a running encode.

FFmpeg reports nothing usable about how far a GIF encode has come, so the
progress shown to the user is paced by the clock instead: the estimate climbs
in small steps over a bounded duration and only the real completion of the job
takes it to 1.0.
"""

import threading
from typing import Callable, Optional

from loguru import logger

from ..config.image import (
    MAX_STEP_DELAY_SECONDS,
    MIN_PROGRESS_STEPS,
    TARGET_PROGRESS_DURATION_SECONDS,
)

ProgressCallback = Callable[[float], None]


def plan_steps(
    frame_count: int,
    min_steps: int = MIN_PROGRESS_STEPS,
    max_step_delay: float = MAX_STEP_DELAY_SECONDS,
    target_duration: float = TARGET_PROGRESS_DURATION_SECONDS,
):
    """
    Returns (step count, delay per step) for a batch of `frame_count` frames.

    Tiny batches still get `min_steps` steps, and the delay is capped so that the
    whole estimate never takes longer than `target_duration`.
    """
    steps = max(int(frame_count), int(min_steps), 1)
    delay = min(max_step_delay, target_duration / steps)
    return steps, delay


class ProgressEstimator:
    """
    Emits a non-decreasing progress value in [0, 1] on a background thread.

    The estimate walks through 0/steps .. (steps-1)/steps and then holds. Only
    `finish()` emits 1.0, so a full bar always means the job really ended.
    After `finish()` nothing else is emitted.

    Attributes:
        steps (int): Number of estimate steps.
        delay (float): Seconds between two steps.
        value (float): The last emitted value.
    """

    def __init__(self, on_progress: Optional[ProgressCallback] = None, **plan_kwargs):
        self._plan_kwargs = plan_kwargs
        self.steps, self.delay = plan_steps(0, **plan_kwargs)
        self.on_progress = on_progress
        self.value = 0.0
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._finished = False
        self._thread: Optional[threading.Thread] = None

    def start(self, frame_count: int):
        """
        Plans the steps for `frame_count` frames and starts the background estimate loop.

        Calling it twice, or after `finish()`, has no effect.
        """
        if self._thread is not None or self._stop.is_set():
            return
        self.steps, self.delay = plan_steps(frame_count, **self._plan_kwargs)
        self._thread = threading.Thread(target=self._run, name="progress-estimator", daemon=True)
        self._thread.start()

    def _run(self):
        for i in range(self.steps):
            if self._stop.is_set():
                return
            self._emit(i / self.steps, final=False)
            # wait() returns early when finish() is called.
            if self._stop.wait(self.delay):
                return

    def finish(self):
        """
        Stops the estimate loop and emits 1.0. Only the first call emits.

        Called for every terminal outcome, failed jobs included, so the bar never
        stays half full after a job has ended.
        """
        self._stop.set()
        self._emit(1.0, final=True)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)

    @property
    def finished(self) -> bool:
        return self._finished

    def _emit(self, value: float, final: bool):
        with self._lock:
            if self._finished or value < self.value:
                return
            if final:
                self._finished = True
            self.value = value
            if self.on_progress is None:
                return
            try:
                self.on_progress(value)
            except Exception as e:
                logger.error(f"Progress callback raised: {e}")
