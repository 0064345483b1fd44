"""
Services that implement the stages of a conversion.

This package exposes the building blocks used by the conversion pipeline:
- `normalize_selection`: Turns a selection into candidate images.
- `resolve_format`: Picks the majority format family.
- `StagingArea`: Lays the frames out as a contiguous sequence.
- `EncoderSupervisor`: Runs FFmpeg and drains its output.
- `ProgressEstimator`: Time based progress while FFmpeg runs.
- `EncoderOutputLog`: Diagnostic sink for the drained output.
"""

from .encoder_service import EncoderSupervisor
from .format_service import family_for, resolve_format
from .input_service import normalize_selection
from .logging_service import EncoderOutputLog
from .progress_service import ProgressEstimator, plan_steps
from .staging_service import StagingArea

__all__ = [
    "EncoderSupervisor",
    "EncoderOutputLog",
    "ProgressEstimator",
    "StagingArea",
    "family_for",
    "normalize_selection",
    "plan_steps",
    "resolve_format",
]
