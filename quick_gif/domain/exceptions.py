"""
Defines custom exception types for the Quick GIF application.

Each stage of the conversion pipeline raises one of these when an expected
condition stops it (no files, bad parameters, missing encoder, ...). The
conversion coordinator catches them at its boundary and turns them into a
failed `ConversionResult`, using the `kind` attribute as a stable, machine
readable name for the failure.

All custom exceptions inherit from the base `QuickGifException`.
"""
from typing import Optional


class QuickGifException(Exception):
    """Base class for all custom exceptions in the Quick GIF application."""

    kind = "QuickGifError"


# --- Request Validation ---
class EmptySelection(QuickGifException):
    """Raised when the caller supplied no source paths at all."""

    kind = "EmptySelection"


class InvalidParameters(QuickGifException):
    """
    Raised when the frame rate or resolution text is not a positive integer.

    Validation happens before anything on disk is touched, so a typo in a text
    field never costs a staging pass.
    """

    kind = "InvalidParameters"


class FormatResolutionFailed(QuickGifException):
    """Raised when no candidate survives filtering or no format family can be picked."""

    kind = "FormatResolutionFailed"


# --- Job Lifecycle ---
class JobAlreadyActive(QuickGifException):
    """Raised when a job is requested while another one is still running."""

    kind = "JobAlreadyActive"


class JobCancelled(QuickGifException):
    """Raised when a running job is cancelled before the encoder finished."""

    kind = "JobCancelled"


# --- Staging ---
class StagingFailed(QuickGifException):
    """
    Raised when the staging directory cannot be prepared.

    This covers a directory that cannot be removed or created, and a batch in
    which every single copy failed. Individual copy failures are only logged.
    """

    kind = "StagingFailed"


class FrameLimitExceeded(StagingFailed):
    """Raised when a batch has more frames than the zero-padded index can address."""

    kind = "FrameLimitExceeded"


# --- Encoder ---
class EncoderException(QuickGifException):
    """Base class for failures of the external encoder."""

    kind = "EncoderError"


class EncoderMissing(EncoderException):
    """Raised when the configured encoder executable cannot be found."""

    kind = "EncoderMissing"


class LaunchFailed(EncoderException):
    """Raised when the OS refuses to spawn the encoder process."""

    kind = "LaunchFailed"


class EncoderExitedNonZero(EncoderException):
    """Raised when the encoder ran but reported failure through its exit status."""

    kind = "EncoderExitedNonZero"

    def __init__(self, return_code: int, stderr_tail: Optional[str] = None):
        self.return_code = return_code
        self.stderr_tail = stderr_tail
        super().__init__(f"ffmpeg failed with code {return_code}")


# --- Export ---
class ExportFailed(QuickGifException):
    """Raised when the produced GIF cannot be copied to the chosen destination."""

    kind = "ExportFailed"
