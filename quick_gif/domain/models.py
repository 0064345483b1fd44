"""
Defines the value objects that flow through one conversion.

All models are frozen dataclasses: once a stage has produced a value, later
stages can read it from any thread without further coordination. Mutable job
bookkeeping (the busy flag, the active process) lives in the services that own
it, never in these objects.

Lifecycle of one conversion:
1. The caller builds a `ConversionRequest` (selection + parameter text).
2. The input normalizer turns the `SourceSelection` into a `CandidateSet`.
3. The format resolver picks a `FormatFamily` and narrows the candidates.
4. The staging area copies them into a `StagedSequence`.
5. An `EncodeJob` binds the sequence, the `EncodeParameters` and a fresh output path
   to one encoder invocation.
6. The job ends in exactly one `ConversionResult`.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import FrozenSet, Iterable, Iterator, Optional, Tuple

from .exceptions import InvalidParameters

_POSITIVE_INT_RE = re.compile(r"^\d+$")


@dataclass(frozen=True)
class SourceSelection:
    """The paths the user picked, in the order they were picked."""

    paths: Tuple[Path, ...]

    @classmethod
    def from_paths(cls, paths: Iterable) -> "SourceSelection":
        return cls(tuple(Path(p) for p in paths))

    def __len__(self) -> int:
        return len(self.paths)

    def is_single_directory(self) -> bool:
        return len(self.paths) == 1 and self.paths[0].is_dir()


@dataclass(frozen=True)
class CandidateSet:
    """
    Deduplicated, extension-filtered image paths. Order is the eventual frame order.
    """

    paths: Tuple[Path, ...] = ()

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __bool__(self) -> bool:
        return bool(self.paths)

    @property
    def extensions(self) -> Tuple[str, ...]:
        """Lower-cased extensions without the dot, aligned with `paths`."""
        return tuple(extension_of(p) for p in self.paths)


@dataclass(frozen=True)
class FormatFamily:
    """
    A canonical extension plus every raw extension treated as the same format.

    Attributes:
        key: The canonical extension, e.g. "jpg". Staged copies use it as their extension.
        extensions: All raw extensions accepted by the family, e.g. {"jpg", "jpeg"}.
    """

    key: str
    extensions: FrozenSet[str]

    def accepts(self, path: Path) -> bool:
        return extension_of(path) in self.extensions


@dataclass(frozen=True)
class FormatResolution:
    """Outcome of the format resolver: the winning family and the narrowed candidates."""

    family: FormatFamily
    candidates: CandidateSet
    mixed_formats: bool
    dropped: Tuple[Path, ...] = ()


@dataclass(frozen=True)
class StagedSequence:
    """
    A contiguous, zero-padded copy of the candidates inside the staging directory.

    Attributes:
        directory: The staging directory holding the copies.
        files: Staged copies in frame order (img000.<ext>, img001.<ext>, ...).
        extension: The extension every staged copy carries.
        input_pattern: printf-style pattern addressing the whole sequence for the encoder.
        skipped: Source files that could not be copied.
    """

    directory: Path
    files: Tuple[Path, ...]
    extension: str
    input_pattern: str
    skipped: Tuple[Path, ...] = ()

    @property
    def frame_count(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class EncodeParameters:
    """Validated numeric encode settings. Build instances with `parse()`."""

    frame_rate: int
    resolution: int

    def __post_init__(self):
        if self.frame_rate <= 0 or self.resolution <= 0:
            raise InvalidParameters("Framerate or resolution cannot be zero")

    @classmethod
    def parse(cls, frame_rate_text: str, resolution_text: str) -> "EncodeParameters":
        """
        Parses the frame rate and resolution from user supplied text.

        Only plain decimal digits are accepted (surrounding whitespace is ignored),
        so "12", " 320 " pass while "12.5", "-1", "1e3" and "" are rejected.

        Raises:
            InvalidParameters: If either value is not a positive integer.
        """
        values = []
        for label, text in (("frame rate", frame_rate_text), ("resolution", resolution_text)):
            stripped = str(text if text is not None else "").strip()
            if not _POSITIVE_INT_RE.match(stripped):
                raise InvalidParameters(f"Invalid {label}: {text!r}")
            values.append(int(stripped))
        return cls(frame_rate=values[0], resolution=values[1])


@dataclass(frozen=True)
class ConversionRequest:
    """What the interface layer hands to the coordinator for one run."""

    sources: Tuple[Path, ...]
    frame_rate_text: str
    resolution_text: str

    @classmethod
    def create(cls, sources: Iterable, frame_rate_text: str, resolution_text: str) -> "ConversionRequest":
        return cls(tuple(Path(p) for p in sources), str(frame_rate_text), str(resolution_text))

    @property
    def selection(self) -> SourceSelection:
        return SourceSelection(self.sources)


@dataclass(frozen=True)
class EncodeJob:
    """One encoder invocation: a staged sequence, its parameters and a fresh output path."""

    job_id: str
    staged: StagedSequence
    parameters: EncodeParameters
    output_path: Path
    command: Tuple[str, ...]
    started_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ConversionResult:
    """
    The terminal outcome of a job: a produced GIF or a failure reason, never both.

    Attributes:
        output_path: Path to the produced GIF on success, otherwise None.
        error_kind: `kind` of the exception that ended the job, otherwise None.
        error_message: Human readable reason of the failure, otherwise None.
        return_code: Encoder exit status, when the encoder ran.
        job_id: Id of the job, when one was created.
        elapsed: Wall time from request to terminal report.
    """

    output_path: Optional[Path] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    return_code: Optional[int] = None
    job_id: Optional[str] = None
    elapsed: timedelta = timedelta(0)

    def __post_init__(self):
        if (self.output_path is None) == (self.error_kind is None):
            raise ValueError("ConversionResult must be either a success or a failure.")

    @property
    def ok(self) -> bool:
        return self.output_path is not None

    @classmethod
    def success(cls, output_path: Path, **kwargs) -> "ConversionResult":
        return cls(output_path=output_path, **kwargs)

    @classmethod
    def failure(cls, error_kind: str, error_message: str, **kwargs) -> "ConversionResult":
        return cls(error_kind=error_kind, error_message=error_message, **kwargs)

    @property
    def status_message(self) -> str:
        """The one line status shown to the user for this job attempt."""
        if self.ok:
            return f"GIF created at {self.output_path}"
        return f"{self.error_kind}: {self.error_message}"


@dataclass(frozen=True)
class JobState:
    """Snapshot of the coordinator's job state, pushed to observers on every transition."""

    state: str
    progress: float = 0.0
    message: str = ""
    job_id: Optional[str] = None


def extension_of(path: Path) -> str:
    """Returns the lower-cased extension of `path` without the leading dot."""
    return Path(path).suffix.lower().lstrip(".")
