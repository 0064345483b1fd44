"""
Owns the staging directory in which a job's frames are laid out for the encoder.

The encoder reads its input through a single printf-style pattern, so the
selected images are copied into a dedicated directory under contiguous,
zero-padded names (img000.png, img001.png, ...). The directory is recreated
from scratch for every job and removed at shutdown.
"""

import shutil
from pathlib import Path
from typing import List

from loguru import logger

from ..config.common import STAGING_DIR_NAME
from ..config.image import INDEX_WIDTH, MAX_FRAMES, STAGED_FILE_PREFIX
from ..domain.exceptions import FrameLimitExceeded, StagingFailed
from ..domain.models import CandidateSet, StagedSequence


def staged_file_name(index: int, extension: str) -> str:
    """img + zero-padded index + extension, e.g. (7, "png") -> "img007.png"."""
    return f"{STAGED_FILE_PREFIX}{index:0{INDEX_WIDTH}d}.{extension}"


def input_pattern_for(directory: Path, extension: str) -> str:
    """The printf-style pattern the encoder uses to read the whole staged sequence."""
    return str(directory / f"{STAGED_FILE_PREFIX}%0{INDEX_WIDTH}d.{extension}")


class StagingArea:
    """
    The process-wide staging directory, exclusively owned by the active job.

    Only one job may run at a time (enforced by the coordinator), so the
    directory never has two writers.

    Attributes:
        root (Path): The work directory that contains the staging directory.
        directory (Path): The staging directory itself (`root / "ffmpeg_input"`).
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.directory = self.root / STAGING_DIR_NAME

    def stage(self, candidates: CandidateSet, extension: str) -> StagedSequence:
        """
        Copies the candidates, in order, into a freshly recreated staging directory.

        Copies are named with contiguous indices starting at 0. A file that fails to
        copy is logged and skipped, and the next successful copy takes its index, so
        the sequence never has gaps.

        Args:
            candidates: The images to stage, already narrowed to one format family.
            extension: The extension every staged copy is given.

        Returns:
            The resulting `StagedSequence`.

        Raises:
            FrameLimitExceeded: If there are more candidates than the index width can
                                address. Checked before anything on disk changes.
            StagingFailed: If the directory cannot be recreated or no file was copied.
        """
        if len(candidates) > MAX_FRAMES:
            raise FrameLimitExceeded(
                f"{len(candidates)} images selected, but at most {MAX_FRAMES} frames are supported"
            )
        if not candidates:
            raise StagingFailed("Failed to prepare temp files: nothing to stage")

        self._recreate_directory()

        staged: List[Path] = []
        skipped: List[Path] = []
        for source in candidates:
            dest = self.directory / staged_file_name(len(staged), extension)
            try:
                shutil.copy2(source, dest)
            except OSError as e:
                logger.error(f"Error copying '{source}' to '{dest}': {e}")
                skipped.append(source)
                continue
            staged.append(dest)

        if not staged:
            raise StagingFailed(f"Failed to prepare temp files: none of the {len(candidates)} file(s) could be copied")
        if skipped:
            logger.warning(f"Staged {len(staged)} file(s), skipped {len(skipped)} that could not be copied.")
        else:
            logger.debug(f"Staged {len(staged)} file(s) in '{self.directory}'.")

        return StagedSequence(
            directory=self.directory,
            files=tuple(staged),
            extension=extension,
            input_pattern=input_pattern_for(self.directory, extension),
            skipped=tuple(skipped),
        )

    def _recreate_directory(self):
        try:
            if self.directory.exists():
                shutil.rmtree(self.directory)
            self.directory.mkdir(parents=True)
        except OSError as e:
            raise StagingFailed(f"Failed to prepare temp directory '{self.directory}': {e}") from e

    def clear(self) -> bool:
        """
        Removes the staging directory and everything in it.

        Returns:
            True if nothing is left on disk afterwards.
        """
        if not self.directory.exists():
            return True
        try:
            shutil.rmtree(self.directory)
        except OSError as e:
            logger.error(f"Could not remove staging directory '{self.directory}': {e}")
            return False
        logger.debug(f"Removed staging directory '{self.directory}'.")
        return True
