"""
Turns a raw user selection into the candidate images of a conversion.

A selection is either exactly one folder, whose immediate children are used, or
any list of files. The result is a flat, deduplicated, extension-filtered
`CandidateSet` whose order becomes the frame order of the GIF.
"""

import os
from pathlib import Path
from typing import Iterable, List

from loguru import logger

from ..config.image import IMAGE_EXTENSIONS
from ..domain.models import CandidateSet, SourceSelection
from ..utils.format_utils import contains_any_extensions


def _list_directory(directory: Path) -> List[Path]:
    """Immediate children of `directory` in filesystem enumeration order; [] if unreadable."""
    try:
        with os.scandir(directory) as entries:
            return [Path(entry.path) for entry in entries]
    except OSError as e:
        logger.warning(f"Could not list directory '{directory}': {e}")
        return []


def normalize_selection(
    selection: SourceSelection,
    allowed_extensions: Iterable[str] = IMAGE_EXTENSIONS,
) -> CandidateSet:
    """
    Builds the `CandidateSet` for a selection.

    - A selection of exactly one directory expands to that directory's immediate
      (non-recursive) files, in enumeration order.
    - Any other selection is used as given, in selection order.
    - Only files whose extension is in `allowed_extensions` survive
      (case-insensitive). Sub-directories and missing paths are dropped.
    - Duplicates (same resolved target) are removed, keeping the first occurrence.
    - Each candidate keeps the name it was selected under, so a symlink's
      extension is the link's, not its target's.

    Never raises for filesystem problems: an unreadable directory yields an empty set.
    """
    allowed = tuple(allowed_extensions)

    if selection.is_single_directory():
        directory = selection.paths[0]
        logger.debug(f"Selection is a folder, scanning: {directory}")
        raw_paths = _list_directory(directory)
    else:
        raw_paths = list(selection.paths)

    candidates: List[Path] = []
    seen = set()
    for path in raw_paths:
        if not contains_any_extensions(path, allowed):
            logger.trace(f"Ignoring unsupported file: {path.name}")
            continue
        try:
            resolved = path.resolve()
        except OSError as e:
            logger.warning(f"Could not resolve '{path}': {e}")
            continue
        if not resolved.is_file():
            logger.debug(f"Ignoring missing or non-regular file: {resolved}")
            continue
        if resolved in seen:
            logger.debug(f"Ignoring duplicate selection entry: {path}")
            continue
        seen.add(resolved)
        # Links keep the selected name; only the target is used to spot duplicates.
        candidates.append(path.absolute())

    logger.debug(f"Imported {len(candidates)} of {len(raw_paths)} selected path(s).")
    return CandidateSet(tuple(candidates))
