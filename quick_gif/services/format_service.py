"""
Picks the image format that most candidates share.

The encoder addresses the staged frames through one pattern with one extension,
so a batch has to be narrowed to a single format family first. Families group
synonymous extensions ("jpg"/"jpeg", "tif"/"tiff", ...) so they count together.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List

from loguru import logger

from ..config.image import FORMAT_SYNONYM_GROUPS
from ..domain.exceptions import FormatResolutionFailed
from ..domain.models import CandidateSet, FormatFamily, FormatResolution, extension_of


def _build_family_index(groups: Iterable[Iterable[str]]) -> Dict[str, FormatFamily]:
    index: Dict[str, FormatFamily] = {}
    for group in groups:
        members = [ext.lower() for ext in group]
        family = FormatFamily(key=members[0], extensions=frozenset(members))
        for ext in members:
            index[ext] = family
    return index


_FAMILY_INDEX = _build_family_index(FORMAT_SYNONYM_GROUPS)


def family_for(extension: str) -> FormatFamily:
    """Returns the family of a raw extension; unknown extensions form a family of their own."""
    ext = extension.lower().lstrip(".")
    return _FAMILY_INDEX.get(ext) or FormatFamily(key=ext, extensions=frozenset({ext}))


def resolve_format(candidates: CandidateSet) -> FormatResolution:
    """
    Selects the majority format family and filters the candidates down to it.

    Counting is done per family, so synonyms add up. Ties are broken by first
    appearance: the family whose first member comes earliest in `candidates` wins.
    That makes the outcome depend only on the candidate order, never on hashing.

    A batch spanning more than one family is logged as a warning and reported via
    `FormatResolution.mixed_formats`; it does not stop the run.

    Raises:
        FormatResolutionFailed: If `candidates` is empty or no file has an extension.
    """
    if not candidates:
        raise FormatResolutionFailed("Could not determine file format: no supported images selected")

    # OrderedDict keeps first-seen order, which is the tie-break.
    counts: "OrderedDict[str, int]" = OrderedDict()
    families: Dict[str, FormatFamily] = {}
    for path in candidates:
        ext = extension_of(path)
        if not ext:
            continue
        family = family_for(ext)
        families[family.key] = family
        counts[family.key] = counts.get(family.key, 0) + 1

    if not counts:
        raise FormatResolutionFailed("Could not determine file format: no file extension found")

    # max() returns the first maximal item, i.e. the earliest-seen family on a tie.
    winner_key = max(counts, key=lambda key: counts[key])
    winner = families[winner_key]

    kept: List = [p for p in candidates if winner.accepts(p)]
    dropped = tuple(p for p in candidates if not winner.accepts(p))
    mixed = len(counts) > 1

    if mixed:
        summary = ", ".join(f"{key}={count}" for key, count in counts.items())
        logger.warning(
            f"Mixed image formats selected ({summary}); using '{winner.key}', "
            f"{len(dropped)} file(s) will be skipped."
        )
    logger.debug(f"Resolved format family '{winner.key}' with {len(kept)} file(s).")

    return FormatResolution(
        family=winner,
        candidates=CandidateSet(tuple(kept)),
        mixed_formats=mixed,
        dropped=dropped,
    )
