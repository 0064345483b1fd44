"""
Configuration settings related to the input images and the GIF encode.

This module defines the accepted image extensions, the synonym groups used when
picking the majority format, the layout of the staged frame sequence and the
pacing of the estimated progress.
"""

# ======================================================================================
# Image File Identification
# ======================================================================================

# Extensions (lower-case, without the dot) accepted from a selection. Anything else
# is silently ignored by the input normalizer.
IMAGE_EXTENSIONS = (
    "png", "jpg", "jpeg", "bmp", "tiff", "tif", "gif", "webp", "pbm", "pgm", "ppm",
    "tga", "sgi", "jp2", "j2k", "jpf", "jpx", "j2c", "icns", "heic", "heif",
)

# Extensions that count as one format family. The first entry of each group is
# the canonical key, which is also the extension given to the staged copies.
FORMAT_SYNONYM_GROUPS = (
    ("jpg", "jpeg"),
    ("tif", "tiff"),
    ("jp2", "j2k", "jpf", "jpx", "j2c"),
    ("heic", "heif"),
)


# ======================================================================================
# Staged Sequence Layout
# ======================================================================================

STAGED_FILE_PREFIX = "img"

# Width of the zero-padded frame index. 3 digits address img000..img999.
INDEX_WIDTH = 3

# Largest batch that can be staged without the index overflowing its width.
MAX_FRAMES = 10 ** INDEX_WIDTH


# ======================================================================================
# Encode Parameters
# ======================================================================================

DEFAULT_FRAME_RATE = "15"
DEFAULT_RESOLUTION = "640"

# The GIF loops forever.
GIF_LOOP_COUNT = 0

# Fully transparent padding around the letterboxed frame.
PAD_COLOR = "0x00000000"


# ======================================================================================
# Progress Estimation
# ======================================================================================

# The encoder reports no usable progress, so a time based estimate is shown instead.
MIN_PROGRESS_STEPS = 10
MAX_STEP_DELAY_SECONDS = 0.1
TARGET_PROGRESS_DURATION_SECONDS = 3.0
