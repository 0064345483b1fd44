"""
Quick GIF: turns a batch of still images into one looping, letterboxed GIF.

The selected images are narrowed to their majority format, copied into a
contiguous zero-padded sequence and handed to FFmpeg. Interface layers talk to
`ConversionCoordinator`:

    from quick_gif import ConversionCoordinator, ConversionRequest

    with ConversionCoordinator(encoder_path=Path("/usr/bin/ffmpeg")) as coordinator:
        result = coordinator.convert(ConversionRequest.create(paths, "15", "640"))
"""

from .domain.models import ConversionRequest, ConversionResult
from .pipeline.conversion_pipeline import ConversionCoordinator

__version__ = "1.0.0"

__all__ = ["ConversionCoordinator", "ConversionRequest", "ConversionResult", "__version__"]
