"""
Main entry point for the Quick GIF application.

This script parses command-line arguments, configures logging, locates the
FFmpeg executable and runs a single conversion through the
`ConversionCoordinator`, optionally exporting and probing the result.
"""

import sys
from typing import Optional, Sequence

from loguru import logger

from quick_gif.cli import get_args
from quick_gif.config.common import LOGGER_FORMAT, WORK_DIR
from quick_gif.domain.exceptions import EncoderMissing, ExportFailed
from quick_gif.domain.models import ConversionRequest
from quick_gif.pipeline.conversion_pipeline import ConversionCoordinator
from quick_gif.utils.ffmpeg_utils import probe_command_for, probe_gif, resolve_encoder_path, verify_encoder


# Configure the logger for initial setup.
# The level is overridden once the command-line arguments are known.
logger.remove()
logger.add(sys.stderr, level="INFO", format=LOGGER_FORMAT)


class ProgressPrinter:
    """Renders the progress estimate as a percentage on one terminal line."""

    def __init__(self, stream=sys.stderr):
        self.stream = stream
        self.last_percent = -1

    def __call__(self, value: float):
        percent = int(value * 100)
        if percent == self.last_percent:
            return
        self.last_percent = percent
        end = "\n" if percent >= 100 else ""
        self.stream.write(f"\rEncoding: {percent:3d}%{end}")
        self.stream.flush()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Runs one conversion from the command line.

    Returns:
        0 if a GIF was produced (and exported, when requested), 1 otherwise.
    """
    args = get_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    # A missing encoder is reported as the job's failure, like any other interface would see it.
    try:
        encoder_path = resolve_encoder_path(args.ffmpeg)
        if not verify_encoder(encoder_path):
            raise EncoderMissing(f"ffmpeg at '{encoder_path}' failed its version check")
    except EncoderMissing as e:
        logger.error(str(e))
        encoder_path = None

    work_dir = args.work_dir or WORK_DIR
    request = ConversionRequest.create(args.paths, args.framerate, args.resolution)
    coordinator = ConversionCoordinator(encoder_path=encoder_path, work_dir=work_dir)
    exported = False
    try:
        result = coordinator.convert(request, on_progress=ProgressPrinter())
        if not result.ok:
            logger.error(result.status_message)
            return 1
        logger.info(result.status_message)

        if args.probe and encoder_path is not None:
            info = probe_gif(result.output_path, probe_command_for(encoder_path))
            if info:
                logger.info(
                    f"GIF is {info.width}x{info.height}, frames: {info.frame_count or 'unknown'}, "
                    f"duration: {info.duration_seconds if info.duration_seconds is not None else 'unknown'}s"
                )

        if args.export:
            try:
                coordinator.export(result.output_path, args.export)
            except ExportFailed as e:
                logger.error(str(e))
                return 1
            exported = True
    finally:
        # The work copy of an exported GIF is no longer needed; an unexported one is the only copy.
        if not args.keep_staging:
            coordinator.shutdown(discard_outputs=exported)

    logger.success("Quick GIF finished.")
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
