"""
Command-Line Interface (CLI) setup for Quick GIF.

This module uses Python's `argparse` to define and parse the command-line
arguments that describe one conversion.
"""
import argparse
from pathlib import Path
from typing import Optional, Sequence

from .config.image import DEFAULT_FRAME_RATE, DEFAULT_RESOLUTION


def get_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for Quick GIF.

    Frame rate and resolution are kept as text on purpose: validating them is
    part of the conversion, so bad values produce the same failure result as
    they would from any other interface.

    Returns:
        argparse.Namespace: An object containing the parsed command-line
                            arguments as attributes.
    """
    parser = argparse.ArgumentParser(
        prog="quick-gif",
        description="Create a looping GIF from a batch of images or a folder of images.",
    )
    parser.add_argument(
        "paths", nargs="+", type=Path,
        help="Image files, or exactly one folder whose images are used in listing order.",
    )
    parser.add_argument(
        "-r", "--framerate", type=str, default=DEFAULT_FRAME_RATE, help="Frames per second."
    )
    parser.add_argument(
        "-s", "--resolution", type=str, default=DEFAULT_RESOLUTION,
        help="Edge length in pixels of the square GIF canvas.",
    )
    parser.add_argument(
        "--ffmpeg", type=Path, default=None,
        help="Path to the FFmpeg executable. Defaults to config.user.yaml, then PATH.",
    )
    parser.add_argument(
        "-o", "--export", type=Path, default=None,
        help="Copy the finished GIF to this file or folder.",
    )
    parser.add_argument(
        "--work-dir", type=str, default=None,
        help="Directory for the staging area and produced GIFs. Useful for pointing to a RAM disk.",
    )
    parser.add_argument(
        "--probe", action="store_true", help="Log the size and frame count of the finished GIF (needs ffprobe)."
    )
    parser.add_argument(
        "--keep-staging", action="store_true",
        help="Leave the staged frames on disk after the run, for inspection.",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level.",
    )

    args = parser.parse_args(argv)

    # Validate work_dir if provided. If it doesn't exist, try to create it.
    if args.work_dir:
        work_dir_path = Path(args.work_dir)
        if not work_dir_path.is_dir():
            try:
                work_dir_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                parser.error(f"The work directory '{args.work_dir}' does not exist and could not be created: {e}")
        args.work_dir = work_dir_path.resolve()

    return args
