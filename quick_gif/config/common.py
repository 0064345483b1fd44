"""
Common configuration settings used throughout the application.

This module contains globally shared settings: the logging format, the work
directory that holds the staging area and produced GIFs, and the job state
names reported to observers. It also handles the loading of user-specific
configuration from an external YAML file, so the location of the encoder can
be customized without modifying the source code.
"""
import tempfile
from pathlib import Path

import yaml
from loguru import logger

# --- User-Defined Path Configuration ---
# Paths are loaded from a 'config.user.yaml' file located at the project root.
# Example:
#
#   paths:
#     ffmpeg_dir: /opt/ffmpeg/bin
#     work_dir: /mnt/ramdisk/quick_gif

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"

# The directory containing the FFmpeg executable. If not provided, the
# application looks the executable up on the system's PATH.
MODULE_PATH: Path | None = None

# Root directory for the staging area and produced GIF files.
WORK_DIR: Path = Path(tempfile.gettempdir()) / "quick_gif"


def load_user_config(config_path: Path = USER_CONFIG_PATH) -> dict:
    """
    Reads the `paths` section of the user configuration file.

    Returns an empty dict when the file is missing or cannot be parsed; a broken
    user config is reported but never stops the application.
    """
    if not config_path.is_file():
        logger.debug(f"User config '{config_path}' not found. Relying on defaults and system PATH.")
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{config_path}': {e}")
        return {}
    if not isinstance(user_config, dict):
        return {}
    return user_config.get("paths") or {}


_paths_config = load_user_config()
if _paths_config.get("ffmpeg_dir"):
    MODULE_PATH = Path(_paths_config["ffmpeg_dir"])
if _paths_config.get("work_dir"):
    WORK_DIR = Path(_paths_config["work_dir"])


# --- Logging Configuration ---

LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)

# Number of trailing encoder stderr lines included in the error log of a failed job.
STDERR_TAIL_LINES = 20


# --- Directory and File Management ---

# Name of the staging directory inside the work directory. It is recreated for
# every job and owned by exactly one job at a time.
STAGING_DIR_NAME = "ffmpeg_input"

# File inside the staging directory that receives the drained encoder output.
ENCODER_LOG_FILE_NAME = "encoder.log"

# Prefix of the produced GIF files; a fresh uuid4 hex follows it for every job.
OUTPUT_FILE_PREFIX = "output_"
OUTPUT_FILE_SUFFIX = ".gif"

# Default file name offered for an export when only a directory is given.
DEFAULT_EXPORT_NAME = "output.gif"


# --- Job State Constants ---
# Transitions reported to observers of a running job.

JOB_STATE_IDLE = "idle"
JOB_STATE_VALIDATING = "validating"
JOB_STATE_STAGING = "staging"
JOB_STATE_ENCODING = "encoding"
JOB_STATE_COMPLETED = "completed"
JOB_STATE_FAILED = "failed"
JOB_STATE_CANCELLED = "cancelled"

TERMINAL_JOB_STATES = (JOB_STATE_COMPLETED, JOB_STATE_FAILED, JOB_STATE_CANCELLED)

# Seconds to wait for the encoder to exit after `terminate()` before it is killed.
TERMINATE_TIMEOUT_SECONDS = 5.0
