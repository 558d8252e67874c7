"""Resolution of the directory holding the snapshot cache files."""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from ..application.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_APP_DIR = "whoip"


def _usable(directory: Path) -> bool:
    """Create the directory if needed and check it is readable and writable."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.debug(f"Cannot create {directory}: {e}")
        return False
    return os.access(directory, os.R_OK | os.W_OK | os.X_OK)


def default_candidates() -> List[Path]:
    """The fallback locations, most preferred first."""
    candidates = []
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        candidates.append(Path(xdg_data_home) / _APP_DIR)
    home = os.environ.get("HOME")
    if home:
        candidates.append(Path(home) / ".local" / "share" / _APP_DIR)
    candidates.append(Path(tempfile.gettempdir()) / _APP_DIR)
    return candidates


def resolve_data_directory(*preferred: Optional[str]) -> Path:
    """
    Return an absolute, existing, read/write directory for cache files.

    The first non-empty entry of `preferred` is used as is and must be
    usable. Without one, the XDG data home, ~/.local/share and the system
    temporary directory are tried in turn.

    Raises:
        ConfigurationError: If no usable directory can be found.
    """

    explicit = next((p for p in preferred if p), None)
    if explicit:
        directory = Path(explicit).expanduser().resolve()
        if not _usable(directory):
            raise ConfigurationError(
                f"Data directory {directory} is not a writable directory."
            )
        return directory

    candidates = default_candidates()
    for directory in candidates:
        if _usable(directory):
            logger.debug(f"Using data directory {directory}")
            return directory.resolve()

    raise ConfigurationError(
        "Failed to create a data directory in any of: "
        + ", ".join(str(c) for c in candidates)
    )
