"""
Per-user data directory for event logs.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional


def get_app_data_directory(
    app_name: str = "bookquery", subdirectory: Optional[str] = None
) -> Path:
    """
    Return a writable per-user data directory, creating it if needed.

    Unix-like systems use ``$XDG_DATA_HOME/<app_name>`` (default
    ``~/.local/share/<app_name>``), Windows uses ``%LOCALAPPDATA%``. When the
    platform directory cannot be written, an owner-only temporary directory
    is returned instead.

    Args:
        app_name: Name of the application directory
        subdirectory: Optional subdirectory, e.g. ``"logs"``

    Returns:
        Path: Existing, writable directory
    """
    app_dir = _platform_data_root() / app_name
    if subdirectory:
        app_dir = app_dir / subdirectory

    try:
        app_dir.mkdir(parents=True, exist_ok=True)
        _check_writable(app_dir)
        return app_dir
    except OSError:
        temp_dir = Path(tempfile.mkdtemp(prefix=f"{app_name}_", suffix="_data"))
        os.chmod(temp_dir, 0o700)
        return temp_dir


def _platform_data_root() -> Path:
    if os.name == "nt":
        local_app_data = os.environ.get("LOCALAPPDATA")
        return Path(local_app_data) if local_app_data else Path(tempfile.gettempdir())

    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home)
    return Path.home() / ".local" / "share"


def _check_writable(directory: Path) -> None:
    marker = directory / ".write_test"
    marker.touch()
    marker.unlink()
