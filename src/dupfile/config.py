"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

config.py
Application locations and engine tuning constants.
"""

import os
import sys
from dataclasses import dataclass
from typing import Optional

APP_NAME = "DupFile"
HOME_ENV_VAR = "DUPFILE_HOME"
DATABASE_FILE = "checksums.db"


class ScanConfig:
    QUICK_SCAN_THRESHOLD = 100  # Size pruning only kicks in above this many candidates
    DUPLICATE_COUNT_INTERVAL = 10  # Re-query the live duplicate count every N files
    HASH_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class AppPaths:
    """
    Where the engine keeps its state.

    data_dir holds the checksum index. quarantine_dir lives in the user's document
    area, restore_dir directly under home. None of them is created here; each
    component creates its directory on first use.
    """
    data_dir: str
    quarantine_dir: str
    restore_dir: str

    @property
    def database_path(self) -> str:
        return os.path.join(self.data_dir, DATABASE_FILE)

    @staticmethod
    def under(base: str) -> "AppPaths":
        """All locations below one directory (tests, portable installs)."""
        base = os.path.abspath(os.path.expanduser(base))
        return AppPaths(
            data_dir=os.path.join(base, "data"),
            quarantine_dir=os.path.join(base, "quarantine"),
            restore_dir=os.path.join(base, "restored"),
        )

    @staticmethod
    def default(home: Optional[str] = None) -> "AppPaths":
        """Platform locations, or everything under $DUPFILE_HOME when it is set."""
        override = os.environ.get(HOME_ENV_VAR)
        if override:
            return AppPaths.under(override)

        home = home or os.path.expanduser("~")
        return AppPaths(
            data_dir=_platform_data_dir(home),
            quarantine_dir=os.path.join(home, "Documents", APP_NAME, "quarantine"),
            restore_dir=os.path.join(home, f"{APP_NAME} Restored"),
        )


def _platform_data_dir(home: str) -> str:
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
        if base:
            return os.path.join(base, APP_NAME)
        return os.path.join(home, "AppData", "Local", APP_NAME)
    if sys.platform == "darwin":
        return os.path.join(home, "Library", "Application Support", APP_NAME)
    xdg = os.environ.get("XDG_DATA_HOME")
    return os.path.join(xdg or os.path.join(home, ".local", "share"), APP_NAME.lower())
