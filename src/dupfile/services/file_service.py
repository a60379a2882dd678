"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
Cross-platform shell operations: open a file, show a folder, trash a file.
Works the same from a source checkout and from a frozen PyInstaller build.
"""
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Optional

from send2trash import send2trash

from dupfile.core.interfaces import ShellActions

logger = logging.getLogger(__name__)


class FileService:
    """
    Raising primitives. Every method throws FileNotFoundError for a missing
    path and RuntimeError when the platform tool fails.
    """

    @staticmethod
    def open_file(file_path: str):
        """Opens a file with the system default application."""
        path = Path(file_path).resolve()

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            if sys.platform == 'win32':
                os.startfile(str(path))
            elif sys.platform == 'darwin':
                subprocess.Popen(['open', str(path)])
            else:
                FileService._run_linux_opener(path, "open file")
        except RuntimeError:
            raise
        except Exception as e:
            raise RuntimeError(f"Failed to open file: {e}") from e

    @staticmethod
    def reveal_folder(folder_path: str):
        """Shows a folder in the system file manager."""
        path = Path(folder_path).resolve()

        if not path.is_dir():
            raise FileNotFoundError(f"Folder not found: {path}")

        try:
            if sys.platform == 'win32':
                subprocess.Popen(['explorer', str(path)])
            elif sys.platform == 'darwin':
                subprocess.Popen(['open', str(path)])
            else:
                FileService._run_linux_opener(path, "show folder")
        except RuntimeError:
            raise
        except Exception as e:
            raise RuntimeError(f"Failed to show folder: {e}") from e

    @staticmethod
    def _run_linux_opener(path: Path, action: str):
        """Linux: gio first, xdg-open as the fallback."""
        env = FileService._get_clean_env()
        for command in (['gio', 'open'], ['xdg-open']):
            try:
                subprocess.run(command + [str(path)], env=env, timeout=5)
                return
            except (FileNotFoundError, subprocess.TimeoutExpired):
                logger.debug(f"{command[0]} unavailable for {path}")
        raise RuntimeError(f"Cannot {action}: no suitable application found")

    @staticmethod
    def move_to_trash(file_path: str):
        """Moves a file to the system trash."""
        path = Path(file_path).resolve()

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            send2trash(str(path))
        except Exception as e:
            raise RuntimeError(f"Failed to move to trash: {e}") from e

    @staticmethod
    def _get_clean_env():
        """
        Environment for spawning desktop tools.
        Strips PyInstaller's bundled library paths so they don't leak into child processes.
        """
        env = os.environ.copy()

        if getattr(sys, 'frozen', False) and sys.platform.startswith('linux'):
            ld_path = env.get('LD_LIBRARY_PATH', '')
            if ld_path:
                bundle_dir = os.path.dirname(sys.executable)
                clean_paths = [
                    p for p in ld_path.split(':')
                    if not p.startswith('/tmp/_MEI') and not p.startswith(bundle_dir)
                ]
                env['LD_LIBRARY_PATH'] = ':'.join(clean_paths)

        env.setdefault('DISPLAY', ':0')
        return env


class ShellActionsImpl(ShellActions):
    """
    Non-raising adapter over FileService for front-ends.
    Failures are logged and reported as False; choosing a directory needs a UI,
    so the headless implementation has none to offer.
    """

    def choose_directory(self) -> Optional[str]:
        return None

    def reveal_folder(self, path: str) -> bool:
        try:
            FileService.reveal_folder(path)
        except (OSError, RuntimeError) as e:
            logger.warning(f"Cannot show {path}: {e}")
            return False
        return True

    def open_file(self, path: str) -> bool:
        try:
            FileService.open_file(path)
        except (OSError, RuntimeError) as e:
            logger.warning(f"Cannot open {path}: {e}")
            return False
        return True
