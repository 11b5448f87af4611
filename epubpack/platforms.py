"""Platform-specific capabilities.

Opening a file or folder in the desktop viewer and locating an external
tool differ per operating system. The build pipeline receives one of the
classes below so the packaging code itself has no platform checks.
"""

import os
import sys
import shutil
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Union

# Set up logging
logger = logging.getLogger(__name__)


class Platform:
    """Capability interface and shared behaviour."""

    name = "generic"

    def open_path(self, path: Union[str, Path]) -> bool:
        """Open a file or folder with the default application.

        Args:
            path: File or folder to open.

        Returns:
            bool: True if the viewer was launched.
        """
        command = self.open_command(Path(path))
        if not command:
            logger.debug(f"No viewer command on {self.name}")
            return False
        try:
            subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            return True
        except OSError as e:
            logger.warning(f"Could not open {path}: {e}")
            return False

    def open_command(self, path: Path) -> Optional[List[str]]:
        return None

    def locate(self, name: str) -> Optional[Path]:
        """Find an executable or file by name.

        Looks on PATH first, then asks the platform's file search.

        Args:
            name: Executable name (``epubcheck``) or file name (``epubcheck.jar``).

        Returns:
            Path to the first match, or None.
        """
        found = shutil.which(name)
        if found:
            return Path(found)
        return self.search(name)

    def search(self, name: str) -> Optional[Path]:
        command = self.search_command(name)
        if not command or not shutil.which(command[0]):
            return None
        try:
            process = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as e:
            logger.warning(f"File search for {name} failed: {e}")
            return None
        for line in process.stdout.splitlines():
            candidate = Path(line.strip())
            if line.strip() and candidate.name == name and candidate.is_file():
                return candidate
        return None

    def search_command(self, name: str) -> Optional[List[str]]:
        return None


class LinuxPlatform(Platform):
    name = "linux"

    def open_command(self, path: Path) -> Optional[List[str]]:
        return ["xdg-open", str(path)]

    def search_command(self, name: str) -> Optional[List[str]]:
        return ["locate", "-b", "-l", "5", f"\\{name}"]


class MacPlatform(Platform):
    name = "macos"

    def open_command(self, path: Path) -> Optional[List[str]]:
        return ["open", str(path)]

    def search_command(self, name: str) -> Optional[List[str]]:
        return ["mdfind", "-name", name]


class WindowsPlatform(Platform):
    name = "windows"

    def open_path(self, path: Union[str, Path]) -> bool:
        try:
            os.startfile(str(path))  # type: ignore[attr-defined]
            return True
        except OSError as e:
            logger.warning(f"Could not open {path}: {e}")
            return False

    def search_command(self, name: str) -> Optional[List[str]]:
        return ["where", "/r", str(Path.home()), name]


def current_platform() -> Platform:
    """Return the capability object for the running operating system."""
    if sys.platform.startswith("win"):
        return WindowsPlatform()
    if sys.platform == "darwin":
        return MacPlatform()
    return LinuxPlatform()
