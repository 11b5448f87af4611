"""Text manifest handling.

The site generator writes a ``file-list`` document next to each ``text``
folder naming the documents that belong in the EPUB. The ``text`` folder
itself may hold extra generated files, so only listed files are packaged.
"""

import shutil
import logging
from pathlib import Path
from typing import List, Union

from ..error import EpubPackError, ErrorCategory
from ..utils import ensure_directory

# Set up logging
logger = logging.getLogger(__name__)

MANIFEST_NAME = "file-list"


def manifest_path(text_root: Union[str, Path]) -> Path:
    """Location of the manifest that belongs to a text folder."""
    return Path(text_root).parent / MANIFEST_NAME


def parse_manifest(content: str) -> List[str]:
    """Split manifest content into filenames, dropping blank lines.

    Args:
        content: Raw manifest text; any line ending style is accepted.

    Returns:
        List of filenames in manifest order.
    """
    return [line.strip() for line in content.splitlines() if line.strip()]


def resolve_text_manifest(text_root: Union[str, Path]) -> List[str]:
    """Read the list of text files that belong in the package.

    Args:
        text_root: The generated ``text`` folder.

    Returns:
        List of filenames relative to ``text_root``.

    Raises:
        EpubPackError: If the manifest file does not exist.
    """
    path = manifest_path(text_root)
    if not path.is_file():
        raise EpubPackError(
            message=f"Text manifest not found: {path}",
            category=ErrorCategory.MANIFEST,
            details={"stage": "text", "reason": "manifest-missing", "path": str(path)},
            recoverable=False,
        )

    names = parse_manifest(path.read_text(encoding="utf-8"))
    logger.info(f"Text manifest {path} lists {len(names)} files")
    return names


def copy_manifest_files(text_root: Path, names: List[str], destination: Path) -> List[Path]:
    """Copy exactly the listed files from a text folder.

    Args:
        text_root: Folder the names are relative to.
        names: Filenames from the manifest.
        destination: Folder to copy into; subfolders are created as needed.

    Returns:
        List of copied destination paths.

    Raises:
        EpubPackError: If a listed file is missing from ``text_root``.
    """
    ensure_directory(destination)
    copied = []
    for name in names:
        source = text_root / name
        if not source.is_file():
            raise EpubPackError(
                message=f"File listed in the text manifest is missing: {source}",
                category=ErrorCategory.MISSING_ASSET,
                details={"stage": "text", "reason": "referenced-file-missing", "path": str(source)},
                recoverable=False,
            )
        target = destination / name
        ensure_directory(target.parent)
        shutil.copy2(source, target)
        copied.append(target)
    return copied
