"""Utility functions for epubpack.

This module contains the filesystem helpers used by the staging and
packaging steps.
"""

import os
import shutil
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

# Set up logging
logger = logging.getLogger(__name__)

# Entries some platforms report for every directory listing
IMPLICIT_ENTRIES = frozenset({".", ".."})


def ensure_directory(directory_path: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist.

    Args:
        directory_path: Path to the directory to create.

    Returns:
        Path: The Path object for the created directory.

    Raises:
        OSError: If directory creation fails.
    """
    path = Path(directory_path)
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        raise


def list_entries(directory_path: Union[str, Path]) -> List[str]:
    """List a directory's entries without the implicit self/parent entries.

    Args:
        directory_path: Directory to list.

    Returns:
        Sorted entry names; empty if the path is not a directory.
    """
    path = Path(directory_path)
    if not path.is_dir():
        return []
    return sorted(name for name in os.listdir(path) if name not in IMPLICIT_ENTRIES)


def is_nonempty_dir(directory_path: Union[str, Path]) -> bool:
    """Return True if the path is a directory with at least one real entry."""
    return bool(list_entries(directory_path))


def remove_path(path: Union[str, Path]) -> None:
    """Delete a file or directory tree if it exists."""
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        logger.debug(f"Removed directory {path}")
    elif path.exists() or path.is_symlink():
        path.unlink()
        logger.debug(f"Removed file {path}")


def copy_files(source_dir: Path, destination: Path,
               extensions: Optional[Iterable[str]] = None) -> List[Path]:
    """Copy the files directly inside a directory (non-recursive).

    Args:
        source_dir: Directory to copy from.
        destination: Directory to copy into; created if needed.
        extensions: Lower-case suffixes to keep, e.g. (".css",). None keeps all.

    Returns:
        List of copied destination paths.
    """
    allowed = tuple(ext.lower() for ext in extensions) if extensions else None
    ensure_directory(destination)

    copied = []
    for name in list_entries(source_dir):
        source = source_dir / name
        if not source.is_file():
            continue
        if allowed and not name.lower().endswith(allowed):
            continue
        target = destination / name
        shutil.copy2(source, target)
        copied.append(target)

    logger.debug(f"Copied {len(copied)} files from {source_dir} to {destination}")
    return copied


def copy_tree(source_dir: Path, destination: Path) -> Path:
    """Recursively copy a directory, creating parent directories as needed."""
    ensure_directory(destination.parent)
    shutil.copytree(source_dir, destination)
    logger.debug(f"Copied tree {source_dir} to {destination}")
    return destination


def replace_directory(destination: Path, populate: Callable[[Path], None],
                      verify: Callable[[Path], bool] = is_nonempty_dir) -> bool:
    """Build a directory next to its final location and swap it in.

    ``populate`` fills a temporary sibling directory. The existing
    destination is deleted only when ``verify`` accepts the new content;
    otherwise the temporary directory is discarded and the destination is
    left untouched.

    Args:
        destination: Final directory location.
        populate: Callable that fills the directory it is given.
        verify: Predicate the populated directory must satisfy.

    Returns:
        bool: True if the destination was replaced.
    """
    temp_dir = destination.with_name(destination.name + ".partial")
    remove_path(temp_dir)
    ensure_directory(temp_dir.parent)

    try:
        populate(temp_dir)
    except Exception:
        remove_path(temp_dir)
        raise

    if not verify(temp_dir):
        logger.warning(f"Replacement for {destination} did not verify; keeping existing content")
        remove_path(temp_dir)
        return False

    remove_path(destination)
    temp_dir.rename(destination)
    return True


def move_directory(source: Path, destination: Path) -> Path:
    """Move a directory, replacing anything already at the destination."""
    ensure_directory(destination.parent)
    remove_path(destination)
    shutil.move(str(source), str(destination))
    logger.debug(f"Moved {source} to {destination}")
    return destination


def iter_files(root: Path) -> List[Path]:
    """All files under a directory, depth-first in sorted order."""
    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            files.append(Path(dirpath) / name)
    return files
