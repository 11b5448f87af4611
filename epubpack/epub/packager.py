"""EPUB archive packaging.

Writes the staging tree into a zip file with the layout EPUB readers
expect: an uncompressed ``mimetype`` entry first, then every other file
deflated, in a fixed category order, with ``META-INF`` and the package
document last.
"""

import logging
import zipfile
from pathlib import Path
from typing import List, Tuple, Union

from tqdm import tqdm

from ..error import EpubPackError, ErrorCategory
from ..selection import ProjectSelection
from ..utils import ensure_directory, iter_files, remove_path
from .categories import ARCHIVE_ORDER
from .staging import CONTAINER_DIR, MIMETYPE_NAME, PACKAGE_DOCUMENT

# Set up logging
logger = logging.getLogger(__name__)

EPUB_MIMETYPE = "application/epub+zip"
EPUB_EXTENSION = ".epub"
ZIP_EXTENSION = ".zip"


def archive_path(output_dir: Union[str, Path], selection: ProjectSelection) -> Path:
    """Final location of the EPUB for a selection."""
    return Path(output_dir) / f"{selection.archive_stem}{EPUB_EXTENSION}"


def mimetype_info() -> zipfile.ZipInfo:
    """ZipInfo for the stored, extra-field-free mimetype entry."""
    info = zipfile.ZipInfo(MIMETYPE_NAME)
    info.compress_type = zipfile.ZIP_STORED
    info.extra = b""
    info.external_attr = 0o644 << 16
    return info


class ArchivePackager:
    """Serializes a staging tree into an EPUB file."""

    def __init__(self, staging_root: Union[str, Path], output_dir: Union[str, Path],
                 show_progress: bool = True):
        """Initialize the packager.

        Args:
            staging_root: Root of the assembled staging tree.
            output_dir: Folder the EPUB is written to.
            show_progress: Whether to show a progress bar.
        """
        self.staging_root = Path(staging_root)
        self.output_dir = Path(output_dir)
        self.show_progress = show_progress

    def collect_entries(self, selection: ProjectSelection) -> List[Tuple[Path, str]]:
        """List the files to archive after ``mimetype``, in archive order.

        Args:
            selection: The run's project selection.

        Returns:
            List of (file path, archive name) pairs.
        """
        if selection.translation_key:
            roots = [self.staging_root / selection.translation_key]
        else:
            roots = [self.staging_root / category.path for category in ARCHIVE_ORDER]
        roots.append(self.staging_root / CONTAINER_DIR)

        entries = []
        for root in roots:
            if not root.is_dir():
                logger.debug(f"Skipping missing folder {root}")
                continue
            for path in iter_files(root):
                entries.append((path, path.relative_to(self.staging_root).as_posix()))

        package_document = self.staging_root / PACKAGE_DOCUMENT
        if package_document.is_file():
            entries.append((package_document, PACKAGE_DOCUMENT))
        return entries

    def package(self, selection: ProjectSelection) -> Path:
        """Write the EPUB for a selection.

        Any earlier archive of the same name, and its intermediate zip, is
        deleted first.

        Args:
            selection: The run's project selection.

        Returns:
            Path: Location of the written EPUB.

        Raises:
            EpubPackError: If the archive could not be written or renamed.
        """
        epub_path = archive_path(self.output_dir, selection)
        zip_path = epub_path.with_suffix(ZIP_EXTENSION)

        ensure_directory(self.output_dir)
        remove_path(epub_path)
        remove_path(zip_path)

        entries = self.collect_entries(selection)
        logger.info(f"Writing {len(entries) + 1} entries to {zip_path}")

        try:
            with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zip_file:
                # mimetype must be the first entry, uncompressed
                zip_file.writestr(mimetype_info(), EPUB_MIMETYPE.encode("ascii"))

                for path, arc_name in tqdm(entries, desc="Packaging", unit="file",
                                           disable=not self.show_progress):
                    zip_file.write(path, arcname=arc_name, compress_type=zipfile.ZIP_DEFLATED)

            zip_path.rename(epub_path)
        except (OSError, zipfile.BadZipFile) as e:
            raise EpubPackError(
                message="Something went wrong while packaging the EPUB",
                category=ErrorCategory.PACKAGING,
                original_error=e,
                details={"stage": "package", "path": str(zip_path)},
                recoverable=False,
            ) from e

        if not epub_path.exists():
            raise EpubPackError(
                message="Something went wrong while packaging the EPUB",
                category=ErrorCategory.PACKAGING,
                details={"stage": "package", "path": str(epub_path)},
                recoverable=False,
            )

        logger.info(f"EPUB written to {epub_path}")
        return epub_path
