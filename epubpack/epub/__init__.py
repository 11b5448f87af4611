"""EPUB assembly package for epubpack.

This package turns a generated site tree into an EPUB: the category rules
decide where each asset comes from, the staging assembler lays the files
out, and the packager writes the zip archive.
"""

from .categories import AssetCategory, Outcome, CATEGORIES, ARCHIVE_ORDER
from .manifest import resolve_text_manifest
from .staging import StagingAssembler, StagingReport, assemble_staging
from .packager import ArchivePackager, archive_path, EPUB_MIMETYPE

__all__ = [
    'AssetCategory', 'Outcome', 'CATEGORIES', 'ARCHIVE_ORDER',
    'resolve_text_manifest',
    'StagingAssembler', 'StagingReport', 'assemble_staging',
    'ArchivePackager', 'archive_path', 'EPUB_MIMETYPE',
]
