"""Asset categories and the rules that decide where each one comes from.

Every relocatable part of a generated book (styles, images, text, scripts,
fonts, MathJax) is described by one ``AssetCategory`` record. The functions
in this module are pure decisions over those records: which subtree of the
generated site feeds the staging tree, where the category lands in the
staging tree, and whether an optional category is dropped.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple

from ..utils import is_nonempty_dir, iter_files

# Set up logging
logger = logging.getLogger(__name__)

FONT_EXTENSIONS = (".otf", ".ttf", ".woff", ".woff2")
STYLESHEET_EXTENSIONS = (".css",)


class Outcome(Enum):
    """Result of classifying one category for one run."""

    USE_TRANSLATED = "use-translated"
    FALLBACK_TO_ORIGINAL = "fallback-to-original"
    DROPPED = "dropped"
    ABSENT = "absent"


def has_font_files(directory: Path) -> bool:
    """Return True if a directory holds at least one recognised font file."""
    if not directory.is_dir():
        return False
    return any(path.suffix.lower() in FONT_EXTENSIONS for path in iter_files(directory))


@dataclass(frozen=True)
class AssetCategory:
    """Declarative description of one asset category.

    Attributes:
        name: Short name used in reports and error details.
        path: Location relative to a site tree or the staging tree.
        required: Whether the original-language subtree must exist.
        recursive: Copy subdirectories too.
        extensions: Only copy files with these suffixes (non-recursive copies).
        keep_when: Predicate a staged optional category must satisfy to
            survive; None means it is always kept.
        math_support: Only included when MathJax was requested.
        manifest: Content is limited to the files named in the text manifest.
    """

    name: str
    path: str
    required: bool
    recursive: bool = True
    extensions: Tuple[str, ...] = ()
    keep_when: Optional[Callable[[Path], bool]] = None
    math_support: bool = False
    manifest: bool = False


STYLES = AssetCategory("styles", "styles", required=True, recursive=False,
                       extensions=STYLESHEET_EXTENSIONS)
IMAGES = AssetCategory("images", "images/epub", required=True)
TEXT = AssetCategory("text", "text", required=True, manifest=True)
SCRIPTS = AssetCategory("scripts", "js", required=False, keep_when=is_nonempty_dir)
FONTS = AssetCategory("fonts", "fonts", required=False, keep_when=has_font_files)
MATHJAX = AssetCategory("mathjax", "mathjax", required=False, math_support=True)

# Staging order
CATEGORIES = (STYLES, IMAGES, TEXT, SCRIPTS, FONTS, MATHJAX)

# Root-level archive order for original-language packages
ARCHIVE_ORDER = (IMAGES, FONTS, STYLES, TEXT, MATHJAX, SCRIPTS)


@dataclass(frozen=True)
class SourceChoice:
    """Where a category is read from for one run."""

    category: AssetCategory
    outcome: Outcome
    source: Path

    @property
    def translated(self) -> bool:
        return self.outcome is Outcome.USE_TRANSLATED


def choose_source(category: AssetCategory, site_tree: Path,
                  translation_key: Optional[str] = None) -> SourceChoice:
    """Decide which generated subtree feeds a category.

    The translated subtree wins only if it exists and has at least one
    entry; otherwise the original-language subtree is used.

    Args:
        category: The category being staged.
        site_tree: Root of the generated book, e.g. ``_site/book``.
        translation_key: Translation subdirectory, or None.

    Returns:
        SourceChoice: Chosen outcome and source path.
    """
    original = site_tree / category.path
    if translation_key:
        translated = site_tree / translation_key / category.path
        if is_nonempty_dir(translated):
            logger.debug(f"{category.name}: using translated subtree {translated}")
            return SourceChoice(category, Outcome.USE_TRANSLATED, translated)
        logger.debug(f"{category.name}: no translated subtree at {translated}, falling back")
    return SourceChoice(category, Outcome.FALLBACK_TO_ORIGINAL, original)


def staging_destination(category: AssetCategory, staging_root: Path,
                        translation_key: Optional[str] = None) -> Path:
    """Final location of a category inside the staging tree."""
    if translation_key:
        return staging_root / translation_key / category.path
    return staging_root / category.path


def superseded_location(category: AssetCategory, staging_root: Path,
                        translation_key: Optional[str] = None) -> Optional[Path]:
    """Root-level copy of a category that a translation run replaces."""
    if not translation_key:
        return None
    return staging_root / category.path


def is_excluded(category: AssetCategory, include_math_support: bool) -> bool:
    """Return True if a category is left out before anything is copied."""
    return category.math_support and not include_math_support


def should_drop(category: AssetCategory, staged_dir: Path) -> bool:
    """Return True if a staged optional category must be removed.

    Args:
        category: The category that was staged.
        staged_dir: Where it was staged.

    Returns:
        bool: True when the category's keep predicate rejects the content.
    """
    if category.keep_when is None:
        return False
    return not category.keep_when(staged_dir)
