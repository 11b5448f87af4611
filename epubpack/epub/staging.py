"""Staging tree assembly.

The staging tree is a scratch folder laid out exactly like the inside of
the EPUB. It is rebuilt from the generated site on every run: template
files first, then each asset category in a fixed order. Categories are
populated in a temporary folder and swapped in, so a folder is only
deleted once its replacement is in place.
"""

import shutil
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config import ProjectPaths
from ..error import EpubPackError, ErrorCategory
from ..selection import ProjectSelection
from ..utils import (
    copy_files,
    copy_tree,
    ensure_directory,
    is_nonempty_dir,
    move_directory,
    remove_path,
    replace_directory,
)
from .categories import (
    CATEGORIES,
    AssetCategory,
    Outcome,
    choose_source,
    is_excluded,
    should_drop,
    staging_destination,
    superseded_location,
)
from .manifest import copy_manifest_files, manifest_path, resolve_text_manifest

# Set up logging
logger = logging.getLogger(__name__)

MIMETYPE_NAME = "mimetype"
CONTAINER_DIR = "META-INF"
PACKAGE_DOCUMENT = "package.opf"


@dataclass
class CategoryOutcome:
    """What happened to one category during staging."""

    name: str
    outcome: Outcome
    source: Optional[Path] = None
    destination: Optional[Path] = None


@dataclass
class StagingReport:
    """Summary of one staging run."""

    staging_root: Path
    outcomes: List[CategoryOutcome] = field(default_factory=list)

    def get(self, name: str) -> Optional[CategoryOutcome]:
        """Outcome for a category by name."""
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None


def _missing(stage: str, path: Path, what: str) -> EpubPackError:
    return EpubPackError(
        message=f"Missing {what}: {path}",
        category=ErrorCategory.MISSING_ASSET,
        details={"stage": stage, "path": str(path)},
        recoverable=False,
    )


def _overlaps(first: Path, second: Path) -> bool:
    """Return True if two folders are the same or one contains the other."""
    first, second = first.resolve(), second.resolve()
    return first == second or first in second.parents or second in first.parents


class StagingAssembler:
    """Builds the staging tree for one project selection."""

    def __init__(self, paths: ProjectPaths, selection: ProjectSelection):
        """Initialize the assembler.

        Args:
            paths: Resolved project locations.
            selection: Choices for this run.
        """
        self.paths = paths
        self.selection = selection
        self.site_tree = paths.site_tree(selection.book_folder)
        self.staging_root = paths.staging_root
        self.translation_key = selection.translation_key

        if _overlaps(self.site_tree, self.staging_root):
            raise EpubPackError(
                message=(f"Generated book {self.site_tree} overlaps the staging folder "
                         f"{self.staging_root}; choose another book folder or staging_directory"),
                category=ErrorCategory.USER_INPUT,
                details={"stage": "selection", "book_folder": selection.book_folder},
                recoverable=False,
            )

    def check_inputs(self) -> None:
        """Make sure every mandatory original-language input exists.

        Runs before the staging tree is touched, for translation runs too.

        Raises:
            EpubPackError: Naming the first missing input.
        """
        for category in CATEGORIES:
            if not category.required:
                continue
            original = self.site_tree / category.path
            if not original.is_dir():
                raise _missing(category.name, original, f"{category.name} folder")
            if category.manifest and not manifest_path(original).is_file():
                raise EpubPackError(
                    message=f"Text manifest not found: {manifest_path(original)}",
                    category=ErrorCategory.MANIFEST,
                    details={"stage": category.name, "reason": "manifest-missing",
                             "path": str(manifest_path(original))},
                    recoverable=False,
                )

        package_document = self.site_tree / PACKAGE_DOCUMENT
        if not package_document.is_file():
            raise _missing("package", package_document, "package document")

    def assemble(self) -> StagingReport:
        """Rebuild the staging tree from scratch.

        Returns:
            StagingReport: Per-category outcomes.

        Raises:
            EpubPackError: If a mandatory input is missing. Steps after the
                failing one are not run.
        """
        logger.info(f"Assembling staging tree at {self.staging_root} from {self.site_tree}")
        report = StagingReport(self.staging_root)

        self.check_inputs()
        self._reset_staging()
        self._copy_template()

        for category in CATEGORIES:
            if category.required:
                report.outcomes.append(self._stage_required(category))
                if category.manifest:
                    # Package document follows text in the staging sequence
                    self._copy_package_document()
            else:
                report.outcomes.append(self._stage_optional(category))

        logger.info("Staging tree assembled")
        return report

    def _reset_staging(self) -> None:
        remove_path(self.staging_root)
        ensure_directory(self.staging_root)

    def _copy_template(self) -> None:
        """Copy the fixed mimetype file and META-INF folder."""
        template_dir = self.paths.template_dir
        mimetype = template_dir / MIMETYPE_NAME
        container = template_dir / CONTAINER_DIR

        if not mimetype.is_file():
            raise _missing("template", mimetype, "mimetype template")
        if not container.is_dir():
            raise _missing("template", container, "META-INF template")

        shutil.copy2(mimetype, self.staging_root / MIMETYPE_NAME)
        copy_tree(container, self.staging_root / CONTAINER_DIR)

    def _populate(self, category: AssetCategory, source: Path, target: Path) -> None:
        if category.manifest:
            names = resolve_text_manifest(source)
            copy_manifest_files(source, names, target)
        elif category.recursive:
            copy_tree(source, target)
        else:
            copy_files(source, target, category.extensions)

    def _stage_required(self, category: AssetCategory) -> CategoryOutcome:
        choice = choose_source(category, self.site_tree, self.translation_key)
        if not choice.source.is_dir():
            raise _missing(category.name, choice.source, f"{category.name} folder")

        destination = staging_destination(category, self.staging_root, self.translation_key)
        replace_directory(
            destination,
            lambda target: self._populate(category, choice.source, target),
            verify=Path.is_dir,
        )
        self._discard_superseded(category, destination)

        logger.info(f"Staged {category.name} ({choice.outcome.value}) from {choice.source}")
        return CategoryOutcome(category.name, choice.outcome, choice.source, destination)

    def _stage_optional(self, category: AssetCategory) -> CategoryOutcome:
        root_location = self.staging_root / category.path

        if is_excluded(category, self.selection.include_math_support):
            remove_path(root_location)
            logger.info(f"Leaving out {category.name}")
            return CategoryOutcome(category.name, Outcome.DROPPED)

        choice = choose_source(category, self.site_tree, self.translation_key)
        if not choice.source.is_dir():
            logger.debug(f"No {category.name} folder at {choice.source}")
            return CategoryOutcome(category.name, Outcome.ABSENT, choice.source)

        replace_directory(
            root_location,
            lambda target: copy_tree(choice.source, target),
            verify=Path.is_dir,
        )

        if should_drop(category, root_location):
            remove_path(root_location)
            logger.info(f"Dropping {category.name}: nothing to package")
            return CategoryOutcome(category.name, Outcome.DROPPED, choice.source)

        destination = root_location
        if self.translation_key:
            destination = staging_destination(category, self.staging_root, self.translation_key)
            move_directory(root_location, destination)

        logger.info(f"Staged {category.name} ({choice.outcome.value}) from {choice.source}")
        return CategoryOutcome(category.name, choice.outcome, choice.source, destination)

    def _discard_superseded(self, category: AssetCategory, replacement: Path) -> None:
        """Delete the root-level copy of a category a translation replaces."""
        superseded = superseded_location(category, self.staging_root, self.translation_key)
        if superseded is None or not superseded.exists():
            return
        if not is_nonempty_dir(replacement):
            logger.warning(f"Keeping {superseded}: replacement {replacement} is empty")
            return
        remove_path(superseded)
        logger.debug(f"Removed superseded {superseded}")

    def _copy_package_document(self) -> None:
        """Copy the translation's package.opf, or the original's, to the staging root."""
        if self.translation_key:
            source = self.site_tree / self.translation_key / PACKAGE_DOCUMENT
        else:
            source = self.site_tree / PACKAGE_DOCUMENT

        if not source.is_file():
            raise _missing("package", source, "package document")

        shutil.copy2(source, self.staging_root / PACKAGE_DOCUMENT)
        logger.info(f"Copied package document from {source}")


def assemble_staging(paths: ProjectPaths, selection: ProjectSelection) -> StagingReport:
    """Convenience wrapper around ``StagingAssembler.assemble``."""
    return StagingAssembler(paths, selection).assemble()
