"""Project selection for one packaging run.

A ``ProjectSelection`` collects every choice a run depends on. It is built
either by prompting through an interaction object or directly from command
line options, and is validated before any file is touched.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, Union

from .error import EpubPackError, ErrorCategory
from .ui import Interaction

# Set up logging
logger = logging.getLogger(__name__)

DEFAULT_BOOK_FOLDER = "book"


@dataclass(frozen=True)
class ProjectSelection:
    """Immutable configuration for one packaging run."""

    book_folder: str
    translation_key: Optional[str] = None
    include_math_support: bool = False
    extra_config_paths: Tuple[str, ...] = field(default_factory=tuple)
    run_validation: bool = True

    @property
    def archive_stem(self) -> str:
        """Archive filename without extension, e.g. ``book-fr``."""
        if self.translation_key:
            return f"{self.book_folder}-{self.translation_key}"
        return self.book_folder

    @property
    def is_translation(self) -> bool:
        return bool(self.translation_key)

    def validate(self, project_root: Union[str, Path]) -> "ProjectSelection":
        """Check the selection against the project folder.

        Args:
            project_root: Folder containing the book folders.

        Returns:
            The selection itself, for chaining.

        Raises:
            EpubPackError: If the book folder or translation folder is missing.
        """
        book_path = Path(project_root) / self.book_folder
        if not self.book_folder or not book_path.exists():
            raise EpubPackError(
                message=f"Book folder doesn't exist: {book_path}",
                category=ErrorCategory.USER_INPUT,
                details={"stage": "selection", "book_folder": self.book_folder},
                recoverable=False,
            )
        if self.translation_key and not (book_path / self.translation_key).exists():
            raise EpubPackError(
                message=f"Translation folder doesn't exist: {book_path / self.translation_key}",
                category=ErrorCategory.USER_INPUT,
                details={"stage": "selection", "translation_key": self.translation_key},
                recoverable=False,
            )
        return self


def parse_config_list(answer: str) -> Tuple[str, ...]:
    """Split a comma-separated list of config files, keeping order."""
    return tuple(part.strip() for part in answer.split(",") if part.strip())


def parse_yes_no(answer: str, default: Optional[bool] = None) -> Optional[bool]:
    """Map a y/n answer to a bool; None if it is neither."""
    answer = answer.strip().lower()
    if not answer and default is not None:
        return default
    if answer in ("y", "yes"):
        return True
    if answer in ("n", "no"):
        return False
    return None


def prompt_selection(interaction: Interaction, project_root: Union[str, Path]) -> ProjectSelection:
    """Ask the user for every choice of a run.

    Each question is repeated until its answer is valid, so the returned
    selection always passes ``ProjectSelection.validate``.

    Args:
        interaction: Object providing ``ask`` and ``say``.
        project_root: Folder containing the book folders.

    Returns:
        ProjectSelection: The validated selection.
    """
    root = Path(project_root)

    while True:
        answer = interaction.ask("Which book folder are we processing?", DEFAULT_BOOK_FOLDER).strip()
        if answer and (root / answer).exists():
            book_folder = answer
            break
        interaction.say(f"Sorry {answer} doesn't exist. Try again")

    translation_key = None
    while True:
        answer = interaction.ask(
            "If you're outputting files in a subdirectory (e.g. a translation), "
            "type its name. Otherwise, hit enter.", ""
        ).strip()
        if not answer:
            break
        if (root / book_folder / answer).exists():
            translation_key = answer
            break
        interaction.say(f"Sorry {Path(book_folder) / answer} doesn't exist. Try again")

    while True:
        include_math = parse_yes_no(
            interaction.ask("Include mathjax? Enter y for yes (or hit enter for no).", "n"),
            default=False,
        )
        if include_math is not None:
            break

    extra_configs = parse_config_list(interaction.ask(
        "Any extra config files?\n"
        "Enter filenames (including any relative path), comma separated, no spaces. E.g.\n"
        "_configs/_config.myconfig.yml\n"
        "If not, just hit return.", ""
    ))

    answer = interaction.ask(
        "Shall we try to run EpubCheck when we're done? "
        "Hit enter for yes, or any key and enter for no.", ""
    )
    run_validation = not answer.strip()

    selection = ProjectSelection(
        book_folder=book_folder,
        translation_key=translation_key,
        include_math_support=include_math,
        extra_config_paths=extra_configs,
        run_validation=run_validation,
    )
    logger.debug(f"Selection: {selection}")
    return selection.validate(root)
