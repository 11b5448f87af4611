"""Error handling for epubpack.

This module provides error categorization and logging for epubpack,
including the exception type raised by the packaging pipeline and the
handler that turns it into user feedback.
"""

import logging
import traceback
from enum import Enum
from typing import Dict, Any, Optional, List, Union
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import click

# Set up logging
logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors that can occur in epubpack."""

    FILE_SYSTEM = "fs"  # File system errors (read/write/move)
    MISSING_ASSET = "asset"  # Mandatory generated asset is absent
    MANIFEST = "manifest"  # Text file-list manifest errors
    PACKAGING = "packaging"  # Archive could not be written or renamed
    VALIDATION = "validation"  # EPUB validation errors
    EXTERNAL = "external"  # External tool errors (generator, validator)
    USER_INPUT = "input"  # User input errors
    UNEXPECTED = "unexpected"  # Unexpected errors


@dataclass
class EpubPackError(Exception):
    """Custom exception class for epubpack errors."""

    message: str
    category: ErrorCategory
    original_error: Optional[Exception] = None
    details: Optional[Dict[str, Any]] = None
    recoverable: bool = True

    def __post_init__(self):
        super().__init__(self.message)
        if self.details is None:
            self.details = {}

    def __str__(self) -> str:
        return f"{self.message} [{self.category.value}]"

    @property
    def stage(self) -> Optional[str]:
        """Name of the pipeline stage that raised the error, if known."""
        return self.details.get("stage")


class ErrorHandler:
    """Error handler for epubpack operations."""

    def __init__(self, debug: bool = False):
        """Initialize error handler.

        Args:
            debug: Whether to enable debug mode.
        """
        self.debug = debug
        self.error_log: List[EpubPackError] = []
        self.log_file: Optional[Path] = None

    def set_log_file(self, log_file: Union[str, Path]) -> None:
        """Set log file path.

        Args:
            log_file: Path to log file.
        """
        self.log_file = Path(log_file)

        file_handler = logging.FileHandler(self.log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))

        # Add handler to root logger
        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)

    def handle(self, error: Exception, category: ErrorCategory = ErrorCategory.UNEXPECTED,
               details: Optional[Dict[str, Any]] = None, recoverable: bool = True) -> EpubPackError:
        """Handle an exception and convert it to EpubPackError.

        An EpubPackError passed in keeps its own category, details and
        recoverable flag.

        Args:
            error: The original exception.
            category: The error category.
            details: Additional details about the error.
            recoverable: Whether the error is recoverable.

        Returns:
            EpubPackError: The handled error.
        """
        if isinstance(error, EpubPackError):
            ep_error = error
        else:
            ep_error = EpubPackError(
                message=str(error),
                category=category,
                original_error=error,
                details=details or {},
                recoverable=recoverable
            )

        self.error_log.append(ep_error)

        logger.error(f"{ep_error} - {'Recoverable' if ep_error.recoverable else 'Fatal'}")

        if self.debug:
            logger.debug(f"Details: {ep_error.details}")
            logger.debug(f"Traceback: {traceback.format_exc()}")

        return ep_error

    def display_error(self, error: EpubPackError) -> None:
        """Display error to user with appropriate formatting.

        Args:
            error: The error to display.
        """
        category_display = {
            ErrorCategory.FILE_SYSTEM: "📁 File System Error",
            ErrorCategory.MISSING_ASSET: "📦 Missing Asset",
            ErrorCategory.MANIFEST: "📄 Manifest Error",
            ErrorCategory.PACKAGING: "🗜️ Packaging Error",
            ErrorCategory.VALIDATION: "❌ Validation Error",
            ErrorCategory.EXTERNAL: "🔌 External Tool Error",
            ErrorCategory.USER_INPUT: "⌨️ Input Error",
            ErrorCategory.UNEXPECTED: "❓ Unexpected Error"
        }

        click.secho(category_display.get(error.category, "Error"), fg="yellow", bold=True)
        click.secho(f"{error.message}", fg="red")

        if self.debug and error.details:
            click.echo("Details:")
            for key, value in error.details.items():
                click.echo(f"  - {key}: {value}")

        if error.recoverable:
            click.echo("The operation can continue despite this error.")
        else:
            click.secho("This error prevents the operation from continuing.", fg="red")

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of errors.

        Returns:
            Dict with error summary information.
        """
        errors_by_category: Dict[str, List[str]] = {}
        for error in self.error_log:
            errors_by_category.setdefault(error.category.value, []).append(error.message)

        return {
            "total_errors": len(self.error_log),
            "fatal_errors": sum(1 for e in self.error_log if not e.recoverable),
            "categories": errors_by_category,
            "log_file": str(self.log_file) if self.log_file else None
        }

    def display_summary(self) -> None:
        """Display error summary to user."""
        summary = self.get_summary()

        if not summary["total_errors"]:
            click.echo("✅ No errors occurred during the operation.")
            return

        click.echo("\n📊 Error Summary:")
        click.secho(f"Total errors: {summary['total_errors']}", fg="yellow")
        click.secho(f"Fatal errors: {summary['fatal_errors']}",
                   fg="red" if summary["fatal_errors"] else "green")

        click.echo("\nErrors by category:")
        for category, messages in summary.get("categories", {}).items():
            click.secho(f"{category}: {len(messages)}", fg="yellow")
            if self.debug:
                for i, msg in enumerate(messages):
                    click.echo(f"  {i+1}. {msg}")

        if summary.get("log_file"):
            click.echo(f"\nFull error log saved to: {summary['log_file']}")


# Create global error handler
error_handler = ErrorHandler()


def initialize_error_handler(debug: bool = False, log_dir: Optional[str] = None) -> ErrorHandler:
    """Initialize global error handler.

    Args:
        debug: Whether to enable debug mode.
        log_dir: Directory for log files.

    Returns:
        The initialized error handler.
    """
    error_handler.debug = debug

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"epubpack_{timestamp}.log"

        error_handler.set_log_file(log_file)

    return error_handler
