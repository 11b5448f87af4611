"""User interface utilities for epubpack.

This module provides the interaction objects the build pipeline talks to
and helpers for colored terminal output.
"""

from typing import Optional
import click


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"

    BRIGHT_WHITE = "\033[97m"
    BRIGHT_CYAN = "\033[96m"


class ColorfulFormatter:
    """Formats text with colors for terminal output."""

    @staticmethod
    def success(text: str) -> str:
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def warning(text: str) -> str:
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def error(text: str) -> str:
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def highlight(text: str) -> str:
        return f"{Colors.BOLD}{Colors.BRIGHT_WHITE}{text}{Colors.RESET}"


class Interaction:
    """Minimal question/answer interface used by the build pipeline."""

    def ask(self, prompt: str, default: Optional[str] = None) -> str:
        """Ask a question and return the answer.

        Args:
            prompt: Question text.
            default: Answer used when the user just hits enter.

        Returns:
            The answer as a string.
        """
        raise NotImplementedError("Subclass must implement ask method.")

    def say(self, message: str) -> None:
        """Show a status message."""
        raise NotImplementedError("Subclass must implement say method.")


class ClickInteraction(Interaction):
    """Interaction on the terminal through click."""

    def ask(self, prompt: str, default: Optional[str] = None) -> str:
        return click.prompt(
            ColorfulFormatter.highlight(prompt),
            default=default if default is not None else "",
            show_default=bool(default),
            type=str,
        )

    def say(self, message: str) -> None:
        click.echo(message)


def print_success(message: str) -> None:
    """Print success message."""
    click.echo(ColorfulFormatter.success(message))


def print_warning(message: str) -> None:
    """Print warning message."""
    click.echo(ColorfulFormatter.warning(message))


def print_error(message: str) -> None:
    """Print error message."""
    click.echo(ColorfulFormatter.error(message))


def print_header(text: str, width: int = 60,
                 char: str = "=", color: str = Colors.BRIGHT_CYAN) -> None:
    """Print header with separator lines.

    Args:
        text: Header text.
        width: Width of separator.
        char: Character for separator.
        color: Color for header.
    """
    separator = char * width
    click.echo(f"{color}{separator}{Colors.RESET}")
    click.echo(f"{color}{text.center(width)}{Colors.RESET}")
    click.echo(f"{color}{separator}{Colors.RESET}")
