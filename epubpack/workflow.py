"""Build workflow for epubpack.

This module drives a complete run: build the HTML with the site
generator, assemble the staging tree, package the EPUB, and optionally
validate it with EpubCheck.

Runs own the staging folder and the output archive exclusively. Two runs
against the same project at the same time will corrupt each other's
files; this is not guarded against.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .config import Config, ProjectPaths
from .epub.packager import ArchivePackager
from .epub.staging import StagingReport, assemble_staging
from .error import EpubPackError, ErrorCategory, error_handler
from .platforms import Platform, current_platform
from .selection import ProjectSelection, prompt_selection, parse_yes_no
from .ui import Interaction

# Set up logging
logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]

LOG_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"


@dataclass
class GeneratorResult:
    """Captured outcome of a site generator call."""

    command: List[str]
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


@dataclass
class ValidationResult:
    """Outcome of an EpubCheck run; ``valid`` is None when it did not run."""

    valid: Optional[bool]
    log_path: Optional[Path] = None
    output: str = ""
    error: str = ""


@dataclass
class RunResult:
    """Summary of one packaging run."""

    selection: ProjectSelection
    generator: Optional[GeneratorResult] = None
    staging: Optional[StagingReport] = None
    epub_path: Optional[Path] = None
    validation: Optional[ValidationResult] = None
    failed_stage: Optional[str] = None
    error: Optional[EpubPackError] = None

    @property
    def success(self) -> bool:
        return self.epub_path is not None and self.failed_stage is None


def generator_command(config: Config, config_paths: List[str]) -> List[str]:
    """Generator command line with the comma-joined config argument."""
    joined = ",".join(path for path in config_paths if path)
    return list(config.get("generator_command")) + [f"--config={joined}"]


def run_generator(command: List[str], cwd: Union[str, Path],
                  runner: Runner = subprocess.run) -> GeneratorResult:
    """Run the static-site generator and capture its output.

    A missing executable is reported in the result rather than raised.

    Args:
        command: Full command line.
        cwd: Project folder to run in.
        runner: Function with the ``subprocess.run`` signature.

    Returns:
        GeneratorResult: Exit code and captured output.
    """
    logger.info(f"Running site generator: {' '.join(command)}")
    try:
        process = runner(command, cwd=str(cwd), capture_output=True, text=True, check=False)
    except OSError as e:
        logger.error(f"Could not start site generator: {e}")
        return GeneratorResult(command, None, "", str(e))

    logger.debug(f"Site generator exited with {process.returncode}")
    return GeneratorResult(command, process.returncode, process.stdout or "", process.stderr or "")


def validator_command(config: Config, platform: Platform) -> Optional[List[str]]:
    """Find EpubCheck, either as an executable or as a jar run with java.

    Args:
        config: Configuration with ``validator_command`` and ``validator_jar``.
        platform: Capability object used to locate files.

    Returns:
        Command prefix to which the EPUB path is appended, or None.
    """
    executable = config.get("validator_command")
    if executable:
        found = platform.locate(executable)
        if found:
            return [str(found)]

    jar_name = config.get("validator_jar")
    if jar_name and shutil.which("java"):
        jar = platform.locate(jar_name)
        if jar:
            return ["java", "-jar", str(jar)]

    return None


def validate_epub(epub_path: Union[str, Path], command: Optional[List[str]],
                  log_dir: Union[str, Path], runner: Runner = subprocess.run) -> ValidationResult:
    """Validate an EPUB file using EpubCheck.

    The validator's standard error is written verbatim to
    ``epubcheck-log-<timestamp>.txt`` in ``log_dir``.

    Args:
        epub_path: Path to the EPUB file.
        command: Validator command prefix, or None if not available.
        log_dir: Folder for the log file.
        runner: Function with the ``subprocess.run`` signature.

    Returns:
        ValidationResult: Validation outcome.
    """
    epub_path = Path(epub_path)

    if not epub_path.exists():
        return ValidationResult(valid=False, error=f"File not found: {epub_path}")

    if not command:
        return ValidationResult(valid=None, error="EpubCheck not found")

    try:
        process = runner(command + [str(epub_path)], capture_output=True, text=True, check=False)
    except OSError as e:
        return ValidationResult(valid=None, error=str(e))

    timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
    log_path = Path(log_dir) / f"epubcheck-log-{timestamp}.txt"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text(process.stderr or "", encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not write EpubCheck log {log_path}: {e}")
        log_path = None

    return ValidationResult(
        valid=process.returncode == 0,
        log_path=log_path,
        output=process.stdout or "",
        error=process.stderr or "",
    )


def check_environment(config: Config, paths: ProjectPaths,
                      platform: Optional[Platform] = None) -> Dict[str, Any]:
    """Check the environment for tools and project folders.

    Returns:
        Dict with environment information.
    """
    platform = platform or current_platform()
    generator = config.get("generator_command")[0]
    validator = validator_command(config, platform)

    return {
        "tools": {
            generator: {"available": shutil.which(generator) is not None,
                        "path": shutil.which(generator)},
            "epubcheck": {"available": validator is not None,
                          "path": " ".join(validator) if validator else None},
        },
        "folders": {
            "project root": {"exists": paths.project_root.is_dir(), "path": str(paths.project_root)},
            "site output": {"exists": paths.site_output.is_dir(), "path": str(paths.site_output)},
            "template": {"exists": paths.template_dir.is_dir(), "path": str(paths.template_dir)},
        },
    }


class BuildPipeline:
    """Runs the generator, staging, packaging and validation steps."""

    def __init__(self, config: Config, interaction: Interaction,
                 platform: Optional[Platform] = None,
                 project_root: Union[str, Path, None] = None,
                 runner: Runner = subprocess.run,
                 skip_generator: bool = False):
        """Initialize the pipeline.

        Args:
            config: Loaded configuration.
            interaction: Object used for questions and status messages.
            platform: Capability object; detected when omitted.
            project_root: Project folder; defaults to the current directory.
            runner: Function with the ``subprocess.run`` signature.
            skip_generator: Package the HTML already on disk.
        """
        self.config = config
        self.interaction = interaction
        self.platform = platform or current_platform()
        self.paths = config.paths(project_root)
        self.runner = runner
        self.skip_generator = skip_generator

    def run_once(self, selection: ProjectSelection) -> RunResult:
        """Run every step for one selection.

        A failing step stops the run; the failure is reported and recorded
        in the returned result.

        Args:
            selection: Validated project selection.

        Returns:
            RunResult: What happened.
        """
        result = RunResult(selection=selection)
        say = self.interaction.say

        try:
            if not self.skip_generator:
                result.generator = self._generate(selection)

            say("Assembling EPUB files...")
            result.staging = assemble_staging(self.paths, selection)
            for outcome in result.staging.outcomes:
                say(f"  {outcome.name}: {outcome.outcome.value}")

            say(f"Packaging {selection.archive_stem}.epub...")
            packager = ArchivePackager(self.paths.staging_root, self.paths.output_dir,
                                       show_progress=self.config.get("show_progress", True))
            result.epub_path = packager.package(selection)
        except EpubPackError as e:
            return self._fail(result, e)
        except OSError as e:
            error = EpubPackError(
                message=str(e),
                category=ErrorCategory.FILE_SYSTEM,
                original_error=e,
                details={"stage": "assembly"},
                recoverable=False,
            )
            return self._fail(result, error)

        say(f"Done! Your EPUB is at {result.epub_path}")

        if selection.run_validation:
            result.validation = self._validate(result.epub_path)

        if self.config.get("open_output_folder", False):
            self.platform.open_path(self.paths.output_dir)

        return result

    def run_interactive(self) -> List[RunResult]:
        """Prompt for a selection, run it, and offer to go again."""
        results = []
        self.interaction.say("Okay, let's make an epub.")

        while True:
            selection = prompt_selection(self.interaction, self.paths.project_root)
            results.append(self.run_once(selection))

            again = parse_yes_no(
                self.interaction.ask("Run again? Enter y for yes (or hit enter for no).", "n"),
                default=False,
            )
            if not again:
                break

        return results

    def _generate(self, selection: ProjectSelection) -> GeneratorResult:
        say = self.interaction.say
        say(f"Generating HTML for {selection.archive_stem}.epub...")

        config_paths = self.config.generator_config_paths(list(selection.extra_config_paths))
        generated = run_generator(generator_command(self.config, config_paths),
                                  self.paths.project_root, self.runner)

        say(f"output {generated.stdout}")
        if generated.stderr.strip():
            say(f"errors {generated.stderr}")

        if generated.succeeded:
            say("HTML generated")
            return generated

        if self.config.get("halt_on_generator_error", False):
            raise EpubPackError(
                message="The site generator failed",
                category=ErrorCategory.EXTERNAL,
                details={"stage": "generate", "returncode": generated.returncode},
                recoverable=False,
            )

        logger.warning(f"Site generator exited with {generated.returncode}; continuing")
        say("The site generator reported a problem. Continuing with whatever HTML is on disk.")
        return generated

    def _validate(self, epub_path: Path) -> ValidationResult:
        say = self.interaction.say
        command = validator_command(self.config, self.platform)
        if not command:
            say("Couldn't find EpubCheck, so skipping validation.")
            return ValidationResult(valid=None, error="EpubCheck not found")

        say("Running EpubCheck...")
        validation = validate_epub(epub_path, command, self.paths.output_dir, self.runner)

        if validation.log_path:
            say(f"EpubCheck log written to {validation.log_path}")
            self.platform.open_path(validation.log_path)
        if validation.valid is True:
            say("EpubCheck found no errors.")
        elif validation.valid is False:
            say("EpubCheck reported problems. See the log for details.")
        else:
            say(f"Could not run EpubCheck: {validation.error}")
        return validation

    def _fail(self, result: RunResult, error: EpubPackError) -> RunResult:
        handled = error_handler.handle(error, category=error.category)
        result.error = handled
        result.failed_stage = handled.stage or "unknown"

        if handled.category is ErrorCategory.PACKAGING:
            self.interaction.say("Something went wrong. The EPUB was not created.")
        else:
            self.interaction.say(f"Stopped at the {result.failed_stage} step: {handled.message}")
        return result
