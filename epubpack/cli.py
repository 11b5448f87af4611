"""Command Line Interface for epubpack.

This module provides the CLI functionality for epubpack: building an EPUB
interactively or from options, packaging existing HTML, validating an
EPUB, and checking the environment.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple
import click

from .config import Config
from .error import initialize_error_handler, error_handler, ErrorCategory, EpubPackError
from .platforms import current_platform
from .selection import ProjectSelection
from .ui import ClickInteraction, print_header, print_success, print_warning, print_error
from .workflow import BuildPipeline, RunResult, check_environment, validate_epub, validator_command

# Set up logging
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version="0.1.0")
@click.option('--debug', is_flag=True, help="Enable debug logging")
@click.option('--log-dir', help="Directory for log files")
@click.option('--project-root', '-C', type=click.Path(file_okay=False), default=".",
              help="Project folder containing the book folders (default: current directory)")
@click.option('--config-path', type=click.Path(dir_okay=False), help="Alternative epubpack config file")
@click.pass_context
def cli(ctx, debug, log_dir, project_root, config_path):
    """epubpack: Package static-site HTML output as an EPUB.

    epubpack runs the site generator, gathers the generated styles, images,
    text, scripts, fonts and MathJax into an EPUB layout, zips it up and
    optionally validates it with EpubCheck.

    Basic usage:
      - Interactive build: epubpack build
      - One-off build: epubpack build --book book --translation fr
      - Package existing HTML: epubpack package --book book
      - Validate an EPUB: epubpack validate _output/book.epub

    Do not run two builds in the same project at once; they share the
    staging and output folders.
    """
    ctx.ensure_object(dict)

    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    ctx.obj['DEBUG'] = debug
    initialize_error_handler(debug=debug, log_dir=log_dir)

    ctx.obj['CONFIG'] = Config(config_path)
    ctx.obj['PROJECT_ROOT'] = Path(project_root).resolve()


def _selection_from_options(project_root: Path, book: str, translation: Optional[str],
                            mathjax: bool, config_files: Tuple[str, ...],
                            validate: bool) -> ProjectSelection:
    selection = ProjectSelection(
        book_folder=book,
        translation_key=translation or None,
        include_math_support=mathjax,
        extra_config_paths=tuple(config_files),
        run_validation=validate,
    )
    return selection.validate(project_root)


def _report(result: RunResult) -> None:
    if result.success:
        print_success(f"✅ Created {result.epub_path}")
    else:
        print_error(f"❌ Run failed at the {result.failed_stage} step")


def _run_single(ctx, skip_generator: bool, book: str, translation: Optional[str], mathjax: bool,
                config_files: Tuple[str, ...], validate: bool) -> None:
    project_root = ctx.obj['PROJECT_ROOT']
    try:
        selection = _selection_from_options(project_root, book, translation, mathjax,
                                            config_files, validate)
    except EpubPackError as e:
        error_handler.display_error(error_handler.handle(e, category=ErrorCategory.USER_INPUT))
        sys.exit(2)

    pipeline = BuildPipeline(ctx.obj['CONFIG'], ClickInteraction(), current_platform(),
                             project_root, skip_generator=skip_generator)
    result = pipeline.run_once(selection)
    _report(result)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.option('--book', '-b', help="Book folder; prompts interactively when omitted")
@click.option('--translation', '-t', help="Translation subfolder of the book")
@click.option('--mathjax/--no-mathjax', default=False, help="Include MathJax support")
@click.option('--config-file', '-c', multiple=True, help="Extra generator config file (repeatable, in order)")
@click.option('--validate/--no-validate', default=True, help="Run EpubCheck after packaging")
@click.option('--strict', is_flag=True, help="Stop if the site generator fails")
@click.option('--skip-generator', is_flag=True, help="Package the HTML already on disk")
@click.pass_context
def build(ctx, book, translation, mathjax, config_file, validate, strict, skip_generator):
    """Build HTML and package it as an EPUB.

    Without --book, asks for each choice and offers to run again at the end.

    Examples:
      epubpack build
      epubpack build --book book --translation fr --mathjax
      epubpack build --book book -c _configs/_config.myconfig.yml --no-validate
    """
    if strict:
        ctx.obj['CONFIG'].override("halt_on_generator_error", True)

    if book:
        _run_single(ctx, skip_generator, book, translation, mathjax, config_file, validate)
        return

    print_header("epubpack")
    pipeline = BuildPipeline(ctx.obj['CONFIG'], ClickInteraction(), current_platform(),
                             ctx.obj['PROJECT_ROOT'], skip_generator=skip_generator)
    results = pipeline.run_interactive()
    for result in results:
        _report(result)
    error_handler.display_summary()


@cli.command()
@click.option('--book', '-b', required=True, help="Book folder")
@click.option('--translation', '-t', help="Translation subfolder of the book")
@click.option('--mathjax/--no-mathjax', default=False, help="Include MathJax support")
@click.option('--validate/--no-validate', default=False, help="Run EpubCheck after packaging")
@click.pass_context
def package(ctx, book, translation, mathjax, validate):
    """Package already generated HTML without running the site generator.

    Examples:
      epubpack package --book book
      epubpack package --book book --translation fr
    """
    _run_single(ctx, True, book, translation, mathjax, (), validate)


@cli.command()
@click.argument('epub_path', type=click.Path(dir_okay=False))
@click.pass_context
def validate(ctx, epub_path):
    """Validate an EPUB file with EpubCheck.

    EPUB_PATH is the path to the EPUB file to validate. The log is written
    next to it.

    Examples:
      epubpack validate _output/book.epub
    """
    click.echo(f"Validating EPUB: {epub_path}")
    command = validator_command(ctx.obj['CONFIG'], current_platform())
    result = validate_epub(epub_path, command, Path(epub_path).resolve().parent)

    if result.valid is True:
        print_success("✅ EPUB is valid!")
    elif result.valid is False:
        print_error("❌ EPUB validation failed")
        if result.error:
            click.echo(f"\n{result.error}")
    else:
        print_warning("⚠️  Could not validate EPUB")
        click.echo(f"\nReason: {result.error}")
        click.echo("\nTip: Install epubcheck for EPUB validation")
        click.echo("  https://github.com/w3c/epubcheck")

    if result.log_path:
        click.echo(f"\nLog: {result.log_path}")
    if result.valid is False:
        sys.exit(1)


@cli.command()
@click.pass_context
def check(ctx):
    """Check that the generator, EpubCheck and template folder are available.

    Examples:
      epubpack check
    """
    config = ctx.obj['CONFIG']
    env = check_environment(config, config.paths(ctx.obj['PROJECT_ROOT']))

    click.echo("External Tools:")
    for tool, status in env["tools"].items():
        if status["available"]:
            click.secho(f"✅ {tool} is available ({status['path']})", fg="green")
        else:
            click.secho(f"❌ {tool} is not available", fg="yellow")

    click.echo("\nFolders:")
    for name, status in env["folders"].items():
        if status["exists"]:
            click.secho(f"✅ {name}: {status['path']}", fg="green")
        else:
            click.secho(f"❌ {name} missing: {status['path']}", fg="yellow")
