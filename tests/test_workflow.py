"""Tests for the build pipeline."""

import shutil
import zipfile
from pathlib import Path

import pytest

from epubpack.selection import ProjectSelection
from epubpack.workflow import (
    BuildPipeline,
    generator_command,
    run_generator,
    validate_epub,
    validator_command,
)

from conftest import FakePlatform, FakeRunner, ScriptedInteraction, completed

EPUBCHECK = Path("/opt/epubcheck/epubcheck")


def make_pipeline(config, project, runner=None, platform=None, answers=(), **kwargs):
    interaction = ScriptedInteraction(list(answers))
    pipeline = BuildPipeline(config, interaction, platform or FakePlatform(), project,
                             runner=runner or FakeRunner(), **kwargs)
    return pipeline, interaction


def test_generator_command_joins_configs(config):
    command = generator_command(config, ["_config.yml", "_configs/_config.epub.yml", "extra.yml", ""])
    assert command == ["bundle", "exec", "jekyll", "build",
                       "--config=_config.yml,_configs/_config.epub.yml,extra.yml"]


def test_run_generator_reports_missing_binary(tmp_path):
    def missing(command, **kwargs):
        raise FileNotFoundError("bundle")

    result = run_generator(["bundle"], tmp_path, runner=missing)
    assert result.returncode is None
    assert not result.succeeded
    assert "bundle" in result.stderr


def test_successful_run(config, project):
    runner = FakeRunner({"bundle": completed(0, "built site", "")})
    selection = ProjectSelection("book", extra_config_paths=("_configs/_config.print.yml",),
                                 run_validation=False)
    pipeline, interaction = make_pipeline(config, project, runner)

    result = pipeline.run_once(selection)

    assert result.success
    assert result.epub_path == project / "_output" / "book.epub"
    assert zipfile.is_zipfile(result.epub_path)
    assert runner.calls[0][-1] == "--config=_config.yml,_configs/_config.epub.yml,_configs/_config.print.yml"
    assert "Generating HTML for book.epub..." in interaction.messages
    assert "output built site" in interaction.messages
    assert not [m for m in interaction.messages if m.startswith("errors")]
    assert result.validation is None


def test_generator_failure_is_advisory(config, project):
    runner = FakeRunner({"bundle": completed(1, "", "Liquid warning")})
    pipeline, interaction = make_pipeline(config, project, runner)

    result = pipeline.run_once(ProjectSelection("book", run_validation=False))

    assert result.success
    assert "errors Liquid warning" in interaction.messages
    assert not result.generator.succeeded


def test_strict_mode_stops_on_generator_failure(config, project):
    config.override("halt_on_generator_error", True)
    runner = FakeRunner({"bundle": completed(1, "", "boom")})
    pipeline, _ = make_pipeline(config, project, runner)

    result = pipeline.run_once(ProjectSelection("book", run_validation=False))

    assert not result.success
    assert result.failed_stage == "generate"
    assert not (project / "_site" / "epub").exists()


def test_missing_asset_stops_before_packaging(config, project):
    shutil.rmtree(project / "_site" / "book" / "images")
    pipeline, interaction = make_pipeline(config, project)

    result = pipeline.run_once(ProjectSelection("book", run_validation=False))

    assert not result.success
    assert result.failed_stage == "images"
    assert result.epub_path is None
    assert not (project / "_output" / "book.epub").exists()
    assert any(m.startswith("Stopped at the images step") for m in interaction.messages)


def test_validation_log_written_and_opened(config, project):
    runner = FakeRunner({"epubcheck": completed(1, "Check finished", "ERROR(RSC-005): bad")})
    platform = FakePlatform({"epubcheck": EPUBCHECK})
    pipeline, interaction = make_pipeline(config, project, runner, platform, skip_generator=True)

    result = pipeline.run_once(ProjectSelection("book", run_validation=True))

    assert result.success
    validation = result.validation
    assert validation.valid is False
    assert validation.log_path.parent == project / "_output"
    assert validation.log_path.name.startswith("epubcheck-log-")
    assert validation.log_path.read_text() == "ERROR(RSC-005): bad"
    assert platform.opened == [validation.log_path]
    assert runner.calls == [[str(EPUBCHECK), str(result.epub_path)]]


def test_missing_validator_is_not_fatal(config, project, monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    pipeline, interaction = make_pipeline(config, project, skip_generator=True)

    result = pipeline.run_once(ProjectSelection("book", run_validation=True))

    assert result.success
    assert result.validation.valid is None
    assert "Couldn't find EpubCheck, so skipping validation." in interaction.messages


def test_validator_jar_fallback(config, monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/java" if name == "java" else None)
    jar = Path("/opt/epubcheck.jar")
    assert validator_command(config, FakePlatform({"epubcheck.jar": jar})) == ["java", "-jar", str(jar)]
    assert validator_command(config, FakePlatform()) is None


def test_validate_epub_without_file(tmp_path):
    result = validate_epub(tmp_path / "missing.epub", ["epubcheck"], tmp_path)
    assert result.valid is False


def test_interactive_loop_runs_twice(config, project):
    build_fr = project / "_site" / "book" / "fr"
    (build_fr / "styles").mkdir(parents=True)
    (build_fr / "styles" / "epub.css").write_text("/* fr */")
    (build_fr / "package.opf").write_text("<package>fr</package>")

    answers = [
        "book", "", "", "", "x", "y",
        "book", "fr", "y", "", "x", "",
    ]
    pipeline, interaction = make_pipeline(config, project, answers=answers, skip_generator=True)

    results = pipeline.run_interactive()

    assert [r.epub_path.name for r in results] == ["book.epub", "book-fr.epub"]
    assert all(r.success for r in results)
    assert interaction.messages[0] == "Okay, let's make an epub."
    assert (project / "_output" / "book.epub").exists()
    assert (project / "_output" / "book-fr.epub").exists()


def test_unwritable_validation_log_is_not_fatal(tmp_path):
    epub = tmp_path / "book.epub"
    epub.write_bytes(b"PK")
    log_dir = tmp_path / "not-a-folder"
    log_dir.write_text("file in the way")
    runner = FakeRunner({"epubcheck": completed(0, "No errors", "")})

    result = validate_epub(epub, ["epubcheck"], log_dir, runner)

    assert result.valid is True
    assert result.log_path is None
