"""Tests for staging tree assembly."""

import shutil
from pathlib import Path

import pytest

from epubpack.epub.categories import Outcome
from epubpack.epub.staging import StagingAssembler, assemble_staging
from epubpack.error import EpubPackError, ErrorCategory
from epubpack.selection import ProjectSelection

from conftest import build_site_tree, write


def relative_files(root: Path):
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


def test_original_language_layout(paths):
    selection = ProjectSelection("book", include_math_support=False)
    report = assemble_staging(paths, selection)

    assert relative_files(paths.staging_root) == [
        "META-INF/container.xml",
        "fonts/Body.woff2",
        "images/epub/cover.jpg",
        "images/epub/figures/fig-1.png",
        "js/bundle.js",
        "mimetype",
        "package.opf",
        "styles/epub.css",
        "text/0-0-cover.html",
        "text/1-0-chapter.html",
    ]
    assert report.get("mathjax").outcome is Outcome.DROPPED
    assert report.get("styles").outcome is Outcome.FALLBACK_TO_ORIGINAL


def test_mathjax_kept_at_root_when_requested(paths):
    assemble_staging(paths, ProjectSelection("book", include_math_support=True))
    assert (paths.staging_root / "mathjax" / "MathJax.js").is_file()


def test_translated_styles_replace_original(paths, site_tree):
    write(site_tree / "fr" / "styles" / "epub.css", "/* fr */")
    write(site_tree / "fr" / "package.opf", "<package>fr</package>")
    selection = ProjectSelection("book", translation_key="fr")

    report = assemble_staging(paths, selection)

    staging = paths.staging_root
    assert report.get("styles").outcome is Outcome.USE_TRANSLATED
    assert (staging / "fr" / "styles" / "epub.css").read_text() == "/* fr */"
    assert not (staging / "styles").exists()
    assert (staging / "package.opf").read_text() == "<package>fr</package>"


def test_translation_falls_back_inside_translation_folder(paths, site_tree):
    write(site_tree / "fr" / "package.opf")
    (site_tree / "fr" / "images" / "epub").mkdir(parents=True)

    report = assemble_staging(paths, ProjectSelection("book", translation_key="fr",
                                                      include_math_support=True))

    staging = paths.staging_root
    assert report.get("images").outcome is Outcome.FALLBACK_TO_ORIGINAL
    assert (staging / "fr" / "images" / "epub" / "cover.jpg").read_text() == "original cover"
    assert (staging / "fr" / "text" / "1-0-chapter.html").is_file()
    for optional in ("js", "fonts", "mathjax"):
        assert (staging / "fr" / optional).is_dir()
        assert not (staging / optional).exists()
    assert sorted(p.name for p in staging.iterdir()) == ["META-INF", "fr", "mimetype", "package.opf"]


def test_full_translation_tree(paths, site_tree):
    build_site_tree(site_tree / "fr", label="fr")
    report = assemble_staging(paths, ProjectSelection("book", translation_key="fr"))

    for name in ("styles", "images", "text", "scripts", "fonts"):
        assert report.get(name).outcome is Outcome.USE_TRANSLATED
    assert (paths.staging_root / "fr" / "text" / "0-0-cover.html").read_text() == "fr cover page"


def test_empty_scripts_and_fontless_fonts_are_dropped(paths, site_tree):
    shutil.rmtree(site_tree / "js")
    (site_tree / "js").mkdir()
    (site_tree / "fonts" / "Body.woff2").unlink()
    write(site_tree / "fonts" / "LICENSE.txt")

    report = assemble_staging(paths, ProjectSelection("book"))

    assert report.get("scripts").outcome is Outcome.DROPPED
    assert report.get("fonts").outcome is Outcome.DROPPED
    assert not (paths.staging_root / "js").exists()
    assert not (paths.staging_root / "fonts").exists()


def test_absent_optional_categories(paths, site_tree):
    shutil.rmtree(site_tree / "js")
    report = assemble_staging(paths, ProjectSelection("book"))
    assert report.get("scripts").outcome is Outcome.ABSENT


def test_missing_styles_stops_assembly(paths, site_tree):
    shutil.rmtree(site_tree / "styles")

    with pytest.raises(EpubPackError) as excinfo:
        assemble_staging(paths, ProjectSelection("book"))

    assert excinfo.value.category is ErrorCategory.MISSING_ASSET
    assert excinfo.value.stage == "styles"
    assert not (paths.staging_root / "text").exists()


def test_missing_manifest_stops_assembly(paths, site_tree):
    (site_tree / "file-list").unlink()
    with pytest.raises(EpubPackError) as excinfo:
        assemble_staging(paths, ProjectSelection("book"))
    assert excinfo.value.category is ErrorCategory.MANIFEST
    assert not (paths.staging_root / "package.opf").exists()


def test_missing_translated_package_document(paths):
    with pytest.raises(EpubPackError) as excinfo:
        assemble_staging(paths, ProjectSelection("book", translation_key="fr"))
    assert excinfo.value.stage == "package"


def test_missing_template(paths):
    shutil.rmtree(paths.template_dir / "META-INF")
    with pytest.raises(EpubPackError) as excinfo:
        assemble_staging(paths, ProjectSelection("book"))
    assert excinfo.value.stage == "template"


def test_staging_is_rebuilt_each_run(paths):
    write(paths.staging_root / "stale" / "old.html")
    write(paths.staging_root / "styles" / "old.css")

    StagingAssembler(paths, ProjectSelection("book")).assemble()

    assert not (paths.staging_root / "stale").exists()
    assert not (paths.staging_root / "styles" / "old.css").exists()
    assert not list(paths.staging_root.rglob("*.partial"))


def test_book_folder_matching_staging_folder_is_refused(paths):
    generated = build_site_tree(paths.site_output / "epub")

    with pytest.raises(EpubPackError) as excinfo:
        assemble_staging(paths, ProjectSelection("epub"))

    assert excinfo.value.category is ErrorCategory.USER_INPUT
    assert (generated / "file-list").is_file()
    assert (generated / "package.opf").is_file()


@pytest.mark.parametrize("missing, stage", [
    ("styles", "styles"),
    ("images/epub", "images"),
    ("file-list", "text"),
    ("package.opf", "package"),
])
def test_translation_run_requires_original_inputs(paths, site_tree, missing, stage):
    build_site_tree(site_tree / "fr", label="fr")
    write(paths.staging_root / "keep.txt", "previous run")
    target = site_tree / missing
    if target.is_dir():
        shutil.rmtree(target)
    else:
        target.unlink()

    with pytest.raises(EpubPackError) as excinfo:
        assemble_staging(paths, ProjectSelection("book", translation_key="fr"))

    assert excinfo.value.stage == stage
    assert (paths.staging_root / "keep.txt").is_file()
