"""Shared fixtures: a small project with a generated site tree."""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from epubpack.config import Config
from epubpack.platforms import Platform
from epubpack.ui import Interaction

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="package.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""


def write(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def build_site_tree(tree: Path, label: str = "original", scripts: bool = True,
                    fonts: bool = True, mathjax: bool = True) -> Path:
    """Write a generated book in the shape the site generator produces."""
    write(tree / "styles" / "epub.css", f"/* {label} */")
    write(tree / "styles" / "notes.txt", "not a stylesheet")
    write(tree / "styles" / "partials" / "extra.css", "/* nested */")
    write(tree / "images" / "epub" / "cover.jpg", f"{label} cover")
    write(tree / "images" / "epub" / "figures" / "fig-1.png", "figure")
    write(tree / "images" / "print-pdf" / "cover.jpg", "print resolution")
    write(tree / "text" / "0-0-cover.html", f"{label} cover page")
    write(tree / "text" / "1-0-chapter.html", f"{label} chapter")
    write(tree / "text" / "index.html", "not in the manifest")
    write(tree / "file-list", "0-0-cover.html\n\n1-0-chapter.html\n")
    write(tree / "package.opf", f"<package>{label}</package>")
    if scripts:
        write(tree / "js" / "bundle.js", "console.log(1)")
    if fonts:
        write(tree / "fonts" / "Body.woff2", "font")
    if mathjax:
        write(tree / "mathjax" / "MathJax.js", "mathjax")
    return tree


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project root with a source book folder, template and generated HTML."""
    root = tmp_path / "project"
    (root / "book" / "fr").mkdir(parents=True)
    root = root.resolve()
    write(root / "_config.yml", "title: Book")
    write(root / "assets" / "epub" / "mimetype", "application/epub+zip")
    write(root / "assets" / "epub" / "META-INF" / "container.xml", CONTAINER_XML)
    build_site_tree(root / "_site" / "book")
    return root


@pytest.fixture
def site_tree(project: Path) -> Path:
    return project / "_site" / "book"


@pytest.fixture
def config(tmp_path: Path) -> Config:
    cfg = Config(tmp_path / "settings" / "config.json")
    cfg.override("open_output_folder", False)
    cfg.override("show_progress", False)
    return cfg


@pytest.fixture
def paths(config: Config, project: Path):
    return config.paths(project)


class ScriptedInteraction(Interaction):
    """Answers questions from a list and records everything said."""

    def __init__(self, answers: List[str]):
        self.answers = list(answers)
        self.prompts: List[str] = []
        self.messages: List[str] = []

    def ask(self, prompt: str, default: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        answer = self.answers.pop(0)
        if not answer and default is not None:
            return default
        return answer

    def say(self, message: str) -> None:
        self.messages.append(message)


class FakePlatform(Platform):
    """Platform that finds only the tools it is given and opens nothing."""

    name = "fake"

    def __init__(self, tools: Optional[Dict[str, Path]] = None):
        self.tools = tools or {}
        self.opened: List[Path] = []

    def open_path(self, path) -> bool:
        self.opened.append(Path(path))
        return True

    def locate(self, name: str) -> Optional[Path]:
        return self.tools.get(name)


class FakeRunner:
    """Stand-in for subprocess.run that returns canned results per program."""

    def __init__(self, results: Optional[Dict[str, subprocess.CompletedProcess]] = None):
        self.results = results or {}
        self.calls: List[List[str]] = []

    def __call__(self, command, **kwargs):
        self.calls.append(list(command))
        for key, result in self.results.items():
            if key in command[0] or key in " ".join(command):
                return subprocess.CompletedProcess(command, result.returncode,
                                                   result.stdout, result.stderr)
        return subprocess.CompletedProcess(command, 0, "", "")


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess([], returncode, stdout, stderr)
