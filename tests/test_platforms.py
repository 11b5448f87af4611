"""Tests for platform capabilities."""

import shutil
import subprocess

from epubpack import platforms
from epubpack.platforms import LinuxPlatform

from conftest import write


def fake_search(monkeypatch, listing):
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/locate" if name == "locate" else None)
    monkeypatch.setattr(
        platforms.subprocess, "run",
        lambda command, **kwargs: subprocess.CompletedProcess(command, 0, listing, ""),
    )


def test_search_skips_directories(tmp_path, monkeypatch):
    folder = tmp_path / "tools" / "epubcheck"
    folder.mkdir(parents=True)
    binary = write(tmp_path / "bin" / "epubcheck", "#!/bin/sh")
    fake_search(monkeypatch, f"{folder}\n\n{binary}\n")

    assert LinuxPlatform().locate("epubcheck") == binary


def test_search_ignores_directory_only_matches(tmp_path, monkeypatch):
    folder = tmp_path / "tools" / "epubcheck"
    folder.mkdir(parents=True)
    fake_search(monkeypatch, f"{folder}\n")

    assert LinuxPlatform().locate("epubcheck") is None


def test_search_without_search_tool(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    assert LinuxPlatform().locate("epubcheck") is None
