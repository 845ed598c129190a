"""Shared test fixtures for API Tracker tests."""

import json
import os
import re
import subprocess
from pathlib import Path

import pytest

from api_tracker.config import TrackerConfig
from api_tracker.profile import load_profile

_DUMPED_ARCHIVE = re.compile(r"'Archive' => '([^']*)'")

DEFAULT_REPORT = {"affected": 0, "added": 0, "removed": 0, "checked_methods": 10, "checked_types": 2}


def header_line(kind: str, fields: dict) -> str:
    """First line of an analyzer report in its key:value; format."""
    body = "".join(f"{key}:{value};" for key, value in fields.items())
    return f"<!-- kind:{kind};{body} -->"


class FakeAnalyzer:
    """Scripted stand-in for the analyzer and pkgdiff executables.

    Callable like ``subprocess.run``. Dumps, reports and counts are written
    the way the real tools write them; every command line is recorded.

    Attributes:
        symbols: archive file name -> total method count (default 100)
        filtered: archive file name -> count with the profile's filters
        reports: (old file name, new file name) -> header fields
        broken: archive file names whose dump is never written
    """

    def __init__(self, version: str = "2.4"):
        self.version = version
        self.calls = []
        self.symbols = {}
        self.filtered = {}
        self.reports = {}
        self.broken = set()
        self.pkgdiff_changed = "12.5"

    @property
    def analyzer_calls(self):
        """Calls that did real work (the version check excluded)."""
        return [c for c in self.calls if c[1:] != ["-dumpversion"]]

    def calls_with(self, flag):
        return [c for c in self.calls if flag in c]

    def reset(self):
        self.calls.clear()

    def __call__(self, cmd, capture_output=False, text=False, timeout=None):
        cmd = list(cmd)
        self.calls.append(cmd)
        args = cmd[1:]

        if cmd[0] == "pkgdiff":
            return self._pkgdiff(cmd, args)
        if args == ["-dumpversion"]:
            return self._done(cmd, stdout=f"{self.version}\n")
        if "-dump" in args:
            return self._dump(cmd, args)
        if args and args[0] == "-count-methods":
            return self._count(cmd, args)
        if "-old" in args:
            return self._compare(cmd, args)
        return self._done(cmd, returncode=1, stderr="unknown command")

    def _done(self, cmd, stdout="", stderr="", returncode=0):
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)

    def _dump(self, cmd, args):
        name = Path(args[args.index("-dump") + 1]).name
        output = Path(args[args.index("-dump-path") + 1])
        if name in self.broken:
            return self._done(cmd, returncode=1, stderr="ERROR: can't read archive")
        output.write_text(
            f"$VAR1 = {{'Language' => 'Java', 'Archive' => '{name}', "
            f"'LibraryVersion' => '{args[args.index('-vnum') + 1]}'}};\n",
            encoding="utf-8",
        )
        return self._done(cmd)

    def _archive_of(self, dump_path):
        match = _DUMPED_ARCHIVE.search(Path(dump_path).read_text(encoding="utf-8"))
        return match.group(1)

    def _count(self, cmd, args):
        name = self._archive_of(args[1])
        total = self.symbols.get(name, 100)
        count = self.filtered.get(name, total) if len(args) > 2 else total
        return self._done(cmd, stdout=f"Reading dump...\n{count}\n")

    def _compare(self, cmd, args):
        old = self._archive_of(args[args.index("-old") + 1])
        new = self._archive_of(args[args.index("-new") + 1])
        fields = dict(DEFAULT_REPORT)
        fields.update(self.reports.get((old, new), {}))
        for flag, kind in (("-bin-report-path", "binary"), ("-src-report-path", "source")):
            report = Path(args[args.index(flag) + 1])
            report.parent.mkdir(parents=True, exist_ok=True)
            report.write_text(header_line(kind, fields) + "\n<html></html>\n", encoding="utf-8")
        return self._done(cmd)

    def _pkgdiff(self, cmd, args):
        report = Path(args[args.index("-report-path") + 1])
        report.write_text(f"<!-- changed:{self.pkgdiff_changed}; -->\n", encoding="utf-8")
        return self._done(cmd, stdout=f"Result: CHANGED ({self.pkgdiff_changed}%)\n")


class Workspace:
    """Install trees, a profile file and an output root under one tmp dir."""

    def __init__(self, root: Path):
        self.root = root
        self.output = root / "out"
        self.profile_path = root / "profile.json"

    def install(self, version: str, *archives: str) -> Path:
        """Create an install tree with empty archive files."""
        directory = self.root / "installed" / version
        directory.mkdir(parents=True, exist_ok=True)
        for archive in archives:
            path = directory / archive
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"PK\x03\x04")
        return directory

    def write_profile(self, versions, **fields):
        """Write a profile; ``versions`` is newest first, dicts or numbers."""
        document = {"Name": "libfoo"}
        document.update(fields)
        entries = []
        for version in versions:
            if isinstance(version, str):
                version = {"Number": version}
            version = dict(version)
            version.setdefault("Installed", str(self.root / "installed" / version["Number"]))
            entries.append(version)
        document["Versions"] = entries
        self.profile_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return self.profile_path

    def profile(self):
        return load_profile(self.profile_path)

    def config(self, **overrides) -> TrackerConfig:
        overrides.setdefault("output_root", str(self.output))
        return TrackerConfig(**overrides)


@pytest.fixture
def fake_analyzer():
    """A fresh scripted analyzer."""
    return FakeAnalyzer()


@pytest.fixture
def workspace(tmp_path):
    """An empty workspace under tmp_path."""
    return Workspace(tmp_path)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the user's config files and API_TRACKER_* variables out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    for name in list(os.environ):
        if name.startswith("API_TRACKER_"):
            monkeypatch.delenv(name, raising=False)
