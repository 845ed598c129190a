"""Tests for the api-tracker commands."""

import json

import pytest
from typer.testing import CliRunner

from api_tracker import pipeline
from api_tracker.cli import app

runner = CliRunner()


@pytest.fixture
def project(workspace, fake_analyzer, monkeypatch):
    """Two releases, the output root in the environment and the fake analyzer wired in."""
    workspace.install("1.0", "core-1.0.jar")
    workspace.install("1.1", "core-1.1.jar", "extra-1.1.jar")
    workspace.write_profile(["1.1", "1.0"], Maintainer="Jane")
    monkeypatch.setenv("API_TRACKER_OUTPUT_ROOT", str(workspace.output))

    real_open_run = pipeline.open_run

    def open_run(profile, config):
        return real_open_run(profile, config, runner=fake_analyzer)

    monkeypatch.setattr(pipeline, "open_run", open_run)
    return workspace


def invoke(*args):
    return runner.invoke(app, [str(a) for a in args])


class TestBuild:
    """The build command and its exit codes."""

    def test_build_reports_counts(self, project):
        result = invoke("build", project.profile_path)
        assert result.exit_code == 0, result.output
        assert "3 dumps" in result.stdout
        assert (project.output / "db" / "libfoo" / "Tracker.json").is_file()

    def test_missing_profile(self, project):
        result = invoke("build", project.root / "nope.json")
        assert result.exit_code == 4

    def test_malformed_profile(self, project):
        project.profile_path.write_text("{ nope", encoding="utf-8")
        result = invoke("build", project.profile_path)
        assert result.exit_code == 5

    def test_malformed_skip_pattern(self, project):
        project.write_profile(["1.1", "1.0"], SkipVersions=["1.(0"])
        result = invoke("build", project.profile_path)
        assert result.exit_code == 5

    def test_old_analyzer(self, project, fake_analyzer):
        fake_analyzer.version = "1.0"
        result = invoke("build", project.profile_path)
        assert result.exit_code == 9

    def test_unknown_target(self, project, fake_analyzer):
        result = invoke("build", project.profile_path, "-t", "everything")
        # a usage error; click versions differ on its exit status
        assert result.exit_code != 0
        assert "everything" in result.output
        assert fake_analyzer.calls == []

    def test_target_is_case_insensitive(self, project, fake_analyzer):
        result = invoke("build", project.profile_path, "-t", "APIDump")
        assert result.exit_code == 0, result.output
        assert fake_analyzer.calls_with("-old") == []


class TestTimeline:
    """Reading the stored timeline."""

    def test_before_any_build(self, project):
        result = invoke("timeline", project.profile_path)
        assert result.exit_code == 0
        assert "No data found" in result.stdout

    def test_json(self, project):
        invoke("build", project.profile_path)
        result = invoke("timeline", project.profile_path, "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["Maintainer"] == "Jane"
        newest, oldest = data["Versions"]
        assert newest["Version"] == "1.1"
        assert newest["BC"] == "100"
        assert newest["Notes"] == ["added 1 archive"]
        assert oldest == {"Version": "1.0", "Previous": None}

    def test_table(self, project):
        invoke("build", project.profile_path)
        result = invoke("timeline", project.profile_path)
        assert result.exit_code == 0, result.output
        assert "1.1" in result.stdout
        assert "Maintained by Jane" in result.stdout


class TestReport:
    """Archives of one version pair."""

    def test_json(self, project):
        invoke("build", project.profile_path)
        result = invoke("report", project.profile_path, "1.0", "1.1", "--json")

        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [(r["Old"], r["New"], r["Status"]) for r in rows] == [
            ("core-1.0.jar", "core-1.1.jar", "unchanged"),
            (None, "extra-1.1.jar", "added"),
        ]

    def test_unknown_pair(self, project):
        result = invoke("report", project.profile_path, "0.9", "1.0")
        assert result.exit_code == 1


class TestClear:
    def test_clear_removes_everything(self, project, fake_analyzer):
        invoke("build", project.profile_path)
        result = invoke("clear", project.profile_path)

        assert result.exit_code == 0, result.output
        assert "Cleared libfoo" in result.stdout
        assert not (project.output / "db" / "libfoo" / "Tracker.json").exists()

        fake_analyzer.reset()
        invoke("build", project.profile_path)
        assert len(fake_analyzer.calls_with("-dump")) == 3

    def test_clear_forgets_symbol_counts(self, project, fake_analyzer):
        project.write_profile(["1.1", "1.0"], SkipPackages="impl", HideUnchecked="On")
        invoke("build", project.profile_path)

        result = invoke("clear", project.profile_path)
        assert "(1 cached symbol counts)" in result.stdout


class TestAddVersion:
    """Declaring a release in the profile."""

    def test_adds_newest_version(self, project):
        result = invoke("add-version", project.profile_path, "1.2", "--installed", "installed/1.2")

        assert result.exit_code == 0, result.output
        document = json.loads(project.profile_path.read_text(encoding="utf-8"))
        assert document["Versions"][0]["Number"] == "1.2"
        assert document["Versions"][0]["Installed"] == "installed/1.2"
        assert document["Maintainer"] == "Jane"

    def test_duplicate_version(self, project):
        result = invoke("add-version", project.profile_path, "1.1")
        assert result.exit_code == 5


def test_version_option():
    result = invoke("--version")
    assert result.exit_code == 0
    assert "api-tracker" in result.stdout
