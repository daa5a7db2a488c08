"""
Tests for fetchbin.reporter module.

Tests output reporting including:
- $GITHUB_OUTPUT formatting (single and multi-line values)
- $GITHUB_PATH and in-process PATH updates
- Reporting without a configured runner
- Write failures never raising
"""

from __future__ import annotations

import os
from pathlib import Path

from fetchbin.reporter import GitHubActionsReporter, format_output
from fetchbin.results import InstallResult, ResolvedRelease

RELEASE = ResolvedRelease(
    tag="v1.2.3",
    asset_url="https://github.com/acme/widget/releases/download/v1.2.3/w.tar.gz",
    asset_name="w.tar.gz",
)


def _parse_outputs(text: str) -> dict[str, str]:
    """Parse name=value and name<<DELIM heredoc entries."""
    outputs: dict[str, str] = {}
    lines = iter(text.splitlines())
    for line in lines:
        if "<<" in line:
            name, delimiter = line.split("<<", 1)
            value = []
            for inner in lines:
                if inner == delimiter:
                    break
                value.append(inner)
            outputs[name] = "\n".join(value)
        else:
            name, value = line.split("=", 1)
            outputs[name] = value
    return outputs


class TestFormatOutput:
    """Tests for format_output()."""

    def test_single_line(self):
        assert format_output("version", "v1.2.3") == "version=v1.2.3\n"

    def test_multi_line_uses_delimiter(self):
        text = format_output("notes", "a\nb")

        name, rest = text.split("<<", 1)
        delimiter = rest.split("\n", 1)[0]
        assert name == "notes"
        assert delimiter.startswith("ghadelimiter_")
        assert text == f"notes<<{delimiter}\na\nb\n{delimiter}\n"


class TestGitHubActionsReporter:
    """Tests for GitHubActionsReporter."""

    def test_report_writes_outputs_and_path(self, tmp_test_dir):
        """Test the full report on a runner."""
        output_file = tmp_test_dir / "output"
        path_file = tmp_test_dir / "path"
        environ = {"PATH": "/usr/bin"}
        install_dir = tmp_test_dir / "install"
        result = InstallResult(binary_path=install_dir / "widget", cache_hit=True)

        reporter = GitHubActionsReporter(output_file, path_file, environ=environ)
        reporter.report(RELEASE, result)

        outputs = _parse_outputs(output_file.read_text(encoding="utf-8"))
        assert outputs == {
            "version": "v1.2.3",
            "path": str(install_dir / "widget"),
            "dir": str(install_dir),
            "cache-hit": "true",
        }
        assert path_file.read_text(encoding="utf-8") == f"{install_dir}\n"
        assert environ["PATH"] == f"{install_dir}{os.pathsep}/usr/bin"

    def test_cache_miss_reported_false(self, tmp_test_dir):
        output_file = tmp_test_dir / "output"
        result = InstallResult(binary_path=tmp_test_dir / "widget", cache_hit=False)

        GitHubActionsReporter(output_file, environ={}).report(RELEASE, result)

        assert "cache-hit=false\n" in output_file.read_text(encoding="utf-8")

    def test_path_not_duplicated(self, tmp_test_dir):
        """Test that a directory already on PATH is not prepended again."""
        entry = str(tmp_test_dir)
        environ = {"PATH": f"/usr/bin{os.pathsep}{entry}"}

        GitHubActionsReporter(environ=environ).add_path(tmp_test_dir)

        assert environ["PATH"] == f"/usr/bin{os.pathsep}{entry}"

    def test_empty_path(self, tmp_test_dir):
        environ: dict[str, str] = {}

        GitHubActionsReporter(environ=environ).add_path(tmp_test_dir)

        assert environ["PATH"] == str(tmp_test_dir)

    def test_no_runner_files(self, tmp_test_dir):
        """Test that reporting off a runner only updates PATH."""
        environ = {"PATH": "/bin"}
        result = InstallResult(binary_path=tmp_test_dir / "widget", cache_hit=False)

        GitHubActionsReporter(environ=environ).report(RELEASE, result)

        assert environ["PATH"].startswith(str(tmp_test_dir))
        assert list(tmp_test_dir.iterdir()) == []

    def test_write_failure_does_not_raise(self, tmp_test_dir):
        """Test that an unwritable output file is logged, not raised."""
        missing = tmp_test_dir / "no" / "such" / "dir" / "output"
        result = InstallResult(binary_path=tmp_test_dir / "widget", cache_hit=False)

        reporter = GitHubActionsReporter(missing, missing, environ={})
        reporter.report(RELEASE, result)

        assert not missing.exists()

    def test_from_environment(self, tmp_test_dir):
        environ = {
            "GITHUB_OUTPUT": str(tmp_test_dir / "out"),
            "GITHUB_PATH": str(tmp_test_dir / "path"),
        }

        reporter = GitHubActionsReporter.from_environment(environ)

        assert reporter.output_file == Path(environ["GITHUB_OUTPUT"])
        assert reporter.path_file == Path(environ["GITHUB_PATH"])

    def test_from_environment_without_runner(self):
        reporter = GitHubActionsReporter.from_environment({})

        assert reporter.output_file is None
        assert reporter.path_file is None
