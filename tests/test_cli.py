"""
Tests for the command line interface

Run with: pytest tests/
"""

import io
import json
from unittest.mock import patch

import pytest
from rich.console import Console
from typer.testing import CliRunner

from mcp_image_builder import cli
from mcp_image_builder.cli import EXIT_DOCKER_MISSING, app
from mcp_image_builder.exceptions import CommandError, DockerNotFoundError

runner = CliRunner()


@pytest.fixture
def no_config(tmp_path):
    return ["--config", str(tmp_path / "absent.yaml")]


@pytest.fixture
def docker():
    with patch("mcp_image_builder.cli.DockerClient") as mock_cls:
        mock_cls.return_value.check_available.return_value = "Docker version 27.0.3"
        yield mock_cls.return_value


class TestTrustPrompt:
    """Tests for the repository confirmation"""

    def test_declining_exits_1(self, tmp_path, no_config, docker):
        result = runner.invoke(app, ["build", "--repo", str(tmp_path), *no_config], input="n\n")
        assert result.exit_code == 1
        docker.build_image.assert_not_called()

    def test_yes_flag_skips_prompt(self, tmp_path, no_config, docker):
        result = runner.invoke(app, ["build", "--repo", str(tmp_path), "--yes", *no_config])
        assert result.exit_code == 0
        assert "Build complete" in result.output


class TestBuildCommand:
    """Tests for `build`"""

    def test_builds_and_prints_config(self, servers_repo, no_config, docker):
        result = runner.invoke(app, ["build", "--repo", str(servers_repo), *no_config])

        assert result.exit_code == 0
        assert docker.build_image.call_count == 2
        assert "Build complete" in result.output
        assert '"mcpServers"' in result.stdout
        assert '"mcp/git"' in result.stdout

    def test_failed_build_propagates_exit_code(self, servers_repo, no_config, docker):
        docker.build_image.side_effect = CommandError(["docker", "build"], 3, stderr="failed to solve")

        result = runner.invoke(app, ["build", "--repo", str(servers_repo), *no_config])

        assert result.exit_code == 3
        assert docker.build_image.call_count == 1

    def test_keep_going_exits_1(self, servers_repo, no_config, docker):
        docker.build_image.side_effect = [CommandError(["docker", "build"], 3), None]

        result = runner.invoke(app, ["build", "--repo", str(servers_repo), "--keep-going", *no_config])

        assert result.exit_code == 1
        assert docker.build_image.call_count == 2

    def test_docker_missing(self, servers_repo, no_config, docker):
        docker.check_available.side_effect = DockerNotFoundError()

        result = runner.invoke(app, ["build", "--repo", str(servers_repo), *no_config])

        assert result.exit_code == EXIT_DOCKER_MISSING

    def test_dry_run_runs_nothing(self, servers_repo, no_config, docker):
        result = runner.invoke(app, ["build", "--repo", str(servers_repo), "--dry-run", *no_config])

        assert result.exit_code == 0
        assert "docker build -t mcp/git" in result.stdout
        docker.build_image.assert_not_called()
        docker.check_available.assert_not_called()

    def test_only_and_skip(self, servers_repo, no_config, docker):
        result = runner.invoke(
            app,
            ["build", "--repo", str(servers_repo), "--only", "git", "--only", "filesystem",
             "--skip", "filesystem", *no_config],
        )

        assert result.exit_code == 0
        tags = [c.args[0] for c in docker.build_image.call_args_list]
        assert tags == ["mcp/git"]

    def test_no_command_builds(self, servers_repo, docker, monkeypatch):
        monkeypatch.chdir(servers_repo)
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert docker.build_image.call_count == 2


class TestOtherCommands:
    """Tests for `plan`, `client-config` and `serve`"""

    def test_plan(self, servers_repo, no_config):
        result = runner.invoke(app, ["plan", "--repo", str(servers_repo), *no_config])
        assert result.exit_code == 0
        assert "gdrive" in result.stdout
        assert "skip" in result.stdout

    def test_client_config_prints_json(self, servers_repo, no_config):
        result = runner.invoke(app, ["client-config", "--repo", str(servers_repo), *no_config])

        assert result.exit_code == 0
        config = json.loads(result.stdout)
        assert sorted(config["mcpServers"]) == ["filesystem", "git"]

    def test_client_config_write(self, servers_repo, no_config, tmp_path):
        target = tmp_path / "client.json"
        target.write_text(json.dumps({"mcpServers": {"custom": {"command": "npx"}}}))

        result = runner.invoke(
            app,
            ["client-config", "--repo", str(servers_repo), "--write", "--target", str(target), *no_config],
        )

        assert result.exit_code == 0
        written = json.loads(target.read_text())
        assert sorted(written["mcpServers"]) == ["custom", "filesystem", "git"]

    def test_serve(self, servers_repo, no_config):
        with patch("mcp_image_builder.server.main") as serve_main:
            result = runner.invoke(app, ["serve", "--repo", str(servers_repo), *no_config])

        assert result.exit_code == 0
        assert serve_main.call_args.args[0] == servers_repo.resolve()


class TestErrorHandling:
    """Tests for errors mapped to exit codes"""

    def test_unknown_only_name(self, servers_repo, no_config, docker):
        result = runner.invoke(app, ["build", "--repo", str(servers_repo), "--only", "gti", "--dry-run", *no_config])

        assert result.exit_code == 1
        assert "Server 'gti' not found" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_unreadable_dockerfile(self, servers_repo, no_config):
        (servers_repo / "src" / "gdrive" / "Dockerfile").write_bytes(b"FROM node\n# \xa9 2024\n")

        result = runner.invoke(app, ["plan", "--repo", str(servers_repo), *no_config])

        assert result.exit_code == 0
        assert "unreadable" in result.stdout

    def test_invalid_config(self, servers_repo, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("builder:\n  skip: {a: 1}\n")

        result = runner.invoke(app, ["plan", "--repo", str(servers_repo), "--config", str(path)])

        assert result.exit_code == 1
        assert "builder.skip" in result.output


class TestOutputStreams:
    """Status text and client JSON are kept apart"""

    def test_status_console_uses_stderr(self):
        assert cli._console.stderr is True

    def test_build_stdout_is_only_json(self, servers_repo, no_config, docker):
        status = Console(file=io.StringIO())
        with patch("mcp_image_builder.cli._console", status):
            result = runner.invoke(app, ["build", "--repo", str(servers_repo), *no_config])

        assert result.exit_code == 0
        assert sorted(json.loads(result.stdout)["mcpServers"]) == ["filesystem", "git"]
        assert "2 images built, 3 skipped, 0 failed" in status.file.getvalue()
