"""
Integration tests for the command line interface.
"""

import io
import shutil
from unittest.mock import patch

import pytest
import yaml
from rich.console import Console

from libplaygist import base62
from libplaygist.cli import PlaygistCLI, main

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def cli(test_context, output):
    cli = PlaygistCLI(context=test_context, out=Console(file=output, width=200))
    yield cli
    cli.close()


class TestCommands:
    """Tests for individual CLI commands."""

    def test_initialises_repository(self, cli, test_context):
        assert cli.git.is_repository()
        assert cli.git.repo_root == test_context.repo_root
        assert len(cli.container) == 0

    def test_create_and_list(self, cli, output):
        assert cli.run_command("create", ["Road", "Trip"]) == 0
        assert cli.run_command("list", []) == 0
        assert "Road Trip" in output.getvalue()

    def test_list_empty(self, cli, output):
        assert cli.run_command("list", []) == 0
        assert "没有播放列表" in output.getvalue()

    def test_create_empty_name(self, cli):
        assert cli.run_command("create", [" "]) == 1

    def test_add_by_name(self, cli):
        cli.run_command("create", ["Mix"])
        assert cli.run_command("add", ["Mix", "a", "b"]) == 0
        playlist = cli.container.find_by_name("Mix")[0]
        assert playlist.tracks == ("a", "b")
        assert len(cli.container.history(playlist)) == 2

    def test_add_at_position(self, cli):
        cli.run_command("create", ["Mix"])
        cli.run_command("add", ["Mix", "a", "b", "c"])
        assert cli.run_command("add", ["Mix", "t", "--at", "2"]) == 0
        assert cli.run_command("add", ["Mix", "u", "v", "--at", "0"]) == 0
        playlist = cli.container.find_by_name("Mix")[0]
        assert playlist.tracks == ("u", "v", "a", "b", "t", "c")

    def test_add_bad_position(self, cli):
        cli.run_command("create", ["Mix"])
        assert cli.run_command("add", ["Mix", "t", "--at"]) == 2
        assert cli.run_command("add", ["Mix", "t", "--at", "9"]) == 1

    def test_add_normalizes_track_uris(self, cli):
        hex_id = "0123456789abcdef0123456789abcdef"
        cli.run_command("create", ["Mix"])
        cli.run_command("add", ["Mix", base62.TRACK_URI_PREFIX + base62.from_hex(hex_id)])
        assert cli.container.find_by_name("Mix")[0].tracks == (hex_id,)

    def test_resolve_by_id_prefix(self, cli):
        cli.run_command("create", ["Mix"])
        playlist = cli.container.find_by_name("Mix")[0]
        assert cli.run_command("rename", [playlist.id[:8], "New", "Name"]) == 0
        assert playlist.name == "New Name"

    def test_remove_reports_missing(self, cli, output):
        cli.run_command("create", ["Mix"])
        cli.run_command("add", ["Mix", "a", "b"])
        assert cli.run_command("remove", ["Mix", "a", "zzz"]) == 0
        assert cli.container.find_by_name("Mix")[0].tracks == ("b",)
        assert "zzz" in output.getvalue()

    def test_collab_and_sort(self, cli):
        cli.run_command("create", ["Mix"])
        cli.run_command("add", ["Mix", "c", "a", "b"])
        assert cli.run_command("collab", ["Mix", "on"]) == 0
        assert cli.run_command("sort", ["Mix"]) == 0
        playlist = cli.container.find_by_name("Mix")[0]
        assert playlist.collaborative is True
        assert playlist.tracks == ("a", "b", "c")
        assert cli.run_command("collab", ["Mix", "maybe"]) == 2

    def test_show_and_history(self, cli, output):
        cli.run_command("create", ["Mix"])
        cli.run_command("add", ["Mix", "a"])
        playlist = cli.container.find_by_name("Mix")[0]

        assert cli.run_command("show", ["Mix"]) == 0
        assert cli.run_command("history", ["Mix"]) == 0
        text = output.getvalue()
        assert playlist.id in text
        assert "added playlist: Mix" in text

    def test_unknown_playlist(self, cli):
        assert cli.run_command("show", ["nothing-here"]) == 1

    def test_unknown_command(self, cli):
        assert cli.run_command("frobnicate", []) == 2

    def test_usage_errors(self, cli):
        assert cli.run_command("show", []) == 2
        assert cli.run_command("add", ["only-one"]) == 2

    def test_push_without_remote(self, cli):
        assert cli.run_command("push", []) == 1

    def test_push_with_remote(self, cli, temp_dir, output):
        remote = temp_dir / "remote.git"
        remote.mkdir()
        cli.git._run_git(["init", "-q", "--bare", str(remote)])
        cli.git.add_remote("origin", str(remote))
        cli.container.remote = "origin"

        cli.run_command("create", ["Mix"])
        assert cli.run_command("push", []) == 0
        assert "远程仓库已是最新" in output.getvalue()

    def test_dirty_result(self, cli, output):
        cli.run_command("create", ["Mix"])
        with patch("libplaygist.container.atomic_write", side_effect=OSError("disk full")):
            assert cli.run_command("add", ["Mix", "a"]) == 1
        text = output.getvalue()
        assert "dirty" in text
        assert "ERROR" in text

    def test_help(self, cli, output):
        assert cli.run_command("help", []) == 0
        assert cli.run_command("help", ["add"]) == 0
        assert "--at" in output.getvalue()

    def test_log_file_written(self, cli, test_context):
        cli.run_command("create", ["Mix"])
        assert cli.log_file.parent == test_context.logs_dir
        assert cli.log_file.read_text(encoding="utf-8").strip()


class TestMain:
    """Tests for the console entry point."""

    def test_main_runs_command(self, temp_dir, isolated_git_env, capsys):
        config = temp_dir / "config.yaml"
        config.write_text(yaml.safe_dump({
            "repository": {"path": "repo", "owner": "me"},
            "logging": {"logs_dir": "logs"},
        }), encoding="utf-8")

        assert main(["--config", str(config), "create", "Main", "Mix"]) == 0
        assert main(["--config", str(config), "--log-only", "list"]) == 0
        assert "Main Mix" in capsys.readouterr().out

    def test_main_bad_config(self, temp_dir, capsys):
        config = temp_dir / "config.yaml"
        config.write_text(yaml.safe_dump({"repository": {"owner": "a/b"}}), encoding="utf-8")

        assert main(["--config", str(config), "list"]) == 1
