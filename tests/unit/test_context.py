"""
Unit tests for configuration loading.
"""

import pytest
import yaml

from libplaygist.context import Context, DEFAULT_CONFIG, create_context, deep_merge
from libplaygist.exceptions import ConfigurationError


def write_config(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestCreateContext:
    """Tests for create_context."""

    def test_defaults(self, temp_dir):
        """Test that a missing config file falls back to the defaults."""
        ctx = create_context(str(temp_dir / "config.yaml"))

        assert ctx.project_root == temp_dir
        assert ctx.repo_root == temp_dir / "playgists"
        assert ctx.logs_dir == temp_dir / "logs"
        assert ctx.owner == "default"
        assert ctx.remote is None
        assert ctx.refspec is None
        assert ctx.log_level == "info"
        assert ctx.commit_config["max_retries"] == 3
        assert ctx.repo_root.is_dir()

    def test_values_merged_with_defaults(self, temp_dir):
        config = write_config(temp_dir / "config.yaml", {
            "repository": {"owner": "liesen"},
            "commit": {"author_name": "Johan"},
            "remote": {"name": "origin"},
        })
        ctx = create_context(str(config))

        assert ctx.owner == "liesen"
        assert ctx.commit_config["author_name"] == "Johan"
        assert ctx.commit_config["author_email"] == DEFAULT_CONFIG["commit"]["author_email"]
        assert ctx.remote == "origin"

    def test_relative_paths_resolved_against_config_dir(self, temp_dir, monkeypatch):
        sub = temp_dir / "conf"
        sub.mkdir()
        config = write_config(sub / "settings.yaml", {
            "repository": {"path": "data/repo"},
            "logging": {"logs_dir": "../logs"},
        })
        monkeypatch.chdir(temp_dir)
        ctx = create_context(str(config))

        assert ctx.repo_root == sub / "data" / "repo"
        assert ctx.logs_dir == temp_dir / "logs"

    def test_environment_variable(self, temp_dir, monkeypatch):
        config = write_config(temp_dir / "env.yaml", {"repository": {"owner": "fromenv"}})
        monkeypatch.setenv("PLAYGISTCONFIG", str(config))
        assert create_context().owner == "fromenv"

    @pytest.mark.parametrize("owner", ["", "a/b", ".git"])
    def test_invalid_owner(self, temp_dir, owner):
        config = write_config(temp_dir / "config.yaml", {"repository": {"owner": owner}})
        with pytest.raises(ConfigurationError):
            create_context(str(config))

    def test_invalid_yaml(self, temp_dir):
        config = temp_dir / "config.yaml"
        config.write_text("repository: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            create_context(str(config))

    def test_non_mapping_root(self, temp_dir):
        config = temp_dir / "config.yaml"
        config.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            create_context(str(config))

    def test_direct_construction(self, temp_dir):
        ctx = Context(
            project_root=temp_dir,
            config={"repository": {"owner": "me"}},
            repo_root=temp_dir / "r",
            logs_dir=temp_dir / "l",
        )
        assert ctx.owner == "me"
        assert ctx.remote_config == {}
        assert (temp_dir / "l").is_dir()


def test_deep_merge():
    target = {"a": {"x": 1, "y": 2}, "b": 1}
    deep_merge(target, {"a": {"y": 3}, "c": 4})
    assert target == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
