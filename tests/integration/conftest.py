"""
集成测试配置和共享fixture
"""
import pytest

from libplaygist.container import PlaygistContainer
from libplaygist.context import Context

OWNER = "liesen"


@pytest.fixture
def container(repo):
    """空仓库上打开的容器"""
    return PlaygistContainer.open(OWNER, repo)


@pytest.fixture
def reopen(repo):
    """从仓库头提交重新打开一个新的容器"""
    def _reopen(**kwargs):
        return PlaygistContainer.open(OWNER, repo, **kwargs)
    return _reopen


@pytest.fixture
def test_context(temp_dir, isolated_git_env):
    """创建测试上下文环境"""
    return Context(
        project_root=temp_dir,
        config={
            "repository": {"path": "cli-repo", "owner": OWNER},
            "commit": {"author_name": "Tester", "author_email": "tester@example.com",
                       "max_retries": 3},
            "remote": {"name": None, "refspec": None, "progress": False},
            "logging": {"logs_dir": "logs", "level": "debug"},
        },
        repo_root=temp_dir / "cli-repo",
        logs_dir=temp_dir / "logs",
    )
