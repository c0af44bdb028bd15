import sys
import shutil
import tempfile
from pathlib import Path

import pytest

# Allow running the suite from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from libplaygist.events import EventEmitter
from libplaygist.git import GitOperations


@pytest.fixture(autouse=True)
def reset_events():
    """Restore the global event sink configuration after each test."""
    yield
    EventEmitter.stop_logging()
    EventEmitter.setup_logging(level="info", stream=None)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp).resolve()


@pytest.fixture
def events():
    """Collect every emitted event instead of printing it."""
    collected = []
    EventEmitter.register_listener(collected.append)
    yield collected
    EventEmitter.unregister_listener(collected.append)


@pytest.fixture
def isolated_git_env(temp_dir, monkeypatch):
    """Keep the user's and system git configuration out of the tests."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    return home


@pytest.fixture
def repo(temp_dir, isolated_git_env):
    """An initialised, empty repository."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    git = GitOperations(temp_dir / "repo", author_name="Tester", author_email="tester@example.com")
    git.init()
    return git


@pytest.fixture
def bare_remote(temp_dir, repo):
    """A bare repository registered as 'origin' of the test repository."""
    remote = GitOperations(temp_dir / "remote.git")
    remote.init(bare=True)
    repo.add_remote("origin", str(remote.repo_root))
    return remote
