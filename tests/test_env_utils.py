import pytest
from pathlib import Path

from utils.env_utils import EnvManager


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point the home directory at an empty temporary directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


def test_load_env_file(tmp_path):
    """Test parsing of a .env file."""
    env_path = tmp_path / ".env"
    env_path.write_text(
        "# comment\n"
        "ADVICE_CORPUS_PATH=\"/data/advice.md\"\n"
        "export ADVICE_LOG_LEVEL = debug\n"
        "not a pair\n"
    )

    env_vars = EnvManager.load_env_file(env_path)
    assert env_vars == {
        "ADVICE_CORPUS_PATH": "/data/advice.md",
        "ADVICE_LOG_LEVEL": "debug",
    }


def test_load_missing_env_file(tmp_path):
    assert EnvManager.load_env_file(tmp_path / ".env") == {}


def test_candidate_dirs_start_at_given_directory(tmp_path, isolated_home, mocker):
    """Test search order: start directory, git root, home."""
    repo_root = tmp_path / "repo"
    start = repo_root / "conf"
    start.mkdir(parents=True)
    mock_repo = mocker.MagicMock()
    mock_repo.working_dir = str(repo_root.resolve())
    repo_cls = mocker.patch("git.Repo", return_value=mock_repo)

    dirs = EnvManager.candidate_dirs(start)

    assert dirs == [start.resolve(), repo_root.resolve(), isolated_home]
    repo_cls.assert_called_once_with(start.resolve(), search_parent_directories=True)


def test_find_env_file_prefers_nearest(tmp_path, isolated_home, mocker):
    repo_root = tmp_path / "repo"
    start = repo_root / "conf"
    start.mkdir(parents=True)
    (repo_root / ".env").write_text("ADVICE_LOG_LEVEL=INFO\n")
    (isolated_home / ".env").write_text("ADVICE_LOG_LEVEL=DEBUG\n")
    mock_repo = mocker.MagicMock()
    mock_repo.working_dir = str(repo_root.resolve())
    mocker.patch("git.Repo", return_value=mock_repo)

    assert EnvManager.find_env_file(start) == repo_root.resolve() / ".env"

    (start / ".env").write_text("ADVICE_LOG_LEVEL=WARNING\n")
    assert EnvManager.find_env_file(start) == start.resolve() / ".env"


def test_find_env_file_without_git(tmp_path, isolated_home, monkeypatch, mocker):
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    mocker.patch("git.Repo", side_effect=Exception("not a repository"))

    assert EnvManager.find_env_file() is None

    (isolated_home / ".env").write_text("ADVICE_LOG_LEVEL=INFO\n")
    assert EnvManager.find_env_file() == isolated_home / ".env"


def test_environment_overrides_env_file(tmp_path, monkeypatch, mocker):
    env_path = tmp_path / ".env"
    env_path.write_text("ADVICE_CORPUS_PATH=from_file.md\nADVICE_LOG_LEVEL=DEBUG\n")
    finder = mocker.patch.object(EnvManager, "find_env_file", return_value=env_path)
    monkeypatch.setenv("ADVICE_CORPUS_PATH", "from_env.md")
    monkeypatch.delenv("ADVICE_LOG_LEVEL", raising=False)

    settings = EnvManager.get_corpus_settings(start=tmp_path)
    assert settings == {"source_path": "from_env.md", "log_level": "DEBUG"}
    finder.assert_called_once_with(tmp_path)


def test_no_settings_anywhere(monkeypatch, mocker):
    mocker.patch.object(EnvManager, "find_env_file", return_value=None)
    monkeypatch.delenv("ADVICE_CORPUS_PATH", raising=False)
    monkeypatch.delenv("ADVICE_LOG_LEVEL", raising=False)

    assert EnvManager.get_corpus_settings() == {"source_path": None, "log_level": None}
