"""Tests for configuration loading."""

from pathlib import Path

import pytest

from featplan.config import Config, load_config


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
	"""Point config/data dirs into tmp_path and clear other FEATPLAN_* vars."""
	for key in (
		"FEATPLAN_WORKSPACE",
		"FEATPLAN_BACKEND",
		"FEATPLAN_STORAGE_BRANCH",
		"FEATPLAN_COMPARE_AND_SWAP",
		"FEATPLAN_EXTERNAL_ACTOR",
		"FEATPLAN_DEBOUNCE_SECONDS",
		"FEATPLAN_LOG_LEVEL",
	):
		monkeypatch.delenv(key, raising=False)
	monkeypatch.setenv("FEATPLAN_CONFIG_DIR", str(tmp_path / "config"))
	monkeypatch.setenv("FEATPLAN_DATA_DIR", str(tmp_path / "data"))
	return tmp_path


class TestConfig:
	def test_derived_paths(self, tmp_path):
		config = Config(config_dir=tmp_path / "c", data_dir=tmp_path / "d", workspace_root=tmp_path / "ws")
		assert config.plan_path == tmp_path / "ws" / ".feature" / "PLAN.md"
		assert config.logs_dir == tmp_path / "ws" / ".feature" / "logs"
		assert config.execute_dir == tmp_path / "ws" / ".feature" / "execute"
		assert config.log_dir == tmp_path / "d" / "logs"

	def test_defaults(self, tmp_path):
		config = Config(config_dir=tmp_path, data_dir=tmp_path)
		assert config.backend == "file"
		assert config.storage_branch == "featplan"
		assert config.compare_and_swap is False
		assert config.external_actor == "Claude"


class TestLoadConfig:
	def test_env_overrides(self, isolated_env, monkeypatch):
		monkeypatch.setenv("FEATPLAN_WORKSPACE", str(isolated_env / "ws"))
		monkeypatch.setenv("FEATPLAN_BACKEND", "git")
		monkeypatch.setenv("FEATPLAN_COMPARE_AND_SWAP", "yes")
		monkeypatch.setenv("FEATPLAN_DEBOUNCE_SECONDS", "0.05")

		config = load_config()
		assert config.workspace_root == isolated_env / "ws"
		assert config.plan_path == isolated_env / "ws" / ".feature" / "PLAN.md"
		assert config.backend == "git"
		assert config.compare_and_swap is True
		assert config.debounce_seconds == 0.05
		assert config.log_dir.is_dir()

	def test_toml_then_env_then_overrides(self, isolated_env, monkeypatch):
		config_dir = isolated_env / "config"
		config_dir.mkdir()
		(config_dir / "config.toml").write_text(
			'external_actor = "Copilot"\n'
			'storage_branch = "plans"\n'
			'log_level = "DEBUG"\n'
		)
		monkeypatch.setenv("FEATPLAN_STORAGE_BRANCH", "from-env")

		config = load_config(log_level="WARNING")
		assert config.external_actor == "Copilot"
		assert config.storage_branch == "from-env"
		assert config.log_level == "WARNING"

	def test_none_overrides_are_ignored(self, isolated_env):
		config = load_config(backend=None, workspace_root=None)
		assert config.backend == "file"
		assert config.workspace_root == Path.cwd()

	def test_override_workspace_recomputes_paths(self, isolated_env):
		config = load_config(workspace_root=str(isolated_env / "other"))
		assert config.feature_dir == isolated_env / "other" / ".feature"

	def test_unknown_backend(self, isolated_env):
		with pytest.raises(ValueError, match="Unknown backend"):
			load_config(backend="s3")
