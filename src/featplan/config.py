"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import platformdirs

APP_NAME = "featplan"
APP_AUTHOR = "featplan"

FEATURE_DIR = ".feature"
PLAN_PATH = f"{FEATURE_DIR}/PLAN.md"

BACKENDS = ("file", "git")


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Workspace holding .feature/
	workspace_root: Path = field(default_factory=Path.cwd)

	# User-configurable
	backend: str = "file"
	storage_branch: str = "featplan"
	compare_and_swap: bool = False
	external_actor: str = "Claude"
	debounce_seconds: float = 0.3
	log_level: str = "INFO"

	# Derived paths
	feature_dir: Path = field(init=False)
	plan_path: Path = field(init=False)
	logs_dir: Path = field(init=False)
	execute_dir: Path = field(init=False)
	write_marker: Path = field(init=False)
	log_dir: Path = field(init=False)

	def __post_init__(self) -> None:
		self.feature_dir = self.workspace_root / FEATURE_DIR
		self.plan_path = self.workspace_root / PLAN_PATH
		self.logs_dir = self.feature_dir / "logs"
		self.execute_dir = self.feature_dir / "execute"
		# Digest of the last document written by any featplan process
		self.write_marker = self.feature_dir / ".last-write"
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)


_PATH_FIELDS = {"config_dir", "data_dir", "workspace_root"}
_BOOL_FIELDS = {"compare_and_swap"}
_FLOAT_FIELDS = {"debounce_seconds"}


def _coerce(attr: str, val):
	if attr in _PATH_FIELDS:
		return Path(os.path.expanduser(str(val)))
	if attr in _BOOL_FIELDS and isinstance(val, str):
		return val.strip().lower() in {"1", "true", "yes", "on"}
	if attr in _FLOAT_FIELDS:
		return float(val)
	return val


def _apply_env_overrides(config: Config) -> Config:
	"""Apply FEATPLAN_* environment variable overrides."""
	env_map = {
		"FEATPLAN_CONFIG_DIR": "config_dir",
		"FEATPLAN_DATA_DIR": "data_dir",
		"FEATPLAN_WORKSPACE": "workspace_root",
		"FEATPLAN_BACKEND": "backend",
		"FEATPLAN_STORAGE_BRANCH": "storage_branch",
		"FEATPLAN_COMPARE_AND_SWAP": "compare_and_swap",
		"FEATPLAN_EXTERNAL_ACTOR": "external_actor",
		"FEATPLAN_DEBOUNCE_SECONDS": "debounce_seconds",
		"FEATPLAN_LOG_LEVEL": "log_level",
	}
	for env_key, attr in env_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, _coerce(attr, val))
	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	for key, val in data.items():
		if hasattr(config, key):
			setattr(config, key, _coerce(key, val))

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config(**overrides) -> Config:
	"""Load config with precedence: explicit overrides > env vars > config.toml > defaults."""
	config = Config()
	# config.toml lives in config_dir, so that one env var is needed up front
	env_config_dir = os.getenv("FEATPLAN_CONFIG_DIR")
	if env_config_dir:
		config.config_dir = _coerce("config_dir", env_config_dir)
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	for key, val in overrides.items():
		if val is not None and hasattr(config, key):
			setattr(config, key, _coerce(key, val))
	config.__post_init__()
	if config.backend not in BACKENDS:
		raise ValueError(f"Unknown backend '{config.backend}' (expected one of {', '.join(BACKENDS)})")
	config.ensure_dirs()
	return config
