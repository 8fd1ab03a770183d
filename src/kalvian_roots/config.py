import os
from pathlib import Path

import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_PATH = PROJECT_ROOT / "config" / "kalvian_roots.yml"

DEFAULTS = {
    "debug": False,
    "paths": {
        "data_dir": "data",
        "logs_dir": "logs",
        "store_file": "kalvian_roots_store.json",
    },
    "logging": {
        "level": "INFO",
        "file": "kalvian_roots.log",
        "rotate": False,
        "module_files": False,
    },
    "names": {
        "confirmation_threshold": 0.3,
        "rate_limit": 5,
        "rate_window_seconds": 60,
    },
    "resolver": {
        "max_concurrency": 4,
    },
}


class RootsConfig:
    def __init__(self, data):
        self.paths = _section(data, "paths")
        self.logging = _section(data, "logging")
        self.names = _section(data, "names")
        self.resolver = _section(data, "resolver")
        self.debug = bool(data.get("debug", DEFAULTS["debug"]))

    def resolve_path(self, key: str) -> Path:
        """Return a configured path, anchored at the project root when relative."""
        p = Path(self.paths.get(key) or DEFAULTS["paths"][key])
        if not p.is_absolute():
            p = PROJECT_ROOT / p
        return p

    @property
    def store_path(self) -> Path:
        return self.resolve_path("data_dir") / self.paths.get(
            "store_file", DEFAULTS["paths"]["store_file"]
        )


def _section(data, name):
    merged = dict(DEFAULTS[name])
    merged.update(data.get(name) or {})
    return merged


def config_path() -> Path:
    env = os.getenv("KALVIAN_ROOTS_CONFIG")
    return Path(env).expanduser() if env else CONFIG_PATH


def load_config(path: Path | None = None) -> 'RootsConfig':
    path = path or config_path()
    if not path.exists():
        # Installed without the project tree: run on defaults
        return RootsConfig({})

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return RootsConfig(data)

_config_cache = None

def get_config() -> 'RootsConfig':
    global _config_cache
    if _config_cache is None:
        _config_cache = load_config()
    return _config_cache


def reset_config() -> None:
    global _config_cache
    _config_cache = None
