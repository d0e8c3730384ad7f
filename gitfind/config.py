"""Configuration loading for gitfind (.gitfind.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".gitfind.yml"
DEFAULT_DATABASE = Path("~/.gitfind/views.db")
DEFAULT_TARGET_NAME = ".git"


class ConfigError(RuntimeError):
    """Raised when the configuration is unreadable or invalid."""


@dataclass
class ConcurrencyConfig:
    """Per-stage caps on in-flight inspections; ``None`` means unbounded."""

    locals: Optional[int] = None
    remotes: Optional[int] = None


@dataclass
class FindConfig:
    """Settings for a ``gitfind find`` run."""

    search_paths: List[Path] = field(default_factory=list)
    ignore_paths: List[Path] = field(default_factory=list)
    follow: bool = False
    target_name: str = DEFAULT_TARGET_NAME
    database: Path = DEFAULT_DATABASE
    concurrency: ConcurrencyConfig = field(default_factory=ConcurrencyConfig)
    source: Optional[Path] = None

    def resolved_search_paths(self) -> List[Path]:
        """Canonicalise the search roots; unresolvable roots are fatal."""
        roots: List[Path] = []
        for path in self.search_paths:
            try:
                resolved = path.expanduser().resolve(strict=True)
            except (OSError, RuntimeError) as exc:
                raise ConfigError(f"Invalid local path={path}: {exc}") from exc
            if not resolved.is_dir():
                raise ConfigError(f"Invalid local path={path}: not a directory")
            roots.append(resolved)
        return roots

    def resolved_ignore_paths(self) -> List[Path]:
        return [path.expanduser().resolve() for path in self.ignore_paths]

    def resolved_database(self) -> Path:
        return self.database.expanduser()

    def merged(
        self,
        *,
        search_paths: Sequence[str] | None = None,
        ignore_paths: Sequence[str] | None = None,
        follow: bool | None = None,
        database: str | None = None,
        local_limit: int | None = None,
        remote_limit: int | None = None,
    ) -> FindConfig:
        """Return a copy with command-line overrides applied."""
        concurrency = ConcurrencyConfig(
            locals=local_limit if local_limit is not None else self.concurrency.locals,
            remotes=remote_limit if remote_limit is not None else self.concurrency.remotes,
        )
        _check_limit("concurrency.locals", concurrency.locals)
        _check_limit("concurrency.remotes", concurrency.remotes)
        return replace(
            self,
            search_paths=[Path(p) for p in search_paths] if search_paths else list(self.search_paths),
            ignore_paths=list(self.ignore_paths) + [Path(p) for p in ignore_paths or ()],
            follow=self.follow or bool(follow),
            database=Path(database) if database else self.database,
            concurrency=concurrency,
        )


def default_config_path() -> Path:
    return Path.home() / CONFIG_FILENAME


def load_config(config_path: Path | None = None) -> FindConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = (config_path or default_config_path()).expanduser()
    if config_file.is_dir():
        config_file = config_file / CONFIG_FILENAME
    if not config_file.exists():
        if config_path is not None:
            raise ConfigError(f"Configuration file not found: {config_file}")
        return FindConfig()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    base = config_file.parent
    concurrency_data = _as_dict(data.get("concurrency"))
    concurrency = ConcurrencyConfig(
        locals=_as_limit("concurrency.locals", concurrency_data.get("locals")),
        remotes=_as_limit("concurrency.remotes", concurrency_data.get("remotes")),
    )

    target_name = _as_str(data.get("target_name")) or DEFAULT_TARGET_NAME
    if "/" in target_name:
        raise ConfigError("target_name must be a single directory name")

    database = _as_str(data.get("database"))

    return FindConfig(
        search_paths=[_relative_to(base, item) for item in _as_str_list(data.get("search_paths"))],
        ignore_paths=[_relative_to(base, item) for item in _as_str_list(data.get("ignore_paths"))],
        follow=_as_bool(data.get("follow")) or False,
        target_name=target_name,
        database=_relative_to(base, database) if database else DEFAULT_DATABASE,
        concurrency=concurrency,
        source=config_file,
    )


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _relative_to(base: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def _check_limit(key: str, value: Optional[int]) -> None:
    if value is not None and value < 1:
        raise ConfigError(f"{key} must be a positive integer")


def _as_limit(key: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be a positive integer")
    _check_limit(key, value)
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConcurrencyConfig",
    "ConfigError",
    "FindConfig",
    "default_config_path",
    "load_config",
]
