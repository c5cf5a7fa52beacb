from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Tuple

from dotenv import dotenv_values

_REPO_ROOT = Path(__file__).resolve().parents[2]
# Shipped recipes; DEPLOYCORE_RECIPES_PATH replaces the whole search path.
_DEFAULT_RECIPES_PATH = _REPO_ROOT / "recipes"

DEFAULT_MAX_FILE_SIZE_BYTES = 262144


@dataclass(frozen=True)
class CoreSettings:
    recipes_paths: Tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"
    recipes_recursive: bool = False
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES
    validation_strict: bool = False


def _env_file_candidates() -> List[Path]:
    """Files consulted for settings the process environment does not set.

    DEPLOYCORE_ENV_FILE names one or more files (os.pathsep separated); a
    directory entry means its ``.env``. Without it, ``.env`` then
    ``.env.local`` at the checkout root are read, later files winning.
    """
    override = os.getenv("DEPLOYCORE_ENV_FILE")
    if not override:
        return [_REPO_ROOT / ".env", _REPO_ROOT / ".env.local"]

    files: List[Path] = []
    for entry in filter(None, override.split(os.pathsep)):
        path = Path(entry).expanduser()
        files.append(path / ".env" if path.is_dir() else path)
    return files


@lru_cache(maxsize=1)
def _load_env_settings() -> Dict[str, str]:
    merged: Dict[str, str] = {}
    for path in _env_file_candidates():
        if not path.is_file():
            continue
        # dotenv_values yields None for bare keys without '='
        merged.update({key: value for key, value in dotenv_values(str(path)).items() if value is not None})
    return merged


def _resolve(name: str, default: str | None = None) -> str | None:
    existing = os.getenv(name)
    if existing is not None:
        return existing
    return _load_env_settings().get(name, default)


def _flag(name: str) -> bool:
    return (_resolve(name, "0") or "0").strip() == "1"


@lru_cache(maxsize=1)
def get_settings() -> CoreSettings:
    raw_paths = _resolve("DEPLOYCORE_RECIPES_PATH")
    if raw_paths:
        paths = tuple(str(Path(p).expanduser().resolve()) for p in raw_paths.split(os.pathsep) if p)
    else:
        paths = (str(_DEFAULT_RECIPES_PATH),)

    max_size_raw = _resolve("RECIPES_MAX_FILE_SIZE_BYTES", str(DEFAULT_MAX_FILE_SIZE_BYTES))
    try:
        max_size = int(max_size_raw or DEFAULT_MAX_FILE_SIZE_BYTES)
    except ValueError as exc:
        raise ValueError(f"RECIPES_MAX_FILE_SIZE_BYTES must be an integer, got {max_size_raw!r}") from exc

    return CoreSettings(
        recipes_paths=paths,
        log_level=(_resolve("DEPLOYCORE_LOG_LEVEL", "INFO") or "INFO").upper(),
        recipes_recursive=_flag("RECIPES_RECURSIVE"),
        max_file_size_bytes=max_size,
        validation_strict=_flag("VALIDATION_STRICT"),
    )


def reload_settings() -> None:
    _load_env_settings.cache_clear()
    get_settings.cache_clear()
