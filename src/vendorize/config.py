from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import List, TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "vendorize.toml"
SEARCH_PATH_ENV = "VENDORIZE_PATH"
JOBS_ENV = "VENDORIZE_JOBS"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def vendorize_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("vendorize", {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _as_positive_int(value: TomlValue) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None


def _as_path_list(value: TomlValue) -> list[str]:
    if isinstance(value, str):
        return [part for part in value.split(os.pathsep) if part]
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str) and item]
    return []


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def env_search_path() -> list[Path]:
    return [Path(part) for part in _as_path_list(os.environ.get(SEARCH_PATH_ENV, ""))]


def default_search_path() -> list[Path]:
    """``VENDORIZE_PATH`` when set, else the existing directories of ``sys.path``."""
    from_env = env_search_path()
    if from_env:
        return from_env
    return [Path(entry) for entry in sys.path if entry and Path(entry).is_dir()]


def default_jobs() -> int | None:
    return _as_positive_int(os.environ.get(JOBS_ENV, ""))


@dataclass(frozen=True)
class VendorizeSettings:
    exclude: List[str] = field(default_factory=list)
    force: bool = False
    update_imports: bool = False
    dry_run: bool = False
    search_path: List[Path] = field(default_factory=list)
    output_root: Path | None = None
    jobs: int | None = None


def settings_from_table(section: TomlTable) -> VendorizeSettings:
    output_root = section.get("output_root")
    search_path = [Path(entry) for entry in _as_path_list(section.get("search_path"))]
    jobs = _as_positive_int(section.get("jobs"))
    return VendorizeSettings(
        exclude=_normalize_name_list(section.get("exclude")),
        force=_as_bool(section.get("force")),
        update_imports=_as_bool(section.get("update_imports")),
        dry_run=_as_bool(section.get("dry_run")),
        search_path=search_path or default_search_path(),
        output_root=Path(output_root) if isinstance(output_root, str) and output_root else None,
        jobs=jobs if jobs is not None else default_jobs(),
    )
