from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "ctorprune.toml"

DEFAULT_PROMOTION_MARKERS: tuple[str, ...] = ("InitVar", "dataclasses.InitVar")

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


@dataclass(frozen=True)
class PruneConfig:
    promotion_markers: tuple[str, ...] = DEFAULT_PROMOTION_MARKERS
    interface_bases: tuple[str, ...] = ()
    opaque_bases: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


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


def prune_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("prune", {})
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


def prune_config_from_section(section: TomlTable | None) -> PruneConfig:
    if section is None or not isinstance(section, dict):
        return PruneConfig()
    markers = _normalize_name_list(section.get("promotion_markers"))
    return PruneConfig(
        promotion_markers=tuple(markers) if markers else DEFAULT_PROMOTION_MARKERS,
        interface_bases=tuple(_normalize_name_list(section.get("interface_bases"))),
        opaque_bases=tuple(_normalize_name_list(section.get("opaque_bases"))),
        exclude=tuple(_normalize_name_list(section.get("exclude"))),
    )


def load_prune_config(
    root: Path | None = None, config_path: Path | None = None
) -> PruneConfig:
    return prune_config_from_section(prune_defaults(root=root, config_path=config_path))
