from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "defaultsmith.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
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


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
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


def _as_identifier(value: TomlValue, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def _as_positive_int(value: TomlValue, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, str) and value.strip().isdigit() and int(value) > 0:
        return int(value)
    return fallback


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


DEFAULT_EXCLUDES = (".git", ".venv", "venv", "__pycache__", "build", "dist")


@dataclass(frozen=True)
class GenerationConfig:
    output_suffix: str = "_defaults"
    namespace_suffix: str = "Defaults"
    builder_suffix: str = "Builder"
    entry_point: str = "create"
    jobs: int = 1
    exclude: tuple[str, ...] = DEFAULT_EXCLUDES
    warn_unmatched: bool = True

    @classmethod
    def from_sections(
        cls,
        generate: TomlTable | None = None,
        discovery: TomlTable | None = None,
    ) -> GenerationConfig:
        generate = generate if isinstance(generate, dict) else {}
        discovery = discovery if isinstance(discovery, dict) else {}
        base = cls()
        exclude = _normalize_name_list(generate.get("exclude"))
        warn = discovery.get("warn_unmatched")
        return cls(
            output_suffix=_as_identifier(generate.get("output_suffix"), base.output_suffix),
            namespace_suffix=_as_identifier(
                generate.get("namespace_suffix"), base.namespace_suffix
            ),
            builder_suffix=_as_identifier(generate.get("builder_suffix"), base.builder_suffix),
            entry_point=_as_identifier(generate.get("entry_point"), base.entry_point),
            jobs=_as_positive_int(generate.get("jobs"), base.jobs),
            exclude=tuple(exclude) if exclude else base.exclude,
            warn_unmatched=base.warn_unmatched if warn is None else _as_bool(warn),
        )

    @classmethod
    def load(
        cls,
        root: Path | None = None,
        config_path: Path | None = None,
        overrides: TomlTable | None = None,
    ) -> GenerationConfig:
        data = load_config(root=root, config_path=config_path)
        generate = merge_payload(overrides or {}, _section(data, "generate"))
        return cls.from_sections(generate, _section(data, "discovery"))
