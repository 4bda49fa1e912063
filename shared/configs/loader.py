from __future__ import annotations

import json
import os
import pathlib
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, MutableMapping

import jsonschema
import yaml

from .fingerprint import compute_fingerprint

ROOT = pathlib.Path(__file__).resolve().parents[2]
CONFIG_ROOT = ROOT / "configs"
SCHEMA_DIR = ROOT / "shared" / "configs" / "schemas"

SCHEMA_FILES = {
    "paths": "core_paths.json",
    "logging": "core_logging.json",
    "dataset": "workflow_dataset.json",
    "split": "workflow_split.json",
    "resamples": "workflow_resamples.json",
    "recipe": "workflow_recipe.json",
    "model": "workflow_model.json",
    "tune": "workflow_tune.json",
}


class IncludeLoader(yaml.SafeLoader):
    pass


def _construct_include(loader: yaml.SafeLoader, node: yaml.Node) -> Any:
    rel_path = loader.construct_scalar(node)
    include_path = pathlib.Path(loader.name).parent / rel_path
    with include_path.open("r", encoding="utf-8") as f:
        inner = IncludeLoader(f)
        inner.name = str(include_path)
        try:
            return inner.get_single_data()
        finally:
            inner.dispose()


IncludeLoader.add_constructor("!include", _construct_include)


@dataclass
class ResolvedConfig:
    resolved: Mapping[str, Any]
    sources: list[str]
    fingerprint: str
    schema_version: str


_REF_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _load_yaml(path: pathlib.Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        loader = IncludeLoader(f)
        loader.name = str(path)
        try:
            data = loader.get_single_data()
        finally:
            loader.dispose()
    return data or {}


_LIST_DIRECTIVES = ("+prepend", "+extend")


def _is_list_directive(obj: Any) -> bool:
    return isinstance(obj, Mapping) and bool(obj) and set(obj.keys()) <= set(_LIST_DIRECTIVES)


def _apply_list_directive(base: list, directive: Mapping[str, Any]) -> list:
    """``{"+prepend": [...], "+extend": [...]}`` grows a list layer (recipe steps, metrics)."""
    return list(directive.get("+prepend") or []) + list(base) + list(directive.get("+extend") or [])


def _merge(base: Any, override: Any) -> Any:
    if override is None:
        return None
    if isinstance(base, list) and _is_list_directive(override):
        return _apply_list_directive(base, override)
    if isinstance(base, Mapping) and isinstance(override, Mapping):
        result: dict[str, Any] = {k: v for k, v in base.items()}
        for k, v in override.items():
            if v is None:
                result.pop(k, None)
                continue
            if k in result:
                merged = _merge(result[k], v)
                if merged is None:
                    result.pop(k, None)
                else:
                    result[k] = merged
            elif _is_list_directive(v):
                result[k] = _apply_list_directive([], v)
            else:
                result[k] = v
        return result
    if isinstance(override, list):
        return list(override)
    return override


def _merge_many(dicts: Iterable[Mapping[str, Any]]) -> Mapping[str, Any]:
    merged: Any = {}
    for d in dicts:
        merged = _merge(merged, d)
    return merged


def _parse_value(val: str) -> Any:
    lowered = val.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("null", "none"):
        return None
    try:
        return json.loads(val)
    except ValueError:
        pass
    try:
        if "." in val:
            return float(val)
        return int(val)
    except ValueError:
        return val


def _apply_env_overrides(prefix: str) -> Mapping[str, Any]:
    result: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].strip("_").lower()
        parts = [p for p in path.split("__") if p]
        if not parts:
            continue
        cursor: MutableMapping[str, Any] = result
        for p in parts[:-1]:
            cursor = cursor.setdefault(p, {})  # type: ignore[assignment]
        cursor[parts[-1]] = _parse_value(value)
    return result


def _apply_cli_overrides(overrides: Mapping[str, Any]) -> Mapping[str, Any]:
    def cast(obj: Any) -> Any:
        if isinstance(obj, str):
            return _parse_value(obj)
        if isinstance(obj, Mapping):
            return {k: cast(v) for k, v in obj.items()}
        return obj

    return cast(overrides or {})


def parse_set_args(entries: Iterable[str]) -> dict[str, Any]:
    """Turn ``["tune.n_jobs=2", "split.prop=0.8"]`` into a nested mapping."""
    cli_overrides: dict[str, Any] = {}
    for entry in entries:
        if "=" not in entry:
            raise ValueError(f"Override must look like key.path=value, got {entry!r}")
        key, value = entry.split("=", 1)
        cursor = cli_overrides
        parts = key.split(".")
        for p in parts[:-1]:
            cursor = cursor.setdefault(p, {})
        cursor[parts[-1]] = value
    return cli_overrides


def _resolve_refs(config: Any, full: Mapping[str, Any]) -> Any:
    if isinstance(config, str):
        def replace(match: re.Match[str]) -> str:
            expr = match.group(1)
            if expr.startswith("ENV:"):
                name_default = expr[4:]
                if "|" in name_default:
                    name, default = name_default.split("|", 1)
                else:
                    name, default = name_default, ""
                return os.environ.get(name, default)
            cursor: Any = full
            for part in expr.split("."):
                cursor = cursor.get(part) if isinstance(cursor, Mapping) else None
            return str(cursor) if cursor is not None else ""

        return _REF_PATTERN.sub(replace, config)
    if isinstance(config, Mapping):
        return {k: _resolve_refs(v, full) for k, v in config.items()}
    if isinstance(config, list):
        return [_resolve_refs(v, full) for v in config]
    return config


def _validate(resolved: Mapping[str, Any]) -> None:
    for section, schema_name in SCHEMA_FILES.items():
        if section not in resolved:
            continue
        with (SCHEMA_DIR / schema_name).open("r", encoding="utf-8") as f:
            schema = json.load(f)
        jsonschema.validate(resolved[section], schema)


def _workflow_path(workflow: str | pathlib.Path) -> pathlib.Path:
    if isinstance(workflow, pathlib.Path) or str(workflow).endswith((".yaml", ".yml")):
        return pathlib.Path(workflow)
    return CONFIG_ROOT / "workflows" / f"{workflow}.yaml"


def load_config(
    workflow: str | pathlib.Path | None = None,
    overrides_paths: list[pathlib.Path] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
    env_prefix: str = "TIDYML_",
) -> ResolvedConfig:
    overrides_paths = overrides_paths or []
    layers: list[Mapping[str, Any]] = []
    sources: list[str] = []
    version_path = CONFIG_ROOT / "core" / "version.yaml"
    version_info = _load_yaml(version_path) if version_path.exists() else {}
    schema_version = str(version_info.get("config_schema_version", "unknown"))

    base_files = [
        CONFIG_ROOT / "core" / "defaults.yaml",
        CONFIG_ROOT / "core" / "paths.yaml",
        CONFIG_ROOT / "core" / "logging.yaml",
    ]
    for path in base_files:
        if path.exists():
            layers.append(_load_yaml(path))
            sources.append(str(path))
    if workflow is not None:
        wf_path = _workflow_path(workflow)
        if not wf_path.exists():
            raise FileNotFoundError(f"Workflow config not found: {wf_path}")
        layers.append(_load_yaml(wf_path))
        sources.append(str(wf_path))
    local_override = CONFIG_ROOT / "overrides" / "local.yaml"
    if local_override.exists():
        layers.append(_load_yaml(local_override))
        sources.append(str(local_override))
    for path in overrides_paths:
        if path.exists():
            layers.append(_load_yaml(path))
            sources.append(str(path))
    layers.append(_apply_env_overrides(env_prefix))
    layers.append(_apply_cli_overrides(cli_overrides or {}))

    merged = _merge_many(layers)
    resolved = _resolve_refs(merged, merged)
    _validate(resolved)
    fingerprint = compute_fingerprint(resolved)
    return ResolvedConfig(resolved=resolved, sources=sources, fingerprint=fingerprint, schema_version=schema_version)
