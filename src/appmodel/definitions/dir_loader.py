from __future__ import annotations

import glob
import logging
import os
from typing import Any, Dict, Iterable, List, Tuple

import yaml

from ..errors import DefinitionLoadError, DefinitionValidationError

DEFAULT_APPHOST_FILE = "apphost.yaml"
DEFAULT_APPHOST_DIR = "apphost.d"

SECTIONS = ("parameters", "resources")


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise DefinitionLoadError(f"Definition file {path} contains invalid YAML: {exc}")
    except OSError as exc:
        raise DefinitionLoadError(f"Failed to read definition file {path}: {exc}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DefinitionValidationError(f"Definition file {path} must contain a YAML mapping")
    return data


def collect_definition_sources(
    apphost_file: str | None = None,
    apphost_dir: str | None = None,
) -> Tuple[str, str, List[str]]:
    """Resolve the base definition file and the sorted ``*.yaml`` overrides."""

    apphost_file = apphost_file or DEFAULT_APPHOST_FILE
    apphost_dir = apphost_dir or DEFAULT_APPHOST_DIR

    dir_files: List[str] = []
    if os.path.isdir(apphost_dir):
        dir_files = sorted(glob.glob(os.path.join(apphost_dir, "*.yaml")))
    return apphost_file, apphost_dir, dir_files


def _extract_section(data: Dict[str, Any], section: str, source: str) -> List[Tuple[str, dict]]:
    raw = data.get(section)
    entries: List[Tuple[str, dict]] = []

    if raw is None:
        return entries

    if isinstance(raw, dict):
        iterable: Iterable[Tuple[str, Any]] = raw.items()
        for name, cfg in iterable:
            if cfg is None:
                cfg = {}
            if not isinstance(cfg, dict):
                raise DefinitionValidationError(
                    f"{source}: {section} entry '{name}' must be a mapping"
                )
            entries.append((str(name), dict(cfg)))
    elif isinstance(raw, list):
        for entry in raw:
            if not isinstance(entry, dict) or "name" not in entry:
                raise DefinitionValidationError(
                    f"{source}: {section} list entries must be mappings with a name"
                )
            cfg = dict(entry)
            entries.append((str(cfg.pop("name")), cfg))
    else:
        raise DefinitionValidationError(
            f"{source}: '{section}' section must be a mapping or list"
        )

    return entries


def merge_definitions(
    sources: List[Tuple[str, Dict[str, Any]]],
    stats: Dict[str, Any] | None = None,
) -> Tuple[Dict[str, Dict[str, dict]], Dict[str, Any]]:
    """
    Merge definitions by name, later sources winning.

    A redefined entry keeps its original position so that resource order
    follows the first declaration.
    """

    merged: Dict[str, Dict[str, dict]] = {section: {} for section in SECTIONS}
    stats = stats or {"overridden": []}

    for source, data in sources:
        unknown = sorted(set(data) - set(SECTIONS))
        if unknown:
            raise DefinitionValidationError(
                f"{source}: unknown top-level sections: {', '.join(unknown)}"
            )
        for section in SECTIONS:
            for name, cfg in _extract_section(data, section, source):
                if name in merged[section]:
                    stats.setdefault("overridden", []).append(
                        {"source": source, "section": section, "name": name}
                    )
                merged[section][name] = cfg

    return merged, stats


def load_definitions_from_sources(
    logger: logging.Logger | None = None,
    apphost_file: str | None = None,
    apphost_dir: str | None = None,
) -> Tuple[Dict[str, Dict[str, dict]], Dict[str, Any]]:
    """Load definitions from the base file and the optional override directory."""

    apphost_file, apphost_dir, dir_files = collect_definition_sources(
        apphost_file=apphost_file,
        apphost_dir=apphost_dir,
    )
    stats: Dict[str, Any] = {
        "from_file": None,
        "from_dir_files": len(dir_files),
        "overridden": [],
    }

    sources: List[Tuple[str, Dict[str, Any]]] = []
    if os.path.isfile(apphost_file):
        sources.append((apphost_file, _read_yaml(apphost_file)))
        stats["from_file"] = apphost_file
    elif not dir_files:
        raise DefinitionLoadError(
            f"No AppHost definitions found: {apphost_file} does not exist and "
            f"{apphost_dir} has no *.yaml files"
        )
    elif logger:
        logger.info("AppHost file not found at %s; using %s only", apphost_file, apphost_dir)

    for path in dir_files:
        sources.append((path, _read_yaml(path)))

    merged, stats = merge_definitions(sources, stats=stats)
    stats["parameters"] = len(merged["parameters"])
    stats["resources"] = len(merged["resources"])

    if logger:
        logger.info(
            "AppHost load summary: file=%s, dir=%s (%d files), parameters=%d, resources=%d, overridden=%d",
            apphost_file,
            apphost_dir,
            stats["from_dir_files"],
            stats["parameters"],
            stats["resources"],
            len(stats["overridden"]),
        )
    return merged, stats
