"""
Platform type tables - build frozen registries from configuration data.

A platform table (YAML or JSON) is the extensibility point for new traced
systems: core tables ship under tracearchive/input/platforms, extension
packages add directories through extension.ini.
"""

import os
from pathlib import Path
from typing import Dict, List, Union
import logging

from tracearchive.extension import ExtensionConfig, core_platforms_dir
from tracearchive.modeller.registry import TypeRegistry
from tracearchive.modeller.rules import (
    ChildSummaryVisualization,
    KeyedParentLinking,
    TableVisualization,
    TimeContainmentLinking,
    UniqueParentLinking,
)
from tracearchive.parsers.schemas import PlatformConfigFile, validate_config_file

log = logging.getLogger(__name__)

PLATFORM_SUFFIXES = ('.yaml', '.yml', '.json')


def _linking_rule(rule):
    if rule.kind == "unique_parent":
        return UniqueParentLinking(rule.parent)
    if rule.kind == "keyed_parent":
        return KeyedParentLinking(rule.parent, rule.child_key, rule.parent_key)
    if rule.kind == "time_containment":
        return TimeContainmentLinking(rule.parent, rule.start_metric, rule.end_metric)
    raise ValueError(f"Unknown linking rule kind: {rule.kind}")


def _visualization_rule(rule):
    if rule.kind == "table":
        return TableVisualization(rule.name, rule.fields)
    if rule.kind == "child_summary":
        return ChildSummaryVisualization(rule.name, rule.metric, rule.child_type)
    raise ValueError(f"Unknown visualization rule kind: {rule.kind}")


def registry_from_config(config: PlatformConfigFile) -> TypeRegistry:
    """
    Register every type of a validated platform table and freeze the registry.

    Types are registered in table order, which also breaks ties in the
    linking order.
    """
    registry = TypeRegistry(config.platform)
    for type_name, entry in config.types.items():
        registry.register_type(
            type_name,
            entry.parents,
            linking_rules=[_linking_rule(rule) for rule in entry.linking],
            visualization_rules=[_visualization_rule(rule) for rule in entry.visualizations],
        )
    registry.freeze()
    if registry.root_type != config.root:
        raise ValueError(f"Platform '{config.platform}' root is '{registry.root_type}', table declares '{config.root}'")
    return registry


def platform_dirs() -> List[str]:
    """Core platform directory followed by extension directories."""
    dirs = [core_platforms_dir()]
    dirs.extend(ExtensionConfig().get_platforms_dirs())
    return [d for d in dirs if os.path.isdir(d)]


def available_platforms() -> Dict[str, Path]:
    """
    Discover platform tables.

    Returns:
        Mapping of platform name (file stem) to table path; extension tables
        override core tables of the same name
    """
    platforms = {}
    for directory in platform_dirs():
        for name in sorted(os.listdir(directory)):
            path = Path(directory) / name
            if path.suffix in PLATFORM_SUFFIXES and path.is_file():
                if path.stem in platforms:
                    log.info(f"Platform '{path.stem}' from {path} overrides {platforms[path.stem]}")
                platforms[path.stem] = path
    return platforms


def load_platform_file(path: Union[str, Path]) -> TypeRegistry:
    """Validate a platform table file and build its registry."""
    config = validate_config_file(path, config_type="platform")
    return registry_from_config(config)


def load_platform(name_or_path: Union[str, Path]) -> TypeRegistry:
    """
    Load a platform registry by name (e.g. "graphx") or by table path.

    Raises:
        KeyError: If no platform table of that name is available
        ValueError: If the table is invalid
    """
    path = Path(name_or_path)
    if path.suffix in PLATFORM_SUFFIXES and path.exists():
        return load_platform_file(path)

    platforms = available_platforms()
    if str(name_or_path) not in platforms:
        raise KeyError(f"Unknown platform '{name_or_path}', available: {', '.join(sorted(platforms)) or 'none'}")
    return load_platform_file(platforms[str(name_or_path)])
