"""
Pydantic schemas for trace parse results AND configuration files.

This is the single source of truth for:
- Parse result containers (trace reader output)
- Platform type tables (the type registry configuration surface)
- Execution descriptors (which trace to archive, where to write it)

Config validation happens early to fail fast with clear errors.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Common Types
# =============================================================================


class ParseStatus(Enum):
    """Status of a parse operation."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some records parsed, some failed
    FAILED = "failed"
    NO_DATA = "no_data"  # Trace file held no records


T = TypeVar('T', bound=BaseModel)


@dataclass
class ParseResult(Generic[T]):
    """
    Generic result container for all parsers.

    Contains validated Pydantic models plus any warnings/errors.
    """

    status: ParseStatus
    results: List[T] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == ParseStatus.SUCCESS

    @property
    def has_results(self) -> bool:
        return len(self.results) > 0


def _check_placeholder(v: Optional[str], field_name: str) -> Optional[str]:
    if v is not None and '<changeme>' in v.lower():
        raise ValueError(f"{field_name} contains placeholder '<changeme>'. Please set a valid value in config.")
    return v


# =============================================================================
# Platform Type Table Schemas
# =============================================================================


class UniqueParentLinkingConfig(BaseModel):
    """Exactly one model of the parent type must exist."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["unique_parent"] = "unique_parent"
    parent: str = Field(min_length=1, description="Parent operation type")


class KeyedParentLinkingConfig(BaseModel):
    """Match the parent on a shared identifier."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["keyed_parent"]
    parent: str = Field(min_length=1, description="Parent operation type")
    child_key: str = Field(min_length=1, description="Child metric holding the parent's key")
    parent_key: Optional[str] = Field(default=None, description="Parent metric matched against; the parent id if unset")


class TimeContainmentLinkingConfig(BaseModel):
    """Match the parent whose time interval contains the child's."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["time_containment"]
    parent: str = Field(min_length=1, description="Parent operation type")
    start_metric: str = Field(default="StartTime", description="Metric holding the interval start")
    end_metric: str = Field(default="EndTime", description="Metric holding the interval end")


LinkingRuleConfig = Annotated[
    Union[UniqueParentLinkingConfig, KeyedParentLinkingConfig, TimeContainmentLinkingConfig],
    Field(discriminator="kind"),
]


class TableVisualizationConfig(BaseModel):
    """Table of the model's own metrics."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["table"] = "table"
    name: str = Field(default="MainTable", min_length=1, description="Artifact name")
    fields: List[str] = Field(default_factory=list, description="Ordered metric names to project")


class ChildSummaryVisualizationConfig(BaseModel):
    """Aggregate of one numeric metric over the model's children."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["child_summary"]
    name: str = Field(min_length=1, description="Artifact name")
    metric: str = Field(min_length=1, description="Child metric to aggregate")
    child_type: Optional[str] = Field(default=None, description="Only aggregate children of this type")


VisualizationRuleConfig = Annotated[
    Union[TableVisualizationConfig, ChildSummaryVisualizationConfig],
    Field(discriminator="kind"),
]


class TypeConfig(BaseModel):
    """
    Schema for one operation type entry.

    When ``linking`` is omitted for a non-root type, a unique_parent rule on
    the first permitted parent is assumed.
    """

    model_config = ConfigDict(extra="forbid")

    parents: List[str] = Field(default_factory=list, description="Permitted parent types (empty for the root)")
    linking: List[LinkingRuleConfig] = Field(default_factory=list, description="Linking rules in precedence order")
    visualizations: List[VisualizationRuleConfig] = Field(
        default_factory=list, description="Visualization rules in declaration order"
    )
    description: Optional[str] = Field(default=None)

    @model_validator(mode='after')
    def default_linking(self):
        """Assume unique parent linking when no rule is declared."""
        if self.parents and not self.linking:
            self.linking = [UniqueParentLinkingConfig(parent=self.parents[0])]
        return self

    @model_validator(mode='after')
    def validate_rules_target_parents(self):
        """Linking rules may only search permitted parent types."""
        for rule in self.linking:
            if rule.parent not in self.parents:
                raise ValueError(
                    f"linking rule '{rule.kind}' targets '{rule.parent}', "
                    f"which is not a permitted parent ({', '.join(self.parents) or 'none'})"
                )
        return self


class PlatformConfigFile(BaseModel):
    """
    Schema for a platform type table (e.g. input/platforms/graphx.yaml).

    Usage:
        with open("graphx.yaml") as f:
            raw = yaml.safe_load(f)
        config = PlatformConfigFile.model_validate(raw)
    """

    model_config = ConfigDict(extra="forbid")

    platform: str = Field(min_length=1, description="Platform name, used to select the table")
    description: Optional[str] = Field(default=None)
    root: str = Field(min_length=1, description="Designated root operation type")
    types: Dict[str, TypeConfig] = Field(description="Operation types in registration order")

    @field_validator('platform')
    @classmethod
    def validate_platform_not_placeholder(cls, v: str) -> str:
        return _check_placeholder(v, 'platform')

    @model_validator(mode='after')
    def validate_root(self):
        """The root must be declared and be the only type without parents."""
        if self.root not in self.types:
            raise ValueError(f"root type '{self.root}' is not declared in 'types'")
        if self.types[self.root].parents:
            raise ValueError(f"root type '{self.root}' cannot declare parents")
        orphans = [name for name, entry in self.types.items() if not entry.parents and name != self.root]
        if orphans:
            raise ValueError(f"only the root type may omit parents, found: {', '.join(orphans)}")
        return self

    @model_validator(mode='after')
    def validate_parents_declared(self):
        """Every permitted parent must itself be a declared type."""
        for name, entry in self.types.items():
            for parent in entry.parents:
                if parent not in self.types:
                    raise ValueError(f"type '{name}' declares undeclared parent '{parent}'")
        return self


# =============================================================================
# Execution Descriptor Schema
# =============================================================================


class ExecutionConfigFile(BaseModel):
    """
    Schema for an execution descriptor (execution-log.json).

    Names the platform whose type table applies, where the raw trace lives
    and where the archive goes. Extra keys written by job launchers are kept.
    """

    model_config = ConfigDict(extra="allow")

    platform: str = Field(min_length=1, description="Platform type table to use")
    job_name: Optional[str] = Field(default=None, description="Name of the traced job")
    log_path: str = Field(description="Raw trace file, or directory holding the trace files")
    arc_path: Optional[str] = Field(default=None, description="Archive output file or directory")
    start_time: Optional[int] = Field(default=None, ge=0, description="Job start, epoch milliseconds")
    end_time: Optional[int] = Field(default=None, ge=0, description="Job end, epoch milliseconds")

    @field_validator('log_path', 'arc_path')
    @classmethod
    def validate_path_not_placeholder(cls, v: Optional[str], info) -> Optional[str]:
        return _check_placeholder(v, info.field_name)

    @model_validator(mode='after')
    def validate_time_order(self):
        if self.start_time is not None and self.end_time is not None and self.end_time < self.start_time:
            raise ValueError(f"end_time ({self.end_time}) precedes start_time ({self.start_time})")
        return self

    @property
    def duration_ms(self) -> Optional[int]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time


def load_raw_file(path: Union[str, Path]) -> Any:
    """Load a YAML or JSON file into plain data."""
    import json
    import yaml

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path) as f:
        if path.suffix in ('.yaml', '.yml'):
            return yaml.safe_load(f)
        return json.load(f)


def validate_config_file(
    config_path: Union[str, Path], config_type: str = "auto"
) -> Union[PlatformConfigFile, ExecutionConfigFile]:
    """
    Load and validate a configuration file.

    Args:
        config_path: Path to configuration file (YAML or JSON)
        config_type: Type of config - "platform", "execution", or "auto" (detect from content)

    Returns:
        Validated Pydantic model

    Raises:
        ValueError: If config is invalid with detailed error message
        FileNotFoundError: If config file doesn't exist
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    raw_config = load_raw_file(config_path)

    if raw_config is None:
        raise ValueError(f"Configuration file is empty: {config_path}")

    # Determine config type
    if config_type == "auto":
        if not isinstance(raw_config, dict):
            raise ValueError(f"Cannot auto-detect config type for {config_path}: top level is not a mapping")
        if "types" in raw_config:
            config_type = "platform"
        elif "log_path" in raw_config:
            config_type = "execution"
        else:
            raise ValueError(
                f"Cannot auto-detect config type for {config_path}. "
                f"Specify config_type='platform' or config_type='execution'"
            )

    # Validate with appropriate schema
    try:
        if config_type == "platform":
            return PlatformConfigFile.model_validate(raw_config)
        elif config_type == "execution":
            return ExecutionConfigFile.model_validate(raw_config)
        else:
            raise ValueError(f"Unknown config_type: {config_type}")
    except Exception as e:
        # Re-raise with file context
        raise ValueError(f"Invalid configuration in {config_path}:\n{e}") from e
