"""
Archive error taxonomy.

Malformed input never escapes the builder as an exception: every problem is
recorded as an ArchiveError value and returned alongside the archive.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ErrorKind(Enum):
    """Kind of an archive build error."""

    UNKNOWN_TYPE = "UnknownType"
    MISSING_PARENT = "MissingParent"
    AMBIGUOUS_PARENT = "AmbiguousParent"
    NO_ROOT = "NoRoot"
    MISSING_METRIC = "MissingMetric"

    @property
    def fatal(self) -> bool:
        return self is ErrorKind.NO_ROOT


class UnknownType(KeyError):
    """Raised when a type identifier was never registered."""

    def __init__(self, type_name: str):
        super().__init__(type_name)
        self.type_name = type_name

    def __str__(self):
        return f"Unknown operation type: {self.type_name!r}"


@dataclass(frozen=True)
class ArchiveError:
    """One error recorded while building an archive."""

    kind: ErrorKind
    message: str
    node_id: Optional[str] = None
    type_name: Optional[str] = None
    expected_type: Optional[str] = None
    candidate_ids: Tuple[str, ...] = field(default_factory=tuple)
    metric: Optional[str] = None

    @property
    def fatal(self) -> bool:
        return self.kind.fatal

    @classmethod
    def unknown_type(cls, node_id: str, type_name: str) -> "ArchiveError":
        return cls(
            kind=ErrorKind.UNKNOWN_TYPE,
            message=f"Record '{node_id}' has unregistered type '{type_name}', record skipped",
            node_id=node_id,
            type_name=type_name,
        )

    @classmethod
    def missing_parent(cls, node_id: str, expected_type: str) -> "ArchiveError":
        return cls(
            kind=ErrorKind.MISSING_PARENT,
            message=f"No {expected_type} parent found for '{node_id}'",
            node_id=node_id,
            expected_type=expected_type,
        )

    @classmethod
    def foreign_parent(cls, node_id: str, expected_type: str, parent_type: str, parent_id: str) -> "ArchiveError":
        """MissingParent for a model that arrived linked under a type it may not have as parent."""
        return cls(
            kind=ErrorKind.MISSING_PARENT,
            message=f"'{node_id}' is linked to {parent_type} '{parent_id}', which is not a permitted parent",
            node_id=node_id,
            expected_type=expected_type,
        )

    @classmethod
    def ambiguous_parent(cls, node_id: str, expected_type: str, candidate_ids) -> "ArchiveError":
        candidate_ids = tuple(candidate_ids)
        return cls(
            kind=ErrorKind.AMBIGUOUS_PARENT,
            message=f"{len(candidate_ids)} {expected_type} candidates for '{node_id}': {', '.join(candidate_ids)}",
            node_id=node_id,
            expected_type=expected_type,
            candidate_ids=candidate_ids,
        )

    @classmethod
    def no_root(cls, root_type: str, candidate_ids) -> "ArchiveError":
        candidate_ids = tuple(candidate_ids)
        return cls(
            kind=ErrorKind.NO_ROOT,
            message=f"Expected exactly one {root_type} record, found {len(candidate_ids)}",
            expected_type=root_type,
            candidate_ids=candidate_ids,
        )

    @classmethod
    def missing_metric(cls, node_id: str, metric: str, type_name: Optional[str] = None) -> "ArchiveError":
        return cls(
            kind=ErrorKind.MISSING_METRIC,
            message=f"Metric '{metric}' missing on '{node_id}'",
            node_id=node_id,
            type_name=type_name,
            metric=metric,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"kind": self.kind.value, "message": self.message}
        for key in ("node_id", "type_name", "expected_type", "metric"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.candidate_ids:
            data["candidate_ids"] = list(self.candidate_ids)
        return data
