"""
Linking and visualization rules.

Rules are a closed set of small strategy classes attached to an operation type
at registration time:

- Linking rules select a parent for a child model from a pool of candidates
  (``try_link``).
- Visualization rules derive a named display artifact from a model and its
  already-linked children (``derive``).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import math

from tracearchive.modeller.errors import ArchiveError
from tracearchive.modeller.operation import Artifact, OperationModel


# =============================================================================
# Linking Rules
# =============================================================================


@dataclass(frozen=True)
class LinkOutcome:
    """
    Result of applying one linking rule to one child.

    Exactly one of ``parent`` / ``error`` is set when the rule applied.
    A rule that does not apply to the child (e.g. the child lacks the key it
    matches on) leaves both unset and the next rule is tried.
    """

    applicable: bool
    parent: Optional[OperationModel] = None
    error: Optional[ArchiveError] = None

    @classmethod
    def not_applicable(cls) -> "LinkOutcome":
        return cls(applicable=False)

    @classmethod
    def linked(cls, parent: OperationModel) -> "LinkOutcome":
        return cls(applicable=True, parent=parent)

    @classmethod
    def failed(cls, error: ArchiveError) -> "LinkOutcome":
        return cls(applicable=True, error=error)


class LinkingRule(ABC):
    """Base class for parent selection strategies."""

    kind = ""

    def __init__(self, parent_type: str):
        self.parent_type = parent_type

    def __repr__(self):
        return f"{self.__class__.__name__}({self.describe()})"

    @abstractmethod
    def select(self, child: OperationModel, candidates: Sequence[OperationModel]) -> Optional[List[OperationModel]]:
        """
        Return the candidates matching ``child``, or None if the rule does not apply to it.
        """

    @abstractmethod
    def describe(self) -> str:
        pass

    def try_link(self, child: OperationModel, candidates: Sequence[OperationModel]) -> LinkOutcome:
        """
        Resolve the parent of ``child`` among ``candidates`` (models of ``parent_type``, input order).

        Zero matches yields MissingParent; more than one yields AmbiguousParent
        listing every match. No tie-break is attempted.
        """
        candidates = [c for c in candidates if c.type == self.parent_type and c is not child]
        matches = self.select(child, candidates)
        if matches is None:
            return LinkOutcome.not_applicable()
        if not matches:
            return LinkOutcome.failed(ArchiveError.missing_parent(child.id, self.parent_type))
        if len(matches) > 1:
            return LinkOutcome.failed(
                ArchiveError.ambiguous_parent(child.id, self.parent_type, [m.id for m in matches])
            )
        return LinkOutcome.linked(matches[0])


class UniqueParentLinking(LinkingRule):
    """Exactly one model of the parent type must exist in scope."""

    kind = "unique_parent"

    def select(self, child, candidates):
        return list(candidates)

    def describe(self) -> str:
        return f"unique {self.parent_type}"


class KeyedParentLinking(LinkingRule):
    """
    Match the parent by a shared identifier.

    The child's ``child_key`` metric must equal the parent's ``parent_key``
    metric, or the parent's id when ``parent_key`` is not given. Values are
    compared by their string form, so ``3`` matches ``"3"``. Children without
    ``child_key`` fall through to the next rule.
    """

    kind = "keyed_parent"

    def __init__(self, parent_type: str, child_key: str, parent_key: Optional[str] = None):
        super().__init__(parent_type)
        self.child_key = child_key
        self.parent_key = parent_key

    def _parent_value(self, parent: OperationModel):
        if self.parent_key is None:
            return parent.id
        return parent.metrics.get(self.parent_key)

    def select(self, child, candidates):
        if child.metrics.get(self.child_key) is None:
            return None
        key = str(child.metrics[self.child_key])
        matches = []
        for candidate in candidates:
            value = self._parent_value(candidate)
            if value is not None and str(value) == key:
                matches.append(candidate)
        return matches

    def describe(self) -> str:
        parent_key = self.parent_key or "id"
        return f"{self.parent_type} where {self.parent_type}.{parent_key} == {self.child_key}"


def _as_number(value) -> Optional[float]:
    # Non-finite values ("NaN", "inf", "1e400") count as absent
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


class TimeContainmentLinking(LinkingRule):
    """
    Match the parent whose [start, end] interval contains the child's.

    Children without numeric bounds fall through to the next rule; candidates
    without numeric bounds are never matched.
    """

    kind = "time_containment"

    def __init__(self, parent_type: str, start_metric: str = "StartTime", end_metric: str = "EndTime"):
        super().__init__(parent_type)
        self.start_metric = start_metric
        self.end_metric = end_metric

    def _interval(self, model: OperationModel) -> Optional[Tuple[float, float]]:
        start = _as_number(model.metrics.get(self.start_metric))
        end = _as_number(model.metrics.get(self.end_metric))
        if start is None or end is None:
            return None
        return start, end

    def select(self, child, candidates):
        interval = self._interval(child)
        if interval is None:
            return None
        start, end = interval
        matches = []
        for candidate in candidates:
            bounds = self._interval(candidate)
            if bounds is not None and bounds[0] <= start and end <= bounds[1]:
                matches.append(candidate)
        return matches

    def describe(self) -> str:
        return f"{self.parent_type} containing [{self.start_metric}, {self.end_metric}]"


# =============================================================================
# Visualization Rules
# =============================================================================


class VisualizationRule(ABC):
    """Base class for artifact derivations."""

    kind = ""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r}: {self.describe()})"

    @abstractmethod
    def derive(self, model: OperationModel) -> Tuple[Artifact, List[ArchiveError]]:
        """Return the artifact for ``model`` and a MissingMetric error per absent metric."""

    @abstractmethod
    def describe(self) -> str:
        pass


class TableVisualization(VisualizationRule):
    """Project an ordered list of the model's own metrics into a table."""

    kind = "table"

    def __init__(self, name: str, fields: Sequence[str]):
        super().__init__(name)
        self.fields = list(fields)

    def derive(self, model):
        rows = []
        errors = []
        for field_name in self.fields:
            if field_name in model.metrics:
                rows.append((field_name, model.metrics[field_name]))
            else:
                errors.append(ArchiveError.missing_metric(model.id, field_name, model.type))
        return rows, errors

    def describe(self) -> str:
        return f"table of {', '.join(self.fields) if self.fields else '(no fields)'}"


class ChildSummaryVisualization(VisualizationRule):
    """
    Aggregate one numeric metric across the model's linked children.

    Produces count/total/mean/min/max rows. Children lacking the metric, or
    holding a non-numeric value, are reported as missing and left out.
    """

    kind = "child_summary"

    def __init__(self, name: str, metric: str, child_type: Optional[str] = None):
        super().__init__(name)
        self.metric = metric
        self.child_type = child_type

    def derive(self, model):
        values = []
        errors = []
        for child in model.children:
            if self.child_type is not None and child.type != self.child_type:
                continue
            value = _as_number(child.metrics.get(self.metric))
            if value is None:
                errors.append(ArchiveError.missing_metric(child.id, self.metric, child.type))
                continue
            values.append(value)

        rows = [("count", len(values))]
        if values:
            total = sum(values)
            rows.extend(
                [
                    ("total", total),
                    ("mean", total / len(values)),
                    ("min", min(values)),
                    ("max", max(values)),
                ]
            )
        return rows, errors

    def describe(self) -> str:
        scope = f"{self.child_type} children" if self.child_type else "children"
        return f"summary of {self.metric} over {scope}"
