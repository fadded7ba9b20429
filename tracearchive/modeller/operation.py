"""
Operation model - one traced operation inside an archive tree.

Models are created by the factory from a raw trace record, linked to their
parent by the linking engine and annotated with display artifacts by the
visualization engine.
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

# Metric values are scalars or strings, copied verbatim from the raw record
MetricValue = Union[int, float, bool, str, None]
# An artifact is an ordered list of (name, value) pairs
Artifact = List[Tuple[str, Any]]


class ParentAlreadySet(Exception):
    """Raised when a second parent is attached to a model."""


class ParentNotPermitted(ValueError):
    """Raised when a parent's type is not among the child's permitted parent types."""


class OperationModel:
    """
    A traced operation instance.

    The parent is a non-owning back-reference and can be set only once.
    Children are kept in discovery order.
    """

    def __init__(self, type_name: str, model_id: str, metrics: Optional[Dict[str, MetricValue]] = None):
        self.type = type_name
        self.id = model_id
        self.metrics: Dict[str, MetricValue] = dict(metrics or {})
        self.parent: Optional["OperationModel"] = None
        self.children: List["OperationModel"] = []
        self.artifacts: Dict[str, Artifact] = {}

    def __repr__(self):
        return f"{self.__class__.__name__}(type={self.type!r}, id={self.id!r})"

    @property
    def is_linked(self) -> bool:
        return self.parent is not None

    def attach_to(self, parent: "OperationModel", permitted_parents: Optional[Sequence[str]] = None) -> None:
        """
        Attach this model under ``parent`` and append it to the parent's children.

        Args:
            parent: Model to attach under
            permitted_parents: Parent types allowed for this model's type; not checked when None

        Raises:
            ParentAlreadySet: If this model already has a parent
            ParentNotPermitted: If ``parent.type`` is not in ``permitted_parents``
        """
        if permitted_parents is not None and parent.type not in permitted_parents:
            raise ParentNotPermitted(
                f"{parent.type} is not a permitted parent of {self.type} '{self.id}' (permitted: {', '.join(permitted_parents)})"
            )
        if self.parent is not None:
            raise ParentAlreadySet(f"{self.type} '{self.id}' already has parent {self.parent.type} '{self.parent.id}'")
        self.parent = parent
        parent.children.append(self)

    def has_artifact(self, name: str) -> bool:
        return name in self.artifacts

    def set_artifact(self, name: str, artifact: Artifact) -> None:
        self.artifacts[name] = list(artifact)

    def walk(self, order: str = "pre") -> Iterator["OperationModel"]:
        """Iterate this model and its descendants in pre- or post-order."""
        if order not in ("pre", "post"):
            raise ValueError(f"Unknown traversal order: {order}")
        if order == "pre":
            yield self
        for child in self.children:
            yield from child.walk(order)
        if order == "post":
            yield self

    def descendant_count(self) -> int:
        return sum(1 for _ in self.walk()) - 1

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form of this subtree, for persistence and rendering collaborators."""
        return {
            "type": self.type,
            "id": self.id,
            "metrics": dict(self.metrics),
            "artifacts": {name: [[key, value] for key, value in rows] for name, rows in self.artifacts.items()},
            "children": [child.to_dict() for child in self.children],
        }
