"""
Type registry - the legal hierarchy of operation types and their rule sets.

Populated once at startup, then frozen. After ``freeze()`` the registry is
read-only and can be shared by any number of builders.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Type
import logging

from tracearchive.modeller.errors import UnknownType
from tracearchive.modeller.operation import OperationModel
from tracearchive.modeller.rules import LinkingRule, VisualizationRule

log = logging.getLogger(__name__)


class RegistrationError(ValueError):
    """Raised when the type table is inconsistent."""


class RegistryFrozen(RuntimeError):
    """Raised when registering into a frozen registry."""


@dataclass(frozen=True)
class TypeEntry:
    """Everything the engines need to know about one operation type."""

    name: str
    parents: Tuple[str, ...] = field(default_factory=tuple)
    model_cls: Type[OperationModel] = OperationModel
    linking_rules: Tuple[LinkingRule, ...] = field(default_factory=tuple)
    visualization_rules: Tuple[VisualizationRule, ...] = field(default_factory=tuple)

    @property
    def is_root(self) -> bool:
        return not self.parents


class TypeRegistry:
    """
    Lookup table from operation type to its entry.

    Usage:
        registry = TypeRegistry("graphx")
        registry.register_type("Application", [])
        registry.register_type("Job", ["Application"], linking_rules=[UniqueParentLinking("Application")])
        registry.freeze()
    """

    def __init__(self, platform: str = "default"):
        self.platform = platform
        self._entries: Dict[str, TypeEntry] = {}
        self._order: List[str] = []
        self._frozen = False
        self._root: Optional[str] = None
        self._topological: Tuple[str, ...] = ()

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._entries

    def __len__(self):
        return len(self._entries)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def root_type(self) -> str:
        if self._root is None:
            raise RegistrationError(f"Registry '{self.platform}' has not been frozen, root type unknown")
        return self._root

    def register_type(
        self,
        type_name: str,
        parents: Sequence[str],
        model_cls: Type[OperationModel] = OperationModel,
        linking_rules: Sequence[LinkingRule] = (),
        visualization_rules: Sequence[VisualizationRule] = (),
    ) -> TypeEntry:
        """
        Declare an operation type.

        Args:
            type_name: Operation type identifier
            parents: Permitted parent types (empty for the root type)
            model_cls: Model class instantiated for records of this type
            linking_rules: Linking rules, applied in declaration order
            visualization_rules: Visualization rules, applied in declaration order

        Returns:
            The registered entry

        Raises:
            RegistryFrozen: If the registry was already frozen
            RegistrationError: If the type is already registered or a rule is inconsistent
        """
        if self._frozen:
            raise RegistryFrozen(f"Registry '{self.platform}' is frozen, cannot register '{type_name}'")
        if not type_name:
            raise RegistrationError("Operation type name cannot be empty")
        if type_name in self._entries:
            raise RegistrationError(f"Operation type '{type_name}' is already registered")
        if not (isinstance(model_cls, type) and issubclass(model_cls, OperationModel)):
            raise RegistrationError(f"model_cls for '{type_name}' must be an OperationModel subclass")

        parents = tuple(parents)
        if type_name in parents:
            raise RegistrationError(f"Operation type '{type_name}' cannot be its own parent")
        for rule in linking_rules:
            if rule.parent_type not in parents:
                raise RegistrationError(
                    f"Linking rule {rule!r} of '{type_name}' targets '{rule.parent_type}', "
                    f"which is not a permitted parent ({', '.join(parents) or 'none'})"
                )

        names = [rule.name for rule in visualization_rules]
        if len(names) != len(set(names)):
            raise RegistrationError(f"Duplicate visualization artifact names on '{type_name}': {names}")

        entry = TypeEntry(
            name=type_name,
            parents=parents,
            model_cls=model_cls,
            linking_rules=tuple(linking_rules),
            visualization_rules=tuple(visualization_rules),
        )
        self._entries[type_name] = entry
        self._order.append(type_name)
        return entry

    def freeze(self) -> "TypeRegistry":
        """
        Validate the whole table and forbid further registration.

        Raises:
            RegistrationError: If the hierarchy has no single root, references an
                unregistered parent, or contains a cycle
        """
        if self._frozen:
            return self

        roots = [name for name in self._order if self._entries[name].is_root]
        if len(roots) != 1:
            raise RegistrationError(
                f"Registry '{self.platform}' must declare exactly one root type, found {len(roots)}: {roots}"
            )

        for name in self._order:
            for parent in self._entries[name].parents:
                if parent not in self._entries:
                    raise RegistrationError(f"'{name}' declares unregistered parent type '{parent}'")

        self._root = roots[0]
        self._topological = self._sort_types()
        self._frozen = True
        log.debug(f"Registry '{self.platform}' frozen with {len(self._order)} types, root '{self._root}'")
        return self

    def _sort_types(self) -> Tuple[str, ...]:
        # Parents first, registration order among ready types
        remaining = {name: set(self._entries[name].parents) for name in self._order}
        ordered = []
        while remaining:
            ready = [name for name in self._order if name in remaining and not remaining[name]]
            if not ready:
                raise RegistrationError(f"Cycle in type hierarchy among: {sorted(remaining)}")
            for name in ready:
                ordered.append(name)
                del remaining[name]
            for parents in remaining.values():
                parents.difference_update(ready)
        return tuple(ordered)

    def lookup(self, type_name: str) -> TypeEntry:
        """
        Return the entry for ``type_name``.

        Raises:
            UnknownType: If the type was never registered
        """
        try:
            return self._entries[type_name]
        except KeyError:
            raise UnknownType(type_name) from None

    def types(self) -> List[str]:
        """Registered type names in registration order."""
        return list(self._order)

    def topological_order(self) -> Tuple[str, ...]:
        """Type names with every parent type before its children."""
        if not self._frozen:
            raise RegistrationError(f"Registry '{self.platform}' must be frozen before ordering types")
        return self._topological

    def child_types(self, type_name: str) -> List[str]:
        """Types that declare ``type_name`` as a permitted parent."""
        self.lookup(type_name)
        return [name for name in self._order if type_name in self._entries[name].parents]
