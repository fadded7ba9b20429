"""
Linking engine - resolves parent/child relationships across all models.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging

from tracearchive.modeller.errors import ArchiveError
from tracearchive.modeller.operation import OperationModel
from tracearchive.modeller.registry import TypeRegistry

log = logging.getLogger(__name__)


@dataclass
class LinkResult:
    """Linked tree root plus everything that could not be attached."""

    root: Optional[OperationModel]
    errors: List[ArchiveError] = field(default_factory=list)
    unlinked: List[OperationModel] = field(default_factory=list)

    @property
    def has_root(self) -> bool:
        return self.root is not None


class LinkingEngine:
    """
    Attach every model to its parent according to its type's linking rules.

    Types are processed parents-first, models of one type in input order, and
    each model's rules in declaration order. The first rule that applies to a
    model decides its outcome, so a keyed rule declared before a uniqueness
    rule wins whenever the child carries the key.
    """

    def __init__(self, registry: TypeRegistry):
        self.registry = registry

    def _group_by_type(self, models: Sequence[OperationModel]):
        groups: Dict[str, List[OperationModel]] = {name: [] for name in self.registry.types()}
        errors = []
        for model in models:
            if model.type not in self.registry:
                error = ArchiveError.unknown_type(model.id, model.type)
                log.warning(error.message)
                errors.append(error)
                continue
            groups[model.type].append(model)
        return groups, errors

    def link(self, models: Sequence[OperationModel]) -> LinkResult:
        """
        Link ``models`` into a single tree.

        Returns a result without a root and with a single NoRoot error when the
        input holds zero or several models of the root type; nothing is linked
        in that case. Otherwise models of unregistered types are skipped with an
        UnknownType error, and children that cannot be linked are reported as
        MissingParent/AmbiguousParent and returned in ``unlinked``.
        """
        root_type = self.registry.root_type
        groups, errors = self._group_by_type(models)

        roots = groups[root_type]
        if len(roots) != 1:
            error = ArchiveError.no_root(root_type, [m.id for m in roots])
            log.error(error.message)
            return LinkResult(root=None, errors=[error])
        root = roots[0]

        linked = 0
        failed = set()
        for type_name in self.registry.topological_order():
            entry = self.registry.lookup(type_name)
            if entry.is_root:
                continue
            for child in groups[type_name]:
                if child.is_linked:
                    error = self._check_existing_parent(child, entry)
                else:
                    error = self._link_child(child, entry, groups)
                if error is not None:
                    log.warning(error.message)
                    errors.append(error)
                    failed.add(id(child))
                else:
                    linked += 1

        unlinked = [
            m
            for m in models
            if m is not root and m.type in self.registry and (not m.is_linked or id(m) in failed)
        ]
        total = sum(len(group) for group in groups.values()) - 1
        log.info(f"Linked {linked} of {total} models under {root.type} '{root.id}', {len(unlinked)} unlinked")
        return LinkResult(root=root, errors=errors, unlinked=unlinked)

    def _check_existing_parent(self, child, entry) -> Optional[ArchiveError]:
        # parentage is write-once; a parent set before linking is only validated
        if child.parent.type in entry.parents:
            return None
        return ArchiveError.foreign_parent(child.id, entry.parents[0], child.parent.type, child.parent.id)

    def _link_child(self, child, entry, groups) -> Optional[ArchiveError]:
        for rule in entry.linking_rules:
            outcome = rule.try_link(child, groups.get(rule.parent_type, []))
            if not outcome.applicable:
                continue
            if outcome.error is not None:
                return outcome.error
            child.attach_to(outcome.parent, entry.parents)
            log.debug(f"Linked {child.type} '{child.id}' to {outcome.parent.type} '{outcome.parent.id}'")
            return None
        return ArchiveError.missing_parent(child.id, entry.parents[0])
