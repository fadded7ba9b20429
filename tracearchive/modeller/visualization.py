"""
Visualization engine - derives display artifacts over a linked tree.
"""

from typing import List
import logging

from tracearchive.modeller.errors import ArchiveError
from tracearchive.modeller.operation import OperationModel
from tracearchive.modeller.registry import TypeRegistry

log = logging.getLogger(__name__)


class VisualizationEngine:
    """
    Apply each node's visualization rules, children before parents.

    An artifact already present on a node is never recomputed, so deriving
    the same tree twice leaves the artifact mappings unchanged.
    """

    def __init__(self, registry: TypeRegistry):
        self.registry = registry

    def derive(self, root: OperationModel) -> List[ArchiveError]:
        """
        Derive artifacts for every node reachable from ``root``.

        Returns:
            MissingMetric errors for metrics referenced by a rule but absent on a node
        """
        errors = []
        derived = 0
        for node in root.walk("post"):
            entry = self.registry.lookup(node.type)
            for rule in entry.visualization_rules:
                if node.has_artifact(rule.name):
                    continue
                artifact, missing = rule.derive(node)
                node.set_artifact(rule.name, artifact)
                derived += 1
                for error in missing:
                    log.warning(f"{rule.name}: {error.message}")
                errors.extend(missing)
        log.info(f"Derived {derived} artifacts under {root.type} '{root.id}'")
        return errors
