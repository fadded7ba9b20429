"""
Modeller - model composition and rule engine.

Turns raw trace records into one linked, annotated archive tree:
- TypeRegistry: legal type hierarchy and per-type rule sets
- ModelFactory: raw record -> unlinked OperationModel
- LinkingEngine: parent resolution with linking rules
- VisualizationEngine: display artifacts with visualization rules
- ArchiveBuilder: one-pass orchestration and error accumulation

The modeller does NOT:
- Read trace files (see tracearchive.parsers)
- Persist archives beyond the JSON glue in write_archive
"""

from tracearchive.modeller.archive import Archive, ArchiveBuilder, ArchiveStatus, write_archive
from tracearchive.modeller.errors import ArchiveError, ErrorKind, UnknownType
from tracearchive.modeller.factory import ModelFactory
from tracearchive.modeller.linking import LinkingEngine, LinkResult
from tracearchive.modeller.operation import OperationModel, ParentAlreadySet, ParentNotPermitted
from tracearchive.modeller.registry import RegistrationError, RegistryFrozen, TypeEntry, TypeRegistry
from tracearchive.modeller.rules import (
    ChildSummaryVisualization,
    KeyedParentLinking,
    LinkingRule,
    LinkOutcome,
    TableVisualization,
    TimeContainmentLinking,
    UniqueParentLinking,
    VisualizationRule,
)
from tracearchive.modeller.visualization import VisualizationEngine

__all__ = [
    # Archive
    "Archive",
    "ArchiveBuilder",
    "ArchiveStatus",
    "write_archive",
    # Errors
    "ArchiveError",
    "ErrorKind",
    "UnknownType",
    "ParentAlreadySet",
    "ParentNotPermitted",
    "RegistrationError",
    "RegistryFrozen",
    # Engines
    "ModelFactory",
    "LinkingEngine",
    "LinkResult",
    "VisualizationEngine",
    # Model and registry
    "OperationModel",
    "TypeEntry",
    "TypeRegistry",
    # Rules
    "LinkingRule",
    "LinkOutcome",
    "UniqueParentLinking",
    "KeyedParentLinking",
    "TimeContainmentLinking",
    "VisualizationRule",
    "TableVisualization",
    "ChildSummaryVisualization",
]
