"""
Archive builder - read, instantiate, link, derive and assemble in one pass.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import json
import logging

from pydantic import ValidationError

from tracearchive.modeller.errors import ArchiveError, ErrorKind, UnknownType
from tracearchive.modeller.factory import ModelFactory, RawRecord
from tracearchive.modeller.linking import LinkingEngine
from tracearchive.modeller.operation import OperationModel
from tracearchive.modeller.registry import TypeRegistry
from tracearchive.modeller.visualization import VisualizationEngine
from tracearchive.schema.trace import RawTraceRecord

log = logging.getLogger(__name__)


class ArchiveStatus(Enum):
    """Outcome of an archive build."""

    COMPLETE = "complete"  # Tree built, no errors
    PARTIAL = "partial"  # Tree built, non-fatal errors recorded
    FAILED = "failed"  # No tree (NoRoot)


@dataclass
class Archive:
    """
    Linked and annotated trace tree plus the errors met while building it.

    Callers must inspect ``errors``: a PARTIAL archive is structurally valid
    but may be missing records, links or artifact fields.
    """

    root: Optional[OperationModel]
    errors: List[ArchiveError] = field(default_factory=list)
    unlinked: List[OperationModel] = field(default_factory=list)
    platform: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> ArchiveStatus:
        if self.root is None:
            return ArchiveStatus.FAILED
        if self.errors:
            return ArchiveStatus.PARTIAL
        return ArchiveStatus.COMPLETE

    @property
    def succeeded(self) -> bool:
        return self.status == ArchiveStatus.COMPLETE

    @property
    def has_tree(self) -> bool:
        return self.root is not None

    def errors_of(self, kind: ErrorKind) -> List[ArchiveError]:
        return [error for error in self.errors if error.kind == kind]

    def find(self, model_id: str) -> Optional[OperationModel]:
        """Find a model by id in the tree or among the unlinked models."""
        candidates = list(self.root.walk()) if self.root is not None else []
        for model in self.unlinked:
            candidates.extend(model.walk())
        for model in candidates:
            if model.id == model_id:
                return model
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "status": self.status.value,
            "metadata": dict(self.metadata),
            "root": self.root.to_dict() if self.root is not None else None,
            "unlinked": [model.to_dict() for model in self.unlinked],
            "errors": [error.to_dict() for error in self.errors],
        }


class ArchiveBuilder:
    """
    Orchestrate factory, linking and visualization over a batch of raw records.

    The only fatal condition is NoRoot: the returned archive then has no tree
    and a single error. Every other problem is accumulated in the archive's
    error list in phase order (records, linking, derivation).
    """

    def __init__(self, registry: TypeRegistry):
        if not registry.frozen:
            registry.freeze()
        self.registry = registry
        self.factory = ModelFactory(registry)
        self.linker = LinkingEngine(registry)
        self.visualizer = VisualizationEngine(registry)

    def _coerce(self, record: RawRecord) -> RawTraceRecord:
        if isinstance(record, RawTraceRecord):
            return record
        return RawTraceRecord.model_validate(record)

    def _create_models(self, records: Iterable[RawRecord]):
        models = []
        errors = []
        for index, raw in enumerate(records):
            try:
                record = self._coerce(raw)
            except ValidationError as e:
                raw_id = raw.get("id") if isinstance(raw, dict) else None
                raw_type = raw.get("type") if isinstance(raw, dict) else None
                error = ArchiveError(
                    kind=ErrorKind.UNKNOWN_TYPE,
                    message=f"Record #{index} is malformed, record skipped: {e.error_count()} validation error(s)",
                    node_id=None if raw_id is None else str(raw_id),
                    type_name=None if raw_type is None else str(raw_type),
                )
                log.warning(error.message)
                errors.append(error)
                continue
            try:
                models.append(self.factory.create(record))
            except UnknownType:
                error = ArchiveError.unknown_type(record.id, record.type)
                log.warning(error.message)
                errors.append(error)
        return models, errors

    def build(self, records: Iterable[RawRecord]) -> Archive:
        """
        Build an archive from raw trace records.

        Args:
            records: RawTraceRecord values or mappings with type, id and metrics

        Returns:
            The archive; it has no tree only when the root type is absent or repeated
        """
        models, errors = self._create_models(records)
        log.info(f"Created {len(models)} models for platform '{self.registry.platform}' ({len(errors)} skipped)")

        linked = self.linker.link(models)
        if not linked.has_root:
            return Archive(root=None, errors=linked.errors, platform=self.registry.platform)

        errors.extend(linked.errors)
        errors.extend(self.visualizer.derive(linked.root))

        archive = Archive(root=linked.root, errors=errors, unlinked=linked.unlinked, platform=self.registry.platform)
        log.info(f"Archive built with status '{archive.status.value}' and {len(errors)} error(s)")
        return archive


def write_archive(archive: Archive, path: Union[str, Path], indent: int = 2) -> Path:
    """Write the archive's plain-data form as JSON and return the path written."""
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(archive.to_dict(), f, indent=indent, default=str)
    log.info(f"Archive written to {path}")
    return path
