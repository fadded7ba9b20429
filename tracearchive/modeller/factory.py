"""
Model factory - turns raw trace records into unlinked operation models.
"""

from typing import Any, Mapping, Union

from tracearchive.modeller.operation import OperationModel
from tracearchive.modeller.registry import TypeRegistry
from tracearchive.schema.trace import RawTraceRecord

RawRecord = Union[RawTraceRecord, Mapping[str, Any]]


def _record_fields(record: RawRecord):
    if isinstance(record, RawTraceRecord):
        return record.type, record.id, record.metrics
    return record["type"], str(record["id"]), record.get("metrics") or {}


class ModelFactory:
    """Instantiate the registered model class for a record's type."""

    def __init__(self, registry: TypeRegistry):
        self.registry = registry

    def create(self, record: RawRecord) -> OperationModel:
        """
        Create an unlinked model from ``record``.

        Metrics are copied verbatim. The model is not linked.

        Raises:
            UnknownType: If the record's type was never registered
        """
        type_name, model_id, metrics = _record_fields(record)
        entry = self.registry.lookup(type_name)
        return entry.model_cls(type_name, model_id, dict(metrics))
