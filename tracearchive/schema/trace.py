# std libs
from typing import Annotated, Dict, Union
import math

# pydantic libs
from pydantic import BaseModel, ConfigDict, Field, field_validator

NonEmptyStr = Annotated[str, Field(min_length=1)]
MetricValue = Union[bool, int, float, str, None]


class RawTraceRecord(BaseModel):
    """
    One raw trace record as produced by a trace reader.

    Identifiers given as numbers in the log are normalized to strings so that
    linking compares like with like.
    """

    model_config = ConfigDict(frozen=True)

    type: NonEmptyStr
    id: NonEmptyStr
    metrics: Dict[str, MetricValue] = Field(default_factory=dict)

    @field_validator('type', 'id', mode='before')
    @classmethod
    def normalize_identifier(cls, v):
        """Accept numeric identifiers, strip whitespace."""
        if isinstance(v, bool):
            return v
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('metrics', mode='before')
    @classmethod
    def normalize_metrics(cls, v):
        """Treat a null metrics mapping as empty."""
        if v is None:
            return {}
        return v

    @field_validator('metrics')
    @classmethod
    def validate_no_nan_inf(cls, v: Dict[str, MetricValue]) -> Dict[str, MetricValue]:
        """NaN/Inf metric values cannot be rendered or serialized, reject them."""
        for name, value in v.items():
            if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
                raise ValueError(f'metric {name} cannot be NaN/Inf, got {value}')
        return v

    def merged_with(self, other: "RawTraceRecord") -> "RawTraceRecord":
        """Return a record with ``other``'s metrics layered over this one's."""
        if other.id != self.id:
            raise ValueError(f"cannot merge records '{self.id}' and '{other.id}'")
        if other.type != self.type:
            raise ValueError(f"record '{self.id}' declared as both '{self.type}' and '{other.type}'")
        return RawTraceRecord(type=self.type, id=self.id, metrics={**self.metrics, **other.metrics})
