"""Pydantic schemas for raw trace data."""

from .trace import (
    MetricValue,
    RawTraceRecord,
)

__all__ = [
    'MetricValue',
    'RawTraceRecord',
]
