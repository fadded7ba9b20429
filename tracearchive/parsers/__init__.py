"""
Parsers module - trace ingestion & configuration validation.

Parsers are responsible for:
- Reading raw trace files into validated RawTraceRecord values
- Validating platform type tables and execution descriptors (fail fast)

Parsers should NOT:
- Link records or derive artifacts (see tracearchive.modeller)
- Decide whether an archive is acceptable
"""

from tracearchive.parsers.schemas import (
    # Result containers
    ParseResult,
    ParseStatus,
    # Config file schemas
    PlatformConfigFile,
    TypeConfig,
    ExecutionConfigFile,
    # Validation helper
    validate_config_file,
)

# Parser implementations
from tracearchive.parsers.trace_reader import RawTraceReader, read_trace

__all__ = [
    # Result containers
    "ParseResult",
    "ParseStatus",
    # Config file schemas
    "PlatformConfigFile",
    "TypeConfig",
    "ExecutionConfigFile",
    # Validation helper
    "validate_config_file",
    # Parser implementations
    "RawTraceReader",
    "read_trace",
]
