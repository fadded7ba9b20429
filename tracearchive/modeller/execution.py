"""
Execution archiving - build the archive described by an execution descriptor.
"""

from pathlib import Path
from typing import Optional, Union
import logging

from tracearchive.modeller.archive import Archive, ArchiveBuilder, write_archive
from tracearchive.modeller.platform import load_platform
from tracearchive.parsers.schemas import ExecutionConfigFile, ParseStatus, validate_config_file
from tracearchive.parsers.trace_reader import RawTraceReader

log = logging.getLogger(__name__)

ARCHIVE_FILE_NAME = "archive.json"


def load_execution(path: Union[str, Path]) -> ExecutionConfigFile:
    """
    Load an execution descriptor; relative log/archive paths resolve from its directory.
    """
    path = Path(path)
    execution = validate_config_file(path, config_type="execution")
    base = path.parent
    updates = {}
    if not Path(execution.log_path).is_absolute():
        updates["log_path"] = str(base / execution.log_path)
    if execution.arc_path and not Path(execution.arc_path).is_absolute():
        updates["arc_path"] = str(base / execution.arc_path)
    return execution.model_copy(update=updates) if updates else execution


def archive_output_path(execution: ExecutionConfigFile) -> Optional[Path]:
    """Archive file for the execution; arc_path may name a file or a directory."""
    if not execution.arc_path:
        return None
    path = Path(execution.arc_path)
    if path.suffix == ".json":
        return path
    return path / ARCHIVE_FILE_NAME


def build_execution_archive(execution: ExecutionConfigFile, write: bool = True) -> Archive:
    """
    Read the execution's trace, build its archive and optionally write it.

    Trace read problems are kept in the archive metadata; the archive build
    itself follows the builder's error policy.

    Raises:
        KeyError: If the execution names an unknown platform
    """
    registry = load_platform(execution.platform)
    parsed = RawTraceReader(execution.log_path).read()
    if parsed.status == ParseStatus.FAILED:
        log.error(f"No usable trace records for job '{execution.job_name}': {parsed.errors[:3]}")

    archive = ArchiveBuilder(registry).build(parsed.results)
    archive.metadata.update(
        {
            "job_name": execution.job_name,
            "platform": execution.platform,
            "log_path": execution.log_path,
            "start_time": execution.start_time,
            "end_time": execution.end_time,
            "duration_ms": execution.duration_ms,
            "trace_status": parsed.status.value,
            "trace_errors": list(parsed.errors),
        }
    )

    output = archive_output_path(execution)
    if write and output is not None and archive.has_tree:
        write_archive(archive, output)
    return archive
