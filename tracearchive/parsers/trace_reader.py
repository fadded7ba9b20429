"""
Raw trace reader.

Locates trace files and turns them into validated RawTraceRecord values.

Supported layouts:
- JSON / YAML: a list of records, or a mapping with a "records" list
- JSON lines (.jsonl): one record (or record fragment) per line
- Job logs (.log): JSON fragments following a marker token on otherwise free-form
  lines; other lines are ignored, whatever their encoding

Fragments sharing an id are merged in file order, later metric values winning,
so a launcher may log one metric per line.
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from tracearchive.parsers.schemas import ParseResult, ParseStatus, load_raw_file
from tracearchive.schema.trace import RawTraceRecord

log = logging.getLogger(__name__)

DEFAULT_MARKER = "TRACE"
STRUCTURED_SUFFIXES = ('.json', '.yaml', '.yml')
LINE_SUFFIXES = ('.jsonl', '.log')


class RawTraceReader:
    """
    Reader for raw trace files.

    Handles:
    - Locating trace files (single file or directory)
    - Parsing records per file layout
    - Merging record fragments by id
    - Reporting invalid entries without aborting the read
    """

    def __init__(self, trace_path: Union[str, Path], marker: str = DEFAULT_MARKER):
        """
        Initialize reader.

        Args:
            trace_path: Trace file, or directory holding trace files
            marker: Token preceding the JSON payload on .log lines
        """
        self.trace_path = Path(trace_path)
        self.marker = marker
        # Marker as a whole token, directly followed by the JSON object
        self._marker_re = re.compile(rf"(?<!\w){re.escape(marker)}(?!\w)[\s:-]*(?=\{{)")

    def find_trace_files(self) -> List[Path]:
        """Trace files under trace_path, sorted by name."""
        if self.trace_path.is_file():
            return [self.trace_path]
        if not self.trace_path.is_dir():
            log.warning(f"Trace path not found: {self.trace_path}")
            return []
        files = [
            p
            for p in sorted(self.trace_path.iterdir())
            if p.is_file() and p.suffix in STRUCTURED_SUFFIXES + LINE_SUFFIXES
        ]
        log.info(f"Found {len(files)} trace file(s) under {self.trace_path}")
        return files

    def _structured_entries(self, path: Path) -> Iterator[Tuple[str, object]]:
        data = load_raw_file(path)
        if data is None:
            return
        if isinstance(data, dict):
            data = data.get("records")
        if not isinstance(data, list):
            raise ValueError(f"{path.name}: expected a list of records or a 'records' list")
        for i, entry in enumerate(data):
            yield f"{path.name}[{i}]", entry

    def _line_entries(self, path: Path) -> Iterator[Tuple[str, object]]:
        use_marker = path.suffix == '.log'
        with open(path, 'rb') as f:
            for lineno, raw in enumerate(f, start=1):
                where = f"{path.name}:{lineno}"
                try:
                    line = raw.decode('utf-8')
                    decode_error = None
                except UnicodeDecodeError as e:
                    line = raw.decode('utf-8', errors='replace')
                    decode_error = e
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                if use_marker:
                    match = self._marker_re.search(line)
                    if match is None:
                        continue
                    line = line[match.end():]
                if decode_error is not None:
                    yield where, ValueError(f"undecodable bytes ({decode_error.reason} at byte {decode_error.start})")
                    continue
                try:
                    yield where, json.loads(line)
                except json.JSONDecodeError as e:
                    yield where, e

    def _entries(self, path: Path) -> Iterator[Tuple[str, object]]:
        if path.suffix in LINE_SUFFIXES:
            return self._line_entries(path)
        return self._structured_entries(path)

    def read(self) -> ParseResult[RawTraceRecord]:
        """
        Read all trace files.

        Returns:
            ParseResult with merged records in first-seen order; invalid
            entries are listed in ``errors`` and the status is PARTIAL
        """
        files = self.find_trace_files()
        if not files:
            return ParseResult(status=ParseStatus.FAILED, errors=[f"No trace files found at {self.trace_path}"])

        merged: Dict[str, RawTraceRecord] = {}
        errors = []
        warnings = []
        fragments = 0

        for path in files:
            try:
                entries = list(self._entries(path))
            except (OSError, ValueError, yaml.YAMLError) as e:
                errors.append(f"{path.name}: {e}")
                continue

            for where, entry in entries:
                if isinstance(entry, json.JSONDecodeError):
                    errors.append(f"{where}: invalid JSON ({entry})")
                    continue
                if isinstance(entry, Exception):
                    errors.append(f"{where}: {entry}")
                    continue
                try:
                    record = RawTraceRecord.model_validate(entry)
                except ValidationError as e:
                    errors.append(f"{where}: {e.error_count()} validation error(s): {e.errors()[0]['msg']}")
                    continue
                fragments += 1
                existing = merged.get(record.id)
                if existing is None:
                    merged[record.id] = record
                    continue
                try:
                    merged[record.id] = existing.merged_with(record)
                except ValueError as e:
                    errors.append(f"{where}: {e}")

        records = list(merged.values())
        if fragments > len(records):
            warnings.append(f"Merged {fragments} fragments into {len(records)} records")

        if not records:
            status = ParseStatus.FAILED if errors else ParseStatus.NO_DATA
        elif errors:
            status = ParseStatus.PARTIAL
        else:
            status = ParseStatus.SUCCESS

        for error in errors:
            log.warning(error)
        log.info(f"Read {len(records)} trace records from {len(files)} file(s), status '{status.value}'")

        return ParseResult(
            status=status,
            results=records,
            warnings=warnings,
            errors=errors,
            metadata={"trace_path": str(self.trace_path), "files": [str(p) for p in files]},
        )


def read_trace(trace_path: Union[str, Path], marker: Optional[str] = None) -> ParseResult[RawTraceRecord]:
    """Convenience wrapper around RawTraceReader.read()."""
    reader = RawTraceReader(trace_path) if marker is None else RawTraceReader(trace_path, marker=marker)
    return reader.read()
