import sys

from .base import SubcommandPlugin
from tracearchive.modeller.archive import ArchiveBuilder, ArchiveStatus, write_archive
from tracearchive.modeller.execution import archive_output_path, build_execution_archive, load_execution
from tracearchive.modeller.platform import load_platform
from tracearchive.parsers.schemas import ParseStatus
from tracearchive.parsers.trace_reader import RawTraceReader


class BuildPlugin(SubcommandPlugin):
    def get_name(self):
        return "build"

    def get_order(self):
        return 0

    def get_parser(self, subparsers):
        parser = subparsers.add_parser("build", help="Build an archive from a raw trace")
        source = parser.add_mutually_exclusive_group(required=True)
        source.add_argument("--execution", help="Execution descriptor (JSON/YAML) naming platform, trace and output")
        source.add_argument("--trace", help="Trace file or directory of trace files")
        parser.add_argument("--platform", help="Platform name or type table path (required with --trace)")
        parser.add_argument("--output", help="Archive JSON output path (overrides the descriptor's arc_path)")
        parser.add_argument("--strict", action="store_true", help="Exit non-zero when the archive has any error")
        parser.add_argument("--max-errors", type=int, default=20, help="Number of errors to print (default: 20)")
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
Build Commands:
  tracearchive build --trace run/trace.jsonl --platform graphx --output arc.json
  tracearchive build --execution run/execution-log.json
  tracearchive build --execution run/execution-log.json --strict"""

    def _build_from_trace(self, args):
        if not args.platform:
            print("Error: --platform is required with --trace")
            sys.exit(2)
        registry = load_platform(args.platform)
        parsed = RawTraceReader(args.trace).read()
        for error in parsed.errors:
            print(f"  trace: {error}")
        if parsed.status == ParseStatus.FAILED:
            print(f"Error: no usable trace records in {args.trace}")
            return None
        return ArchiveBuilder(registry).build(parsed.results)

    def _build_from_execution(self, args):
        execution = load_execution(args.execution)
        if args.output:
            execution = execution.model_copy(update={"arc_path": args.output})
            args.output = None
        archive = build_execution_archive(execution)
        output = archive_output_path(execution)
        if output is not None and archive.has_tree:
            print(f"Archive written to {output}")
        return archive

    def print_summary(self, archive, max_errors):
        print(f"Platform: {archive.platform}")
        print(f"Status:   {archive.status.value}")
        if archive.root is not None:
            print(f"Root:     {archive.root.type} '{archive.root.id}' ({archive.root.descendant_count()} descendants)")
        print(f"Unlinked: {len(archive.unlinked)}")
        print(f"Errors:   {len(archive.errors)}")
        for error in archive.errors[:max_errors]:
            print(f"  [{error.kind.value}] {error.message}")
        if len(archive.errors) > max_errors:
            print(f"  ... {len(archive.errors) - max_errors} more")

    def run(self, args):
        try:
            if args.execution:
                archive = self._build_from_execution(args)
            else:
                archive = self._build_from_trace(args)
        except (KeyError, ValueError, FileNotFoundError) as e:
            print(f"Error: {e}")
            return 1

        if archive is None:
            return 1

        self.print_summary(archive, args.max_errors)

        if args.output and archive.has_tree:
            path = write_archive(archive, args.output)
            print(f"Archive written to {path}")

        if archive.status == ArchiveStatus.FAILED:
            return 1
        if args.strict and archive.status == ArchiveStatus.PARTIAL:
            return 1
        return 0
