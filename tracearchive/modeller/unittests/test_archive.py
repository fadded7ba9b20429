import json
import os
import tempfile
import unittest

from tracearchive.modeller.archive import ArchiveBuilder, ArchiveStatus, write_archive
from tracearchive.modeller.errors import ErrorKind
from tracearchive.modeller.operation import OperationModel
from tracearchive.modeller.registry import TypeRegistry
from tracearchive.modeller.rules import ChildSummaryVisualization, TableVisualization, UniqueParentLinking
from tracearchive.schema.trace import RawTraceRecord


class JobModel(OperationModel):
    pass


def make_registry(job_fields=("duration",)):
    registry = TypeRegistry("example")
    registry.register_type("Application", [])
    registry.register_type(
        "Job",
        ["Application"],
        model_cls=JobModel,
        linking_rules=[UniqueParentLinking("Application")],
        visualization_rules=[TableVisualization("MainTable", list(job_fields))],
    )
    return registry.freeze()


class TestArchiveBuilder(unittest.TestCase):
    def setUp(self):
        self.records = [
            {"id": "app1", "type": "Application", "metrics": {}},
            {"id": "job1", "type": "Job", "metrics": {"duration": 120}},
        ]

    def test_application_with_one_job(self):
        archive = ArchiveBuilder(make_registry()).build(self.records)
        self.assertEqual(archive.status, ArchiveStatus.COMPLETE)
        self.assertTrue(archive.succeeded)
        self.assertEqual(archive.errors, [])
        self.assertEqual(archive.root.id, "app1")
        self.assertEqual([c.id for c in archive.root.children], ["job1"])
        job = archive.root.children[0]
        self.assertIsInstance(job, JobModel)
        self.assertEqual(job.artifacts["MainTable"], [("duration", 120)])

    def test_two_applications_is_fatal(self):
        records = self.records + [{"id": "app2", "type": "Application", "metrics": {}}]
        archive = ArchiveBuilder(make_registry()).build(records)
        self.assertEqual(archive.status, ArchiveStatus.FAILED)
        self.assertFalse(archive.has_tree)
        self.assertIsNone(archive.root)
        self.assertEqual([e.kind for e in archive.errors], [ErrorKind.NO_ROOT])

    def test_no_application_is_fatal(self):
        archive = ArchiveBuilder(make_registry()).build(self.records[1:])
        self.assertIsNone(archive.root)
        self.assertEqual(len(archive.errors), 1)
        self.assertTrue(archive.errors[0].fatal)

    def test_missing_metric_is_reported(self):
        archive = ArchiveBuilder(make_registry(("duration", "retries"))).build(self.records)
        self.assertEqual(archive.status, ArchiveStatus.PARTIAL)
        job = archive.find("job1")
        self.assertEqual(job.artifacts["MainTable"], [("duration", 120)])
        missing = archive.errors_of(ErrorKind.MISSING_METRIC)
        self.assertEqual(len(missing), 1)
        self.assertEqual((missing[0].node_id, missing[0].metric), ("job1", "retries"))

    def test_unknown_type_skipped(self):
        records = self.records + [{"id": "x1", "type": "Executor", "metrics": {}}]
        archive = ArchiveBuilder(make_registry()).build(records)
        self.assertEqual(archive.status, ArchiveStatus.PARTIAL)
        self.assertEqual(archive.root.descendant_count(), 1)
        unknown = archive.errors_of(ErrorKind.UNKNOWN_TYPE)
        self.assertEqual(len(unknown), 1)
        self.assertEqual(unknown[0].node_id, "x1")
        self.assertEqual(unknown[0].type_name, "Executor")
        self.assertIsNone(archive.find("x1"))

    def test_malformed_record_skipped(self):
        records = self.records + [{"id": "", "metrics": {}}]
        archive = ArchiveBuilder(make_registry()).build(records)
        self.assertTrue(archive.has_tree)
        self.assertEqual(len(archive.errors_of(ErrorKind.UNKNOWN_TYPE)), 1)

    def test_ambiguous_job_parent_keeps_tree(self):
        registry = TypeRegistry("nested")
        registry.register_type("Application", [])
        registry.register_type("Job", ["Application"], linking_rules=[UniqueParentLinking("Application")])
        registry.register_type("Stage", ["Job"], linking_rules=[UniqueParentLinking("Job")])
        records = [
            {"id": "app1", "type": "Application"},
            {"id": "job1", "type": "Job"},
            {"id": "job2", "type": "Job"},
            {"id": "stage1", "type": "Stage"},
        ]
        archive = ArchiveBuilder(registry).build(records)
        self.assertEqual(archive.status, ArchiveStatus.PARTIAL)
        self.assertEqual(archive.root.descendant_count(), 2)
        self.assertEqual([m.id for m in archive.unlinked], ["stage1"])
        ambiguous = archive.errors_of(ErrorKind.AMBIGUOUS_PARENT)
        self.assertEqual(ambiguous[0].candidate_ids, ("job1", "job2"))

    def test_descendant_count_matches_input(self):
        records = [{"id": "app1", "type": "Application"}] + [
            RawTraceRecord(type="Job", id=f"job{i}", metrics={"duration": i}) for i in range(5)
        ]
        registry = TypeRegistry("flat")
        registry.register_type("Application", [])
        registry.register_type("Job", ["Application"], linking_rules=[UniqueParentLinking("Application")])
        archive = ArchiveBuilder(registry).build(records)
        self.assertEqual(archive.errors, [])
        self.assertEqual(archive.root.descendant_count(), len(records) - 1)

    def test_builder_freezes_registry(self):
        registry = TypeRegistry("late")
        registry.register_type("Application", [])
        ArchiveBuilder(registry)
        self.assertTrue(registry.frozen)

    def test_to_dict_and_write(self):
        archive = ArchiveBuilder(make_registry(("duration", "retries"))).build(self.records)
        data = archive.to_dict()
        self.assertEqual(data["platform"], "example")
        self.assertEqual(data["status"], "partial")
        self.assertEqual(data["root"]["children"][0]["artifacts"]["MainTable"], [["duration", 120]])
        self.assertEqual(data["errors"][0]["kind"], "MissingMetric")

        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_archive(archive, os.path.join(tmpdir, "out", "archive.json"))
            with open(path) as f:
                self.assertEqual(json.load(f), data)

    def test_written_archive_is_strict_json_with_non_finite_metrics(self):
        registry = TypeRegistry("example")
        registry.register_type(
            "Application", [], visualization_rules=[ChildSummaryVisualization("JobSummary", "duration")]
        )
        registry.register_type("Job", ["Application"], linking_rules=[UniqueParentLinking("Application")])
        records = [
            {"id": "app1", "type": "Application"},
            {"id": "job1", "type": "Job", "metrics": {"duration": "NaN"}},
            {"id": "job2", "type": "Job", "metrics": {"duration": 4}},
        ]
        archive = ArchiveBuilder(registry).build(records)
        self.assertEqual(archive.root.artifacts["JobSummary"][0], ("count", 1))
        self.assertEqual([(e.kind, e.node_id) for e in archive.errors], [(ErrorKind.MISSING_METRIC, "job1")])

        def reject_constant(token):
            raise ValueError(f"non-standard JSON constant {token}")

        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_archive(archive, os.path.join(tmpdir, "archive.json"))
            with open(path) as f:
                data = json.loads(f.read(), parse_constant=reject_constant)
        self.assertEqual(data["root"]["artifacts"]["JobSummary"][1], ["total", 4.0])


if __name__ == "__main__":
    unittest.main()
