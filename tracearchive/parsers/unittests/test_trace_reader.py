import json
import os
import tempfile
import unittest

from tracearchive.parsers.schemas import ParseStatus
from tracearchive.parsers.trace_reader import RawTraceReader, read_trace


class TestRawTraceReader(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def _write(self, name, content):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, "w") as f:
            f.write(content)
        return path

    def test_json_list(self):
        path = self._write(
            "trace.json",
            json.dumps(
                [
                    {"type": "Application", "id": "app1"},
                    {"type": "Job", "id": "job1", "metrics": {"duration": 120}},
                ]
            ),
        )
        result = RawTraceReader(path).read()
        self.assertTrue(result.succeeded)
        self.assertEqual([r.id for r in result.results], ["app1", "job1"])
        self.assertEqual(result.results[1].metrics["duration"], 120)

    def test_yaml_records_mapping(self):
        path = self._write(
            "trace.yaml",
            "records:\n  - {type: Application, id: app1}\n  - {type: Job, id: 3, metrics: {duration: 1.5}}\n",
        )
        result = read_trace(path)
        self.assertEqual(result.status, ParseStatus.SUCCESS)
        self.assertEqual(result.results[1].id, "3")

    def test_jsonl_fragments_merged(self):
        lines = [
            {"type": "Job", "id": "job1", "metrics": {"StartTime": 10}},
            {"type": "Application", "id": "app1"},
            {"type": "Job", "id": "job1", "metrics": {"EndTime": 20, "StartTime": 11}},
        ]
        path = self._write("trace.jsonl", "\n".join(json.dumps(line) for line in lines) + "\n")
        result = RawTraceReader(path).read()
        self.assertEqual(result.status, ParseStatus.SUCCESS)
        self.assertEqual([r.id for r in result.results], ["job1", "app1"])
        self.assertEqual(result.results[0].metrics, {"StartTime": 11, "EndTime": 20})
        self.assertEqual(len(result.warnings), 1)

    def test_log_marker_lines(self):
        content = "\n".join(
            [
                "16/11/09 16:41:31 INFO SparkContext: Running Spark version 1.6.1",
                '16/11/09 16:41:32 INFO Granula: TRACE {"type": "Application", "id": "app1"}',
                '16/11/09 16:41:40 INFO Granula: TRACE - {"type": "Job", "id": "job1", "metrics": {"duration": 8}}',
                "16/11/09 16:41:41 WARN Executor: lost heartbeat",
            ]
        )
        path = self._write("driver.log", content)
        result = RawTraceReader(path).read()
        self.assertEqual(result.status, ParseStatus.SUCCESS)
        self.assertEqual([r.type for r in result.results], ["Application", "Job"])

    def test_log_undecodable_bytes_outside_marker_lines(self):
        path = os.path.join(self.tmpdir.name, "driver.log")
        with open(path, "wb") as f:
            f.write(b'16/11/09 16:41:32 INFO Granula: TRACE {"type": "Application", "id": "app1"}\n')
            f.write(b"16/11/09 16:41:33 INFO executor said \xff\xfe garbage\n")
            f.write(b'16/11/09 16:41:40 INFO Granula: TRACE {"type": "Job", "id": "job1"}\n')
        result = RawTraceReader(path).read()
        self.assertEqual(result.status, ParseStatus.SUCCESS)
        self.assertEqual([r.id for r in result.results], ["app1", "job1"])

    def test_log_undecodable_marker_line_reported(self):
        path = os.path.join(self.tmpdir.name, "driver.log")
        with open(path, "wb") as f:
            f.write(b'TRACE {"type": "Application", "id": "app1"}\n')
            f.write(b'TRACE {"type": "Job", "id": "job\xff"}\n')
        result = RawTraceReader(path).read()
        self.assertEqual(result.status, ParseStatus.PARTIAL)
        self.assertEqual([r.id for r in result.results], ["app1"])
        self.assertEqual(len(result.errors), 1)
        self.assertTrue(result.errors[0].startswith("driver.log:2: undecodable bytes"))

    def test_log_marker_matched_as_token(self):
        content = "\n".join(
            [
                "16/11/09 16:41:30 TRACE BlockManager: dropping block rdd_4_1 {cached}",
                "16/11/09 16:41:31 ERROR Executor: STACKTRACE {see below}",
                "16/11/09 16:41:31 INFO Granula: TRACED 3 blocks",
                '16/11/09 16:41:32 INFO Granula: TRACE {"type": "Application", "id": "app1"}',
            ]
        )
        path = self._write("driver.log", content)
        result = RawTraceReader(path).read()
        self.assertEqual(result.status, ParseStatus.SUCCESS)
        self.assertEqual(result.errors, [])
        self.assertEqual([r.id for r in result.results], ["app1"])

    def test_custom_marker(self):
        path = self._write("driver.log", 'GRANULA {"type": "Application", "id": "app1"}\n')
        self.assertEqual(len(read_trace(path, marker="GRANULA").results), 1)
        self.assertEqual(read_trace(path).status, ParseStatus.NO_DATA)

    def test_invalid_entries_reported(self):
        content = "\n".join(
            [
                json.dumps({"type": "Application", "id": "app1"}),
                "{not json",
                json.dumps({"id": "job1"}),
                json.dumps({"type": "Stage", "id": "app1"}),
            ]
        )
        path = self._write("trace.jsonl", content)
        result = RawTraceReader(path).read()
        self.assertEqual(result.status, ParseStatus.PARTIAL)
        self.assertEqual(len(result.results), 1)
        self.assertEqual(len(result.errors), 3)
        self.assertIn("trace.jsonl:2", result.errors[0])

    def test_directory_of_files(self):
        self._write("a.json", json.dumps([{"type": "Application", "id": "app1"}]))
        self._write("b.jsonl", json.dumps({"type": "Job", "id": "job1"}) + "\n")
        self._write("notes.txt", "ignored")
        result = RawTraceReader(self.tmpdir.name).read()
        self.assertEqual([r.id for r in result.results], ["app1", "job1"])
        self.assertEqual(len(result.metadata["files"]), 2)

    def test_bad_structured_file(self):
        path = self._write("trace.json", json.dumps({"items": []}))
        result = RawTraceReader(path).read()
        self.assertEqual(result.status, ParseStatus.FAILED)
        self.assertFalse(result.has_results)

    def test_missing_path(self):
        result = RawTraceReader(os.path.join(self.tmpdir.name, "absent")).read()
        self.assertEqual(result.status, ParseStatus.FAILED)
        self.assertIn("No trace files", result.errors[0])

    def test_empty_file_is_no_data(self):
        path = self._write("trace.yaml", "")
        result = RawTraceReader(path).read()
        self.assertEqual(result.status, ParseStatus.NO_DATA)


if __name__ == "__main__":
    unittest.main()
