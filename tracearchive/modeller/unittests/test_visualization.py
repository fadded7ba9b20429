import unittest

from tracearchive.modeller.errors import ErrorKind
from tracearchive.modeller.operation import OperationModel
from tracearchive.modeller.registry import TypeRegistry
from tracearchive.modeller.rules import ChildSummaryVisualization, TableVisualization, UniqueParentLinking
from tracearchive.modeller.visualization import VisualizationEngine


def make_registry():
    registry = TypeRegistry("viz")
    registry.register_type(
        "Application",
        [],
        visualization_rules=[
            TableVisualization("MainTable", ["name"]),
            ChildSummaryVisualization("JobSummary", "duration"),
        ],
    )
    registry.register_type(
        "Job",
        ["Application"],
        linking_rules=[UniqueParentLinking("Application")],
        visualization_rules=[TableVisualization("MainTable", ["duration", "retries"])],
    )
    return registry.freeze()


class TestVisualizationEngine(unittest.TestCase):
    def setUp(self):
        self.engine = VisualizationEngine(make_registry())
        self.app = OperationModel("Application", "app1", {"name": "bfs"})
        self.job1 = OperationModel("Job", "job1", {"duration": 120, "retries": 1})
        self.job2 = OperationModel("Job", "job2", {"duration": 80})
        self.job1.attach_to(self.app)
        self.job2.attach_to(self.app)

    def test_derives_every_node(self):
        errors = self.engine.derive(self.app)
        self.assertEqual(self.app.artifacts["MainTable"], [("name", "bfs")])
        self.assertEqual(dict(self.app.artifacts["JobSummary"])["total"], 200.0)
        self.assertEqual(self.job1.artifacts["MainTable"], [("duration", 120), ("retries", 1)])
        self.assertEqual(self.job2.artifacts["MainTable"], [("duration", 80)])
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].kind, ErrorKind.MISSING_METRIC)
        self.assertEqual((errors[0].node_id, errors[0].metric), ("job2", "retries"))

    def test_derivation_is_idempotent(self):
        self.engine.derive(self.app)
        first = {m.id: dict(m.artifacts) for m in self.app.walk()}
        errors = self.engine.derive(self.app)
        second = {m.id: dict(m.artifacts) for m in self.app.walk()}
        self.assertEqual(first, second)
        self.assertEqual(errors, [])

    def test_existing_artifact_not_recomputed(self):
        self.job1.set_artifact("MainTable", [("custom", True)])
        self.engine.derive(self.app)
        self.assertEqual(self.job1.artifacts["MainTable"], [("custom", True)])


if __name__ == "__main__":
    unittest.main()
