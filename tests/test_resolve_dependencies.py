"""
Tests for resolve_dependencies() - graph construction and execution ordering.

Covers:
1. One node per feature with consistent dependencies / dependents edges
2. Deterministic Kahn ordering, ties broken by input order
3. Dangling dependency ids reported, not dropped and not raised
4. Invalid input (duplicates, malformed records) raised before any graph exists
5. Cycle order policy (partial vs empty)
6. JSON-serializable output
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from featuredeps import (
    CycleOrderPolicy,
    DependencyGraphResponse,
    DuplicateFeatureError,
    Feature,
    FeatureStatus,
    InvalidFeatureError,
    InvalidSettingError,
    resolve_dependencies,
)
from featuredeps.config import CYCLE_ORDER_POLICY_ENV


@pytest.fixture
def project_features():
    """A small project: auth <- api <- tests, ui standalone, tests needs all."""
    return [
        {
            "id": "feature-auth",
            "title": "Authentication System",
            "category": "todo",
            "description": "Implement user authentication",
            "status": "completed",
        },
        {
            "id": "feature-api",
            "title": "API Layer",
            "category": "todo",
            "description": "Create API endpoints that require feature-auth",
            "status": "in_progress",
            "dependencies": ["feature-auth"],
        },
        {
            "id": "feature-ui",
            "title": "User Interface",
            "category": "todo",
            "description": "Build UI that depends on #api",
            "status": "pending",
        },
        {
            "id": "feature-tests",
            "title": "Test Suite",
            "category": "todo",
            "description": "Tests for all features",
            "status": "pending",
            "dependencies": ["feature-auth", "feature-api", "feature-ui"],
        },
    ]


def assert_valid_order(graph):
    """Every id once, every dependency strictly before its dependent."""
    order = graph.execution_order
    assert len(order) == len(set(order))
    assert set(order) == set(graph.nodes)
    position = {feature_id: index for index, feature_id in enumerate(order)}
    for feature_id, node in graph.nodes.items():
        for dep_id in node.dependencies:
            if dep_id in graph.nodes:
                assert position[dep_id] < position[feature_id]


class TestGraphNodes:
    """One node per feature, with both edge directions kept consistent."""

    def test_builds_node_for_every_feature(self, project_features):
        graph = resolve_dependencies(project_features)

        assert list(graph.nodes) == [
            "feature-auth", "feature-api", "feature-ui", "feature-tests"
        ]

    def test_dependencies_keep_declared_order(self, project_features):
        graph = resolve_dependencies(project_features)

        assert graph.nodes["feature-auth"].dependencies == []
        assert graph.nodes["feature-api"].dependencies == ["feature-auth"]
        assert graph.nodes["feature-tests"].dependencies == [
            "feature-auth", "feature-api", "feature-ui"
        ]

    def test_dependents_are_inverse_edges(self, project_features):
        graph = resolve_dependencies(project_features)

        assert graph.nodes["feature-auth"].dependents == ["feature-api", "feature-tests"]
        assert graph.nodes["feature-api"].dependents == ["feature-tests"]
        assert graph.nodes["feature-ui"].dependents == ["feature-tests"]
        assert graph.nodes["feature-tests"].dependents == []

    def test_edge_directions_consistent(self, project_features):
        graph = resolve_dependencies(project_features)

        for feature_id, node in graph.nodes.items():
            for dep_id in node.dependencies:
                assert feature_id in graph.nodes[dep_id].dependents
            for dependent_id in node.dependents:
                assert feature_id in graph.nodes[dependent_id].dependencies

    def test_node_carries_title_and_status_snapshot(self, project_features):
        graph = resolve_dependencies(project_features)

        node = graph.nodes["feature-api"]
        assert node.title == "API Layer"
        assert node.status is FeatureStatus.IN_PROGRESS

    def test_graph_does_not_track_later_edits(self, project_features):
        """The graph is a snapshot of the records it was built from."""
        graph = resolve_dependencies(project_features)

        project_features[1]["dependencies"].append("feature-ui")
        project_features[1]["status"] = "completed"

        assert graph.nodes["feature-api"].dependencies == ["feature-auth"]
        assert graph.nodes["feature-api"].status is FeatureStatus.IN_PROGRESS

    def test_accepts_feature_objects(self):
        features = [
            Feature(id="A"),
            Feature(id="B", dependencies=["A"], status=FeatureStatus.COMPLETED),
        ]

        graph = resolve_dependencies(features)

        assert graph.execution_order == ["A", "B"]
        assert graph.nodes["B"].status is FeatureStatus.COMPLETED

    def test_empty_feature_list(self):
        graph = resolve_dependencies([])

        assert graph.nodes == {}
        assert graph.execution_order == []
        assert graph.has_cycles is False
        assert graph.cycles == []

    def test_duplicate_dependency_entries_collapse(self):
        graph = resolve_dependencies([
            {"id": "A"},
            {"id": "B", "dependencies": ["A", "A"]},
        ])

        assert graph.nodes["B"].dependencies == ["A"]
        assert graph.nodes["A"].dependents == ["B"]
        assert graph.execution_order == ["A", "B"]


class TestExecutionOrder:
    """Kahn's algorithm ordering."""

    def test_simple_chain_scenario(self):
        graph = resolve_dependencies([
            {"id": "A", "dependencies": []},
            {"id": "B", "dependencies": ["A"]},
            {"id": "C", "dependencies": ["A", "B"]},
        ])

        assert graph.execution_order == ["A", "B", "C"]
        assert graph.has_cycles is False
        assert graph.cycles == []

    def test_project_order(self, project_features):
        graph = resolve_dependencies(project_features)

        assert_valid_order(graph)
        assert graph.execution_order.index("feature-auth") < graph.execution_order.index("feature-api")
        assert graph.execution_order[-1] == "feature-tests"

    def test_reverse_declared_input_is_sorted(self):
        graph = resolve_dependencies([
            {"id": "C", "dependencies": ["B"]},
            {"id": "B", "dependencies": ["A"]},
            {"id": "A"},
        ])

        assert graph.execution_order == ["A", "B", "C"]

    def test_ties_broken_by_input_order(self):
        graph = resolve_dependencies([
            {"id": "z"},
            {"id": "y"},
            {"id": "x"},
            {"id": "w", "dependencies": ["x"]},
        ])

        assert graph.execution_order == ["z", "y", "x", "w"]

    def test_newly_ready_nodes_follow_input_order(self):
        """Ready nodes are always emitted by input position, not discovery order."""
        graph = resolve_dependencies([
            {"id": "root"},
            {"id": "late", "dependencies": ["root"]},
            {"id": "other"},
            {"id": "early-child", "dependencies": ["other"]},
        ])

        assert graph.execution_order == ["root", "late", "other", "early-child"]

    def test_diamond(self):
        graph = resolve_dependencies([
            {"id": "D", "dependencies": ["B", "C"]},
            {"id": "B", "dependencies": ["A"]},
            {"id": "C", "dependencies": ["A"]},
            {"id": "A"},
        ])

        assert graph.execution_order == ["A", "B", "C", "D"]
        assert_valid_order(graph)

    def test_order_is_deterministic(self, project_features):
        first = resolve_dependencies(project_features).execution_order
        for _ in range(5):
            assert resolve_dependencies(project_features).execution_order == first

    def test_large_chain(self):
        features = [{"id": f"f{i}", "dependencies": [f"f{i - 1}"] if i else []} for i in range(500)]
        features.reverse()

        graph = resolve_dependencies(features)

        assert graph.execution_order == [f"f{i}" for i in range(500)]


class TestDanglingDependencies:
    """Unknown dependency ids are data, never exceptions."""

    def test_dangling_reported(self):
        graph = resolve_dependencies([
            {"id": "A", "dependencies": ["ghost"]},
        ])

        assert graph.dangling == {"A": ["ghost"]}
        assert graph.nodes["A"].dependencies == ["ghost"]
        assert "ghost" not in graph.nodes

    def test_dangling_does_not_block_order(self):
        graph = resolve_dependencies([
            {"id": "A", "dependencies": ["ghost"]},
            {"id": "B", "dependencies": ["A", "phantom"]},
        ])

        assert graph.execution_order == ["A", "B"]
        assert graph.has_cycles is False
        assert graph.dangling == {"A": ["ghost"], "B": ["phantom"]}

    def test_dangling_logs_warning(self, caplog):
        with caplog.at_level("WARNING", logger="featuredeps.graph"):
            resolve_dependencies([{"id": "A", "dependencies": ["ghost"]}])

        assert "ghost" in caplog.text


class TestInvalidInput:
    """Invalid records fail before a graph is returned."""

    def test_duplicate_ids_raise(self):
        with pytest.raises(DuplicateFeatureError) as exc_info:
            resolve_dependencies([
                {"id": "A"},
                {"id": "B"},
                {"id": "A", "dependencies": ["B"]},
            ])

        assert exc_info.value.feature_ids == ["A"]
        assert exc_info.value.details == {"feature_ids": ["A"]}

    def test_missing_id_raises(self):
        with pytest.raises(InvalidFeatureError) as exc_info:
            resolve_dependencies([{"id": "A"}, {"title": "No id"}])

        assert exc_info.value.index == 1
        assert exc_info.value.error_code == "INVALID_FEATURE"

    def test_empty_id_raises(self):
        with pytest.raises(InvalidFeatureError):
            resolve_dependencies([{"id": ""}])

    def test_unknown_status_raises(self):
        with pytest.raises(InvalidFeatureError):
            resolve_dependencies([{"id": "A", "status": "almost-done"}])

    def test_non_mapping_record_raises(self):
        with pytest.raises(InvalidFeatureError):
            resolve_dependencies(["A"])

    def test_dependencies_must_be_a_list(self):
        with pytest.raises(InvalidFeatureError):
            resolve_dependencies([{"id": "A", "dependencies": 5}])

    def test_feature_object_with_string_dependencies_raises(self):
        """A string is not split into one-character dependency ids."""
        with pytest.raises(InvalidFeatureError) as exc_info:
            resolve_dependencies([
                Feature(id="A"),
                Feature(id="B"),
                Feature(id="C", dependencies="AB"),
            ])

        assert exc_info.value.index == 2
        assert exc_info.value.errors[0]["loc"] == ("dependencies",)

    def test_feature_object_with_empty_id_raises(self):
        with pytest.raises(InvalidFeatureError):
            resolve_dependencies([Feature(id="")])

    def test_feature_object_with_none_dependencies(self):
        graph = resolve_dependencies([Feature(id="A", dependencies=None)])

        assert graph.nodes["A"].dependencies == []
        assert graph.execution_order == ["A"]

    def test_feature_object_status_string_normalized(self):
        graph = resolve_dependencies([Feature(id="A", status="in_progress")])

        assert graph.nodes["A"].status is FeatureStatus.IN_PROGRESS
        assert graph.to_dict()["nodes"]["A"]["status"] == "in_progress"

    def test_feature_object_unknown_status_raises(self):
        with pytest.raises(InvalidFeatureError):
            resolve_dependencies([Feature(id="A", status="almost-done")])


class TestCycleOrderPolicy:
    """execution_order content when the graph has cycles."""

    @pytest.fixture
    def cyclic_features(self):
        return [
            {"id": "base"},
            {"id": "A", "dependencies": ["base", "B"]},
            {"id": "B", "dependencies": ["A"]},
            {"id": "C", "dependencies": ["B"]},
            {"id": "free", "dependencies": ["base"]},
        ]

    def test_partial_keeps_acyclic_portion(self, cyclic_features):
        graph = resolve_dependencies(cyclic_features, cycle_order_policy=CycleOrderPolicy.PARTIAL)

        assert graph.has_cycles is True
        assert graph.execution_order == ["base", "free"]

    def test_empty_discards_order(self, cyclic_features):
        graph = resolve_dependencies(cyclic_features, cycle_order_policy="empty")

        assert graph.has_cycles is True
        assert graph.execution_order == []

    def test_policy_argument_case_insensitive(self, cyclic_features):
        graph = resolve_dependencies(cyclic_features, cycle_order_policy=" EMPTY ")

        assert graph.execution_order == []

    def test_unknown_policy_argument_raises(self, cyclic_features):
        with pytest.raises(InvalidSettingError) as exc_info:
            resolve_dependencies(cyclic_features, cycle_order_policy="sometimes")

        error = exc_info.value
        assert error.setting == "cycle_order_policy"
        assert error.to_dict()["error_code"] == "INVALID_SETTING"

    def test_policy_from_environment(self, cyclic_features, monkeypatch):
        monkeypatch.setenv(CYCLE_ORDER_POLICY_ENV, "empty")

        graph = resolve_dependencies(cyclic_features)

        assert graph.execution_order == []

    def test_default_policy_is_partial(self, cyclic_features, monkeypatch):
        monkeypatch.delenv(CYCLE_ORDER_POLICY_ENV, raising=False)

        graph = resolve_dependencies(cyclic_features)

        assert graph.execution_order == ["base", "free"]

    def test_policy_does_not_affect_acyclic_graphs(self):
        graph = resolve_dependencies(
            [{"id": "A"}, {"id": "B", "dependencies": ["A"]}],
            cycle_order_policy=CycleOrderPolicy.EMPTY,
        )

        assert graph.execution_order == ["A", "B"]


class TestSerialization:
    """Graphs must be JSON-serializable for the route layer."""

    def test_to_dict_is_json_serializable(self, project_features):
        graph = resolve_dependencies(project_features)

        data = json.loads(json.dumps(graph.to_dict()))

        assert data["execution_order"] == graph.execution_order
        assert data["has_cycles"] is False
        assert data["nodes"]["feature-api"]["status"] == "in_progress"
        assert data["nodes"]["feature-auth"]["dependents"] == ["feature-api", "feature-tests"]

    def test_response_schema(self):
        graph = resolve_dependencies([
            {"id": "A", "dependencies": ["B"]},
            {"id": "B", "dependencies": ["A"]},
        ])

        response = DependencyGraphResponse.from_graph(graph)
        data = json.loads(response.model_dump_json())

        assert data["has_cycles"] is True
        assert data["cycles"] == [["A", "B", "A"]]
        assert set(data["nodes"]) == {"A", "B"}
        assert data["nodes"]["A"]["status"] == "pending"
