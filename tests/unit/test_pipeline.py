"""Unit tests for the graph import pipeline."""

from unittest.mock import MagicMock, patch

import pytest

from breeze.graph.algorithms import CommunityDetectionError
from breeze.models import CommunitySummary, FileRecord
from breeze.pipeline.ingestion import GraphImportPipeline, PipelineStepError
from breeze.validation import ValidationError


@pytest.fixture
def pipeline(mock_client):
    """Pipeline whose step collaborators are mocks sharing one call recorder."""
    pipeline = GraphImportPipeline(mock_client, "proj1")
    recorder = MagicMock()
    pipeline.schema = recorder.schema
    pipeline.upserter = recorder.upserter
    pipeline.aggregator = recorder.aggregator
    pipeline.detector = recorder.detector

    recorder.upserter.upsert_nodes.return_value = 2
    recorder.upserter.upsert_edges.return_value = 1
    recorder.aggregator.recompute_degree_counts.return_value = 2
    recorder.detector.detect_communities.return_value = CommunitySummary(community_count=1)
    pipeline.recorder = recorder
    return pipeline


def _records():
    return [FileRecord(path="x.js", import_files=["y.js"]), FileRecord(path="y.js")]


def _step_names(recorder):
    return [name for name, _args, _kwargs in recorder.mock_calls]


class TestRun:
    """Test step sequencing."""

    def test_steps_run_in_order(self, pipeline):
        pipeline.run(_records())

        assert _step_names(pipeline.recorder) == [
            "schema.ensure_constraints",
            "upserter.upsert_nodes",
            "upserter.upsert_edges",
            "aggregator.recompute_degree_counts",
            "detector.detect_communities",
        ]

    def test_result_summary(self, pipeline):
        result = pipeline.run(_records())

        assert result.project_scope == "proj1"
        assert result.records == 2
        assert result.nodes_upserted == 2
        assert result.import_pairs == 1
        assert result.nodes_counted == 2
        assert result.communities.community_count == 1
        assert result.steps_completed == [
            "normalize",
            "ensure_schema",
            "upsert_nodes",
            "upsert_edges",
            "recompute_aggregates",
            "detect_communities",
        ]

    def test_records_normalized_before_upsert(self, pipeline):
        pipeline.run(_records())

        records, scope = pipeline.recorder.upserter.upsert_nodes.call_args[0]
        assert scope == "proj1"
        assert all(r.id for r in records)
        assert all(r.description == "" for r in records)

    def test_communities_can_be_disabled(self, mock_client):
        pipeline = GraphImportPipeline(mock_client, "proj1", detect_communities=False)
        with patch.object(pipeline, "detector") as detector, \
                patch.object(pipeline, "schema"), \
                patch.object(pipeline, "upserter"), \
                patch.object(pipeline, "aggregator"):
            result = pipeline.run(_records())

        detector.detect_communities.assert_not_called()
        assert result.communities is None
        assert "detect_communities" not in result.steps_completed

    def test_empty_input_touches_nothing(self, pipeline, mock_client):
        result = pipeline.run([])

        assert pipeline.recorder.mock_calls == []
        mock_client.execute_query.assert_not_called()
        assert result.steps_completed == []


class TestFailures:
    """Test step failure reporting."""

    def test_malformed_records_stop_before_writes(self, pipeline):
        with pytest.raises(PipelineStepError) as exc_info:
            pipeline.run([FileRecord(path="a.js"), FileRecord(path="a.js")])

        assert exc_info.value.step == "normalize"
        assert pipeline.recorder.mock_calls == []

    def test_edge_failure_stops_later_steps(self, pipeline):
        pipeline.recorder.upserter.upsert_edges.side_effect = RuntimeError("deadlock")

        with pytest.raises(PipelineStepError) as exc_info:
            pipeline.run(_records())

        error = exc_info.value
        assert error.step == "upsert_edges"
        assert isinstance(error.error, RuntimeError)
        assert error.__cause__ is error.error
        assert error.clustering_stale is False
        pipeline.recorder.aggregator.recompute_degree_counts.assert_not_called()
        pipeline.recorder.detector.detect_communities.assert_not_called()

    def test_schema_failure_reported(self, pipeline):
        pipeline.recorder.schema.ensure_constraints.side_effect = RuntimeError("unreachable")

        with pytest.raises(PipelineStepError, match="ensure_schema"):
            pipeline.run(_records())
        pipeline.recorder.upserter.upsert_nodes.assert_not_called()

    def test_community_failure_marks_clustering_stale(self, pipeline):
        pipeline.recorder.detector.detect_communities.side_effect = CommunityDetectionError("GDS missing")

        with pytest.raises(PipelineStepError) as exc_info:
            pipeline.run(_records())

        assert exc_info.value.step == "detect_communities"
        assert exc_info.value.clustering_stale is True
        pipeline.recorder.aggregator.recompute_degree_counts.assert_called_once()


class TestConstruction:
    def test_blank_project_scope_rejected(self, mock_client):
        with pytest.raises(ValidationError):
            GraphImportPipeline(mock_client, "  ")

    def test_database_shared_by_steps(self, mock_client):
        pipeline = GraphImportPipeline(mock_client, "proj1", database="imports")

        assert pipeline.schema.database == "imports"
        assert pipeline.upserter.database == "imports"
        assert pipeline.aggregator.database == "imports"
        assert pipeline.detector.database == "imports"
