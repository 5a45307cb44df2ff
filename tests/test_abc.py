"""Tests for the VectorStoreAdapter base class."""

import pytest

from vectorbridge.abc import VectorStoreAdapter
from vectorbridge.constants import MATCH_ALL, FilterDialect
from vectorbridge.exceptions import InvalidConfigError, InvalidFieldError, UnsafeOperationError
from vectorbridge.logger import Logger
from vectorbridge.schema import StructuredFilter, VectorPoint
from vectorbridge.settings import settings

from conftest import InMemoryAdapter


class PredicateAdapter(InMemoryAdapter):
    """In-memory adapter that asks for the predicate dialect."""

    filter_dialect = FilterDialect.PREDICATE


class TestConstruction:
    def test_cannot_instantiate_abstract(self):
        with pytest.raises(TypeError):
            VectorStoreAdapter()

    def test_defaults_from_settings(self):
        class Bare(InMemoryAdapter):
            def __init__(self):
                VectorStoreAdapter.__init__(self)

        adapter = Bare()
        assert adapter.collection_name == settings.VECTOR_COLLECTION_NAME
        assert adapter.dim == settings.VECTOR_DIM
        assert adapter.metric == settings.VECTOR_METRIC
        assert isinstance(adapter.logger, Logger)
        assert adapter.logger.name == "Bare"

    def test_unknown_metric(self):
        with pytest.raises(InvalidConfigError) as exc:
            InMemoryAdapter(metric="manhattan")
        assert exc.value.details["value"] == "manhattan"

    def test_metric_passed_through(self):
        assert InMemoryAdapter(metric="euclidean").metric == "euclidean"

    def test_metric_is_case_insensitive(self):
        class Dot(InMemoryAdapter):
            def __init__(self):
                VectorStoreAdapter.__init__(self, dim=4, metric="DOT_PRODUCT")

        assert Dot().metric == "dot_product"


class TestCompileFilter:
    def test_structured_dialect(self, memory_adapter):
        result = memory_adapter.compile_filter({"status": "active"})
        assert isinstance(result, StructuredFilter)

    def test_predicate_dialect(self):
        assert PredicateAdapter().compile_filter({"status": "active"}) == "status = 'active'"


class TestGuardedFilter:
    @pytest.mark.parametrize("empty", [None, "", {}, StructuredFilter(), {"must": []}])
    def test_empty_filter_refused(self, memory_adapter, empty):
        with pytest.raises(UnsafeOperationError) as exc:
            memory_adapter.compile_guarded_filter(empty, "batch_delete")
        assert exc.value.details["operation"] == "batch_delete"

    def test_unparseable_predicate_refused_for_structured_dialect(self, memory_adapter):
        with pytest.raises(UnsafeOperationError):
            memory_adapter.compile_guarded_filter("status <> 'x'", "update_payload")

    @pytest.mark.parametrize(
        "predicate",
        [
            "NOT (status = 'keep')",
            "status = 'a' OR status = 'b'",
            "status = 'a' AND count != 2",
            "owner IS NOT NULL",
            "count NOT IN (1, 2) AND status = 'a'",
        ],
    )
    def test_lossy_predicate_refused_for_structured_dialect(self, memory_adapter, predicate):
        with pytest.raises(UnsafeOperationError) as exc:
            memory_adapter.compile_guarded_filter(predicate, "batch_delete")
        assert exc.value.details["filter"] == predicate

    def test_keywords_inside_literals_allowed(self, memory_adapter):
        result = memory_adapter.compile_guarded_filter("note = 'this OR NOT that'", "batch_delete")
        assert result.must[0].match.value == "this OR NOT that"

    def test_conjunctive_predicate_allowed(self, memory_adapter):
        result = memory_adapter.compile_guarded_filter("status = 'a' AND count IN (1, 2)", "batch_delete")
        assert [c.key for c in result.must] == ["status", "count"]

    def test_lossy_predicate_allowed_for_predicate_dialect(self):
        predicate = "NOT (status = 'keep')"
        assert PredicateAdapter().compile_guarded_filter(predicate, "batch_delete") == predicate

    def test_match_all_allowed(self, memory_adapter):
        result = memory_adapter.compile_guarded_filter(MATCH_ALL, "batch_delete")
        assert result.is_empty()

    def test_match_all_predicate_dialect(self):
        assert PredicateAdapter().compile_guarded_filter(MATCH_ALL, "batch_delete") == MATCH_ALL

    def test_regular_filter_passes(self, memory_adapter):
        result = memory_adapter.compile_guarded_filter({"status": "active"}, "batch_delete")
        assert result.must[0].key == "status"


class TestValidateVector:
    def test_dimension_mismatch(self, memory_adapter):
        with pytest.raises(InvalidFieldError) as exc:
            memory_adapter.validate_vector([0.1, 0.2], "search")
        assert exc.value.details["expected"] == 4
        assert exc.value.details["actual"] == 2

    def test_matching_dimension(self, memory_adapter):
        memory_adapter.validate_vector([0.0] * 4, "search")


class TestEstimatePointsSize:
    def test_counts_vector_payload_and_id(self, memory_adapter):
        point = VectorPoint(id="ab", vector=[0.1, 0.2, 0.3], payload={"k": "v"})
        # 3 * 4 vector bytes + len('{"k": "v"}') + len("ab")
        assert memory_adapter.estimate_points_size([point]) == 12 + 10 + 2

    def test_empty(self, memory_adapter):
        assert memory_adapter.estimate_points_size([]) == 0

    def test_grows_with_points(self, memory_adapter, sample_points):
        one = memory_adapter.estimate_points_size(sample_points[:1])
        assert memory_adapter.estimate_points_size(sample_points) > one
