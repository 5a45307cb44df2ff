"""Qdrant filter compiler.

Maps a StructuredFilter onto `qdrant_client.models.Filter`.

Qdrant specifics:
- MatchValue only takes bool/int/str; float equality becomes a closed Range
- MatchAny / MatchExcept only take homogeneous str or int lists; other lists
  are expanded into a nested Filter of single-value matches
- null equality maps to IsNullCondition
- has_id addresses point ids, the condition key is ignored
- a condition with no recognised shape is dropped (looser, never stricter)
"""

from typing import Any, List, Optional

from qdrant_client import models

from vectorbridge.constants import FilterDialect
from vectorbridge.schema import FilterCondition, MatchCondition, StructuredFilter
from vectorbridge.filters.translator import to_structured
from vectorbridge.types import CanonicalFilterInput, FilterValue

from .base import BaseFilterCompiler

__all__ = (
    "QdrantCompiler",
    "qdrant_compiler",
    "to_qdrant_filter",
)


def _is_homogeneous(values: List[FilterValue]) -> bool:
    if all(isinstance(v, str) for v in values):
        return True
    return all(isinstance(v, int) and not isinstance(v, bool) for v in values)


class QdrantCompiler(BaseFilterCompiler):
    """Compile StructuredFilter trees into Qdrant `Filter` objects."""

    dialect = FilterDialect.STRUCTURED

    def to_native(self, node: StructuredFilter) -> Optional[models.Filter]:
        must = self._compile_group(node.must)
        should = self._compile_group(node.should)
        must_not = self._compile_group(node.must_not)
        if not (must or should or must_not):
            return None
        return models.Filter(
            must=must or None,
            should=should or None,
            must_not=must_not or None,
        )

    def to_expr(self, node: StructuredFilter) -> str:
        native = self.to_native(node)
        return "" if native is None else native.model_dump_json(exclude_none=True)

    def _compile_group(self, conditions: List[FilterCondition]) -> List[Any]:
        compiled = []
        for condition in conditions:
            result = self.condition_to_native(condition)
            if result is not None:
                compiled.append(result)
        return compiled

    def condition_to_native(self, condition: FilterCondition) -> Optional[Any]:
        key = condition.key

        if condition.match is not None:
            return self._match_to_native(key, condition.match)

        if condition.range is not None:
            bounds = dict(condition.range.bounds())
            if not bounds:
                return None
            return models.FieldCondition(key=key, range=models.Range(**bounds))

        if condition.is_null:
            return models.IsNullCondition(is_null=models.PayloadField(key=key))

        if condition.is_empty:
            return models.IsEmptyCondition(is_empty=models.PayloadField(key=key))

        if condition.has_id:
            return models.HasIdCondition(has_id=list(condition.has_id))

        return None

    def _match_to_native(self, key: str, match: MatchCondition) -> Optional[Any]:
        if match.has_value:
            return self._value_to_native(key, match.value)

        if match.any:
            if _is_homogeneous(match.any):
                return models.FieldCondition(key=key, match=models.MatchAny(any=list(match.any)))
            return models.Filter(should=[self._value_to_native(key, v) for v in match.any])

        if match.except_:
            if _is_homogeneous(match.except_):
                return models.FieldCondition(key=key, match=models.MatchExcept(**{"except": list(match.except_)}))
            return models.Filter(must_not=[self._value_to_native(key, v) for v in match.except_])

        if match.text:
            return models.FieldCondition(key=key, match=models.MatchText(text=match.text))

        return None

    def _value_to_native(self, key: str, value: FilterValue) -> Any:
        if value is None:
            return models.IsNullCondition(is_null=models.PayloadField(key=key))
        if isinstance(value, float):
            return models.FieldCondition(key=key, range=models.Range(gte=value, lte=value))
        return models.FieldCondition(key=key, match=models.MatchValue(value=value))


qdrant_compiler = QdrantCompiler()


def to_qdrant_filter(filter_input: CanonicalFilterInput) -> Optional[models.Filter]:
    """Compile any canonical filter input into a Qdrant `Filter`; None when unconstrained."""
    return qdrant_compiler.to_native(to_structured(filter_input))
