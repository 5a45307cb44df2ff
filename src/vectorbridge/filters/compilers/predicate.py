"""SQL predicate compiler.

Compiles structured and simple filters into a flat SQL boolean predicate,
the body of a `WHERE` clause.

Group layout:
- must: `(c1 AND c2 ...)`
- should: `(c1 OR c2 ...)`
- must_not: `NOT (c1 OR c2 ...)`
- groups joined with ` AND `; an empty filter compiles to ``""``

Conditions with no recognised shape compile to the tautology ``1=1``: the
compiled predicate may be looser than the structured input, never stricter.
"""

from typing import List, Optional, Tuple

from vectorbridge.constants import FilterDialect
from vectorbridge.schema import FilterCondition, MatchCondition, RangeCondition, SimpleFilter, StructuredFilter

from .base import BaseFilterCompiler
from .utils import format_like_contains, format_sql_list, format_sql_value

__all__ = (
    "PredicateCompiler",
    "predicate_compiler",
)

TAUTOLOGY = "1=1"


class PredicateCompiler(BaseFilterCompiler):
    """Compile filters into SQL predicate strings.

    Keys are emitted verbatim; literals always go through `format_sql_value`.
    """

    dialect = FilterDialect.PREDICATE

    _RANGE_OPS = {
        "gt": ">",
        "gte": ">=",
        "lt": "<",
        "lte": "<=",
    }

    def to_native(self, node: StructuredFilter) -> str:
        clauses: List[str] = []
        if node.must:
            clauses.append("(" + self._join_group(node.must, "AND") + ")")
        if node.should:
            clauses.append("(" + self._join_group(node.should, "OR") + ")")
        if node.must_not:
            clauses.append("NOT (" + self._join_group(node.must_not, "OR") + ")")
        return " AND ".join(clauses)

    def to_expr(self, node: StructuredFilter) -> str:
        return self.to_native(node)

    def simple_to_native(self, node: SimpleFilter) -> str:
        """Compile a flat field -> value filter into ANDed equality/membership tests."""
        parts: List[str] = []
        for key, value in node.items():
            if isinstance(value, list):
                parts.append(f"{key} IN {format_sql_list(value)}")
            elif value is None:
                parts.append(f"{key} IS NULL")
            else:
                parts.append(f"{key} = {format_sql_value(value)}")
        return " AND ".join(parts)

    def condition_to_sql(self, condition: FilterCondition) -> str:
        """Compile a single condition to its sub-predicate."""
        return self._compile_condition(condition)[0]

    def _join_group(self, conditions: List[FilterCondition], joiner: str) -> str:
        compiled = [self._compile_condition(c) for c in conditions]
        parts: List[str] = []
        for sql, inner_op in compiled:
            # Keep precedence when a compound sub-predicate joins a group built with another operator
            if inner_op is not None and inner_op != joiner and len(compiled) > 1:
                sql = f"({sql})"
            parts.append(sql)
        return f" {joiner} ".join(parts)

    def _compile_condition(self, condition: FilterCondition) -> Tuple[str, Optional[str]]:
        """Return the sub-predicate and its top-level operator, if compound."""
        key = condition.key

        if condition.match is not None:
            return self._match_to_sql(key, condition.match), None

        if condition.range is not None:
            return self._range_to_sql(key, condition.range)

        if condition.is_null:
            return f"{key} IS NULL", None

        if condition.is_empty:
            return f"{key} IS NULL OR {key} = ''", "OR"

        if condition.has_id:
            return f"{key} IN {format_sql_list(condition.has_id)}", None

        return TAUTOLOGY, None

    def _match_to_sql(self, key: str, match: MatchCondition) -> str:
        if match.has_value:
            if match.value is None:
                return f"{key} IS NULL"
            return f"{key} = {format_sql_value(match.value)}"

        if match.any:
            return f"{key} IN {format_sql_list(match.any)}"

        if match.except_:
            return f"{key} NOT IN {format_sql_list(match.except_)}"

        if match.text:
            return f"{key} LIKE {format_like_contains(match.text)}"

        return TAUTOLOGY

    def _range_to_sql(self, key: str, range_: RangeCondition) -> Tuple[str, Optional[str]]:
        bounds = range_.bounds()
        if not bounds:
            return TAUTOLOGY, None
        parts = [f"{key} {self._RANGE_OPS[name]} {format_sql_value(value)}" for name, value in bounds]
        return " AND ".join(parts), ("AND" if len(parts) > 1 else None)


predicate_compiler = PredicateCompiler()
