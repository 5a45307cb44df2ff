"""Best-effort recovery of a StructuredFilter from a SQL predicate string.

This is NOT a SQL parser. Independent regular-expression scans pick out:

1. equality: ``ident = 'text'`` / ``ident = 42`` / ``ident = TRUE``
2. membership: ``ident IN (v1, v2, ...)``
3. numeric range: ``ident > 1``, ``>=``, ``<``, ``<=``
4. null test: ``ident IS NULL``

Every hit becomes a `must` condition, in that scan order. AND / OR / NOT and
parentheses are ignored, so disjunctions and negations are flattened into
the conjunction and ``NOT IN`` lists are skipped. The result is only
faithful for simple conjunctive predicates such as those produced by
`to_predicate_string` from a simple filter. Unrecognised text is ignored;
parsing never raises.

String literals are masked before scanning, so operators quoted inside a
literal are not mistaken for conditions.
"""

import re
from typing import List, Optional

from vectorbridge.logger import get_logger
from vectorbridge.schema import FilterCondition, MatchCondition, RangeCondition, StructuredFilter
from vectorbridge.types import FilterValue

__all__ = ("is_conjunctive_predicate", "parse_predicate")

logger = get_logger(__name__)

_LITERAL = re.compile(r"'((?:[^']|'')*)'")
_IDENT = r"(?<![\w.])([A-Za-z_][\w.]*)"
_NUMBER = r"-?\d+(?:\.\d+)?"
_PLACEHOLDER = r"\x00\d+\x00"
_END = r"(?![\w.])"

_EQUALITY = re.compile(rf"{_IDENT}\s*=\s*({_PLACEHOLDER}|{_NUMBER}|TRUE|FALSE){_END}", re.IGNORECASE)
_MEMBERSHIP = re.compile(rf"{_IDENT}\s+(NOT\s+)?IN\s*\(([^)]*)\)", re.IGNORECASE)
_RANGE = re.compile(rf"{_IDENT}\s*(>=|<=|>|<)\s*({_NUMBER}){_END}")
_IS_NULL = re.compile(rf"{_IDENT}\s+IS\s+NULL\b", re.IGNORECASE)
_LOSSY_LOGIC = re.compile(r"\b(?:NOT|OR)\b|<>|!=", re.IGNORECASE)

_NUMBER_FULL = re.compile(rf"{_NUMBER}")
_PLACEHOLDER_FULL = re.compile(r"\x00(\d+)\x00")

_RANGE_BOUNDS = {
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}


def _mask_literals(text: str, literals: List[str]) -> str:
    def replace(match: "re.Match[str]") -> str:
        literals.append(match.group(1).replace("''", "'"))
        return f"\x00{len(literals) - 1}\x00"

    return _LITERAL.sub(replace, text)


def _to_number(token: str) -> float | int:
    return float(token) if "." in token else int(token)


def _coerce_token(token: str, literals: List[str]) -> FilterValue:
    """Turn one masked literal token back into a Python value."""
    token = token.strip()
    placeholder = _PLACEHOLDER_FULL.fullmatch(token)
    if placeholder:
        return literals[int(placeholder.group(1))]
    upper = token.upper()
    if upper == "TRUE":
        return True
    if upper == "FALSE":
        return False
    if upper == "NULL":
        return None
    if _NUMBER_FULL.fullmatch(token):
        return _to_number(token)
    return token


def _membership_values(body: str, literals: List[str]) -> Optional[List[FilterValue]]:
    tokens = [t for t in body.split(",") if t.strip()]
    if not tokens:
        return None
    return [_coerce_token(t, literals) for t in tokens]


def parse_predicate(text: Optional[str]) -> StructuredFilter:
    """Recover `must` conditions from a predicate string.

    Args:
        text: SQL predicate, e.g. ``"status = 'active' AND count IN (1, 2)"``

    Returns:
        StructuredFilter whose `must` list holds every recognised condition;
        empty when nothing was recognised.
    """
    if not text or not text.strip():
        return StructuredFilter()

    literals: List[str] = []
    # NUL delimits placeholders; input must not be able to forge one
    masked = _mask_literals(text.replace("\x00", ""), literals)
    conditions: List[FilterCondition] = []

    for m in _EQUALITY.finditer(masked):
        key, token = m.group(1), m.group(2)
        conditions.append(FilterCondition(key=key, match=MatchCondition(value=_coerce_token(token, literals))))

    for m in _MEMBERSHIP.finditer(masked):
        key, negated, body = m.group(1), m.group(2), m.group(3)
        if negated:
            continue
        values = _membership_values(body, literals)
        if values:
            conditions.append(FilterCondition(key=key, match=MatchCondition(any=values)))

    for m in _RANGE.finditer(masked):
        key, op, token = m.group(1), m.group(2), m.group(3)
        bound = {_RANGE_BOUNDS[op]: _to_number(token)}
        conditions.append(FilterCondition(key=key, range=RangeCondition(**bound)))

    for m in _IS_NULL.finditer(masked):
        conditions.append(FilterCondition(key=m.group(1), is_null=True))

    if not conditions:
        logger.debug("No conditions recovered from predicate %r", text)
    return StructuredFilter(must=conditions)


def is_conjunctive_predicate(text: str) -> bool:
    """True when `text` has no OR, NOT, ``<>`` or ``!=`` outside string literals.

    Only such predicates survive `parse_predicate` with their meaning intact.
    """
    masked = _mask_literals(text.replace("\x00", ""), [])
    return _LOSSY_LOGIC.search(masked) is None
