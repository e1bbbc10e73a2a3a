"""Operator vocabulary shared by the query, sort and delta translators."""

from __future__ import annotations

from enum import Enum

from pymongo import ASCENDING, DESCENDING

OPERATOR_SIGIL = "$"


class QueryOperator(str, Enum):
    """Merlin filter operators that have a different name in MongoDB."""

    NOT_IN = "$notIn"
    NOT = "$not"


class LogicalOperator(str, Enum):
    """Operators whose value is a list of nested filter trees."""

    AND = "$and"
    OR = "$or"
    NOR = "$nor"


class DeltaOperator(str, Enum):
    """Structural delta operators understood by the delta translator."""

    SET = "$set"
    UNSET = "$unset"
    PUSH = "$push"
    PULL = "$pull"


class SortDirection(str, Enum):
    """Sort direction tokens accepted in a Merlin sort specification."""

    ASC = "asc"
    DESC = "desc"

    @property
    def mongo(self) -> int:
        return ASCENDING if self is SortDirection.ASC else DESCENDING


QUERY_OPERATOR_ALIASES: dict[str, str] = {
    QueryOperator.NOT_IN.value: "$nin",
    QueryOperator.NOT.value: "$ne",
}

LOGICAL_OPERATORS: frozenset[str] = frozenset(op.value for op in LogicalOperator)


def is_operator(key: object) -> bool:
    """Return True if *key* is an operator key (starts with ``$``)."""
    return isinstance(key, str) and key.startswith(OPERATOR_SIGIL)
