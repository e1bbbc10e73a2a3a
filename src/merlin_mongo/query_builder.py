"""Mongo query builder: Merlin filter, sort and delta to MongoDB documents."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from bson.regex import Regex

from .exceptions import MongoQueryError
from .operators import (
    LOGICAL_OPERATORS,
    QUERY_OPERATOR_ALIASES,
    DeltaOperator,
    SortDirection,
    is_operator,
)
from .query import Delta

_REGEX_TYPES = (re.Pattern, Regex)


def _compile_operators(path: str, ops: Mapping[str, Any]) -> dict[str, Any]:
    """Copy an operator object, rewriting Merlin aliases to Mongo operators."""
    compiled: dict[str, Any] = {}
    for op, val in ops.items():
        if not is_operator(op):
            raise MongoQueryError(
                f"Filter value for {path!r} mixes operators and fields: {list(ops)}"
            )
        compiled[QUERY_OPERATOR_ALIASES.get(op, op)] = val
    return compiled


def _compile_logical(path: str, val: Any) -> Any:
    if not isinstance(val, Sequence) or isinstance(val, (str, bytes)):
        return val
    return [
        _compile_filter(item, path) if isinstance(item, Mapping) else item
        for item in val
    ]


def _compile_value(path: str, val: Any) -> Any:
    if isinstance(val, _REGEX_TYPES):
        return {"$regex": val}
    if not isinstance(val, Mapping):
        return val
    keys = list(val)
    if keys and is_operator(keys[0]):
        return _compile_operators(path, val)
    if any(is_operator(k) for k in keys):
        raise MongoQueryError(
            f"Filter value for {path!r} mixes fields and operators: {keys}"
        )
    return _compile_filter(val, path)


def _compile_filter(tree: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Recursively compile a filter tree, depth first."""
    compiled: dict[str, Any] = {}
    for key, val in tree.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if key in LOGICAL_OPERATORS:
            compiled[key] = _compile_logical(path, val)
        else:
            compiled[key] = _compile_value(path, val)
    return compiled


def _parse_direction(field: str, token: Any) -> int:
    try:
        return SortDirection(token).mongo
    except ValueError:
        raise MongoQueryError(
            f"Invalid sort direction for {field!r}: {token!r} "
            f"(expected one of {[d.value for d in SortDirection]})"
        ) from None


def _path_list(op: str, val: Any) -> list[str]:
    if not isinstance(val, Sequence) or isinstance(val, (str, bytes)):
        raise MongoQueryError(f"{op} expects a list of field paths, got {val!r}")
    return list(val)


def _values_by_path(op: str, val: Any) -> dict[str, list[Any]]:
    if not isinstance(val, Mapping):
        raise MongoQueryError(f"{op} expects a mapping of field path to values")
    out: dict[str, list[Any]] = {}
    for path, values in val.items():
        if not isinstance(values, Sequence) or isinstance(values, (str, bytes)):
            raise MongoQueryError(f"{op} on {path!r} expects a list of values")
        out[path] = list(values)
    return out


class MongoQueryBuilder:
    """Compiles Merlin filter trees, sort specs and deltas to MongoDB documents.

    All methods are pure: inputs are never mutated and the returned
    documents are built fresh on every call.
    """

    def build_match(self, filter_tree: Mapping[str, Any] | None) -> dict[str, Any]:
        """Build a MongoDB filter document from a Merlin filter tree.

        Operator objects (mappings whose keys all start with ``$``) are
        copied with ``$notIn`` -> ``$nin`` and ``$not`` -> ``$ne``; nested
        field maps are recursed into; regex literals become ``{"$regex": …}``.
        A mapping that mixes operator keys and field keys is rejected.
        """
        if filter_tree is None:
            return {}
        if not isinstance(filter_tree, Mapping):
            raise MongoQueryError(
                f"Filter must be a mapping, got {type(filter_tree).__name__}"
            )
        return _compile_filter(filter_tree)

    def build_sort(self, sort: Any) -> list[tuple[str, int]] | None:
        """Build MongoDB sort tuples from ``[{field: "asc"|"desc"}, ...]``.

        Returns ``None`` when there is no explicit ordering.
        """
        if not isinstance(sort, Sequence) or isinstance(sort, (str, bytes)):
            return None
        result: list[tuple[str, int]] = []
        for entry in sort:
            if not isinstance(entry, Mapping):
                raise MongoQueryError(f"Sort entry must be a mapping, got {entry!r}")
            for field, token in entry.items():
                result.append((field, _parse_direction(field, token)))
        return result or None

    def build_update(self, delta: Delta | Mapping[str, Any]) -> dict[str, Any]:
        """Build a MongoDB update document from a Merlin delta.

        ``$unset`` paths map to ``True``, ``$push`` values are wrapped in
        ``$each`` so lists append as a batch, and ``$pull`` becomes
        ``$pullAll``. Other operators pass through unchanged.
        """
        if isinstance(delta, Delta):
            diff = delta.diff
        elif isinstance(delta, Mapping):
            diff = delta.get("diff")
        else:
            diff = None
        if not isinstance(diff, Mapping):
            raise MongoQueryError("Delta must carry a 'diff' mapping")

        update: dict[str, Any] = {}
        for op, val in diff.items():
            if op == DeltaOperator.UNSET:
                update["$unset"] = dict.fromkeys(_path_list(op, val), True)
            elif op == DeltaOperator.PUSH:
                update["$push"] = {
                    path: {"$each": values}
                    for path, values in _values_by_path(op, val).items()
                }
            elif op == DeltaOperator.PULL:
                update["$pullAll"] = _values_by_path(op, val)
            else:
                update[op] = val
        if not update:
            raise MongoQueryError("Delta produced an empty update document")
        return update
