"""Merlin query and delta value types, plus helpers to normalise them.

The host ORM hands the adapter plain objects shaped like
``{"query": {...}, "opts": {"offset": 10, "limit": 5, "sort": [...]}}``
and ``{"diff": {...}}``. ``Query.coerce`` and ``Delta.coerce`` accept
either those mappings or the dataclasses below.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ValidationError


def _require_count(value: Any, key: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError({key: ["must be a non-negative integer"]})


@dataclass(frozen=True)
class QueryOpts:
    """
    Result-shaping parameters attached to a query.

    Attributes:
        offset: Number of documents to skip.
        limit: Maximum number of documents to return.
        sort: Ordered ``[{field: "asc" | "desc"}, ...]`` specification.
    """

    offset: int | None = None
    limit: int | None = None
    sort: Sequence[Mapping[str, Any]] | None = None

    def __post_init__(self) -> None:
        _require_count(self.offset, "query.opts.offset")
        _require_count(self.limit, "query.opts.limit")

    @classmethod
    def coerce(cls, value: Any) -> QueryOpts:
        if isinstance(value, QueryOpts):
            return value
        if value is None:
            return cls()
        if not isinstance(value, Mapping):
            raise ValidationError({"query.opts": ["must be a mapping"]})
        return cls(
            offset=value.get("offset"),
            limit=value.get("limit"),
            sort=value.get("sort"),
        )


@dataclass(frozen=True)
class Query:
    """A Merlin query: filter tree plus result-shaping options."""

    query: Mapping[str, Any] = field(default_factory=dict)
    opts: QueryOpts = field(default_factory=QueryOpts)

    @classmethod
    def coerce(cls, value: Any) -> Query:
        """Return a ``Query`` from a ``Query`` or a ``{"query", "opts"}`` mapping."""
        if isinstance(value, Query):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError({"query": ["must be a Query or a mapping"]})
        tree = value.get("query")
        if not isinstance(tree, Mapping):
            raise ValidationError({"query.query": ["must be a mapping"]})
        return cls(query=tree, opts=QueryOpts.coerce(value.get("opts")))


@dataclass(frozen=True)
class Delta:
    """A Merlin delta: structural update operators keyed under ``diff``."""

    diff: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> Delta:
        if isinstance(value, Delta):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError({"delta": ["must be a Delta or a mapping"]})
        diff = value.get("diff")
        if not isinstance(diff, Mapping):
            raise ValidationError({"delta.diff": ["must be a mapping"]})
        return cls(diff=diff)


def resolve_pagination(
    query_opts: QueryOpts, opts: Mapping[str, Any]
) -> dict[str, int]:
    """Return driver ``skip``/``limit`` kwargs.

    Query-level options win over operation-level ones; zero and ``None``
    both mean "not set".
    """
    _require_count(opts.get("offset"), "opts.offset")
    _require_count(opts.get("limit"), "opts.limit")
    kwargs: dict[str, int] = {}
    skip = query_opts.offset or opts.get("offset")
    limit = query_opts.limit or opts.get("limit")
    if skip:
        kwargs["skip"] = skip
    if limit:
        kwargs["limit"] = limit
    return kwargs
