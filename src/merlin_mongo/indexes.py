"""Index definition helpers."""

from __future__ import annotations

from typing import Any


async def create_field_index(
    collection: Any,
    field_path: str,
    *,
    unique: bool | None = None,
    sparse: bool | None = None,
) -> str:
    """Create an ascending single-field index. Returns the index name.

    ``unique`` and ``sparse`` are only sent to the server when set.
    """
    kwargs: dict[str, Any] = {}
    if unique is not None:
        kwargs["unique"] = unique
    if sparse is not None:
        kwargs["sparse"] = sparse
    return await collection.create_index([(field_path, 1)], **kwargs)
