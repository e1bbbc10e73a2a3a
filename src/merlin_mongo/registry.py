"""Collection handle registry and the bootstrap that fills it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .exceptions import UnknownCollectionError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from .ports import ModelDefinition

logger = logging.getLogger("merlin.mongo.registry")


class CollectionRegistry:
    """Maps logical collection names to open collection handles.

    Owned by a single adapter instance; written during ``connect()`` and
    read by every operation afterwards.
    """

    def __init__(self, handles: Mapping[str, Any] | None = None) -> None:
        self._handles: dict[str, Any] = dict(handles or {})

    def register(self, name: str, handle: Any) -> None:
        self._handles[name] = handle

    def get(self, name: str) -> Any:
        """Return the handle for *name*; raises ``UnknownCollectionError``."""
        try:
            return self._handles[name]
        except KeyError:
            raise UnknownCollectionError(name) from None

    def clear(self) -> None:
        self._handles.clear()

    def names(self) -> list[str]:
        return list(self._handles)

    def __contains__(self, name: object) -> bool:
        return name in self._handles

    def __iter__(self) -> Iterator[str]:
        return iter(self._handles)

    def __len__(self) -> int:
        return len(self._handles)


def _collection_names(models: Mapping[str, ModelDefinition]) -> Iterable[str]:
    seen: set[str] = set()
    for model in models.values():
        name = model.collection_name
        if name not in seen:
            seen.add(name)
            yield name


async def open_collections(
    db: Any, models: Mapping[str, ModelDefinition]
) -> CollectionRegistry:
    """Create or open one collection per model and return the filled registry.

    Collections that already exist are opened; missing ones are created.
    The first driver error aborts the bootstrap and propagates.
    """
    registry = CollectionRegistry()
    existing = set(await db.list_collection_names())
    for name in _collection_names(models):
        if name in existing:
            logger.debug("Opened collection %s", name)
        else:
            await db.create_collection(name)
            logger.debug("Created collection %s", name)
        registry.register(name, db.get_collection(name))
    return registry
