"""Protocols describing the host ORM the adapter plugs into."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, MutableMapping


@runtime_checkable
class ModelDefinition(Protocol):
    """A model registered on the host ORM, stored in one collection."""

    collection_name: str


@runtime_checkable
class HostORM(Protocol):
    """
    The Merlin ORM instance an adapter is created for.

    ``opts`` is the ORM's mutable configuration surface; the adapter writes
    its identifier conventions there. ``models`` maps model names to model
    definitions and drives collection bootstrap on ``connect()``.
    """

    opts: MutableMapping[str, Any]
    models: Mapping[str, ModelDefinition]
