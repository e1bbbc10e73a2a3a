"""Exceptions raised by the Merlin MongoDB adapter."""

from __future__ import annotations


class MerlinMongoError(Exception):
    """Root exception for the merlin-mongo adapter."""


class ValidationError(MerlinMongoError):
    """Raised when an operation is invoked with malformed arguments.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


class StreamClosedError(MerlinMongoError):
    """Raised when writing to an insert stream that has already finished."""


class MongoPersistenceError(MerlinMongoError):
    """Base for MongoDB persistence errors."""


class MongoConnectionError(MongoPersistenceError):
    """Raised when connection to MongoDB or collection bootstrap fails."""


class MongoQueryError(MongoPersistenceError):
    """Raised when a filter, sort or delta cannot be translated."""


class UnknownCollectionError(MongoPersistenceError):
    """Raised when an operation names a collection that is not registered."""

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name
        super().__init__(f"Collection {collection_name!r} is not registered")
