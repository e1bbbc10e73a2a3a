"""MongoDB storage adapter for the Merlin ORM.

Translates Merlin filter trees, sort specifications and deltas into MongoDB
operator documents and exposes count/find/insert/update/remove/index as
asynchronous result streams over Motor.
"""

from __future__ import annotations

from .adapter import MerlinMongo
from .config import MerlinMongoOptions
from .connection import MongoConnectionManager
from .exceptions import (
    MerlinMongoError,
    MongoConnectionError,
    MongoPersistenceError,
    MongoQueryError,
    StreamClosedError,
    UnknownCollectionError,
    ValidationError,
)
from .factory import merlin_mongo_factory
from .operators import DeltaOperator, QueryOperator, SortDirection
from .ports import HostORM, ModelDefinition
from .query import Delta, Query, QueryOpts
from .query_builder import MongoQueryBuilder
from .registry import CollectionRegistry, open_collections
from .streams import InsertStream, ResultStream

__all__ = [
    # Adapter
    "MerlinMongo",
    "MerlinMongoOptions",
    "merlin_mongo_factory",
    "MongoConnectionManager",
    "CollectionRegistry",
    "open_collections",
    # Translation
    "MongoQueryBuilder",
    "Query",
    "QueryOpts",
    "Delta",
    "QueryOperator",
    "DeltaOperator",
    "SortDirection",
    # Streams
    "ResultStream",
    "InsertStream",
    # Ports
    "HostORM",
    "ModelDefinition",
    # Exceptions
    "MerlinMongoError",
    "ValidationError",
    "StreamClosedError",
    "MongoPersistenceError",
    "MongoConnectionError",
    "MongoQueryError",
    "UnknownCollectionError",
]
