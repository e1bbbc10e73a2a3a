"""MerlinMongo: the MongoDB storage adapter for the Merlin ORM."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

from bson import ObjectId
from pymongo.errors import PyMongoError

from .config import MerlinMongoOptions
from .connection import MongoConnectionManager
from .exceptions import MongoConnectionError, ValidationError
from .indexes import create_field_index
from .query import Delta, Query, resolve_pagination
from .query_builder import MongoQueryBuilder
from .registry import CollectionRegistry, open_collections
from .streams import InsertStream, ResultStream

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .ports import HostORM

logger = logging.getLogger("merlin.mongo.adapter")

ID_KEY = "_id"
PLURAL_FOREIGN_KEY = "_{modelName}Ids"
SINGULAR_FOREIGN_KEY = "_{modelName}Id"


def _require_name(collection_name: Any) -> str:
    if not isinstance(collection_name, str) or not collection_name:
        raise ValidationError({"collection_name": ["must be a non-empty string"]})
    return collection_name


def _require_opts(opts: Any) -> Mapping[str, Any]:
    if opts is None:
        return {}
    if not isinstance(opts, Mapping):
        raise ValidationError({"opts": ["must be a mapping or None"]})
    return opts


def _require_flag(opts: Mapping[str, Any], key: str) -> bool | None:
    val = opts.get(key)
    if val is not None and not isinstance(val, bool):
        raise ValidationError({f"opts.{key}": ["must be a boolean"]})
    return val


class MerlinMongo:
    """
    MongoDB adapter for a Merlin ORM instance.

    Translates Merlin queries, sort specs and deltas into MongoDB documents
    and runs them against the collections opened by :meth:`connect`.
    Operation methods validate their arguments synchronously and return a
    :class:`~merlin_mongo.streams.ResultStream` whose driver call is already
    in flight; they must be called from a running event loop.
    """

    def __init__(
        self,
        merlin: HostORM,
        opts: MerlinMongoOptions | Mapping[str, Any],
        *,
        query_builder: MongoQueryBuilder | None = None,
    ) -> None:
        if not isinstance(getattr(merlin, "opts", None), MutableMapping):
            raise ValidationError({"merlin.opts": ["must be a mutable mapping"]})
        if not isinstance(getattr(merlin, "models", None), Mapping):
            raise ValidationError({"merlin.models": ["must be a mapping"]})

        self.merlin = merlin
        self.opts = MerlinMongoOptions.coerce(opts)
        self._connection = MongoConnectionManager.from_options(self.opts)
        self._query_builder = query_builder or MongoQueryBuilder()
        self._collections = CollectionRegistry()
        self._configure_host()

    def _configure_host(self) -> None:
        """Teach the ORM MongoDB's identifier conventions."""
        self.merlin.opts["id_key"] = ID_KEY
        self.merlin.opts["plural_foreign_key"] = PLURAL_FOREIGN_KEY
        self.merlin.opts["singular_foreign_key"] = SINGULAR_FOREIGN_KEY
        self.merlin.ObjectId = ObjectId  # type: ignore[attr-defined]
        model_cls = getattr(self.merlin, "Model", None)
        if model_cls is not None:
            model_cls.ObjectId = ObjectId

    @property
    def connection(self) -> MongoConnectionManager:
        return self._connection

    @property
    def collections(self) -> CollectionRegistry:
        return self._collections

    # -- lifecycle ----------------------------------------------------------

    async def connect(self) -> None:
        """Connect and create-or-open a collection for every ORM model."""
        await self._connection.connect()
        try:
            db = self._connection.database()
            self._collections = await open_collections(db, self.merlin.models)
        except PyMongoError as e:
            self._connection.close()
            raise MongoConnectionError(str(e)) from e
        except MongoConnectionError:
            self._connection.close()
            raise
        logger.debug("Connected with collections %s", self._collections.names())

    def close(self) -> None:
        """Forget every collection handle and close the client."""
        self._collections.clear()
        self._connection.close()

    async def health_check(self) -> bool:
        """Return True if the server answers a ping."""
        healthy = await self._connection.health_check()
        if not healthy:
            logger.warning("MongoDB health check failed")
        return healthy

    # -- operations ---------------------------------------------------------

    async def index(
        self,
        collection_name: str,
        opts: Mapping[str, Any] | None,
        field_path: str,
    ) -> str:
        """Create an index on *field_path*; returns the index name."""
        _require_name(collection_name)
        opts = _require_opts(opts)
        unique = _require_flag(opts, "unique")
        sparse = _require_flag(opts, "sparse")
        if not isinstance(field_path, str) or not field_path:
            raise ValidationError({"field_path": ["must be a non-empty string"]})
        collection = self._collections.get(collection_name)

        logger.debug("index %s.%s", collection_name, field_path)
        return await create_field_index(
            collection, field_path, unique=unique, sparse=sparse
        )

    def count(
        self,
        collection_name: str,
        opts: Mapping[str, Any] | None,
        query: Query | Mapping[str, Any],
    ) -> ResultStream[int]:
        """Count documents matching *query*; the stream emits one integer."""
        _require_name(collection_name)
        opts = _require_opts(opts)
        query = Query.coerce(query)
        collection = self._collections.get(collection_name)
        match = self._query_builder.build_match(query.query)
        kwargs = resolve_pagination(query.opts, opts)

        async def run() -> AsyncIterator[int]:
            logger.debug("count %s %s %s", collection_name, match, kwargs)
            yield await collection.count_documents(match, **kwargs)

        return ResultStream(run(), label=f"count {collection_name}")

    def find(
        self,
        collection_name: str,
        opts: Mapping[str, Any] | None,
        query: Query | Mapping[str, Any],
    ) -> ResultStream[dict[str, Any]]:
        """Find documents matching *query*, emitted in cursor order."""
        _require_name(collection_name)
        opts = _require_opts(opts)
        query = Query.coerce(query)
        collection = self._collections.get(collection_name)
        match = self._query_builder.build_match(query.query)
        sort = self._query_builder.build_sort(query.opts.sort)
        kwargs: dict[str, Any] = dict(resolve_pagination(query.opts, opts))
        if sort:
            kwargs["sort"] = sort

        async def run() -> AsyncIterator[dict[str, Any]]:
            logger.debug("find %s %s %s", collection_name, match, kwargs)
            async for doc in collection.find(match, **kwargs):
                yield doc

        return ResultStream(run(), label=f"find {collection_name}")

    def insert(
        self,
        collection_name: str,
        opts: Mapping[str, Any] | None = None,
    ) -> InsertStream:
        """Return a duplex stream: write records in, read inserted documents out."""
        _require_name(collection_name)
        _require_opts(opts)
        collection = self._collections.get(collection_name)

        async def insert_one(record: dict[str, Any]) -> dict[str, Any]:
            result = await collection.insert_one(record)
            record[ID_KEY] = result.inserted_id
            return record

        return InsertStream(insert_one, label=f"insert {collection_name}")

    def update(
        self,
        collection_name: str,
        opts: Mapping[str, Any] | None,
        query: Query | Mapping[str, Any],
        delta: Delta | Mapping[str, Any],
    ) -> ResultStream[int]:
        """Apply *delta* to matching documents; emits the modified count.

        Every match is updated unless ``opts["single"]`` is true.
        """
        _require_name(collection_name)
        opts = _require_opts(opts)
        query = Query.coerce(query)
        delta = Delta.coerce(delta)
        collection = self._collections.get(collection_name)
        update = self._query_builder.build_update(delta)
        match = self._query_builder.build_match(query.query)
        multi = not opts.get("single")

        async def run() -> AsyncIterator[int]:
            logger.debug(
                "update %s %s %s multi=%s", collection_name, match, update, multi
            )
            if multi:
                result = await collection.update_many(match, update)
            else:
                result = await collection.update_one(match, update)
            yield result.modified_count

        return ResultStream(run(), label=f"update {collection_name}")

    def remove(
        self,
        collection_name: str,
        opts: Mapping[str, Any] | None,
        query: Query | Mapping[str, Any],
    ) -> ResultStream[int]:
        """Delete documents matching *query*; emits the deleted count."""
        _require_name(collection_name)
        _require_opts(opts)
        query = Query.coerce(query)
        collection = self._collections.get(collection_name)
        match = self._query_builder.build_match(query.query)

        async def run() -> AsyncIterator[int]:
            logger.debug("remove %s %s", collection_name, match)
            result = await collection.delete_many(match)
            yield result.deleted_count

        return ResultStream(run(), label=f"remove {collection_name}")
