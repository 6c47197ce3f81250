"""Document persistence behind the caches.

Two implementations of the same small async interface:

- ``MemoryStore``: process-local dict of collections. Good for local runs and
  tests. Each uvicorn worker gets its own copy, so hit counts and entries are
  not shared across workers.
- ``MongoStore``: MongoDB via pymongo's async client. TTL indexes let the
  database reap expired documents on its own schedule (roughly once a minute),
  so readers still filter on age themselves.

Queries are plain equality maps plus a few operators (``$in``, ``$gt``,
``$gte``, ``$lt``, ``$lte``). The cache lookups need nothing more.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.errors import OperationFailure, PyMongoError

from errors import PersistenceFailure

logger = logging.getLogger(__name__)

INDEX_OPTIONS_CONFLICT = 85

Sort = list[tuple[str, int]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStore(ABC):
    """Async create/find/update/delete-by-query over named collections."""

    @abstractmethod
    async def insert(self, collection: str, doc: dict) -> dict: ...

    @abstractmethod
    async def find_one(self, collection: str, query: dict, sort: Sort | None = None) -> dict | None: ...

    @abstractmethod
    async def find(self, collection: str, query: dict) -> list[dict]: ...

    @abstractmethod
    async def update_one(
        self,
        collection: str,
        query: dict,
        set_fields: dict | None = None,
        inc: dict | None = None,
        upsert: bool = False,
    ) -> dict | None:
        """Apply ``$set``/``$inc`` to the first match and return it after the update."""

    @abstractmethod
    async def delete_many(self, collection: str, query: dict) -> int: ...

    @abstractmethod
    async def ensure_ttl_index(self, collection: str, field: str, expire_after_seconds: int) -> None: ...

    @abstractmethod
    async def ping(self) -> bool: ...

    async def close(self) -> None:
        return None


# ---------------------------------------------------------------------------
# In-process implementation
# ---------------------------------------------------------------------------

def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$in":
                if value not in operand:
                    return False
            elif op in ("$gt", "$gte", "$lt", "$lte"):
                if value is None:
                    return False
                if op == "$gt" and not value > operand:
                    return False
                if op == "$gte" and not value >= operand:
                    return False
                if op == "$lt" and not value < operand:
                    return False
                if op == "$lte" and not value <= operand:
                    return False
            else:
                raise ValueError(f"Unsupported query operator: {op}")
        return True
    return value == condition


def matches(doc: dict, query: dict) -> bool:
    return all(_matches_condition(doc.get(field), cond) for field, cond in query.items())


class MemoryStore(DocumentStore):
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._collections: dict[str, dict[Any, dict]] = {}
        self._ttl: dict[str, tuple[str, int]] = {}

    def _live(self, collection: str) -> dict[Any, dict]:
        """Return the collection after dropping documents past their TTL."""
        docs = self._collections.setdefault(collection, {})
        ttl = self._ttl.get(collection)
        if ttl:
            field, seconds = ttl
            cutoff = self._clock() - timedelta(seconds=seconds)
            expired = [
                key for key, doc in docs.items()
                if isinstance(doc.get(field), datetime) and doc[field] <= cutoff
            ]
            for key in expired:
                del docs[key]
        return docs

    async def insert(self, collection: str, doc: dict) -> dict:
        stored = dict(doc)
        stored.setdefault("_id", uuid.uuid4().hex)
        self._live(collection)[stored["_id"]] = stored
        return dict(stored)

    async def find_one(self, collection: str, query: dict, sort: Sort | None = None) -> dict | None:
        found = self._select(collection, query, sort)
        return dict(found[0]) if found else None

    async def find(self, collection: str, query: dict) -> list[dict]:
        return [dict(doc) for doc in self._select(collection, query, None)]

    def _select(self, collection: str, query: dict, sort: Sort | None) -> list[dict]:
        found = [doc for doc in self._live(collection).values() if matches(doc, query)]
        # Stable multi-key sort: apply keys from least to most significant.
        for field, direction in reversed(sort or []):
            found.sort(key=lambda d: (d.get(field) is not None, d.get(field)), reverse=direction < 0)
        return found

    async def update_one(self, collection, query, set_fields=None, inc=None, upsert=False):
        docs = self._live(collection)
        target = next((doc for doc in docs.values() if matches(doc, query)), None)
        if target is None:
            if not upsert:
                return None
            target = {
                field: cond for field, cond in query.items()
                if not (isinstance(cond, dict) and any(k.startswith("$") for k in cond))
            }
            target.setdefault("_id", uuid.uuid4().hex)
            docs[target["_id"]] = target
        target.update(set_fields or {})
        for field, amount in (inc or {}).items():
            target[field] = target.get(field, 0) + amount
        return dict(target)

    async def delete_many(self, collection: str, query: dict) -> int:
        docs = self._live(collection)
        doomed = [key for key, doc in docs.items() if matches(doc, query)]
        for key in doomed:
            del docs[key]
        return len(doomed)

    async def ensure_ttl_index(self, collection: str, field: str, expire_after_seconds: int) -> None:
        self._ttl[collection] = (field, expire_after_seconds)

    async def ping(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# MongoDB implementation
# ---------------------------------------------------------------------------

@contextmanager
def _translate_errors(action: str, collection: str):
    try:
        yield
    except PyMongoError as e:
        logger.error("MongoDB %s failed on %s: %s", action, collection, e)
        raise PersistenceFailure(f"{action} on {collection} failed: {e}") from e


class MongoStore(DocumentStore):
    def __init__(self, uri: str, database: str, client: AsyncMongoClient | None = None):
        self._client = client or AsyncMongoClient(uri, tz_aware=True, serverSelectionTimeoutMS=5000)
        self._db = self._client[database]

    async def insert(self, collection: str, doc: dict) -> dict:
        stored = dict(doc)
        with _translate_errors("insert", collection):
            result = await self._db[collection].insert_one(stored)
        stored["_id"] = result.inserted_id
        return stored

    async def find_one(self, collection: str, query: dict, sort: Sort | None = None) -> dict | None:
        with _translate_errors("find", collection):
            return await self._db[collection].find_one(query, sort=sort)

    async def find(self, collection: str, query: dict) -> list[dict]:
        with _translate_errors("find", collection):
            return await self._db[collection].find(query).to_list()

    async def update_one(self, collection, query, set_fields=None, inc=None, upsert=False):
        update: dict = {}
        if set_fields:
            update["$set"] = set_fields
        if inc:
            update["$inc"] = inc
        with _translate_errors("update", collection):
            return await self._db[collection].find_one_and_update(
                query, update, upsert=upsert, return_document=ReturnDocument.AFTER
            )

    async def delete_many(self, collection: str, query: dict) -> int:
        with _translate_errors("delete", collection):
            result = await self._db[collection].delete_many(query)
        return result.deleted_count

    async def ensure_ttl_index(self, collection: str, field: str, expire_after_seconds: int) -> None:
        with _translate_errors("create_index", collection):
            try:
                await self._db[collection].create_index(field, expireAfterSeconds=expire_after_seconds)
            except OperationFailure as e:
                if e.code != INDEX_OPTIONS_CONFLICT:
                    raise
                # Index exists with another TTL; change it in place.
                logger.info("Updating TTL on %s.%s to %ds", collection, field, expire_after_seconds)
                await self._db.command(
                    "collMod",
                    collection,
                    index={"keyPattern": {field: 1}, "expireAfterSeconds": expire_after_seconds},
                )

    async def ping(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False

    async def close(self) -> None:
        await self._client.close()


def create_store(database_uri: str | None, database_name: str) -> DocumentStore:
    if database_uri:
        logger.info("Using MongoDB store (database=%s)", database_name)
        return MongoStore(database_uri, database_name)
    logger.info("DATABASE_URI not set, using in-process store")
    return MemoryStore()
