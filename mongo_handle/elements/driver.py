"""
Pymongo-backed Elements

Thin wrappers around pymongo's Collection, Database and Cursor that
implement the local interfaces, so handles can be given a fake instead.

Error Handling:
- Fail-fast: every pymongo error propagates, translated by store_operation
- No silent failures - consumers must handle exceptions
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo import errors as pymongo_errors
from pymongo.collection import Collection as PymongoCollection
from pymongo.cursor import Cursor
from pymongo.database import Database as PymongoDatabase

from ..errors import NotFoundError, store_operation, translate_error
from .base import ChangeInfo, Collectioner, Databaser, Querier


def sort_keys(fields: Tuple[str, ...]) -> List[Tuple[str, int]]:
    """Translate "-field" style names into pymongo (key, direction) pairs."""
    keys = []
    for field in fields:
        if field.startswith("-"):
            keys.append((field[1:], DESCENDING))
        else:
            keys.append((field.lstrip("+"), ASCENDING))
    return keys


def is_operator_document(update: Dict[str, Any]) -> bool:
    """True when every key of update is an update operator such as $set."""
    return bool(update) and all(key.startswith("$") for key in update)


class Query(Querier):
    """
    Query over a pymongo collection.

    Options accumulate in an immutable way; the cursor is only built when a
    terminal method runs.
    """

    def __init__(
        self,
        collection: PymongoCollection,
        filter: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ):
        self._collection = collection
        self._filter = filter or {}
        self._options = options or {}

    @property
    def name(self) -> str:
        return self._collection.name

    @property
    def filter(self) -> Dict[str, Any]:
        return self._filter

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self._options)

    def _with(self, **options: Any) -> "Query":
        merged = dict(self._options)
        merged.update(options)
        return Query(self._collection, self._filter, merged)

    def batch(self, n: int) -> Querier:
        return self._with(batch_size=n)

    def comment(self, text: str) -> Querier:
        return self._with(comment=text)

    def hint(self, *index_keys: str) -> Querier:
        return self._with(hint=sort_keys(index_keys))

    def limit(self, n: int) -> Querier:
        return self._with(limit=n)

    def skip(self, n: int) -> Querier:
        return self._with(skip=n)

    def select(self, projection: Dict[str, Any]) -> Querier:
        return self._with(projection=projection)

    def sort(self, *fields: str) -> Querier:
        return self._with(sort=sort_keys(fields))

    def set_max_time(self, ms: int) -> Querier:
        return self._with(max_time_ms=ms)

    def _cursor(self) -> Cursor:
        opts = self._options
        cursor = self._collection.find(self._filter, opts.get("projection"))

        if opts.get("sort"):
            cursor = cursor.sort(opts["sort"])
        if opts.get("hint"):
            cursor = cursor.hint(opts["hint"])
        if opts.get("skip"):
            cursor = cursor.skip(opts["skip"])
        if opts.get("limit"):
            cursor = cursor.limit(opts["limit"])
        if opts.get("batch_size"):
            cursor = cursor.batch_size(opts["batch_size"])
        if opts.get("comment"):
            cursor = cursor.comment(opts["comment"])
        if opts.get("max_time_ms"):
            cursor = cursor.max_time_ms(opts["max_time_ms"])

        return cursor

    @store_operation("one")
    def one(self) -> Optional[Dict[str, Any]]:
        for document in self._cursor().limit(1):
            return document
        return None

    @store_operation("all")
    def all(self) -> List[Dict[str, Any]]:
        return list(self._cursor())

    @store_operation("count")
    def count(self) -> int:
        opts = self._options
        kwargs: Dict[str, Any] = {}
        if opts.get("skip"):
            kwargs["skip"] = opts["skip"]
        if opts.get("limit"):
            kwargs["limit"] = opts["limit"]
        if opts.get("hint"):
            kwargs["hint"] = opts["hint"]
        if opts.get("max_time_ms"):
            kwargs["maxTimeMS"] = opts["max_time_ms"]
        if opts.get("comment"):
            kwargs["comment"] = opts["comment"]
        return self._collection.count_documents(self._filter, **kwargs)

    @store_operation("distinct")
    def distinct(self, key: str) -> List[Any]:
        return self._cursor().distinct(key)

    def iter(self) -> Iterator[Dict[str, Any]]:
        # Errors surface while iterating, after any decorator has returned.
        try:
            cursor = self._cursor()
            for document in cursor:
                yield document
        except pymongo_errors.PyMongoError as e:
            raise translate_error(self.name, "iter", e) from e


class Collection(Collectioner):
    """
    Collectioner backed by a pymongo Collection.

    Documents handed to insert are copied first, so pymongo never writes
    a generated _id back into the caller's mapping.
    """

    def __init__(self, collection: PymongoCollection):
        self._collection = collection

    @property
    def name(self) -> str:
        return self._collection.name

    @property
    def pymongo(self) -> PymongoCollection:
        """The wrapped pymongo collection."""
        return self._collection

    def find(self, filter: Optional[Dict[str, Any]] = None) -> Querier:
        return Query(self._collection, filter)

    @store_operation("count")
    def count(self) -> int:
        return self._collection.count_documents({})

    @store_operation("insert")
    def insert(self, *documents: Dict[str, Any]) -> None:
        if len(documents) == 1:
            self._collection.insert_one(dict(documents[0]))
        elif documents:
            self._collection.insert_many([dict(d) for d in documents])

    @store_operation("remove")
    def remove(self, selector: Dict[str, Any]) -> None:
        result = self._collection.delete_one(selector)
        if result.deleted_count == 0:
            raise NotFoundError(self.name, selector)

    @store_operation("remove_all")
    def remove_all(self, selector: Optional[Dict[str, Any]] = None) -> ChangeInfo:
        result = self._collection.delete_many(selector or {})
        return ChangeInfo.remove_info(result.deleted_count)

    @store_operation("update")
    def update(self, selector: Dict[str, Any], update: Dict[str, Any]) -> None:
        if is_operator_document(update):
            result = self._collection.update_one(selector, update)
        else:
            result = self._collection.replace_one(selector, update)
        if result.matched_count == 0:
            raise NotFoundError(self.name, selector)

    @store_operation("update_all")
    def update_all(self, selector: Dict[str, Any], update: Dict[str, Any]) -> ChangeInfo:
        result = self._collection.update_many(selector, update)
        return ChangeInfo.update_info(result.modified_count, result.matched_count)

    @store_operation("upsert")
    def upsert(self, selector: Dict[str, Any], update: Dict[str, Any]) -> ChangeInfo:
        if is_operator_document(update):
            result = self._collection.update_one(selector, update, upsert=True)
        else:
            result = self._collection.replace_one(selector, update, upsert=True)
        return ChangeInfo.upsert_info(
            result.modified_count, result.matched_count, result.upserted_id
        )

    @store_operation("drop")
    def drop(self) -> None:
        self._collection.drop()


class Database(Databaser):
    """Databaser backed by a pymongo Database."""

    def __init__(self, database: PymongoDatabase):
        self._database = database

    @property
    def name(self) -> str:
        return self._database.name

    @property
    def pymongo(self) -> PymongoDatabase:
        """The wrapped pymongo database."""
        return self._database

    def c(self, name: str) -> Collectioner:
        return Collection(self._database[name])

    @store_operation("collection_names")
    def collection_names(self) -> List[str]:
        return self._database.list_collection_names()

    @store_operation("drop_database")
    def drop_database(self) -> None:
        self._database.client.drop_database(self._database.name)
