"""
In-memory Elements

Implementations of Databaser, Collectioner and Querier that keep documents
in process memory. They follow the same contract as the pymongo-backed
classes and are meant for unit tests, both here and in consumer code:

    db = MemoryDatabase("test")
    handle = Handle(Product, "products").link(db)

Supported query language:
- equality on top-level keys (dotted paths are resolved too)
- $eq, $ne, $gt, $gte, $lt, $lte, $in, $nin, $exists

Supported updates: $set, $unset, $inc, or a plain replacement document.
"""

import copy
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from bson import ObjectId

from ..errors import DuplicateKeyError, NotFoundError
from .base import ChangeInfo, Collectioner, Databaser, Querier

_MISSING = object()


def _lookup(document: Dict[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def _compare(op: str, value: Any, operand: Any) -> bool:
    if op == "$exists":
        return (value is not _MISSING) == bool(operand)
    if op == "$eq":
        return value is not _MISSING and value == operand
    if op == "$ne":
        return value is _MISSING or value != operand
    if op == "$in":
        return value is not _MISSING and value in operand
    if op == "$nin":
        return value is _MISSING or value not in operand
    if value is _MISSING or value is None:
        return False
    try:
        if op == "$gt":
            return value > operand
        if op == "$gte":
            return value >= operand
        if op == "$lt":
            return value < operand
        if op == "$lte":
            return value <= operand
    except TypeError:
        return False
    raise ValueError(f"unsupported query operator: {op}")


def matches(document: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    """True if document satisfies every condition of filter."""
    for key, condition in (filter or {}).items():
        value = _lookup(document, key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(op, value, operand) for op, operand in condition.items()):
                return False
        elif value is _MISSING or value != condition:
            return False
    return True


def apply_update(document: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a new document with update applied.

    The _id of the original document is always preserved.
    """
    if not update or not all(key.startswith("$") for key in update):
        result = copy.deepcopy(update)
        if "_id" in document:
            result["_id"] = document["_id"]
        return result

    result = copy.deepcopy(document)
    for op, fields in update.items():
        for key, value in fields.items():
            if op == "$set":
                result[key] = copy.deepcopy(value)
            elif op == "$unset":
                result.pop(key, None)
            elif op == "$inc":
                result[key] = result.get(key, 0) + value
            else:
                raise ValueError(f"unsupported update operator: {op}")
    return result


def project(document: Dict[str, Any], projection: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Apply a MongoDB style include/exclude projection."""
    if not projection:
        return copy.deepcopy(document)

    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        result = {k: copy.deepcopy(document[k]) for k in included if k in document}
        if projection.get("_id", 1) and "_id" in document:
            result["_id"] = document["_id"]
        return result

    return {
        k: copy.deepcopy(v) for k, v in document.items()
        if projection.get(k, 1)
    }


def _sort_key(field: str) -> Callable[[Dict[str, Any]], Tuple[bool, Any]]:
    def key(document: Dict[str, Any]) -> Tuple[bool, Any]:
        value = _lookup(document, field)
        missing = value is _MISSING or value is None
        return (not missing, None if missing else value)
    return key


class MemoryQuery(Querier):
    """Querier over a MemoryCollection snapshot taken at run time."""

    def __init__(
        self,
        collection: "MemoryCollection",
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

    def _with(self, **options: Any) -> "MemoryQuery":
        merged = dict(self._options)
        merged.update(options)
        return MemoryQuery(self._collection, self._filter, merged)

    def batch(self, n: int) -> Querier:
        return self._with(batch_size=n)

    def comment(self, text: str) -> Querier:
        return self._with(comment=text)

    def hint(self, *index_keys: str) -> Querier:
        return self._with(hint=index_keys)

    def limit(self, n: int) -> Querier:
        return self._with(limit=n)

    def skip(self, n: int) -> Querier:
        return self._with(skip=n)

    def select(self, projection: Dict[str, Any]) -> Querier:
        return self._with(projection=projection)

    def sort(self, *fields: str) -> Querier:
        return self._with(sort=fields)

    def set_max_time(self, ms: int) -> Querier:
        return self._with(max_time_ms=ms)

    def _matching(self) -> List[Dict[str, Any]]:
        documents = self._collection.matching(self._filter)

        for field in reversed(self._options.get("sort", ())):
            reverse = field.startswith("-")
            documents.sort(key=_sort_key(field.lstrip("-+")), reverse=reverse)

        skip = self._options.get("skip", 0)
        limit = self._options.get("limit", 0)
        if skip:
            documents = documents[skip:]
        if limit:
            documents = documents[:limit]
        return documents

    def one(self) -> Optional[Dict[str, Any]]:
        documents = self._matching()
        if not documents:
            return None
        return project(documents[0], self._options.get("projection"))

    def all(self) -> List[Dict[str, Any]]:
        projection = self._options.get("projection")
        return [project(d, projection) for d in self._matching()]

    def count(self) -> int:
        return len(self._matching())

    def distinct(self, key: str) -> List[Any]:
        values: List[Any] = []
        for document in self._matching():
            value = _lookup(document, key)
            if value is not _MISSING and value not in values:
                values.append(value)
        return values

    def iter(self) -> Iterator[Dict[str, Any]]:
        return iter(self.all())


class MemoryCollection(Collectioner):
    """
    Collectioner storing documents in insertion order.

    Stored documents are deep copies; nothing returned aliases internal state.
    """

    def __init__(self, name: str):
        self._name = name
        self._documents: Dict[Any, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    def matching(self, filter: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Copies of the stored documents satisfying filter, in insertion order."""
        with self._lock:
            return [
                copy.deepcopy(d) for d in self._documents.values() if matches(d, filter)
            ]

    def _matching_ids(self, selector: Optional[Dict[str, Any]]) -> List[Any]:
        return [key for key, d in self._documents.items() if matches(d, selector)]

    def find(self, filter: Optional[Dict[str, Any]] = None) -> Querier:
        return MemoryQuery(self, filter)

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def insert(self, *documents: Dict[str, Any]) -> None:
        with self._lock:
            for document in documents:
                stored = copy.deepcopy(document)
                if stored.get("_id") is None:
                    stored["_id"] = ObjectId()
                if stored["_id"] in self._documents:
                    raise DuplicateKeyError(self._name, {"_id": stored["_id"]})
                self._documents[stored["_id"]] = stored

    def remove(self, selector: Dict[str, Any]) -> None:
        with self._lock:
            keys = self._matching_ids(selector)
            if not keys:
                raise NotFoundError(self._name, selector)
            del self._documents[keys[0]]

    def remove_all(self, selector: Optional[Dict[str, Any]] = None) -> ChangeInfo:
        with self._lock:
            keys = self._matching_ids(selector)
            for key in keys:
                del self._documents[key]
            return ChangeInfo.remove_info(len(keys))

    def _replace(self, key: Any, update: Dict[str, Any]) -> bool:
        current = self._documents[key]
        updated = apply_update(current, update)
        self._documents[key] = updated
        return updated != current

    def update(self, selector: Dict[str, Any], update: Dict[str, Any]) -> None:
        with self._lock:
            keys = self._matching_ids(selector)
            if not keys:
                raise NotFoundError(self._name, selector)
            self._replace(keys[0], update)

    def update_all(self, selector: Dict[str, Any], update: Dict[str, Any]) -> ChangeInfo:
        with self._lock:
            keys = self._matching_ids(selector)
            modified = sum(1 for key in keys if self._replace(key, update))
            return ChangeInfo.update_info(modified, len(keys))

    def upsert(self, selector: Dict[str, Any], update: Dict[str, Any]) -> ChangeInfo:
        with self._lock:
            keys = self._matching_ids(selector)
            if keys:
                modified = 1 if self._replace(keys[0], update) else 0
                return ChangeInfo.update_info(modified, 1)

            seed = {
                k: v for k, v in selector.items()
                if not k.startswith("$") and not isinstance(v, dict)
            }
            document = apply_update(seed, update)
            if document.get("_id") is None:
                document["_id"] = ObjectId()
            self._documents[document["_id"]] = document
            return ChangeInfo.upsert_info(0, 0, document["_id"])

    def drop(self) -> None:
        with self._lock:
            self._documents.clear()


class MemoryDatabase(Databaser):
    """Databaser whose collections are created on first lookup."""

    def __init__(self, name: str = "test"):
        self._name = name
        self._collections: Dict[str, MemoryCollection] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def c(self, name: str) -> Collectioner:
        with self._lock:
            if name not in self._collections:
                self._collections[name] = MemoryCollection(name)
            return self._collections[name]

    def collection_names(self) -> List[str]:
        with self._lock:
            return [name for name, c in self._collections.items() if c.count() > 0]

    def drop_database(self) -> None:
        with self._lock:
            self._collections.clear()
