"""
Driver Interface Definitions

Defines the abstract interfaces for the collection, database and query
objects used by handles. This enables swapping implementations (pymongo,
in-memory fake, mocks) without changing consumer code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional


@dataclass(frozen=True)
class ChangeInfo:
    """
    Outcome of a bulk mutation.

    Attributes:
        updated: Number of documents actually modified
        removed: Number of documents deleted
        matched: Number of documents that matched the selector
        upserted_id: ID of the upserted document (if any)
    """
    updated: int = 0
    removed: int = 0
    matched: int = 0
    upserted_id: Optional[Any] = None

    @classmethod
    def remove_info(cls, removed: int) -> "ChangeInfo":
        """ChangeInfo as returned by remove calls."""
        return cls(removed=removed)

    @classmethod
    def update_info(cls, updated: int, matched: int) -> "ChangeInfo":
        """ChangeInfo as returned by update calls."""
        return cls(updated=updated, matched=matched)

    @classmethod
    def upsert_info(cls, updated: int, matched: int, upserted_id: Any) -> "ChangeInfo":
        """ChangeInfo as returned by upsert calls."""
        return cls(updated=updated, matched=matched, upserted_id=upserted_id)


class Querier(ABC):
    """
    Abstract interface for a prepared query.

    Modifier methods return a new Querier and never run the query.
    Terminal methods (one, all, count, distinct, iter) hit the store.
    """

    @abstractmethod
    def batch(self, n: int) -> "Querier":
        """Set the number of documents fetched per round trip."""
        pass

    @abstractmethod
    def comment(self, text: str) -> "Querier":
        """Attach a comment visible in the database profiler output."""
        pass

    @abstractmethod
    def hint(self, *index_keys: str) -> "Querier":
        """Force the server to use the index on the given keys."""
        pass

    @abstractmethod
    def limit(self, n: int) -> "Querier":
        """Restrict the maximum number of documents retrieved to n."""
        pass

    @abstractmethod
    def skip(self, n: int) -> "Querier":
        """Skip over the n initial documents."""
        pass

    @abstractmethod
    def select(self, projection: Dict[str, Any]) -> "Querier":
        """Restrict the fields retrieved (e.g., {"name": 1})."""
        pass

    @abstractmethod
    def sort(self, *fields: str) -> "Querier":
        """
        Order results by the given field names.

        A field prefixed with "-" is sorted in reverse order:

            query.sort("lastname", "-age")
        """
        pass

    @abstractmethod
    def set_max_time(self, ms: int) -> "Querier":
        """Ask the server to abort the query after ms milliseconds."""
        pass

    @abstractmethod
    def one(self) -> Optional[Dict[str, Any]]:
        """
        Run the query and return the first match.

        Returns:
            Document dict if found, None otherwise
        """
        pass

    @abstractmethod
    def all(self) -> List[Dict[str, Any]]:
        """Run the query and return every match, in store order."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Count documents matching the query, honouring skip and limit."""
        pass

    @abstractmethod
    def distinct(self, key: str) -> List[Any]:
        """Return the distinct values of key among matching documents."""
        pass

    @abstractmethod
    def iter(self) -> Iterator[Dict[str, Any]]:
        """Iterate lazily over matching documents."""
        pass


class Collectioner(ABC):
    """
    Abstract interface for collection operations.

    Implementations:
    - Collection: pymongo-backed
    - MemoryCollection: in-memory, for tests

    Single-document remove and update raise NotFoundError when nothing
    matches. Bulk operations report their outcome as ChangeInfo.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Collection name."""
        pass

    @abstractmethod
    def find(self, filter: Optional[Dict[str, Any]] = None) -> Querier:
        """
        Prepare a query for documents matching filter.

        Args:
            filter: MongoDB query filter; None is the same as {}

        Returns:
            Querier to refine and run
        """
        pass

    def find_id(self, id: Any) -> Querier:
        """Prepare a query for the document with the given _id."""
        return self.find({"_id": id})

    @abstractmethod
    def count(self) -> int:
        """Total number of documents in the collection."""
        pass

    @abstractmethod
    def insert(self, *documents: Dict[str, Any]) -> None:
        """
        Insert one or more documents.

        Raises:
            DuplicateKeyError: If an _id already exists
        """
        pass

    @abstractmethod
    def remove(self, selector: Dict[str, Any]) -> None:
        """
        Remove a single document matching selector.

        Raises:
            NotFoundError: If no document matches
        """
        pass

    def remove_id(self, id: Any) -> None:
        """Remove the document with the given _id."""
        self.remove({"_id": id})

    @abstractmethod
    def remove_all(self, selector: Optional[Dict[str, Any]] = None) -> ChangeInfo:
        """
        Remove every document matching selector.

        Returns:
            ChangeInfo with the removed count
        """
        pass

    @abstractmethod
    def update(self, selector: Dict[str, Any], update: Dict[str, Any]) -> None:
        """
        Modify a single document matching selector.

        Args:
            selector: MongoDB query filter
            update: Update operators (e.g., {"$set": {...}}) or a replacement document

        Raises:
            NotFoundError: If no document matches
        """
        pass

    def update_id(self, id: Any, update: Dict[str, Any]) -> None:
        """Modify the document with the given _id."""
        self.update({"_id": id}, update)

    @abstractmethod
    def update_all(self, selector: Dict[str, Any], update: Dict[str, Any]) -> ChangeInfo:
        """
        Modify every document matching selector.

        It is not an error for the selector to match nothing.

        Returns:
            ChangeInfo with matched and updated counts
        """
        pass

    @abstractmethod
    def upsert(self, selector: Dict[str, Any], update: Dict[str, Any]) -> ChangeInfo:
        """
        Modify a single document matching selector, inserting it if absent.

        Returns:
            ChangeInfo with upserted_id set when a document was created
        """
        pass

    def upsert_id(self, id: Any, update: Dict[str, Any]) -> ChangeInfo:
        """Upsert the document with the given _id."""
        return self.upsert({"_id": id}, update)

    @abstractmethod
    def drop(self) -> None:
        """Remove the collection and all of its documents."""
        pass


class Databaser(ABC):
    """
    Abstract interface for database operations.

    Looking up a collection is lightweight and involves no network
    communication.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Database name."""
        pass

    @abstractmethod
    def c(self, name: str) -> Collectioner:
        """Return the named collection."""
        pass

    @abstractmethod
    def collection_names(self) -> List[str]:
        """List the collections currently in the database."""
        pass

    @abstractmethod
    def drop_database(self) -> None:
        """Remove the whole database."""
        pass
