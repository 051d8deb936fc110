"""
Generic CRUD handle binding one document type to one collection.

Usage:
    products = Handle(Product, "products").link(connection.database())

    products.set_document(Product(name="lamp")).insert()
    lamp = products.clean().set_search({"name": "lamp"}).find()
    products.set_document(Product(name="lamp", price=15)).update(lamp.id)

A handle is Unlinked until link() succeeds and Linked from then on. Every
CRUD call on an unlinked handle raises NotLinkedError.

Handles keep mutable per-call state (working document, search mapping) and
must not be shared between threads without external locking. The linked
collection itself is shared.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from bson import ObjectId

from ..elements.base import ChangeInfo, Collectioner, Databaser
from ..errors import NotFoundError, NotLinkedError
from ..logger import get_logger
from ..model.documenter import Documenter, now_in_milli
from ..model.fields import decode, encode, filter_of

D = TypeVar("D", bound=Documenter)

# Keys never written by update()
_IMMUTABLE_KEYS = ("_id", "created_on")


class Handle(Generic[D]):
    """
    CRUD adapter for documents of type D stored in collection ``name``.

    The filter for count/find/find_all/remove_all is the search mapping when
    one is set, otherwise the non-zero fields of the working document.
    """

    def __init__(self, document_class: Type[D], name: str):
        self._document_class = document_class
        self._name = name
        self._collection: Optional[Collectioner] = None
        self._document: D = document_class()
        self._search: Dict[str, Any] = {}
        self._logger = get_logger(__name__, collection=name)

    @property
    def name(self) -> str:
        """Name of the collection this handle links to."""
        return self._name

    @property
    def document_class(self) -> Type[D]:
        return self._document_class

    @property
    def is_linked(self) -> bool:
        return self._collection is not None

    @property
    def collection(self) -> Collectioner:
        """
        The linked collection.

        Raises:
            NotLinkedError: If link() was never called
        """
        if self._collection is None:
            raise NotLinkedError(self._name)
        return self._collection

    @property
    def document(self) -> D:
        return self._document

    @property
    def search(self) -> Dict[str, Any]:
        return self._search

    def link(self, database: Databaser) -> "Handle[D]":
        """Bind the handle to its collection in database."""
        self._collection = database.c(self._name)
        self._logger.info(f"Linked to database '{database.name}'")
        return self

    def set_document(self, document: D) -> "Handle[D]":
        """Replace the working document."""
        if not isinstance(document, self._document_class):
            raise TypeError(
                f"expected {self._document_class.__name__}, got {type(document).__name__}"
            )
        self._document = document
        return self

    def set_search(self, search: Dict[str, Any]) -> "Handle[D]":
        """Use search as the filter instead of the working document."""
        self._search = dict(search)
        return self

    def clean(self) -> "Handle[D]":
        """Reset working document and search; the link is kept."""
        self._document = self._document_class()
        self._search = {}
        return self

    def filter(self) -> Dict[str, Any]:
        """Filter used by count, find, find_all and remove_all."""
        if self._search:
            return dict(self._search)
        return filter_of(self._document)

    def _decode(self, mapping: Dict[str, Any]) -> D:
        return decode(mapping, self._document_class())

    def count(self) -> int:
        """Number of documents matching the current filter."""
        selector = self.filter()
        n = self.collection.find(selector).count()
        self._logger.debug(f"count {selector} -> {n}")
        return n

    def find(self) -> D:
        """
        Return the document matching the current filter.

        When several documents match, the first one the store returns is
        used; no ordering is implied.

        Raises:
            NotFoundError: If nothing matches
            DecodeError: If the stored document does not fit type D
        """
        selector = self.filter()
        mapping = self.collection.find(selector).one()
        if mapping is None:
            raise NotFoundError(self._name, selector)
        self._logger.debug(f"find {selector} -> {mapping.get('_id')}")
        return self._decode(mapping)

    def find_all(self) -> List[D]:
        """Every document matching the current filter, in store order."""
        selector = self.filter()
        mappings = self.collection.find(selector).all()
        self._logger.debug(f"find_all {selector} -> {len(mappings)} documents")
        return [self._decode(mapping) for mapping in mappings]

    def insert(self) -> None:
        """
        Store the working document as a new record.

        A zero created_on is stamped with the current time and written back
        onto the working document once the store accepts it. An unset _id
        is assigned by the store and is not copied back onto the working
        document; call find() to obtain it.

        Raises:
            DuplicateKeyError: If the _id already exists
        """
        collection = self.collection
        document = self._document
        mapping = encode(document)
        created_on = document.created_on or now_in_milli()
        mapping["created_on"] = created_on

        collection.insert(mapping)
        document.set_created_on(created_on)
        self._logger.debug(f"insert {document.id}")

    def update(self, id: ObjectId) -> None:
        """
        Apply the working document's fields to the stored document ``id``.

        updated_on is set to the current time and copied onto the working
        document only after the store applied the change. Two updates within
        the same millisecond store the same updated_on. _id and created_on
        are never written.

        Raises:
            NotFoundError: If no document has that id
        """
        collection = self.collection
        document = self._document
        updated_on = now_in_milli()

        changes = encode(document)
        for key in _IMMUTABLE_KEYS:
            changes.pop(key, None)
        changes["updated_on"] = updated_on

        collection.update_id(id, {"$set": changes})
        document.set_updated_on(updated_on)
        self._logger.debug(f"update {id}")

    def remove(self, id: Optional[ObjectId] = None) -> None:
        """
        Delete the stored document ``id`` (default: the working document's id).

        Raises:
            NotFoundError: If no document has that id
        """
        collection = self.collection
        if id is None:
            id = self._document.id
        collection.remove_id(id)
        self._logger.debug(f"remove {id}")

    def remove_all(self) -> ChangeInfo:
        """Delete every document matching the current filter."""
        selector = self.filter()
        info = self.collection.remove_all(selector)
        self._logger.debug(f"remove_all {selector} -> {info.removed} removed")
        return info
