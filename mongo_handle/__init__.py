"""
mongo_handle: testable MongoDB collections and a generic document CRUD handle.

Public API:
- Connection, ConnectionConfig: explicit connection lifecycle from environment
- Handle: CRUD adapter binding a document type to a collection
- Document, Documenter, Field: document capability and field mapping table
- Collectioner, Databaser, Querier: store interfaces (pymongo or in-memory)
- ChangeInfo: outcome of bulk mutations
- Errors: NotLinkedError, NotFoundError, DuplicateKeyError, DecodeError, StoreError

Usage:
    from mongo_handle import Connection, Document, Field, Handle

    class Product(Document):
        fields = Document.fields + (Field("name", "name", str, zero=""),)

    with Connection.from_env() as connection:
        products = Handle(Product, "products").link(connection.database())
        products.set_document(Product(name="lamp")).insert()
"""

from .config import ConnectionConfig
from .connection import Connection
from .elements import (
    ChangeInfo,
    Collection,
    Collectioner,
    Database,
    Databaser,
    MemoryCollection,
    MemoryDatabase,
    Querier,
    Query,
)
from .errors import (
    DecodeError,
    DuplicateKeyError,
    MongoHandleError,
    NotFoundError,
    NotLinkedError,
    StoreError,
)
from .handler import Handle
from .model import (
    Document,
    Documenter,
    Field,
    decode,
    encode,
    new_id,
    now_in_milli,
    object_id_hex,
)

__version__ = "0.1.0"

__all__ = [
    # Connection
    "Connection",
    "ConnectionConfig",
    # Handle
    "Handle",
    # Model
    "Document",
    "Documenter",
    "Field",
    "decode",
    "encode",
    "new_id",
    "now_in_milli",
    "object_id_hex",
    # Elements
    "ChangeInfo",
    "Collection",
    "Collectioner",
    "Database",
    "Databaser",
    "MemoryCollection",
    "MemoryDatabase",
    "Querier",
    "Query",
    # Errors
    "MongoHandleError",
    "NotLinkedError",
    "NotFoundError",
    "DuplicateKeyError",
    "DecodeError",
    "StoreError",
]
