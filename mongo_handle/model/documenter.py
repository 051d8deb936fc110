"""
Document capability shared by every stored record.

A document carries three lifecycle values:
- _id: assigned once, never changed by updates
- created_on: milliseconds since epoch, set once at creation
- updated_on: milliseconds since epoch, set on every update

Concrete documents subclass Document and extend its ``fields`` table:

    class Product(Document):
        fields = Document.fields + (
            Field("name", "name", str, zero=""),
            Field("price", "price", (int, float), zero=0),
        )

    p = Product(name="lamp", price=12)
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId

from ..errors import DecodeError
from .fields import Field, decode, encode


def new_id() -> ObjectId:
    """Generate a new identifier (12 bytes: time, machine/process, counter)."""
    return ObjectId()


def object_id_hex(value: str) -> ObjectId:
    """
    Parse a 24 character hex string into an identifier.

    Raises:
        DecodeError: If value is not a valid identifier
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise DecodeError(f"invalid identifier {value!r}: {e}", field="_id") from e


def now_in_milli() -> int:
    """Current wall-clock time in milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


class Documenter(ABC):
    """
    Abstract interface for documents stored through a Handle.
    """

    fields: Tuple[Field, ...] = ()

    @property
    @abstractmethod
    def id(self) -> Optional[ObjectId]:
        pass

    @abstractmethod
    def set_id(self, id: Optional[ObjectId]) -> None:
        pass

    @property
    @abstractmethod
    def created_on(self) -> int:
        pass

    @abstractmethod
    def set_created_on(self, t: int) -> None:
        pass

    @property
    @abstractmethod
    def updated_on(self) -> int:
        pass

    @abstractmethod
    def set_updated_on(self, t: int) -> None:
        pass

    @abstractmethod
    def generate_id(self) -> None:
        """Assign a freshly generated identifier."""
        pass

    @abstractmethod
    def calculate_created_on(self) -> None:
        """Set created_on to the current time."""
        pass

    @abstractmethod
    def calculate_updated_on(self) -> None:
        """Set updated_on to the current time."""
        pass

    @abstractmethod
    def new(self) -> "Documenter":
        """Return an empty document of the same concrete type."""
        pass

    def map(self) -> Dict[str, Any]:
        """Translate the document to a plain mapping."""
        return encode(self)

    def init(self, mapping: Dict[str, Any]) -> "Documenter":
        """Fill the document from a plain mapping; raises DecodeError."""
        return decode(mapping, self)


class Document(Documenter):
    """
    Base implementation of Documenter.

    Keyword arguments of the constructor are field attributes; unset fields
    take their zero value.
    """

    fields: Tuple[Field, ...] = (
        Field("_id", "_id", ObjectId, nullable=True, omit_zero=True),
        Field("created_on", "_created_on", int, zero=0),
        Field("updated_on", "_updated_on", int, zero=0),
    )

    def __init__(
        self,
        id: Optional[ObjectId] = None,
        created_on: int = 0,
        updated_on: int = 0,
        **values: Any,
    ):
        for field in self.fields:
            setattr(self, field.attr, field.zero_value())

        self._id = id
        self._created_on = created_on
        self._updated_on = updated_on

        known = {field.attr for field in self.fields}
        for attr, value in values.items():
            if attr not in known:
                raise TypeError(f"{type(self).__name__} has no field '{attr}'")
            setattr(self, attr, value)

    @property
    def id(self) -> Optional[ObjectId]:
        return self._id

    def set_id(self, id: Optional[ObjectId]) -> None:
        self._id = id

    @property
    def created_on(self) -> int:
        return self._created_on

    def set_created_on(self, t: int) -> None:
        self._created_on = t

    @property
    def updated_on(self) -> int:
        return self._updated_on

    def set_updated_on(self, t: int) -> None:
        self._updated_on = t

    def generate_id(self) -> None:
        self._id = new_id()

    def calculate_created_on(self) -> None:
        self._created_on = now_in_milli()

    def calculate_updated_on(self) -> None:
        self._updated_on = now_in_milli()

    def new(self) -> "Document":
        return type(self)()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return all(
            getattr(self, field.attr) == getattr(other, field.attr)
            for field in self.fields
        )

    def __repr__(self) -> str:
        values = ", ".join(
            f"{field.key}={getattr(self, field.attr)!r}" for field in self.fields
        )
        return f"{type(self).__name__}({values})"
