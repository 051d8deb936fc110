"""
Explicit field mapping between documents and stored mappings.

Each document class declares a ``fields`` table. ``encode`` and ``decode``
walk that table only: no attribute discovery, no type coercion.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Type, Union

from ..errors import DecodeError

TypeSpec = Union[Type, Tuple[Type, ...]]


@dataclass(frozen=True)
class Field:
    """
    One entry of a document's mapping table.

    Attributes:
        key: Key in the stored mapping (e.g., "created_on")
        attr: Attribute holding the value on the document
        types: Accepted Python type(s) for the value
        required: decode fails when the key is missing
        nullable: None is an accepted value
        zero: Value of an unset field; copied for every new document
        omit_zero: encode leaves the key out while the value is zero
    """
    key: str
    attr: str
    types: TypeSpec
    required: bool = True
    nullable: bool = False
    zero: Any = None
    omit_zero: bool = False

    def zero_value(self) -> Any:
        return copy.copy(self.zero)

    def is_zero(self, value: Any) -> bool:
        if value is None or self.zero is None:
            return value is None
        return type(value) is type(self.zero) and value == self.zero

    def accepts(self, value: Any) -> bool:
        if value is None:
            return self.nullable
        types = self.types if isinstance(self.types, tuple) else (self.types,)
        # bool is an int subclass; only accept it where asked for explicitly
        if isinstance(value, bool) and bool not in types:
            return False
        return isinstance(value, types)


def encode(document) -> Dict[str, Any]:
    """
    Translate a document into a plain mapping ready for the store.

    Fields flagged ``omit_zero`` (the identifier) are left out while unset,
    so the store can assign them.
    """
    out: Dict[str, Any] = {}
    for field in document.fields:
        value = getattr(document, field.attr)
        if field.omit_zero and field.is_zero(value):
            continue
        out[field.key] = copy.deepcopy(value)
    return out


def decode(mapping: Dict[str, Any], document):
    """
    Populate document from a stored mapping.

    Values are validated first and assigned only when every field passes,
    so a failed decode leaves the document untouched. Keys the table does
    not know about are ignored.

    Args:
        mapping: Stored mapping (e.g., as returned by a query)
        document: Document instance to fill

    Returns:
        The same document instance

    Raises:
        DecodeError: If a required key is missing or a value has the wrong type
    """
    if not isinstance(mapping, dict):
        raise DecodeError(f"cannot decode {type(mapping).__name__} into {type(document).__name__}")

    values = {}
    for field in document.fields:
        if field.key not in mapping:
            if field.required:
                raise DecodeError(
                    f"{type(document).__name__}: missing required field '{field.key}'",
                    field=field.key,
                )
            values[field.attr] = field.zero_value()
            continue

        value = mapping[field.key]
        if not field.accepts(value):
            raise DecodeError(
                f"{type(document).__name__}: field '{field.key}' has unexpected "
                f"type {type(value).__name__}",
                field=field.key,
            )
        values[field.attr] = copy.deepcopy(value)

    for attr, value in values.items():
        setattr(document, attr, value)
    return document


def filter_of(document) -> Dict[str, Any]:
    """Encoded fields of document whose value is not zero."""
    by_key = {field.key: field for field in document.fields}
    return {
        key: value for key, value in encode(document).items()
        if not by_key[key].is_zero(value)
    }
