"""Document capability and the explicit field mapping used to store documents."""

from .documenter import Document, Documenter, new_id, now_in_milli, object_id_hex
from .fields import Field, decode, encode, filter_of

__all__ = [
    "Document",
    "Documenter",
    "Field",
    "decode",
    "encode",
    "filter_of",
    "new_id",
    "now_in_milli",
    "object_id_hex",
]
