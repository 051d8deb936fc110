"""
Tests for the document capability and its field mapping.

Covers:
- identifier and timestamp generation
- encode omitting an unset _id
- decode rejecting missing keys and wrong types without coercion
- round trip of fully populated documents
"""

import time

import pytest
from bson import ObjectId

from fixtures.sample_products import (
    TEST_ID_01,
    Product,
    product_mapping,
    stored_product,
)
from mongo_handle import (
    DecodeError,
    Document,
    Field,
    decode,
    encode,
    new_id,
    now_in_milli,
    object_id_hex,
)
from mongo_handle.model import filter_of


class TestHelpers:
    """Tests for module level id and time helpers."""

    def test_new_id_is_unique(self):
        """Should yield distinct identifiers across many calls."""
        ids = [new_id() for _ in range(1000)]

        assert len(set(ids)) == 1000

    def test_new_id_renders_as_24_hex_chars(self):
        assert len(str(new_id())) == 24

    def test_object_id_hex_parses(self):
        assert object_id_hex(TEST_ID_01) == ObjectId(TEST_ID_01)

    def test_object_id_hex_rejects_garbage(self):
        with pytest.raises(DecodeError, match="invalid identifier"):
            object_id_hex("not-an-id")

    def test_now_in_milli_matches_wall_clock(self):
        before = int(time.time() * 1000)
        now = now_in_milli()
        after = int(time.time() * 1000)

        assert before - 1 <= now <= after + 1


class TestDocument:
    """Tests for the Document base implementation."""

    def test_new_document_is_zero(self):
        product = Product()

        assert product.id is None
        assert product.created_on == 0
        assert product.updated_on == 0
        assert product.name == ""
        assert product.tags == []

    def test_zero_values_are_not_shared(self):
        """Mutable zero values must be copied per instance."""
        a, b = Product(), Product()
        a.tags.append("x")

        assert b.tags == []

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="no field 'colour'"):
            Product(colour="red")

    def test_generate_id_replaces_id(self):
        product = Product()
        product.generate_id()
        first = product.id
        product.generate_id()

        assert isinstance(first, ObjectId)
        assert product.id != first

    def test_calculate_timestamps(self):
        product = Product()
        before = now_in_milli()
        product.calculate_created_on()
        product.calculate_updated_on()

        assert product.created_on >= before
        assert product.updated_on >= product.created_on

    def test_setters(self):
        product = Product()
        oid = new_id()
        product.set_id(oid)
        product.set_created_on(10)
        product.set_updated_on(20)

        assert (product.id, product.created_on, product.updated_on) == (oid, 10, 20)

    def test_new_returns_empty_instance_of_same_type(self):
        product = stored_product(name="lamp")

        fresh = product.new()

        assert type(fresh) is Product
        assert fresh == Product()

    def test_equality_compares_fields(self):
        oid = new_id()

        assert Product(id=oid, name="a") == Product(id=oid, name="a")
        assert Product(id=oid, name="a") != Product(id=oid, name="b")

    def test_map_and_init(self):
        product = stored_product(name="lamp", price=3)

        copy = Product().init(product.map())

        assert copy == product


class TestEncode:
    """Tests for encode()."""

    def test_omits_unset_id(self):
        mapping = encode(Product(name="lamp"))

        assert "_id" not in mapping

    def test_always_includes_timestamps(self):
        mapping = encode(Product())

        assert mapping["created_on"] == 0
        assert mapping["updated_on"] == 0

    def test_includes_id_when_set(self):
        product = stored_product()

        assert encode(product)["_id"] == product.id

    def test_encoded_values_are_copies(self):
        product = Product(tags=["a"])
        mapping = encode(product)
        mapping["tags"].append("b")

        assert product.tags == ["a"]


class TestDecode:
    """Tests for decode()."""

    def test_populates_fields(self):
        mapping = product_mapping(name="desk", price=99.5)

        product = decode(mapping, Product())

        assert product.id == ObjectId(TEST_ID_01)
        assert product.name == "desk"
        assert product.price == 99.5

    def test_missing_required_field(self):
        mapping = product_mapping()
        del mapping["created_on"]

        with pytest.raises(DecodeError, match="created_on") as excinfo:
            decode(mapping, Product())

        assert excinfo.value.field == "created_on"

    def test_missing_id_is_an_error(self):
        mapping = product_mapping()
        del mapping["_id"]

        with pytest.raises(DecodeError, match="_id"):
            decode(mapping, Product())

    def test_missing_optional_field_takes_zero(self):
        mapping = product_mapping()
        del mapping["tags"]

        assert decode(mapping, Product()).tags == []

    def test_wrong_type_is_not_coerced(self):
        mapping = product_mapping(price="12")

        with pytest.raises(DecodeError, match="price"):
            decode(mapping, Product())

    def test_bool_is_not_an_int(self):
        mapping = product_mapping(created_on=True)

        with pytest.raises(DecodeError, match="created_on"):
            decode(mapping, Product())

    def test_none_only_for_nullable(self):
        assert decode(product_mapping(note=None), Product()).note is None

        with pytest.raises(DecodeError, match="name"):
            decode(product_mapping(name=None), Product())

    def test_failed_decode_leaves_document_untouched(self):
        product = stored_product(name="lamp")
        before = encode(product)

        with pytest.raises(DecodeError):
            decode(product_mapping(name="desk", price=[1]), product)

        assert encode(product) == before

    def test_unknown_keys_ignored(self):
        product = decode(product_mapping(colour="red"), Product())

        assert not hasattr(product, "colour")

    def test_non_mapping_rejected(self):
        with pytest.raises(DecodeError):
            decode(["_id"], Product())


class TestRoundTrip:
    """decode(encode(d)) reconstructs d."""

    @pytest.mark.parametrize("values", [
        {"name": "lamp", "price": 12, "tags": ["home", "light"], "note": "bright"},
        {"name": "", "price": 0.5, "tags": [], "note": None},
    ])
    def test_round_trip(self, values):
        product = stored_product(**values)
        product.calculate_updated_on()

        assert decode(encode(product), product.new()) == product


class TestFilterOf:
    """Tests for filter_of()."""

    def test_empty_document_gives_empty_filter(self):
        assert filter_of(Product()) == {}

    def test_only_non_zero_fields(self):
        oid = new_id()

        assert filter_of(Product(id=oid)) == {"_id": oid}
        assert filter_of(Product(name="lamp", price=0)) == {"name": "lamp"}


class TestCustomFieldTable:
    """A document class declaring its own table on top of Document."""

    def test_extra_fields_are_mapped(self):
        class Note(Document):
            fields = Document.fields + (Field("body", "body", str, zero=""),)

        note = Note(body="hello")

        assert encode(note) == {"created_on": 0, "updated_on": 0, "body": "hello"}
