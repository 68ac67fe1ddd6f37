from bson.objectid import ObjectId

from database import find_by_id, serialize_doc, to_object_id


def test_to_object_id_accepts_ids_and_hex_strings():
    oid = ObjectId()
    assert to_object_id(oid) is oid
    assert to_object_id(str(oid)) == oid


def test_to_object_id_rejects_malformed_values():
    for value in ("nope", "", None, 12345, "64b7f0c2e4b0a1a2b3c4d5e"):
        assert to_object_id(value) is None


def test_find_by_id_with_malformed_id(db):
    assert find_by_id(db, "product", "not-an-id") is None


def test_serialize_doc_stringifies_ids():
    oid, ref = ObjectId(), ObjectId()
    assert serialize_doc({"_id": oid, "ref": ref, "name": "x"}) == {"id": str(oid), "ref": str(ref), "name": "x"}
