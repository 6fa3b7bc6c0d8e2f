"""Tests for reference normalization."""

import pytest

from freightsync import Populated, Ref, resolve_ref, resolve_refs
from freightsync.refs import ref_id


class TestResolveRef:
    """Tests for resolve_ref."""

    def test_none(self) -> None:
        """Test that missing references stay None."""
        assert resolve_ref(None) is None

    def test_id_string(self) -> None:
        """Test that a bare id becomes a Ref."""
        assert resolve_ref("lt-1") == Ref("lt-1")

    def test_populated_object(self) -> None:
        """Test that an object becomes Populated with its _id."""
        ref = resolve_ref({"_id": "lt-1", "name": "Pallets"})
        assert isinstance(ref, Populated)
        assert ref.id == "lt-1"
        assert ref.document["name"] == "Pallets"

    def test_populated_with_id_field(self) -> None:
        """Test that ``id`` is used when ``_id`` is absent."""
        assert resolve_ref({"id": 5}).id == "5"

    def test_populated_without_id(self) -> None:
        """Test that objects without an id still resolve."""
        assert resolve_ref({"name": "x"}) == Populated(id=None, document={"name": "x"})

    def test_already_resolved(self) -> None:
        """Test that resolved values pass through."""
        ref = Ref("a")
        assert resolve_ref(ref) is ref

    def test_unsupported_type(self) -> None:
        """Test that other shapes are rejected."""
        with pytest.raises(TypeError):
            resolve_ref(42)

    def test_ref_id(self) -> None:
        """Test extracting ids from both shapes."""
        assert ref_id("a") == "a"
        assert ref_id({"_id": "b"}) == "b"
        assert ref_id(None) is None


class TestResolveRefs:
    """Tests for resolve_refs on whole documents."""

    def test_top_level_and_nested(self) -> None:
        """Test plain and dotted field names."""
        order = {
            "_id": "o1",
            "loadType": "lt-1",
            "owner": {"_id": "u1", "name": "Ada"},
            "pricing": {"amount": 100, "pricingType": "pt-1"},
        }
        resolved = resolve_refs(order, ["loadType", "owner", "pricing.pricingType"])

        assert resolved["loadType"] == Ref("lt-1")
        assert resolved["owner"].id == "u1"
        assert resolved["pricing"]["pricingType"] == Ref("pt-1")
        assert resolved["pricing"]["amount"] == 100
        assert order["loadType"] == "lt-1"

    def test_list_field(self) -> None:
        """Test that list values are resolved element-wise."""
        truck = {"truckOptions": ["a", {"_id": "b"}]}
        resolved = resolve_refs(truck, ["truckOptions"])
        assert resolved["truckOptions"][0] == Ref("a")
        assert resolved["truckOptions"][1].id == "b"

    def test_missing_field_ignored(self) -> None:
        """Test that absent fields are left alone."""
        assert resolve_refs({"_id": "o1"}, ["loadType", "pricing.pricingType"]) == {"_id": "o1"}
