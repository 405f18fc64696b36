"""Tests for model serialization and defaults."""

from pallet.models import (
    ArtConfirmation,
    ArtPlacement,
    ArtProof,
    ArtStatus,
    CloseoutChecklist,
    DecorationType,
    LineItem,
    Order,
    OrderStatus,
    ProofStatus,
    StitchCountTier,
)

from .conftest import make_item, make_order


class TestOrderSerialization:
    def test_round_trip(self, actor):
        order = make_order(actor, items=[make_item(ordered=True, ordered_at="2025-03-01")])
        restored = Order.from_dict(order.to_dict())
        assert restored == order

    def test_optional_fields_omitted(self, actor):
        data = make_order(actor, status=OrderStatus.QUOTE).to_dict()
        for key in ("lead_info", "closed_at", "closed_reason", "reopened_from", "archived_at"):
            assert key not in data

    def test_enums_stored_as_values(self, actor):
        data = make_order(actor, items=[make_item()]).to_dict()
        assert data["status"] == "Lead"
        assert data["art_status"] == "Not Started"
        assert data["line_items"][0]["decoration_type"] == "ScreenPrint"

    def test_unknown_status_kept_as_text(self, actor):
        data = make_order(actor).to_dict()
        data["status"] = "Shipped"
        order = Order.from_dict(data)
        assert order.status == "Shipped"
        assert not isinstance(order.status, OrderStatus)

    def test_minimal_dict_gets_defaults(self):
        order = Order.from_dict({"id": "abc", "customer": "Acme Co"})
        assert order.status is OrderStatus.LEAD
        assert order.art_status is ArtStatus.NOT_STARTED
        assert order.line_items == ()
        assert order.history == ()
        assert order.closeout_checklist == CloseoutChecklist()


class TestLineItem:
    def test_create_generates_id(self):
        a = LineItem.create(name="Tee")
        b = LineItem.create(name="Tee")
        assert a.id and b.id and a.id != b.id

    def test_defaults(self):
        item = LineItem.from_dict({"name": "Cap"})
        assert item.decoration_type is DecorationType.OTHER
        assert item.decoration_placements == 1
        assert item.screen_print_colors == 1
        assert item.stitch_count_tier is StitchCountTier.UNDER_8K
        assert not (item.ordered or item.received or item.decorated or item.packed)


class TestArtConfirmation:
    def test_latest_proof(self):
        placement = ArtPlacement(
            id="p1",
            location="Front",
            proofs=(
                ArtProof(id="a", version=1, status=ProofStatus.REVISION_NEEDED),
                ArtProof(id="b", version=2, status=ProofStatus.SENT),
            ),
        )
        assert placement.latest_proof.id == "b"
        assert ArtPlacement(id="p2", location="Back").latest_proof is None

    def test_round_trip(self):
        confirmation = ArtConfirmation(
            overall_status=ArtStatus.SENT_TO_CUSTOMER,
            placements=(
                ArtPlacement(
                    id="p1",
                    location="Left Chest",
                    width=3.5,
                    proofs=(ArtProof(id="a", proof_name="v1", created_at="2025-03-01"),),
                ),
            ),
            designer_notes="Use PMS 186",
        )
        assert ArtConfirmation.from_dict(confirmation.to_dict()) == confirmation
