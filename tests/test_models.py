import pytest
from pydantic import ValidationError

from models import PendingSideEffect, ShopifyProduct, SideEffectKind, SourceProduct, StockLevel


def test_source_product_accepts_camel_case_and_field_names():
    by_alias = SourceProduct(sku="A1", name="Widget X", priceIncl=10)
    by_name = SourceProduct(sku="A1", name="Widget X", price_incl=10)
    assert by_alias.price_incl == by_name.price_incl == 10


def test_source_product_is_immutable():
    product = SourceProduct(sku="A1", name="Widget X", priceIncl=10)
    with pytest.raises(ValidationError):
        product.sku = "B2"


def test_color_defaults():
    assert SourceProduct(attributes={"color": None}).color == "Default"
    assert SourceProduct(attributes={"color": ""}).color == "Default"
    assert SourceProduct().color == "Default"
    assert SourceProduct(attributes={"color": "Black"}).color == "Black"


def test_stock_level_clamps_negative():
    assert StockLevel(sku="A1", onHand=-2).on_hand == 0
    assert StockLevel(sku=42, onHand="7").sku == "42"


def test_stock_level_accepts_decimal_counts():
    assert StockLevel(sku="A1", onHand="5.0").on_hand == 5
    assert StockLevel(sku="A1", onHand=3.0).on_hand == 3
    assert StockLevel(sku="A1", onHand="-1.5").on_hand == 0


def test_stock_level_rejects_non_numeric_counts():
    with pytest.raises(ValidationError):
        StockLevel(sku="A1", onHand="lots")
    with pytest.raises(ValidationError):
        StockLevel(sku="A1", onHand="inf")


def test_source_product_coerces_loose_feed_values():
    product = SourceProduct(sku="A1", description=42, images=[None, "https://cdn/a.jpg"],
                            attributes={"brand": 7, "deviceModel": 15, "color": 0})
    assert product.description == "42"
    assert product.images == ["https://cdn/a.jpg"]
    assert product.vendor == "7"
    assert product.attributes.device_model == "15"
    assert product.color == "Default"
    assert SourceProduct(images="https://cdn/b.jpg").images == ["https://cdn/b.jpg"]


def test_shopify_product_helpers():
    product = ShopifyProduct.model_validate({
        "id": 1,
        "title": "Widget X",
        "handle": "widget-x",
        "options": [{"name": "Color", "values": ["Blue", "Red"]}],
        "variants": [{"id": 10, "sku": "B2", "price": 149.99, "inventory_item_id": 100, "option1": "Blue"}],
    })
    assert product.option_values("Color") == ["Blue", "Red"]
    assert product.option_values("Size") == []
    assert product.find_variant("B2").price == "149.99"
    assert product.find_variant("A1") is None


def test_pending_side_effect_round_trips_kind():
    record = PendingSideEffect(kind="inventory", sku="A1", listing_id=1, payload={"available": 1})
    assert record.kind is SideEffectKind.INVENTORY
    assert PendingSideEffect.model_validate_json(record.model_dump_json()) == record
