import itertools

import pytest

from exceptions import StoreError
from models import ShopifyProduct, SourceProduct
from reconciler import Reconciler

LOCATION_ID = "70000001"


class FakeStore:
    """In-memory Shopify catalog that records every call.

    Updates append variants without an id and patch variants that carry one,
    mirroring how the engine expects Shopify to apply product updates.
    """

    def __init__(self):
        self.products = {}
        self.calls = []
        self.fail = set()
        self._ids = itertools.count(1001)

    def _check(self, name):
        if name in self.fail:
            raise StoreError(f"{name} failed", status_code=500, body="boom")

    def _new_variant(self, data):
        variant_id = next(self._ids)
        return dict(data, id=variant_id, inventory_item_id=variant_id + 50000)

    def add_listing(self, title, variants=(), colors=None):
        product_id = next(self._ids)
        variants = [self._new_variant(v) for v in variants]
        colors = colors if colors is not None else [v.get("option1") for v in variants]
        self.products[product_id] = {
            "id": product_id,
            "title": title,
            "options": [{"name": "Color", "values": list(colors)}] if colors else [],
            "variants": variants,
            "images": [],
        }
        return ShopifyProduct.model_validate(self.products[product_id])

    def list_products(self, params=None, fields=None):
        self.calls.append(("list_products", params))
        self._check("list_products")
        return [ShopifyProduct.model_validate(p) for p in self.products.values()]

    def create_product(self, payload):
        self.calls.append(("create_product", payload))
        self._check("create_product")
        product_id = next(self._ids)
        product = dict(payload, id=product_id,
                       variants=[self._new_variant(v) for v in payload.get("variants", [])])
        self.products[product_id] = product
        return ShopifyProduct.model_validate(product)

    def update_product(self, product_id, payload):
        self.calls.append(("update_product", product_id, payload))
        self._check("update_product")
        product = self.products[product_id]
        if "options" in payload:
            product["options"] = payload["options"]
        for variant in payload.get("variants", []):
            if "id" in variant:
                existing = next(v for v in product["variants"] if v["id"] == variant["id"])
                existing.update(variant)
            else:
                product["variants"].append(self._new_variant(variant))
        return ShopifyProduct.model_validate(product)

    def set_inventory_level(self, inventory_item_id, location_id, available):
        self.calls.append(("set_inventory_level", inventory_item_id, location_id, available))
        self._check("set_inventory_level")

    def create_metafield(self, product_id, metafield):
        self.calls.append(("create_metafield", product_id, metafield))
        self._check("create_metafield")
        return dict(metafield, id=next(self._ids))

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]

    def writes(self):
        return [c for c in self.calls if c[0] != "list_products"]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def reconciler(store):
    return Reconciler(store, location_id=LOCATION_ID)


def make_product(**overrides):
    payload = {
        "sku": "A1",
        "name": "Widget X",
        "description": "<p>A widget</p>",
        "priceIncl": 199.99,
        "images": ["https://images.gammatek.co.za/a1-front.jpg", "https://images.gammatek.co.za/a1-back.jpg"],
        "attributes": {"brand": "Gammatek", "category": "Screen Protector", "color": "Red"},
        "features": {},
    }
    payload.update(overrides)
    return SourceProduct(**payload)


@pytest.fixture
def widget():
    return make_product()
