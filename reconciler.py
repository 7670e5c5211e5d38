# ============================================================================
#  reconciler.py — Catalog Reconciliation & Upsert Engine
#  Version: 1.0.0
# ============================================================================
import json
import logging
import math
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from exceptions import DuplicateTitleError, ProductValidationError, StoreError
from models import (PendingSideEffect, ReconcileAction, ReconcileResult, ShopifyProduct,
                    SideEffectKind, SourceProduct, StockLevel)

logger = logging.getLogger(__name__)

COLOR_OPTION = "Color"
INVENTORY_MANAGEMENT = "shopify"


def _price_problem(price) -> Optional[str]:
    if isinstance(price, bool):
        return "priceIncl is not numeric"
    if isinstance(price, str):
        try:
            price = float(price)
        except ValueError:
            return "priceIncl is not numeric"
    if not isinstance(price, (int, float, Decimal)):
        return "priceIncl is not numeric"
    if not math.isfinite(price):
        return "priceIncl is not finite"
    if price < 0:
        return "priceIncl is negative"
    return None


def validation_problems(product: SourceProduct) -> List[str]:
    problems = [f"missing {field}" for field, value in
                (("sku", product.sku), ("name", product.name), ("priceIncl", product.price_incl))
                if value is None or (isinstance(value, str) and not value.strip())]
    if "missing priceIncl" not in problems:
        price_problem = _price_problem(product.price_incl)
        if price_problem:
            problems.append(price_problem)
    return problems


def validate_product(product: SourceProduct) -> bool:
    """True when sku, name and a finite non-negative priceIncl are present."""
    return not validation_problems(product)


def build_stock_map(levels: Iterable[StockLevel]) -> Dict[str, int]:
    return {level.sku: level.on_hand for level in levels}


def find_listing(product: SourceProduct, listings: List[ShopifyProduct],
                 strict: bool = True) -> Optional[ShopifyProduct]:
    """Finds the listing whose title equals the product name, ignoring case.

    Several listings sharing a title is a data-quality problem: in strict mode
    it raises DuplicateTitleError, otherwise the first one in store order wins.
    """
    wanted = product.name.casefold()
    matches = [listing for listing in listings if listing.title.casefold() == wanted]
    if len(matches) > 1:
        ids = [m.id for m in matches]
        if strict:
            raise DuplicateTitleError(product.name, ids)
        logger.warning(f"{len(matches)} listings titled '{product.name}' ({ids}); using {ids[0]}")
    return matches[0] if matches else None


def merge_color_values(existing: List[str], color: str) -> List[str]:
    return existing if color in existing else existing + [color]


def _variant_fields(product: SourceProduct, stock_level: int) -> Dict:
    return {
        "price": product.price_incl,
        "sku": product.sku,
        "inventory_quantity": stock_level,
        "inventory_management": INVENTORY_MANAGEMENT
    }


def build_create_payload(product: SourceProduct, stock_level: int) -> Dict:
    return {
        "title": product.name,
        "body_html": product.description,
        "vendor": product.vendor,
        "product_type": product.product_type,
        "options": [{"name": COLOR_OPTION, "values": [product.color]}],
        "variants": [dict(_variant_fields(product, stock_level), option1=product.color, status="active")],
        "status": "active",
        "published": True,
        "published_scope": "global",
        "images": [{"src": url, "alt": product.name} for url in product.images]
    }


def build_add_variant_payload(product: SourceProduct, listing: ShopifyProduct, stock_level: int) -> Dict:
    # Shopify appends the new variant; untouched variants are not re-sent
    return {
        "options": [{
            "name": COLOR_OPTION,
            "values": merge_color_values(listing.option_values(COLOR_OPTION), product.color)
        }],
        "variants": [dict(_variant_fields(product, stock_level), option1=product.color, status="active")]
    }


def build_update_variant_payload(product: SourceProduct, variant_id, stock_level: int) -> Dict:
    return {"variants": [dict(_variant_fields(product, stock_level), id=variant_id)]}


class Reconciler:
    """Converges one supplier product into the Shopify catalog per call.

    The listing snapshot is re-read for every product; nothing is cached
    between calls.
    """

    def __init__(self, store, location_id, strict_titles: bool = True,
                 metafield_namespace: str = "gammatek", metafield_key: str = "gammatek_sync",
                 dry_run: bool = False):
        self.store = store
        self.location_id = location_id
        self.strict_titles = strict_titles
        self.metafield_namespace = metafield_namespace
        self.metafield_key = metafield_key
        self.dry_run = dry_run

    def plan(self, product: SourceProduct, stock_level: int) -> Tuple[ReconcileAction, Optional[ShopifyProduct], Dict]:
        """Validates the product and decides which single write converges it."""
        problems = validation_problems(product)
        if problems:
            logger.error(f"Product {product.sku} rejected: {', '.join(problems)}")
            raise ProductValidationError(product.sku, problems)

        listing = find_listing(product, self.store.list_products(), strict=self.strict_titles)
        if listing is None:
            return ReconcileAction.CREATE, None, build_create_payload(product, stock_level)

        logger.info(f"Found exact matching product: {listing.title} ({listing.id})")
        variant = listing.find_variant(product.sku)
        if variant is None:
            return (ReconcileAction.ADD_VARIANT, listing,
                    build_add_variant_payload(product, listing, stock_level))
        return (ReconcileAction.UPDATE_VARIANT, listing,
                build_update_variant_payload(product, variant.id, stock_level))

    def reconcile(self, product: SourceProduct, stock_level: int) -> ReconcileResult:
        action, listing, payload = self.plan(product, stock_level)

        if self.dry_run:
            logger.info(f"DRY-RUN: {action.value} for {product.sku}: {json.dumps(payload, default=str)}")
            return ReconcileResult(sku=product.sku, listing_id=listing.id if listing else None,
                                   action=action, dry_run=True)

        if action is ReconcileAction.CREATE:
            logger.info(f"Creating new product: {product.name} with color: {product.color}")
            response = self.store.create_product(payload)
        elif action is ReconcileAction.ADD_VARIANT:
            logger.info(f"Adding new color variant to existing product: {product.color}")
            response = self.store.update_product(listing.id, payload)
        else:
            logger.info(f"Updating existing variant with SKU: {product.sku}")
            response = self.store.update_product(listing.id, payload)

        result = ReconcileResult(sku=product.sku, listing_id=response.id, action=action)
        self._sync_inventory(product, response, stock_level, result)
        self._attach_features(product, response, result)
        return result

    def _sync_inventory(self, product: SourceProduct, response: ShopifyProduct,
                        stock_level: int, result: ReconcileResult) -> None:
        variant = response.find_variant(product.sku)
        if variant is None or variant.inventory_item_id is None:
            logger.warning(f"No variant with SKU {product.sku} in Shopify response; inventory not set")
            return
        call = {"inventory_item_id": variant.inventory_item_id,
                "location_id": self.location_id,
                "available": stock_level}
        try:
            self.store.set_inventory_level(**call)
        except StoreError as e:
            logger.error(f"Error updating inventory for {product.sku}: {e}")
            result.pending.append(PendingSideEffect(kind=SideEffectKind.INVENTORY, sku=product.sku,
                                                    listing_id=response.id, payload=call, error=str(e)))
            return
        result.inventory_synced = True
        logger.info(f"Updated inventory level for {product.sku} to {stock_level}")

    def _attach_features(self, product: SourceProduct, response: ShopifyProduct, result: ReconcileResult) -> None:
        if not product.features:
            return
        metafield = {"namespace": self.metafield_namespace,
                     "key": self.metafield_key,
                     "type": "json",
                     "value": json.dumps(product.features)}
        try:
            self.store.create_metafield(response.id, metafield)
        except StoreError as e:
            logger.error(f"Error creating metafields for {product.sku}: {e}")
            result.pending.append(PendingSideEffect(kind=SideEffectKind.METAFIELD, sku=product.sku,
                                                    listing_id=response.id, payload=metafield, error=str(e)))
            return
        result.metadata_attached = True
# ============================================================================
# End of reconciler.py — Version: 1.0.0
# ============================================================================
