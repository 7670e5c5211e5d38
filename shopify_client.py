# ============================================================================
#  shopify_client.py — Shopify API Handler
#  Version: 1.3.0
#  CHANGES: Switched to Admin REST product/inventory/metafield endpoints,
#           Link-header pagination, raise StoreError on failure
# ============================================================================
import requests
import logging
import time
from typing import Any, Dict, List, Optional, Union
from pydantic import ValidationError
from exceptions import StoreError
from models import ShopifyProduct

logger = logging.getLogger(__name__)

LISTING_FIELDS = "id,title,variants,options,images"


def shop_domain(shop_name: str) -> str:
    """Accepts either 'my-shop' or 'my-shop.myshopify.com'."""
    shop_name = shop_name.strip()
    return shop_name if "." in shop_name else f"{shop_name}.myshopify.com"


class ShopifyClient:
    MAX_ATTEMPTS = 3

    def __init__(self, shop_name: str, token: str, version: str,
                 page_limit: int = 250, max_pages: int = 20, timeout: int = 30):
        """Initializes the Shopify REST client."""
        # Trim whitespace and quotes from token (common issue with env vars)
        token = (token or "").strip().strip('"\'').strip()
        domain = shop_domain(shop_name)

        self.rest_url = f"https://{domain}/admin/api/{version}"
        self.page_limit = page_limit
        self.max_pages = max_pages
        self.timeout = timeout
        # Use session for connection pooling and reuse
        self.session = requests.Session()
        self.session.headers.update({
            "X-Shopify-Access-Token": token,
            "Content-Type": "application/json",
            "Accept": "application/json"
        })

        logger.info("=" * 80)
        logger.info("Shopify API Configuration:")
        logger.info(f"  Domain: {domain}")
        logger.info(f"  API Version: {version}")
        logger.info(f"  REST URL: {self.rest_url}")
        logger.info(f"  Access Token: {'*' * min(len(token), 20)}... (hidden)")
        logger.info("=" * 80)

    def _request(self, method: str, path_or_url: str, params: Optional[Dict] = None,
                 payload: Optional[Dict] = None) -> requests.Response:
        """Sends one REST call, retrying on THROTTLED (429) and transport errors."""
        url = path_or_url if path_or_url.startswith("http") else f"{self.rest_url}/{path_or_url}"
        for attempt in range(self.MAX_ATTEMPTS):
            try:
                response = self.session.request(method, url, params=params, json=payload, timeout=self.timeout)
            except requests.RequestException as e:
                logger.error(f"Shopify request error (attempt {attempt + 1}/{self.MAX_ATTEMPTS}): {method} {url}: {e}")
                if attempt == self.MAX_ATTEMPTS - 1:
                    raise StoreError(f"Request failed: {e}") from e
                time.sleep((attempt + 1) * 2)
                continue

            if response.status_code == 429 and attempt < self.MAX_ATTEMPTS - 1:
                wait = self._retry_after(response, attempt)
                logger.warning(f"Throttled. Waiting {wait}s...")
                time.sleep(wait)
                continue

            if response.status_code == 401:
                logger.error(f"Shopify authentication failed (401 Unauthorized) for {method} {url}")
                logger.error("  Please verify:")
                logger.error("    1. Access token is correct and not expired")
                logger.error("    2. Token has required scopes (write_products, write_inventory, etc.)")
                logger.error("    3. Shop name is correct in SHOPIFY_SHOP_NAME")

            if not response.ok:
                body = response.text[:1000] if response.text else ""
                logger.error(f"Shopify {method} {url} failed - Status: {response.status_code} - {body}")
                raise StoreError(f"Shopify {method} {url} returned HTTP {response.status_code}",
                                 status_code=response.status_code, body=body)
            return response
        raise StoreError("Max retries exceeded")

    @staticmethod
    def _retry_after(response: requests.Response, attempt: int) -> float:
        try:
            return float(response.headers.get("Retry-After"))
        except (TypeError, ValueError):
            return (attempt + 1) * 5

    @staticmethod
    def _json(response: requests.Response, key: str) -> Any:
        try:
            return response.json()[key]
        except (ValueError, KeyError, TypeError) as e:
            raise StoreError(f"Unexpected Shopify response, missing '{key}': {response.text[:500]}",
                             status_code=response.status_code, body=response.text[:1000]) from e

    @staticmethod
    def _to_product(data: Dict) -> ShopifyProduct:
        try:
            return ShopifyProduct.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Could not parse Shopify product: {e}") from e

    def list_products(self, params: Optional[Dict] = None, fields: Optional[str] = LISTING_FIELDS) -> List[ShopifyProduct]:
        """Lists products, following Link pagination up to max_pages pages."""
        query = {"limit": self.page_limit}
        if fields:
            query["fields"] = fields
        query.update(params or {})

        products = []
        next_url: Optional[str] = "products.json"
        for page in range(self.max_pages):
            response = self._request("GET", next_url, params=query)
            products.extend(self._to_product(p) for p in self._json(response, "products"))
            next_url = response.links.get("next", {}).get("url")
            if not next_url:
                break
            # the next-page URL already carries page_info, limit and fields
            query = None
        else:
            logger.warning(f"Stopped listing products after {self.max_pages} pages; listing may be incomplete")
        logger.debug(f"Listed {len(products)} Shopify products")
        return products

    def create_product(self, payload: Dict) -> ShopifyProduct:
        response = self._request("POST", "products.json", payload={"product": payload})
        product = self._to_product(self._json(response, "product"))
        logger.info(f"Product created successfully: {product.id}")
        return product

    def update_product(self, product_id: Union[int, str], payload: Dict) -> ShopifyProduct:
        body = dict(payload, id=product_id)
        response = self._request("PUT", f"products/{product_id}.json", payload={"product": body})
        product = self._to_product(self._json(response, "product"))
        logger.info(f"Product updated successfully: {product.id}")
        return product

    def set_inventory_level(self, inventory_item_id: Union[int, str], location_id: Union[int, str],
                            available: int) -> None:
        self._request("POST", "inventory_levels/set.json", payload={
            "inventory_item_id": inventory_item_id,
            "location_id": location_id,
            "available": available
        })

    def create_metafield(self, product_id: Union[int, str], metafield: Dict) -> Dict:
        response = self._request("POST", f"products/{product_id}/metafields.json", payload={"metafield": metafield})
        return self._json(response, "metafield")

    def find_product_by_sku(self, sku: str) -> Optional[ShopifyProduct]:
        """Scans the catalog for the listing carrying a variant with `sku`."""
        for product in self.list_products():
            if product.find_variant(sku):
                return product
        return None
# ============================================================================
# End of shopify_client.py — Version: 1.3.0
# ============================================================================
