# ============================================================================
#  gammatek_client.py — Gammatek Supplier Feed Handler
#  Version: 1.2.0
#  CHANGES: Skip malformed records and report them as rejected
# ============================================================================
import requests
import logging
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from exceptions import FetchError
from models import SourceProduct, StockLevel

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.gamma.co.za/api"


def extract_first_attribute(attributes: Optional[List[Dict]], key: str) -> Optional[str]:
    """Returns the first value of the supplier attribute `key`, or None."""
    for attr in attributes or []:
        if isinstance(attr, dict) and attr.get("Key") == key:
            values = attr.get("Value") or []
            return values[0] if isinstance(values, list) and values else None
    return None


def extract_features(key_values: Optional[List[Dict]]) -> Dict[str, Any]:
    features = {}
    for kv in key_values or []:
        if not isinstance(kv, dict):
            continue
        key = kv.get("Key") or ""
        if isinstance(key, str) and key.startswith("Feature") and key != "Feed":
            features[key] = kv.get("Value")
    return features


def normalize_product(raw: Dict) -> SourceProduct:
    """Flattens a raw Gammatek product record into a SourceProduct."""
    attributes = raw.get("Attributes")
    return SourceProduct(
        sku=raw.get("Sku"),
        name=raw.get("Name"),
        description=raw.get("FullDescription"),
        priceIncl=raw.get("PriceIncl"),
        priceExcl=raw.get("PriceExcl"),
        images=raw.get("Pictures"),
        attributes={
            "deviceManufacturer": extract_first_attribute(attributes, "DeviceManufacturer"),
            "deviceModel": extract_first_attribute(attributes, "DeviceModel"),
            "brand": extract_first_attribute(attributes, "Brand"),
            "category": extract_first_attribute(attributes, "ItemCategory"),
            "color": extract_first_attribute(attributes, "ItemColor"),
        },
        features=extract_features(raw.get("KeyValues")),
    )


class GammatekClient:
    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE_URL,
                 category: Optional[str] = None, timeout: int = 60):
        self.base_url = base_url.rstrip("/")
        self.category = category
        # records from the last fetch_catalog that could not be parsed, SKU -> reason
        self.rejected: Dict[str, str] = {}
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "X-GAMMATEK-API-Key": api_key,
            "Accept": "application/json"
        })

        logger.info("=" * 80)
        logger.info("Gammatek API Configuration:")
        logger.info(f"  Base URL: {self.base_url}")
        logger.info(f"  Category Filter: {category or '(none)'}")
        logger.info(f"  API Key: {'*' * min(len(api_key or ''), 20)}... (hidden)")
        logger.info("=" * 80)

    def _get(self, path: str) -> List[Dict]:
        url = f"{self.base_url}/{path}"
        try:
            res = self.session.get(url, timeout=self.timeout)
            res.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            body = e.response.text[:500] if e.response is not None else ""
            logger.error(f"Gammatek request failed ({path}): {status_code} - {body}")
            raise FetchError(f"Gammatek {path} returned HTTP {status_code}", status_code=status_code) from e
        except requests.RequestException as e:
            logger.error(f"Gammatek request error ({path}): {e}")
            raise FetchError(f"Gammatek {path} request failed: {e}") from e

        try:
            data = res.json()
        except ValueError as e:
            logger.error(f"Invalid JSON response from Gammatek ({path}): {e}")
            logger.error(f"Response text: {res.text[:500]}")
            raise FetchError(f"Gammatek {path} returned invalid JSON") from e

        if not isinstance(data, list):
            raise FetchError(f"Gammatek {path} returned {type(data).__name__}, expected a list")
        return data

    def fetch_catalog(self) -> List[SourceProduct]:
        """Fetches the product catalog, optionally restricted to one ItemCategory."""
        raw_products = self._get("products")
        self.rejected = {}

        if self.category:
            filtered = [p for p in raw_products
                        if not isinstance(p, dict) or extract_first_attribute(p.get("Attributes"), "ItemCategory") == self.category]
            logger.info(f"Filtered {len(raw_products)} total products to {len(filtered)} '{self.category}' products")
            raw_products = filtered

        products = []
        for index, raw in enumerate(raw_products):
            if not isinstance(raw, dict):
                logger.error(f"Skipping Gammatek product record {index}: expected an object, got {type(raw).__name__}")
                self.rejected[f"record {index}"] = f"not an object: {type(raw).__name__}"
                continue
            try:
                products.append(normalize_product(raw))
            except (ValidationError, TypeError, ValueError) as e:
                sku = str(raw.get("Sku") or f"record {index}")
                logger.error(f"Validation error for Gammatek product (SKU: {sku}): {e}")
                self.rejected[sku] = str(e)
                continue
        return products

    def fetch_stock(self) -> List[StockLevel]:
        levels = []
        for raw in self._get("stock"):
            if not isinstance(raw, dict):
                logger.error(f"Skipping stock record {raw!r}: expected an object")
                continue
            try:
                levels.append(StockLevel(sku=raw.get("Sku"), onHand=raw.get("OnHand")))
            except (ValidationError, TypeError, ValueError) as e:
                logger.error(f"Invalid stock record {raw}: {e}")
                continue
        return levels
# ============================================================================
# End of gammatek_client.py — Version: 1.2.0
# ============================================================================
