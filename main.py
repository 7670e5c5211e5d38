# ============================================================================
#  main.py — Sync Entry Point
#  Version: 2.1.0
#  CHANGES: --verify SKU lookup, reject --sweep with --dry-run
# ============================================================================
import argparse
import logging
import signal
import sys
from exceptions import ConfigurationError, FetchError, StoreError
from gammatek_client import GammatekClient
from log_config import setup_logging
from reconciler import Reconciler
from settings import load_settings, log_settings
from shopify_client import ShopifyClient
from sync_engine import SyncEngine

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gammatek to Shopify Sync")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument("--interval", type=float, help="Minutes between passes (overrides SYNC_INTERVAL_MINUTES)")
    parser.add_argument("--max", type=int, help="Only process the first N products")
    parser.add_argument("--dry-run", action="store_true", help="Simulate only")
    parser.add_argument("--sweep", action="store_true", help="Replay the pending side-effect file and exit")
    parser.add_argument("--verify", metavar="SKU", help="Look up the Shopify listing carrying SKU and exit")
    parser.add_argument("--env-file", default=".env", help="dotenv file to load")
    return parser


def _handle_sigterm(signum, frame):
    logger.info("Received SIGTERM. Shutting down gracefully...")
    sys.exit(0)


def verify_sku(shop_client: ShopifyClient, sku: str) -> int:
    """Logs the listing that carries `sku`; returns 0 if one exists."""
    try:
        product = shop_client.find_product_by_sku(sku)
    except StoreError as e:
        logger.error(f"Could not look up SKU {sku}: {e}")
        return 1
    if product is None:
        logger.warning(f"No Shopify listing carries SKU {sku}")
        return 1
    variant = product.find_variant(sku)
    logger.info("=" * 80)
    logger.info(f"SKU {sku} found:")
    logger.info(f"  Listing: {product.title} (ID: {product.id})")
    logger.info(f"  Variant: {variant.option1} (ID: {variant.id}, price {variant.price})")
    logger.info(f"  Variants on listing: {len(product.variants)}")
    logger.info("=" * 80)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.env_file)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(str(e))
        return 1

    log_path = setup_logging(settings.log_dir, settings.log_level)
    logger.info(f"Logging to {log_path}")
    log_settings(settings)

    shop_client = ShopifyClient(
        shop_name=settings.shopify_shop_name,
        token=settings.shopify_access_token,
        version=settings.shopify_api_version,
        page_limit=settings.shopify_page_limit,
        max_pages=settings.shopify_max_pages
    )
    reconciler = Reconciler(
        shop_client,
        location_id=settings.shopify_location_id,
        strict_titles=settings.strict_title_match,
        metafield_namespace=settings.metafield_namespace,
        metafield_key=settings.metafield_key,
        dry_run=args.dry_run
    )
    gammatek = GammatekClient(
        api_key=settings.gammatek_api_key,
        base_url=settings.gammatek_base_url,
        category=settings.gammatek_category
    )
    config = {
        "DELAY_BETWEEN_PRODUCTS": settings.delay_between_products,
        "PENDING_FILE": None if args.dry_run else settings.pending_file
    }
    engine = SyncEngine(gammatek, reconciler, config)

    if args.verify:
        return verify_sku(shop_client, args.verify)

    if args.sweep and args.dry_run:
        logger.error("--sweep replays writes against the store and cannot be combined with --dry-run")
        return 1

    if args.sweep:
        if not settings.pending_file:
            logger.error("--sweep requires PENDING_FILE to be set")
            return 1
        remaining = engine.sweep_file(settings.pending_file)
        return 1 if remaining else 0

    if args.once:
        try:
            summary = engine.run_pass(limit=args.max)
        except FetchError as e:
            logger.error(f"Sync failed: {e}")
            return 1
        return 1 if summary.failed else 0

    signal.signal(signal.SIGTERM, _handle_sigterm)
    try:
        engine.run_forever(args.interval or settings.sync_interval_minutes, limit=args.max)
    except FetchError as e:
        logger.error(f"Application startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Received SIGINT. Shutting down gracefully...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
# ============================================================================
# End of main.py — Version: 2.1.0
# ============================================================================
