# ============================================================================
#  sync_engine.py — Orchestration Engine
#  Version: 2.1.0
#  CHANGES: Count rejected feed records, keep the schedule alive on any
#           later-pass failure, tolerate an unreadable pending file
# ============================================================================
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional
from pydantic import TypeAdapter, ValidationError
from exceptions import FetchError, StoreError, SyncError
from gammatek_client import GammatekClient
from models import PassSummary, PendingSideEffect, SideEffectKind
from reconciler import Reconciler, build_stock_map

logger = logging.getLogger(__name__)

_pending_list = TypeAdapter(List[PendingSideEffect])


def load_pending(path) -> List[PendingSideEffect]:
    path = Path(path)
    if not path.exists():
        return []
    return _pending_list.validate_json(path.read_text(encoding="utf-8") or "[]")


def save_pending(path, records: List[PendingSideEffect]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_pending_list.dump_json(records, indent=2))


class SyncEngine:
    def __init__(self, source: GammatekClient, reconciler: Reconciler, config: dict,
                 sleep: Callable[[float], None] = time.sleep):
        """Initializes engine with the supplier source and the reconciler."""
        self.source = source
        self.reconciler = reconciler
        self.config = config
        self.sleep = sleep

    def run_pass(self, limit: Optional[int] = None) -> PassSummary:
        """Runs one full pass. FetchError from the supplier aborts the pass."""
        logger.info("Starting product sync")
        summary = PassSummary()

        products = self.source.fetch_catalog()
        logger.info(f"Fetched {len(products)} products from Gammatek")
        stock_levels = self.source.fetch_stock()
        logger.info(f"Fetched stock levels for {len(stock_levels)} products")
        stock_map = build_stock_map(stock_levels)

        if limit:
            products = products[:limit]
        summary.total = len(products)
        rejected = self.source.rejected
        if rejected:
            summary.total += len(rejected)
            summary.failed += len(rejected)
            summary.failures.update(rejected)
            logger.error(f"{len(rejected)} Gammatek record(s) could not be parsed: {', '.join(rejected)}")
        delay = self.config.get("DELAY_BETWEEN_PRODUCTS", 0)

        for i, product in enumerate(products):
            logger.info(f"[{i + 1}/{len(products)}] Syncing SKU: {product.sku}")
            try:
                result = self.reconciler.reconcile(product, stock_map.get(product.sku, 0))
            except Exception as e:
                summary.failed += 1
                summary.failures[str(product.sku)] = str(e)
                if isinstance(e, SyncError):
                    logger.error(f"Error processing product {product.sku}: {e}")
                else:
                    logger.exception(f"Unexpected error processing product {product.sku}")
            else:
                summary.succeeded += 1
                summary.pending.extend(result.pending)
                logger.info(f"Successfully processed product {product.sku} ({result.action.value}, listing {result.listing_id})")

            if delay and i + 1 < len(products):
                self.sleep(delay)

        summary.finished_at = datetime.now(timezone.utc)
        self._log_summary(summary)

        pending_file = self.config.get("PENDING_FILE")
        if pending_file and summary.pending:
            self._record_pending(pending_file, summary.pending)
        return summary

    def _record_pending(self, pending_file, records: List[PendingSideEffect]) -> None:
        try:
            save_pending(pending_file, load_pending(pending_file) + records)
        except (ValidationError, OSError) as e:
            logger.error(f"Could not record {len(records)} pending side effect(s) in {pending_file}: {e}")
            return
        logger.info(f"Recorded {len(records)} pending side effect(s) in {pending_file}")

    def _log_summary(self, summary: PassSummary) -> None:
        logger.info("=" * 80)
        logger.info("Sync Summary:")
        logger.info(f"  Total Products: {summary.total}")
        logger.info(f"  Successfully Synced: {summary.succeeded}")
        logger.info(f"  Failed: {summary.failed}")
        logger.info(f"  Pending Side Effects: {len(summary.pending)}")
        logger.info("=" * 80)

    def run_forever(self, interval_minutes: float, max_passes: Optional[int] = None,
                    limit: Optional[int] = None) -> int:
        """Runs passes on a fixed interval; passes never overlap.

        Any failure on the first pass propagates. Later failures are
        logged and the schedule continues. Returns the number of passes run.
        """
        interval = interval_minutes * 60
        passes = 0
        logger.info(f"Scheduled periodic sync every {interval_minutes} minutes")
        while max_passes is None or passes < max_passes:
            started = time.monotonic()
            try:
                self.run_pass(limit=limit)
            except Exception as e:
                if passes == 0:
                    raise
                if isinstance(e, FetchError):
                    logger.error(f"Scheduled sync failed: {e}")
                else:
                    logger.exception("Scheduled sync failed")
            passes += 1
            if max_passes is not None and passes >= max_passes:
                break
            wait = max(interval - (time.monotonic() - started), 0)
            logger.info(f"Next sync in {wait:.0f}s")
            self.sleep(wait)
        return passes

    def sweep_pending(self, records: List[PendingSideEffect]) -> List[PendingSideEffect]:
        """Replays failed inventory/metafield calls once; returns those still failing."""
        store = self.reconciler.store
        remaining = []
        for record in records:
            try:
                if record.kind is SideEffectKind.INVENTORY:
                    store.set_inventory_level(**record.payload)
                else:
                    store.create_metafield(record.listing_id, record.payload)
            except StoreError as e:
                logger.error(f"Pending {record.kind.value} for {record.sku} still failing: {e}")
                remaining.append(record.model_copy(update={"error": str(e)}))
            else:
                logger.info(f"Replayed pending {record.kind.value} for {record.sku}")
        logger.info(f"Sweep finished: {len(records) - len(remaining)} replayed, {len(remaining)} remaining")
        return remaining

    def sweep_file(self, path) -> List[PendingSideEffect]:
        remaining = self.sweep_pending(load_pending(path))
        save_pending(path, remaining)
        return remaining
# ============================================================================
# End of sync_engine.py — Version: 2.1.0
# ============================================================================
