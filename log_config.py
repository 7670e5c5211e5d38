# ============================================================================
#  log_config.py — Logging Setup
#  Version: 1.0.0
# ============================================================================
import logging
from datetime import date
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def log_file_path(log_dir, day: Optional[date] = None) -> Path:
    day = day or date.today()
    return Path(log_dir) / f"sync-{day.isoformat()}.log"


def setup_logging(log_dir="logs", level: str = "INFO") -> Path:
    """Logs to the console and to <log_dir>/sync-YYYY-MM-DD.log."""
    path = log_file_path(log_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(), logging.FileHandler(path, encoding="utf-8")],
        force=True
    )
    # keep request-level chatter out of the sync log
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return path
# ============================================================================
# End of log_config.py — Version: 1.0.0
# ============================================================================
