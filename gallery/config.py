import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

GALLERY_ROOT      = Path(os.getenv("GALLERY_ROOT", "galleries"))
IMAGES_URL_PREFIX = os.getenv("IMAGES_URL_PREFIX", "/images")
DB_URL            = os.getenv("DATABASE_URL", "sqlite:///gallery.db")
VERSIONS_FILE     = os.getenv("GALLERY_VERSIONS_FILE")
LOG_LEVEL         = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("gallery_service")

# Per-version processing defaults, keyed by version token
DEFAULT_VERSIONS: Dict[str, Dict[str, Any]] = {
    "full":   {},
    "col-4":  {"width": 400,  "height": 300, "crop": True, "quality": 85},
    "col-6":  {"width": 600,  "height": 400, "crop": True, "quality": 85},
    "col-12": {"width": 1200, "height": 600, "crop": True, "quality": 85},
}


def load_versions(path: Optional[str] = VERSIONS_FILE) -> Dict[str, Dict[str, Any]]:
    """Return the global per-version option defaults.

    Reads a JSON object of ``{version: {option: value}}`` from *path* when one
    is configured, otherwise falls back to :data:`DEFAULT_VERSIONS`.
    """
    if not path:
        return {k: dict(v) for k, v in DEFAULT_VERSIONS.items()}

    with Path(path).open() as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise RuntimeError(f"{path} must contain a JSON object keyed by version")
    logger.debug("Loaded %d version profile(s) from %s", len(data), path)
    return {str(k): dict(v or {}) for k, v in data.items()}
