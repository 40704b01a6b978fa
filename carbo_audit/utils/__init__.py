from .logger import setup_logging
from .hashing import short_digest

__all__ = ["setup_logging", "short_digest"]
