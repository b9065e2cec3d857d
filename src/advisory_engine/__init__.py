"""Advisory extraction engine package."""

from .config import EngineConfig
from .types import AdvisoryDocument

__all__ = ["AdvisoryDocument", "EngineConfig"]
