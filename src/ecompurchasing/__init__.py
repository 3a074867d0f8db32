"""
EcommercePurchasing contract client and local test chain.
"""

from .core.artifacts import Artifacts
from .core.engine import PurchasingEngine
from .utils.config import Config

__version__ = "0.1.0"

__all__ = ["Artifacts", "PurchasingEngine", "Config"]
