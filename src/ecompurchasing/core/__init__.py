"""Core contract, chain and backend components."""

from .artifacts import Artifacts, ContractArtifact
from .chain import LocalChain
from .contract import EcommercePurchasingContract
from .engine import PurchasingEngine
from .purchasing import PurchasingBackend
from .rpc_purchasing import RpcPurchasing
from .simulated_purchasing import SimulatedPurchasing

__all__ = [
    "Artifacts",
    "ContractArtifact",
    "EcommercePurchasingContract",
    "LocalChain",
    "PurchasingBackend",
    "PurchasingEngine",
    "RpcPurchasing",
    "SimulatedPurchasing",
]
