"""Exceptions raised by the chain, the backends and the artifact registry."""

import aiohttp


class PurchasingError(Exception):
    """Base class for all project errors."""


class ChainError(PurchasingError):
    """Transaction rejected by the chain before execution."""


class UnknownAccount(ChainError):
    """Sender is not an account managed by the chain."""


class InsufficientFunds(ChainError):
    """Sender cannot pay value plus gas."""


class Revert(PurchasingError):
    """Raised by contract code to abort the current call."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TransactionReverted(PurchasingError):
    """A mined transaction reverted; carries the failed receipt."""

    def __init__(self, reason: str, receipt=None):
        super().__init__(f"VM Exception while processing transaction: revert {reason}")
        self.reason = reason
        self.receipt = receipt


class ArtifactNotFound(PurchasingError):
    """No artifact with the requested contract name."""


class ArtifactNotDeployed(PurchasingError):
    """Artifact exists but has no deployment on the current network."""


class RpcError(aiohttp.ClientError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, code: int, message: str, data=None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data
