"""Transaction receipt models."""

from dataclasses import dataclass, field
from typing import Any

from eth_utils import to_checksum_address, to_int


@dataclass
class EventLog:
    """A decoded contract event."""

    event: str
    args: dict[str, Any]
    address: str
    log_index: int = 0
    block_number: int | None = None
    transaction_hash: str | None = None


@dataclass
class Receipt:
    """Result record of a mined transaction."""

    transaction_hash: str
    block_number: int
    sender: str
    to: str | None
    status: bool
    gas_used: int
    cumulative_gas_used: int = 0
    contract_address: str | None = None
    logs: list[EventLog] = field(default_factory=list)
    revert_reason: str | None = None

    @classmethod
    def from_rpc(cls, data: dict, logs: list[EventLog] | None = None) -> "Receipt":
        """Create Receipt from an eth_getTransactionReceipt result.

        Quantities arrive hex encoded; ``status`` is ``0x1`` or ``0x0``.
        Raw logs are decoded by the caller, which knows the contract ABI.
        """
        to = data.get("to")
        contract_address = data.get("contractAddress")
        return cls(
            transaction_hash=data["transactionHash"],
            block_number=to_int(hexstr=data["blockNumber"]),
            sender=to_checksum_address(data["from"]),
            to=to_checksum_address(to) if to else None,
            status=to_int(hexstr=data.get("status", "0x0")) == 1,
            gas_used=to_int(hexstr=data["gasUsed"]),
            cumulative_gas_used=to_int(hexstr=data.get("cumulativeGasUsed", "0x0")),
            contract_address=to_checksum_address(contract_address)
            if contract_address
            else None,
            logs=logs or [],
            revert_reason=data.get("revertReason"),
        )

    def events(self, name: str) -> list[EventLog]:
        """Get logs of a given event name."""
        return [log for log in self.logs if log.event == name]

    def __str__(self) -> str:
        state = "SUCCESS" if self.status else "REVERTED"
        reason = f", reason={self.revert_reason!r}" if self.revert_reason else ""
        return (
            f"Receipt[{state}]: tx={self.transaction_hash} block={self.block_number} "
            f"gas_used={self.gas_used} logs={len(self.logs)}{reason}"
        )


@dataclass
class TransactionResult:
    """What a state-changing contract call returns: hash, receipt, decoded logs."""

    tx: str
    receipt: Receipt
    logs: list[EventLog] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.receipt.status

    @classmethod
    def from_receipt(cls, receipt: Receipt) -> "TransactionResult":
        return cls(tx=receipt.transaction_hash, receipt=receipt, logs=list(receipt.logs))
