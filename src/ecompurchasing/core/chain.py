"""In-process test chain in the manner of Ganache."""

import copy
from dataclasses import dataclass, field
from typing import Any

from eth_utils import encode_hex, keccak, to_checksum_address

from ..exceptions import (
    ChainError,
    InsufficientFunds,
    Revert,
    TransactionReverted,
    UnknownAccount,
)
from ..models.receipt import EventLog, Receipt
from ..utils.config import Config
from ..utils.logger import logger
from ..utils.timing import get_timestamp_seconds
from .contract import CallContext

DEFAULT_ACCOUNT_COUNT = 10
DEFAULT_ACCOUNT_BALANCE = 100 * 10**18  # 100 ether
DEFAULT_SEED = "ecompurchasing test chain"


@dataclass
class ChainState:
    """Everything a snapshot has to restore."""

    balances: dict[str, int] = field(default_factory=dict)
    nonces: dict[str, int] = field(default_factory=dict)
    contracts: dict[str, Any] = field(default_factory=dict)
    receipts: dict[str, Receipt] = field(default_factory=dict)
    block_number: int = 0
    time_offset: int = 0


class LocalChain:
    """Automining chain with funded accounts, gas accounting and snapshots."""

    def __init__(
        self,
        account_count: int = DEFAULT_ACCOUNT_COUNT,
        account_balance: int = DEFAULT_ACCOUNT_BALANCE,
        gas_price: int | None = None,
        gas_limit: int | None = None,
        seed: str = DEFAULT_SEED,
    ):
        """
        Initialize LocalChain.

        Args:
            account_count: Number of funded accounts
            account_balance: Starting balance of each account in wei
            gas_price: Wei per gas unit (Config.GAS_PRICE if None)
            gas_limit: Block gas limit (Config.GAS_LIMIT if None)
            seed: Seed for deterministic account addresses
        """
        self.gas_price = Config.GAS_PRICE if gas_price is None else gas_price
        self.gas_limit = Config.GAS_LIMIT if gas_limit is None else gas_limit
        self.network_id = 5777

        self.accounts = [
            self._derive_address(f"{seed}/{i}") for i in range(account_count)
        ]
        self._state = ChainState(
            balances={account: account_balance for account in self.accounts},
            nonces={account: 0 for account in self.accounts},
        )
        self._snapshots: dict[int, ChainState] = {}
        self._snapshot_counter = 0

        logger.info(
            f"Local chain started with {account_count} accounts "
            f"(gas_price={self.gas_price}, gas_limit={self.gas_limit})"
        )

    @staticmethod
    def _derive_address(text: str) -> str:
        return to_checksum_address(keccak(text=text)[-20:])

    @property
    def block_number(self) -> int:
        return self._state.block_number

    @property
    def timestamp(self) -> int:
        return get_timestamp_seconds() + self._state.time_offset

    def get_balance(self, address: str) -> int:
        return self._state.balances.get(to_checksum_address(address), 0)

    def get_code(self, address: str) -> Any:
        """Get the contract deployed at an address, None for plain accounts."""
        return self._state.contracts.get(to_checksum_address(address))

    def get_receipt(self, tx_hash: str) -> Receipt | None:
        return self._state.receipts.get(tx_hash)

    def increase_time(self, seconds: int) -> int:
        """Move block time forward (evm_increaseTime)."""
        self._state.time_offset += seconds
        return self._state.time_offset

    # Snapshots

    def snapshot(self) -> int:
        """Save full chain state (evm_snapshot)."""
        self._snapshot_counter += 1
        self._snapshots[self._snapshot_counter] = copy.deepcopy(self._state)
        logger.debug(f"Snapshot {self._snapshot_counter} at block {self.block_number}")
        return self._snapshot_counter

    def revert(self, snapshot_id: int) -> bool:
        """Restore a snapshot (evm_revert); it and later snapshots are dropped."""
        state = self._snapshots.get(snapshot_id)
        if state is None:
            logger.warning(f"Unknown snapshot: {snapshot_id}")
            return False

        self._state = state
        for sid in [s for s in self._snapshots if s >= snapshot_id]:
            del self._snapshots[sid]

        logger.debug(f"Reverted to snapshot {snapshot_id} (block {self.block_number})")
        return True

    # Execution

    def deploy(self, contract_cls, sender: str, *args, gas: int | None = None) -> Receipt:
        """
        Deploy a contract.

        Args:
            contract_cls: Contract class, constructed with (ctx, *args)
            sender: Deploying account, becomes the owner
            *args: Constructor arguments
            gas: Gas limit for the deployment

        Returns:
            Receipt with contract_address set
        """
        sender = self._check_sender(sender)
        gas = self._check_gas(gas)
        gas_used = contract_cls.DEPLOY_GAS
        self._check_funds(sender, 0, gas)

        nonce = self._state.nonces[sender]
        address = self._derive_address(f"{sender}:{nonce}")
        tx_hash = self._tx_hash(sender, nonce, None, contract_cls.__name__, args, 0)
        ctx = CallContext(sender=sender, value=0, timestamp=self.timestamp, address=address)

        if gas_used > gas:
            self._fail_and_raise(tx_hash, sender, None, gas, "out of gas")

        try:
            contract = contract_cls(ctx, *args)
        except Revert as e:
            self._fail_and_raise(tx_hash, sender, None, gas_used, e.reason)

        self._state.contracts[address] = contract
        self._state.balances.setdefault(address, 0)
        receipt = self._mine(tx_hash, sender, None, gas_used, ctx.events, contract_address=address)

        logger.info(f"Deployed {contract_cls.__name__} at {address} (block {receipt.block_number})")
        return receipt

    def call(self, address: str, method: str, *args, sender: str | None = None) -> Any:
        """Run a view method without mining a block."""
        contract = self._contract(address)
        ctx = CallContext(
            sender=sender or self.accounts[0],
            value=0,
            timestamp=self.timestamp,
            address=to_checksum_address(address),
            balance=self.get_balance(address),
        )

        # Calls never persist storage writes
        try:
            return copy.deepcopy(contract).dispatch(ctx, method, *args)
        except Revert as e:
            raise TransactionReverted(e.reason) from e

    def transact(
        self,
        sender: str,
        address: str,
        method: str,
        *args,
        value: int = 0,
        gas: int | None = None,
    ) -> Receipt:
        """
        Execute a state-changing method and mine it into a block.

        Args:
            sender: Account paying value and gas
            address: Contract address
            method: ABI method name
            *args: Method arguments
            value: Wei sent with the call
            gas: Gas limit for the transaction

        Returns:
            Successful receipt

        Raises:
            UnknownAccount: Sender is not managed by this chain
            InsufficientFunds: Sender cannot cover value + gas * gas_price
            TransactionReverted: Execution reverted; carries the mined receipt
        """
        sender = self._check_sender(sender)
        address = to_checksum_address(address)
        contract = self._contract(address)
        gas = self._check_gas(gas)
        self._check_funds(sender, value, gas)

        tx_hash = self._tx_hash(
            sender, self._state.nonces[sender], address, method, args, value
        )
        gas_used = contract.gas_for(method)
        if gas_used > gas:
            self._fail_and_raise(tx_hash, sender, address, gas, "out of gas")

        saved_contract = copy.deepcopy(contract)
        saved_balances = dict(self._state.balances)

        ctx = CallContext(
            sender=sender,
            value=value,
            timestamp=self.timestamp,
            address=address,
            balance=self.get_balance(address) + value,
        )
        self._state.balances[sender] -= value
        self._state.balances[address] = ctx.balance

        try:
            contract.dispatch(ctx, method, *args)
        except Revert as e:
            self._state.contracts[address] = saved_contract
            self._state.balances = saved_balances
            self._fail_and_raise(tx_hash, sender, address, gas_used, e.reason)

        for to, amount in ctx.transfers:
            self._state.balances[to] = self._state.balances.get(to, 0) + amount
        self._state.balances[address] = ctx.balance

        receipt = self._mine(tx_hash, sender, address, gas_used, ctx.events)
        logger.debug(f"Mined {method} from {sender}: {receipt}")
        return receipt

    # Internals

    def _contract(self, address: str):
        contract = self.get_code(address)
        if contract is None:
            raise ChainError(f"No contract at {address}")
        return contract

    def _check_sender(self, sender: str) -> str:
        sender = to_checksum_address(sender)
        if sender not in self._state.nonces:
            raise UnknownAccount(f"sender account not recognized: {sender}")
        return sender

    def _check_gas(self, gas: int | None) -> int:
        gas = self.gas_limit if gas is None else gas
        if gas > self.gas_limit:
            raise ChainError(f"Exceeds block gas limit: {gas} > {self.gas_limit}")
        return gas

    def _check_funds(self, sender: str, value: int, gas: int) -> None:
        required = value + gas * self.gas_price
        balance = self._state.balances[sender]
        if balance < required:
            raise InsufficientFunds(
                f"sender doesn't have enough funds to send tx. "
                f"The upfront cost is: {required} and the sender's balance is: {balance}"
            )

    def _tx_hash(
        self, sender: str, nonce: int, to: str | None, method: str, args: tuple, value: int
    ) -> str:
        # Same sender and nonce after a snapshot revert must not reuse a hash for another call
        payload = f"{sender}:{nonce}:{to}:{method}:{args!r}:{value}:{self.block_number}"
        return encode_hex(keccak(text=payload))

    def _mine(
        self,
        tx_hash: str,
        sender: str,
        to: str | None,
        gas_used: int,
        events: list[EventLog],
        status: bool = True,
        contract_address: str | None = None,
        revert_reason: str | None = None,
    ) -> Receipt:
        self._state.balances[sender] -= gas_used * self.gas_price
        self._state.nonces[sender] += 1
        self._state.block_number += 1

        for event in events:
            event.block_number = self._state.block_number
            event.transaction_hash = tx_hash

        receipt = Receipt(
            transaction_hash=tx_hash,
            block_number=self._state.block_number,
            sender=sender,
            to=to,
            status=status,
            gas_used=gas_used,
            cumulative_gas_used=gas_used,
            contract_address=contract_address,
            logs=list(events),
            revert_reason=revert_reason,
        )
        self._state.receipts[tx_hash] = receipt
        return receipt

    def _fail(self, tx_hash: str, sender: str, to: str | None, gas_used: int, reason: str) -> Receipt:
        receipt = self._mine(tx_hash, sender, to, gas_used, [], status=False, revert_reason=reason)
        logger.warning(f"Transaction {tx_hash} reverted: {reason}")
        return receipt

    def _fail_and_raise(self, tx_hash: str, sender: str, to: str | None, gas_used: int, reason: str) -> None:
        receipt = self._fail(tx_hash, sender, to, gas_used, reason)
        raise TransactionReverted(reason, receipt)
