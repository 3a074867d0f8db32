"""ABI encoding for the EcommercePurchasing Solidity contract."""

from typing import Any

from eth_abi import decode, encode
from eth_utils import (
    encode_hex,
    function_signature_to_4byte_selector,
    keccak,
    to_bytes,
    to_checksum_address,
)

from ..models.receipt import EventLog

PRODUCT_TUPLE = "(uint256,string,uint256,uint256)"
ORDER_TUPLE = "(uint256,uint256,address,uint256,uint256)"

# name -> (input types, output types)
METHODS: dict[str, tuple[list[str], list[str]]] = {
    "owner": ([], ["address"]),
    "getProducts": ([], [f"{PRODUCT_TUPLE}[]"]),
    "getProduct": (["uint256"], [PRODUCT_TUPLE]),
    "getOrder": (["uint256"], [ORDER_TUPLE]),
    "getOrderCount": ([], ["uint256"]),
    "getOrdersByBuyer": (["address"], ["uint256[]"]),
    "placeOrder": (["uint256"], []),
    "addProduct": (["string", "uint256", "uint256"], []),
    "withdraw": ([], []),
}

# name -> [(arg name, type, indexed)]
EVENTS: dict[str, list[tuple[str, str, bool]]] = {
    "OrderPlaced": [
        ("orderId", "uint256", True),
        ("productId", "uint256", True),
        ("buyer", "address", True),
        ("amount", "uint256", False),
    ],
    "ProductAdded": [
        ("productId", "uint256", True),
        ("name", "string", False),
        ("price", "uint256", False),
    ],
    "Withdrawal": [
        ("owner", "address", True),
        ("amount", "uint256", False),
    ],
}

# Error(string) selector used by require() messages
ERROR_SELECTOR = bytes.fromhex("08c379a0")


def method_signature(name: str) -> str:
    inputs, _ = METHODS[name]
    return f"{name}({','.join(inputs)})"


def event_signature(name: str) -> str:
    return f"{name}({','.join(t for _, t, _ in EVENTS[name])})"


def event_topic(name: str) -> str:
    return encode_hex(keccak(text=event_signature(name)))


_TOPIC_TO_EVENT = {event_topic(name): name for name in EVENTS}


def encode_call(name: str, *args) -> str:
    """Encode calldata for a contract method as a 0x-prefixed hex string."""
    if name not in METHODS:
        raise ValueError(f"Unknown contract method: {name}")

    inputs, _ = METHODS[name]
    if len(args) != len(inputs):
        raise ValueError(f"{name} expects {len(inputs)} arguments, got {len(args)}")

    selector = function_signature_to_4byte_selector(method_signature(name))
    return encode_hex(selector + encode(inputs, list(args)))


def decode_result(name: str, data: str) -> Any:
    """Decode eth_call output; single outputs are unwrapped."""
    _, outputs = METHODS[name]
    if not outputs:
        return None

    values = decode(outputs, to_bytes(hexstr=data))
    if outputs == ["address"]:
        return to_checksum_address(values[0])
    return values[0] if len(values) == 1 else values


def decode_log(raw: dict) -> EventLog | None:
    """
    Decode a raw receipt log into an EventLog.

    Args:
        raw: Log entry from eth_getTransactionReceipt

    Returns:
        Decoded EventLog, or None for events this contract does not define
    """
    topics = raw.get("topics") or []
    if not topics:
        return None

    name = _TOPIC_TO_EVENT.get(topics[0].lower())
    if name is None:
        return None

    fields = EVENTS[name]
    indexed = [(n, t) for n, t, is_indexed in fields if is_indexed]
    plain = [(n, t) for n, t, is_indexed in fields if not is_indexed]

    args: dict[str, Any] = {}
    for (arg_name, arg_type), topic in zip(indexed, topics[1:]):
        args[arg_name] = decode([arg_type], to_bytes(hexstr=topic))[0]

    if plain:
        values = decode([t for _, t in plain], to_bytes(hexstr=raw.get("data", "0x")))
        args.update({n: v for (n, _), v in zip(plain, values)})

    for arg_name, arg_type, _ in fields:
        if arg_type == "address" and arg_name in args:
            args[arg_name] = to_checksum_address(args[arg_name])

    block_number = raw.get("blockNumber")
    return EventLog(
        event=name,
        args=args,
        address=to_checksum_address(raw["address"]),
        log_index=int(raw.get("logIndex", "0x0"), 16),
        block_number=int(block_number, 16) if block_number else None,
        transaction_hash=raw.get("transactionHash"),
    )


def decode_revert_reason(data) -> str | None:
    """Extract the require() message from revert data, if any.

    Ganache reports it either as raw ``Error(string)`` output or as a dict
    carrying ``reason`` and ``result``.
    """
    if isinstance(data, dict):
        if data.get("reason"):
            return data["reason"]
        data = data.get("result") or data.get("data")

    if not isinstance(data, str):
        return None

    payload = to_bytes(hexstr=data)
    if not payload.startswith(ERROR_SELECTOR):
        return None
    return decode(["string"], payload[4:])[0]
