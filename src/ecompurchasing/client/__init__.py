"""Client modules for JSON-RPC communication and ABI encoding."""

from .abi import decode_log, decode_result, encode_call
from .rpc import RpcClient

__all__ = ["RpcClient", "decode_log", "decode_result", "encode_call"]
