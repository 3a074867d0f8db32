"""Configuration management."""

import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Configuration for the purchasing contract client."""

    # Backend: ['simulated', 'rpc']
    CHAIN_BACKEND: str = os.getenv("CHAIN_BACKEND", "simulated")

    # JSON-RPC node (Ganache / truffle develop / Hardhat)
    RPC_URL: str = os.getenv("RPC_URL", "http://127.0.0.1:8545")

    # Deployed contract address; falls back to the build artifact when empty
    CONTRACT_ADDRESS: str = os.getenv("CONTRACT_ADDRESS", "")
    ARTIFACTS_DIR: str = os.getenv("ARTIFACTS_DIR", "build/contracts")

    # Account used when a transaction does not name a sender
    DEFAULT_ACCOUNT: str = os.getenv("DEFAULT_ACCOUNT", "")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Transaction settings (Ganache defaults)
    GAS_LIMIT: int = int(os.getenv("GAS_LIMIT", "6721975"))
    GAS_PRICE: int = int(os.getenv("GAS_PRICE", "20000000000"))  # 20 gwei

    # Connection settings
    RPC_TIMEOUT = 10  # seconds
    RECEIPT_POLL_INTERVAL = 0.5  # seconds
    RECEIPT_TIMEOUT = 60  # seconds

    CONTRACT_NAME = "EcommercePurchasing"

    @classmethod
    def get_artifact_path(cls, contract_name: str | None = None) -> str:
        """Get path of the Truffle build artifact for a contract."""
        name = contract_name or cls.CONTRACT_NAME
        return os.path.join(cls.ARTIFACTS_DIR, f"{name}.json")

    @classmethod
    def is_simulated(cls) -> bool:
        """Check if running against the in-process chain."""
        return cls.CHAIN_BACKEND == "simulated"

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration."""
        if cls.CHAIN_BACKEND not in ("simulated", "rpc"):
            return False
        if cls.CHAIN_BACKEND == "rpc" and not cls.RPC_URL:
            return False
        return True
