"""Contract artifact registry: ``artifacts.require(name).deployed()``."""

from ..exceptions import ArtifactNotFound
from ..utils.logger import logger
from .contract import CONTRACT_NAME
from .purchasing import PurchasingBackend

KNOWN_CONTRACTS = frozenset({CONTRACT_NAME})


class ContractArtifact:
    """Handle on a named contract, resolved against a backend."""

    def __init__(self, name: str, backend: PurchasingBackend):
        self.name = name
        self.backend = backend

    async def deployed(self) -> PurchasingBackend:
        """
        Get the deployed instance.

        Returns:
            Backend bound to the deployed address

        Raises:
            ArtifactNotDeployed: Contract not deployed on this network
        """
        address = await self.backend.deployed(self.name)
        logger.debug(f"{self.name} deployed at {address}")
        return self.backend

    def __repr__(self) -> str:
        return f"ContractArtifact({self.name!r})"


class Artifacts:
    """Registry handing out contract artifacts for one backend."""

    def __init__(self, backend: PurchasingBackend):
        self.backend = backend
        self._artifacts: dict[str, ContractArtifact] = {}

    def require(self, name: str) -> ContractArtifact:
        """
        Get the artifact for a contract.

        Args:
            name: Contract name, e.g. "EcommercePurchasing"

        Raises:
            ArtifactNotFound: Unknown contract name
        """
        if name not in KNOWN_CONTRACTS:
            raise ArtifactNotFound(f"Could not find artifacts for {name} from any sources")

        if name not in self._artifacts:
            self._artifacts[name] = ContractArtifact(name, self.backend)
        return self._artifacts[name]
