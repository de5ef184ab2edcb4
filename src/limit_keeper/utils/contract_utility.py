import json
from pathlib import Path
from typing import Any

from eth_typing import HexStr
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract, Contract


class ContractUtility:
    """
    Utility for limit order contract ABI loading and binding.

    The ABI is bound in two ways:
    1. Live: against the current websocket connection, for ``checkUpkeep`` calls
    2. Offline: against a provider-less Web3, for encoding ``performUpkeep`` call data
    """

    def __init__(self, contract_address: str, contract_name: str = "SpotLimitOrder") -> None:
        """
        Initialize the ContractUtility.

        Args:
            contract_address: Address of the limit order contract
            contract_name: Name of the bundled ABI file (without .json extension)
        """
        if not Web3.is_address(contract_address):
            raise ValueError(f"Invalid contract address: {contract_address}")

        self.contract_address = Web3.to_checksum_address(contract_address)
        self.abi = self.get_contract_abi(contract_name)

        # Encoding never touches the provider
        self._encoder: Contract = Web3().eth.contract(
            address=self.contract_address,
            abi=self.abi
        )

    def bind(self, w3: AsyncWeb3) -> AsyncContract:
        """Bind the contract ABI to a live connection.

        Args:
            w3: Connected AsyncWeb3 instance

        Returns:
            Contract instance whose calls go through ``w3``
        """
        return w3.eth.contract(address=self.contract_address, abi=self.abi)

    def encode_perform_upkeep(self, perform_data: bytes) -> HexStr:
        """ABI-encode a ``performUpkeep(bytes)`` call.

        Args:
            perform_data: Payload returned by ``checkUpkeep``

        Returns:
            0x-prefixed call data
        """
        return self._encoder.encode_abi("performUpkeep", args=[perform_data])

    @staticmethod
    def get_contract_abi(contract_name: str) -> list[dict[str, Any]]:
        """Fetches ABI of the given contract from the bundled contracts folder.

        Args:
            contract_name: Name of the contract (without .json extension)

        Returns:
            List of ABI dictionaries for the contract

        Raises:
            FileNotFoundError: If the contract file doesn't exist
            json.JSONDecodeError: If the contract file is invalid JSON
        """
        contract_path: Path = (
            Path(__file__).parent.parent
            / "contracts"
            / f"{contract_name}.json"
        ).resolve()

        with contract_path.open() as file:
            contract_data: dict[str, Any] = json.load(file)

        return contract_data["abi"]
