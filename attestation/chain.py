"""
Attestation Contract
====================

[BLOCKCHAIN] Submits verified attestations to the on-chain attestation
contract via its attest() entry point.

[USAGE]
    contract = AttestationContract(
        rpc_url=config.network.rpc_url,
        private_key="0x...",
        contract_address=config.network.contract_address,
    )

    chain_id = await contract.chain_id()
    tx_hash = await contract.submit(payload)
    receipt = contract.wait_for_receipt(tx_hash)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from eth_account import Account

from config import config
from attestation.encoder import ATTESTATION_ABI, AttestationCallPayload
from attestation.errors import SubmissionError, WalletUnavailableError

logger = logging.getLogger(__name__)

# Lazy import
Web3 = None


def _ensure_web3():
    global Web3
    if Web3 is None:
        from web3 import Web3 as _Web3
        Web3 = _Web3
    return Web3


class ChainSubmitter(ABC):
    """Chain-submission collaborator interface."""

    @property
    @abstractmethod
    def address(self) -> Optional[str]:
        """Account that signs submissions (None if no wallet)."""
        pass

    @abstractmethod
    async def chain_id(self) -> int:
        """Chain id of the connected network."""
        pass

    @abstractmethod
    async def submit(self, payload: AttestationCallPayload) -> str:
        """
        Send attest(payload).

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        pass


class AttestationContract(ChainSubmitter):
    """
    web3 adapter for the attestation contract.

    [SIGNING] Transactions are signed locally with the configured private
    key and sent raw; the node never holds the key.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        contract_address: Optional[str] = None,
        explorer_url: Optional[str] = None,
        gas_limit: int = config.submission.gas_limit,
        w3: Any = None,
    ):
        """
        Args:
            rpc_url: RPC endpoint (default: configured network)
            private_key: Wallet private key (hex string)
            contract_address: Attestation contract (default: configured network)
            explorer_url: Block explorer base URL
            gas_limit: Gas limit for attest()
            w3: Pre-built Web3 instance (overrides rpc_url)
        """
        Web3 = _ensure_web3()

        self.rpc_url = rpc_url or config.network.rpc_url
        self.w3 = w3 if w3 is not None else Web3(Web3.HTTPProvider(self.rpc_url))
        self.explorer_url = config.network.explorer_url if explorer_url is None else explorer_url
        self.gas_limit = gas_limit

        if private_key:
            self.account = Account.from_key(private_key)
        else:
            self.account = None

        self.contract_address = Web3.to_checksum_address(contract_address or config.network.contract_address)
        self.contract = self.w3.eth.contract(address=self.contract_address, abi=ATTESTATION_ABI)

        logger.info(f"[CHAIN] Attestation contract: {self.contract_address}")

    @property
    def address(self) -> Optional[str]:
        return self.account.address if self.account else None

    async def chain_id(self) -> int:
        return int(self.w3.eth.chain_id)

    def _build_args(self, payload: AttestationCallPayload) -> tuple:
        Web3 = _ensure_web3()
        values = list(payload.as_tuple())
        # web3 insists on checksummed addresses in contract calls
        values[3] = Web3.to_checksum_address(payload.recipient)
        values[5] = Web3.to_checksum_address(payload.validator)
        return tuple(values)

    async def submit(self, payload: AttestationCallPayload) -> str:
        if not self.account:
            raise WalletUnavailableError("Private key required for submission")

        tx = self.contract.functions.attest(self._build_args(payload)).build_transaction({
            "from": self.account.address,
            "nonce": self.w3.eth.get_transaction_count(self.account.address),
            "gas": self.gas_limit,
            "gasPrice": self.w3.eth.gas_price,
            "chainId": await self.chain_id(),
        })

        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hex = "0x" + bytes(tx_hash).hex()

        logger.info(f"[CHAIN] attest() for task {payload.task_id.decode('utf-8', 'replace')}: {tx_hex}")
        return tx_hex

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: int = config.submission.receipt_timeout,
    ) -> Dict[str, Any]:
        """
        Wait for a receipt and require success.

        Raises:
            SubmissionError: the transaction reverted
        """
        raw_hash = bytes.fromhex(tx_hash[2:] if tx_hash.startswith("0x") else tx_hash)
        receipt = self.w3.eth.wait_for_transaction_receipt(raw_hash, timeout=timeout)

        if receipt.status != 1:
            raise SubmissionError(f"attest() reverted in block {receipt.blockNumber}", tx_hash=tx_hash)

        logger.info(f"[CHAIN] Confirmed {tx_hash} in block {receipt.blockNumber}")
        return {"tx_hash": tx_hash, "block_number": receipt.blockNumber, "gas_used": receipt.gasUsed}

    def get_explorer_url(self, tx_hash: str) -> str:
        """Get block explorer URL for transaction."""
        if not self.explorer_url:
            return ""
        return f"{self.explorer_url}/tx/{tx_hash}"
