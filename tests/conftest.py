"""
Attestation Relay Test Configuration
====================================

[QA] Central pytest configuration with fixtures for all test types:
- Unit tests: Isolated, no I/O, fast
- E2E tests: Full orchestrated attempt against fake collaborators

[FIXTURES]
- allocator / validator / wallet / rogue: deterministic signing accounts
- bundle_factory: correctly signed attestor results
- verifier: SignatureVerifier trusting the test allocator
- mock_chain: Fake Web3 for submission tests
- fake_launcher / fake_submitter: orchestrator collaborators

Usage:
    pytest tests/unit/          # Fast unit tests
    pytest tests/e2e/           # End-to-end tests
"""

import sys
import asyncio
import inspect
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest
from eth_abi import encode as abi_encode
from eth_account import Account
from eth_account.messages import encode_defunct

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from attestation.bundle import ResultBundle
from attestation.chain import ChainSubmitter
from attestation.encoder import ATTEST_SELECTOR, ATTEST_TUPLE_TYPE, AttestationCallPayload
from attestation.launcher import AttestationLauncher
from attestation.signatures import SignatureVerifier, allocator_digest, recover_signer, validator_digest


SCHEMA_ID = "b7724d4fce7d480ca9658730fdc4b8cf"
TASK_ID = "0c5f2b8e7d4a4e1c9b3f6a2d8e7c1b05"
U_HASH = "0x" + "ab" * 32
PUBLIC_FIELDS_HASH = "0x" + "cd" * 32
CHAIN_ID = 2810


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "e2e: End-to-end tests (full attempt)")


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their path."""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "/e2e/" in str(item.fspath):
            item.add_marker(pytest.mark.e2e)

        # Mark async tests
        if inspect.iscoroutinefunction(getattr(item, "obj", None)):
            item.add_marker(pytest.mark.asyncio)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("web3").setLevel(logging.WARNING)


# ============================================================================
# Signing Accounts
# ============================================================================

@pytest.fixture(scope="session")
def allocator():
    return Account.from_key("0x" + "11" * 32)


@pytest.fixture(scope="session")
def validator():
    return Account.from_key("0x" + "22" * 32)


@pytest.fixture(scope="session")
def wallet():
    return Account.from_key("0x" + "33" * 32)


@pytest.fixture(scope="session")
def rogue():
    """Signer nobody trusts."""
    return Account.from_key("0x" + "44" * 32)


def sign_digest(account, digest: bytes) -> str:
    signed = account.sign_message(encode_defunct(primitive=digest))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture(scope="function")
def bundle_factory(allocator, validator) -> Callable[..., Dict[str, Any]]:
    """
    Factory for raw attestor results.

    [USAGE]
        raw = bundle_factory()                       # valid
        raw = bundle_factory(allocator_signer=rogue) # untrusted allocator
        raw = bundle_factory(schema_id="X")          # other schema
    """
    def _create(
        schema_id: str = SCHEMA_ID,
        task_id: str = TASK_ID,
        u_hash: str = U_HASH,
        public_fields_hash: str = PUBLIC_FIELDS_HASH,
        validator_address: Optional[str] = None,
        recipient: Optional[str] = None,
        allocator_signer=None,
        validator_signer=None,
    ) -> Dict[str, Any]:
        unsigned = ResultBundle(
            task_id=task_id,
            schema_id=schema_id,
            u_hash=bytes.fromhex(u_hash[2:]),
            public_fields_hash=bytes.fromhex(public_fields_hash[2:]),
            validator_address=validator_address or validator.address,
            allocator_signature=b"",
            validator_signature=b"",
            recipient=recipient,
        )
        raw = {
            "taskId": task_id,
            "schemaId": schema_id,
            "uHash": u_hash,
            "publicFieldsHash": public_fields_hash,
            "validatorAddress": unsigned.validator_address,
            "allocatorSignature": sign_digest(allocator_signer or allocator, allocator_digest(unsigned)),
            "validatorSignature": sign_digest(validator_signer or validator, validator_digest(unsigned)),
        }
        if recipient:
            raw["recipient"] = recipient
        return raw

    return _create


@pytest.fixture(scope="function")
def verifier(allocator) -> SignatureVerifier:
    return SignatureVerifier([allocator.address])


class CountingRecover:
    """Signature recovery wrapper that counts calls."""

    def __init__(self):
        self._recover = recover_signer
        self.calls = 0

    def __call__(self, digest: bytes, signature: bytes) -> str:
        self.calls += 1
        return self._recover(digest, signature)


@pytest.fixture(scope="function")
def counting_recover() -> CountingRecover:
    return CountingRecover()


# ============================================================================
# Orchestrator Collaborators
# ============================================================================

class FakeLauncher(AttestationLauncher):
    """Launcher returning a canned result or raising a canned error."""

    def __init__(self, result: Any = None, error: Optional[BaseException] = None, available: bool = True):
        self.result = result
        self.error = error
        self.available = available
        self.calls: List[tuple] = []

    async def is_available(self) -> bool:
        return self.available

    async def launch(self, schema_id: str, account: str) -> Dict[str, Any]:
        self.calls.append((schema_id, account))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.result


class FakeSubmitter(ChainSubmitter):
    """Submitter recording payloads."""

    def __init__(self, account: Optional[str], chain_id: int = CHAIN_ID, error: Optional[BaseException] = None):
        self._account = account
        self._chain_id = chain_id
        self.error = error
        self.payloads: List[AttestationCallPayload] = []

    @property
    def address(self) -> Optional[str]:
        return self._account

    async def chain_id(self) -> int:
        return self._chain_id

    async def submit(self, payload: AttestationCallPayload) -> str:
        self.payloads.append(payload)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return "0x" + f"{len(self.payloads):064x}"


@pytest.fixture(scope="function")
def fake_launcher() -> Callable[..., FakeLauncher]:
    """Factory: fake_launcher(result=raw) or fake_launcher(error=exc)."""
    return FakeLauncher


@pytest.fixture(scope="function")
def fake_submitter(wallet) -> FakeSubmitter:
    return FakeSubmitter(wallet.address)


# ============================================================================
# Mock Blockchain / Web3 Fixtures
# ============================================================================

@dataclass
class MockTransaction:
    """Mock blockchain transaction."""
    hash: str
    raw: bytes
    status: int = 1  # 1 = success


class MockWeb3:
    """
    Mock Web3 provider for testing without real blockchain.

    [FEATURES]
    - Tracks raw transactions
    - Records attest() arguments
    - Mimics the configured chainId
    """

    def __init__(self, chain_id: int = CHAIN_ID):
        self.chain_id = chain_id
        self.block_number = 1000
        self.transactions: Dict[str, MockTransaction] = {}
        self.attest_calls: List[tuple] = []
        self.revert_next = False
        self._tx_counter = 0

        self.eth = MagicMock()
        self.eth.chain_id = chain_id
        self.eth.gas_price = 1_000_000_000  # 1 Gwei
        self.eth.get_transaction_count = MagicMock(return_value=0)
        self.eth.send_raw_transaction = self._send_transaction
        self.eth.wait_for_transaction_receipt = self._wait_receipt
        self.eth.contract = self._contract

    def _contract(self, address: str, abi: list) -> MagicMock:
        contract = MagicMock()
        contract.address = address

        def attest(args: tuple) -> MagicMock:
            self.attest_calls.append(args)
            data = ATTEST_SELECTOR + abi_encode([ATTEST_TUPLE_TYPE], [args])

            def build_transaction(params: Dict[str, Any]) -> Dict[str, Any]:
                tx = dict(params)
                tx.update({"to": address, "data": "0x" + data.hex(), "value": 0})
                return tx

            call = MagicMock()
            call.build_transaction = build_transaction
            return call

        contract.functions.attest = attest
        return contract

    def _send_transaction(self, raw_tx: bytes) -> bytes:
        """Simulate sending transaction."""
        self._tx_counter += 1
        tx_hash = f"0x{self._tx_counter:064x}"
        status = 0 if self.revert_next else 1
        self.revert_next = False
        self.transactions[tx_hash] = MockTransaction(hash=tx_hash, raw=bytes(raw_tx), status=status)
        self.block_number += 1
        return bytes.fromhex(tx_hash[2:])

    def _wait_receipt(self, tx_hash: bytes, **kwargs) -> MagicMock:
        """Return mock receipt."""
        tx = self.transactions.get("0x" + tx_hash.hex())

        receipt = MagicMock()
        receipt.status = tx.status if tx else 0
        receipt.blockNumber = self.block_number
        receipt.gasUsed = 87_000
        return receipt


@pytest.fixture(scope="function")
def mock_chain() -> MockWeb3:
    """
    Mock blockchain for submission tests.

    [USAGE]
        def test_submit(mock_chain):
            contract = AttestationContract(private_key=key, w3=mock_chain)
    """
    return MockWeb3()
