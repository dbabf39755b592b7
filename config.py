"""
Attestation Relay Configuration
===============================
Central, read-only configuration set once at startup.

Environment overrides:
    ATTEST_NETWORK          network preset key (default: morph_holesky)
    ATTEST_RPC_URL          RPC endpoint override
    ATTESTATION_CONTRACT    attestation contract address override
    TRUSTED_ALLOCATORS      comma separated allocator signer addresses
    TRANSGATE_APP_ID        attestation service application id
    WALLET_PRIVATE_KEY      key used by the CLI to submit transactions
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple

import os

# ============================================================================
# Blockchain Network Presets
# ============================================================================

NETWORKS: Dict[str, Dict[str, object]] = {
    "morph_holesky": {
        "name": "Morph Holesky",
        "chain_id": 2810,
        "rpc_url": "https://rpc-quicknode-holesky.morphl2.io",
        "explorer_url": "https://explorer-holesky.morphl2.io",
        "contract_address": "0x79208010a972D0C0a978a9073bd0dcb659152072",
    },
    "local": {
        "name": "Local Devnet",
        "chain_id": 31337,
        "rpc_url": "http://localhost:8545",
        "explorer_url": "",
        "contract_address": "0x0000000000000000000000000000000000000000",
    },
}

# Selected network from environment (.env: ATTEST_NETWORK)
ATTEST_NETWORK: str = os.getenv("ATTEST_NETWORK", "morph_holesky").lower()
if ATTEST_NETWORK not in NETWORKS:
    ATTEST_NETWORK = "morph_holesky"

_SELECTED = NETWORKS[ATTEST_NETWORK]

# Convenience globals
RPC_URL: str = os.getenv("ATTEST_RPC_URL", "").strip() or _SELECTED["rpc_url"]  # type: ignore
CHAIN_ID: int = int(_SELECTED["chain_id"])  # type: ignore
EXPLORER_URL: str = _SELECTED["explorer_url"]  # type: ignore
CONTRACT_ADDRESS: str = os.getenv("ATTESTATION_CONTRACT", "").strip() or _SELECTED["contract_address"]  # type: ignore

# ============================================================================
# Attestation Service
# ============================================================================

# EVM allocator of the attestation service
DEFAULT_ALLOCATORS: Tuple[str, ...] = ("0x19a567b3b212a5b35bA0E3B600FbEd5c2eE9083d",)

DEFAULT_APP_ID = "fb7dc08a-3b93-47c0-a553-5de29be89eb6"

# Known validations: (schema_id, display name)
VALIDATION_SCHEMAS: List[Tuple[str, str]] = [
    ("b7724d4fce7d480ca9658730fdc4b8cf", "Has Sportybet Account"),
    ("b7724d4fce7d480ca9658730fdc4b8cf", "Sportybet account balance is more than 1 GHs"),
    ("99f040afb92349a28991ffed8bd0c146", "Credit Card number added to sportybet"),
    ("8dc601044ea04ce9a8fed4cbc061b11b", "Transacted on SportyBet in the last 7 days"),
]


def _parse_addresses(value: str) -> FrozenSet[str]:
    return frozenset(a.strip() for a in value.split(",") if a.strip())


TRUSTED_ALLOCATORS_ENV = os.getenv("TRUSTED_ALLOCATORS", "").strip()
TRUSTED_ALLOCATORS: FrozenSet[str] = (
    _parse_addresses(TRUSTED_ALLOCATORS_ENV) if TRUSTED_ALLOCATORS_ENV else frozenset(DEFAULT_ALLOCATORS)
)


@dataclass(frozen=True)
class NetworkConfig:
    """Target chain for submissions."""

    chain_id: int = CHAIN_ID
    rpc_url: str = RPC_URL
    explorer_url: str = EXPLORER_URL
    contract_address: str = CONTRACT_ADDRESS


@dataclass(frozen=True)
class TrustConfig:
    """Signer policy. Never mutated after startup."""

    trusted_allocators: FrozenSet[str] = TRUSTED_ALLOCATORS


@dataclass(frozen=True)
class TransgateConfig:
    """Attestation service client settings."""

    app_id: str = os.getenv("TRANSGATE_APP_ID", DEFAULT_APP_ID)

    # Result code meaning "user does not qualify"
    predicate_failed_code: int = 110001


@dataclass(frozen=True)
class SubmissionConfig:
    """Transaction parameters for attest()."""

    gas_limit: int = 300_000

    # Seconds to wait for a receipt when asked to
    receipt_timeout: int = 120


@dataclass(frozen=True)
class Config:
    """Top-level configuration."""

    network: NetworkConfig = field(default_factory=NetworkConfig)
    trust: TrustConfig = field(default_factory=TrustConfig)
    transgate: TransgateConfig = field(default_factory=TransgateConfig)
    submission: SubmissionConfig = field(default_factory=SubmissionConfig)


# Global configuration instance
config = Config()


def get_current_network() -> Dict[str, object]:
    """Return the active network preset."""
    return {
        "key": ATTEST_NETWORK,
        "name": _SELECTED["name"],
        "chain_id": CHAIN_ID,
        "rpc_url": RPC_URL,
        "explorer_url": EXPLORER_URL,
        "contract_address": CONTRACT_ADDRESS,
    }
