"""
Attestation Encoder
===================

[ENCODING] Turns a verified ResultBundle into the call structure for the
attestation contract entry point:

    attest((bytes32 taskId, bytes32 schemaId, bytes32 uHash, address recipient,
            bytes32 publicFieldsHash, address validator,
            bytes allocatorSignature, bytes validatorSignature))

The encoder performs no validation. Callers must only pass bundles that
already passed schema binding and signature verification.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from eth_abi import encode as abi_encode
from eth_utils import keccak

from attestation.bundle import ResultBundle

ATTEST_TUPLE_TYPE = "(bytes32,bytes32,bytes32,address,bytes32,address,bytes,bytes)"
ATTEST_SIGNATURE = f"attest({ATTEST_TUPLE_TYPE})"
ATTEST_SELECTOR = keccak(text=ATTEST_SIGNATURE)[:4]

# Struct components in on-chain order
ATTESTATION_COMPONENTS = [
    {"name": "taskId", "type": "bytes32"},
    {"name": "schemaId", "type": "bytes32"},
    {"name": "uHash", "type": "bytes32"},
    {"name": "recipient", "type": "address"},
    {"name": "publicFieldsHash", "type": "bytes32"},
    {"name": "validator", "type": "address"},
    {"name": "allocatorSignature", "type": "bytes"},
    {"name": "validatorSignature", "type": "bytes"},
]

ATTESTATION_ABI = [
    {
        "inputs": [
            {
                "name": "_attestation",
                "type": "tuple",
                "internalType": "struct Attestation",
                "components": ATTESTATION_COMPONENTS,
            }
        ],
        "name": "attest",
        "outputs": [{"type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


@dataclass(frozen=True)
class AttestationCallPayload:
    """Arguments for attest(). Built only from a verified bundle."""

    task_id: bytes
    schema_id: bytes
    u_hash: bytes
    recipient: str
    public_fields_hash: bytes
    validator: str
    allocator_signature: bytes
    validator_signature: bytes

    def as_tuple(self) -> Tuple[Any, ...]:
        """Field values in on-chain order."""
        return (
            self.task_id,
            self.schema_id,
            self.u_hash,
            self.recipient,
            self.public_fields_hash,
            self.validator,
            self.allocator_signature,
            self.validator_signature,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "taskId": "0x" + self.task_id.hex(),
            "schemaId": "0x" + self.schema_id.hex(),
            "uHash": "0x" + self.u_hash.hex(),
            "recipient": self.recipient,
            "publicFieldsHash": "0x" + self.public_fields_hash.hex(),
            "validator": self.validator,
            "allocatorSignature": "0x" + self.allocator_signature.hex(),
            "validatorSignature": "0x" + self.validator_signature.hex(),
        }


def encode(bundle: ResultBundle, recipient: str) -> AttestationCallPayload:
    """
    Build the call payload for a verified bundle.

    taskId and schemaId go on chain as their raw UTF-8 bytes (no hashing,
    no truncation). recipient is the caller's own account, never a
    bundle field.
    """
    return AttestationCallPayload(
        task_id=bundle.task_id.encode("utf-8"),
        schema_id=bundle.schema_id.encode("utf-8"),
        u_hash=bundle.u_hash,
        recipient=recipient,
        public_fields_hash=bundle.public_fields_hash,
        validator=bundle.validator_address,
        allocator_signature=bundle.allocator_signature,
        validator_signature=bundle.validator_signature,
    )


def encode_call_data(payload: AttestationCallPayload) -> bytes:
    """ABI calldata (selector + arguments) for attest(payload)."""
    return ATTEST_SELECTOR + abi_encode([ATTEST_TUPLE_TYPE], [payload.as_tuple()])
