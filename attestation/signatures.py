"""
Signature Verifier
==================

[CRYPTO] Two-party signing scheme. Every bundle carries two ECDSA
signatures, each over its own digest:

    allocator:  keccak256(abi.encode(bytes32 taskId, bytes32 schemaId, address validator))
    validator:  keccak256(abi.encode(bytes32 taskId, bytes32 schemaId,
                                     bytes32 uHash, bytes32 publicFieldsHash
                                     [, address recipient]))

Both are signed as EIP-191 personal messages over the 32 digest bytes.
The layout is fixed by the attestation service and must not change.

- The allocator must recover to an address in the trusted allow-list.
- The validator must recover to the bundle's own validatorAddress.

The two checks are independent steps run in order; the first failure
wins. Signature structure is checked right before each recovery.
"""

import logging
from typing import Callable, FrozenSet, Iterable, Tuple

from eth_abi import encode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak

from attestation.bundle import ResultBundle
from attestation.errors import (
    MalformedSignatureError,
    UntrustedAllocatorError,
    ValidatorMismatchError,
)

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65
VALID_RECOVERY_IDS = (0, 1, 27, 28)

# (digest, signature) -> checksum address
Recover = Callable[[bytes, bytes], str]


# ============================================================================
# Canonical digests
# ============================================================================

def _id_bytes(value: str) -> bytes:
    return value.encode("utf-8")


def allocator_digest(bundle: ResultBundle) -> bytes:
    """Digest signed by the allocator."""
    encoded = encode(
        ["bytes32", "bytes32", "address"],
        [_id_bytes(bundle.task_id), _id_bytes(bundle.schema_id), bundle.validator_address],
    )
    return keccak(encoded)


def validator_digest(bundle: ResultBundle) -> bytes:
    """Digest signed by the validator."""
    types = ["bytes32", "bytes32", "bytes32", "bytes32"]
    values = [
        _id_bytes(bundle.task_id),
        _id_bytes(bundle.schema_id),
        bundle.u_hash,
        bundle.public_fields_hash,
    ]
    if bundle.recipient:
        types.append("address")
        values.append(bundle.recipient)
    return keccak(encode(types, values))


# ============================================================================
# Recovery
# ============================================================================

def check_signature_structure(signature: bytes, role: str) -> bytes:
    """
    Validate a raw 65-byte (r || s || v) signature.

    Returns the signature with v normalized to 27/28.

    Raises:
        MalformedSignatureError: wrong length or invalid recovery id
    """
    if len(signature) != SIGNATURE_LENGTH:
        raise MalformedSignatureError(
            f"{role} signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}"
        )
    v = signature[64]
    if v not in VALID_RECOVERY_IDS:
        raise MalformedSignatureError(f"{role} signature has invalid recovery id {v}")
    if v < 27:
        v += 27
    return signature[:64] + bytes([v])


def recover_signer(digest: bytes, signature: bytes) -> str:
    """Recover the address that personal-signed a 32-byte digest."""
    return Account.recover_message(encode_defunct(primitive=digest), signature=signature)


# ============================================================================
# Verifier
# ============================================================================

class SignatureVerifier:
    """
    Checks both bundle signatures against the signer policy.

    [USAGE]
        verifier = SignatureVerifier(config.trust.trusted_allocators)
        verifier.verify(bundle)   # raises on failure

    Deterministic given (bundle, trusted allocators). No side effects.
    """

    def __init__(self, trusted_allocators: Iterable[str], recover: Recover = recover_signer):
        """
        Args:
            trusted_allocators: Accepted allocator signer addresses
            recover: Signer recovery function (digest, signature) -> address
        """
        self.trusted_allocators: FrozenSet[str] = frozenset(a.lower() for a in trusted_allocators)
        self._recover = recover

    def _recover_role(self, digest: bytes, signature: bytes, role: str) -> str:
        normalized = check_signature_structure(signature, role)
        try:
            return self._recover(digest, normalized)
        except Exception as e:
            raise MalformedSignatureError(f"{role} signature could not be recovered: {e}") from e

    def check_allocator(self, bundle: ResultBundle) -> str:
        """Allocator signature must recover to a trusted signer."""
        signer = self._recover_role(allocator_digest(bundle), bundle.allocator_signature, "allocator")
        if signer.lower() not in self.trusted_allocators:
            logger.warning(f"[VERIFY] Untrusted allocator {signer} for task {bundle.task_id}")
            raise UntrustedAllocatorError(signer)
        return signer

    def check_validator(self, bundle: ResultBundle) -> str:
        """Validator signature must recover to the declared validatorAddress."""
        signer = self._recover_role(validator_digest(bundle), bundle.validator_signature, "validator")
        if signer.lower() != bundle.validator_address.lower():
            logger.warning(
                f"[VERIFY] Validator mismatch for task {bundle.task_id}: "
                f"declared={bundle.validator_address} recovered={signer}"
            )
            raise ValidatorMismatchError(declared=bundle.validator_address, recovered=signer)
        return signer

    def verify(self, bundle: ResultBundle) -> Tuple[str, str]:
        """
        Run both signature checks, allocator first.

        Returns:
            (allocator_signer, validator_signer)

        Raises:
            MalformedSignatureError, UntrustedAllocatorError, ValidatorMismatchError
        """
        allocator = self.check_allocator(bundle)
        validator = self.check_validator(bundle)
        logger.debug(f"[VERIFY] Task {bundle.task_id} signed by allocator={allocator} validator={validator}")
        return allocator, validator
