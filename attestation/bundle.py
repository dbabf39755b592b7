"""
Result Bundle
=============

[BOUNDARY] The attestor is untrusted. Its raw result (a JSON object) is
parsed here into a frozen ResultBundle; anything that does not match the
expected shape is rejected before any cryptographic work happens.

Raw shape (camelCase, as returned by the attestor):

    {
        "taskId": "...",                 # <= 32 bytes UTF-8
        "schemaId": "...",               # <= 32 bytes UTF-8
        "uHash": "0x<64 hex>",
        "publicFieldsHash": "0x<64 hex>",
        "validatorAddress": "0x<40 hex>",
        "allocatorSignature": "0x...",
        "validatorSignature": "0x...",
        "recipient": "0x<40 hex>"        # optional
    }
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from eth_utils import decode_hex, is_address, is_hex

from attestation.errors import MalformedBundleError

# bytes32 slots on chain
ID_MAX_BYTES = 32
HASH_BYTES = 32


def _decode(key: str, value: str) -> bytes:
    try:
        return decode_hex(value)
    except ValueError as e:
        raise MalformedBundleError(f"{key} is not valid hex: {e}") from e


def _require_text_id(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value:
        raise MalformedBundleError(f"{key} must be a non-empty string")
    if len(value.encode("utf-8")) > ID_MAX_BYTES:
        raise MalformedBundleError(f"{key} exceeds {ID_MAX_BYTES} bytes")
    return value


def _require_hash(raw: Dict[str, Any], key: str) -> bytes:
    value = raw.get(key)
    if not isinstance(value, str) or not value.startswith("0x") or not is_hex(value):
        raise MalformedBundleError(f"{key} must be a 0x-prefixed hex string")
    data = _decode(key, value)
    if len(data) != HASH_BYTES:
        raise MalformedBundleError(f"{key} must be {HASH_BYTES} bytes, got {len(data)}")
    return data


def _require_address(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not is_address(value):
        raise MalformedBundleError(f"{key} is not a valid address")
    return value


def _require_hex_bytes(raw: Dict[str, Any], key: str) -> bytes:
    # Length and recovery id are checked by the signature verifier.
    value = raw.get(key)
    if not isinstance(value, str) or not is_hex(value):
        raise MalformedBundleError(f"{key} must be a hex string")
    return _decode(key, value)


@dataclass(frozen=True)
class ResultBundle:
    """Signed attestation result for one attempt. Immutable after receipt."""

    task_id: str
    schema_id: str
    u_hash: bytes
    public_fields_hash: bytes
    validator_address: str
    allocator_signature: bytes
    validator_signature: bytes
    recipient: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "ResultBundle":
        """Parse an untrusted attestor result."""
        if not isinstance(raw, dict):
            raise MalformedBundleError("Bundle must be a JSON object")

        recipient = None
        if raw.get("recipient") not in (None, ""):
            recipient = _require_address(raw, "recipient")

        return cls(
            task_id=_require_text_id(raw, "taskId"),
            schema_id=_require_text_id(raw, "schemaId"),
            u_hash=_require_hash(raw, "uHash"),
            public_fields_hash=_require_hash(raw, "publicFieldsHash"),
            validator_address=_require_address(raw, "validatorAddress"),
            allocator_signature=_require_hex_bytes(raw, "allocatorSignature"),
            validator_signature=_require_hex_bytes(raw, "validatorSignature"),
            recipient=recipient,
        )

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "ResultBundle":
        try:
            raw = json.loads(data)
        except ValueError as e:
            raise MalformedBundleError(f"Bundle is not valid JSON: {e}") from e
        return cls.from_dict(raw)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "taskId": self.task_id,
            "schemaId": self.schema_id,
            "uHash": "0x" + self.u_hash.hex(),
            "publicFieldsHash": "0x" + self.public_fields_hash.hex(),
            "validatorAddress": self.validator_address,
            "allocatorSignature": "0x" + self.allocator_signature.hex(),
            "validatorSignature": "0x" + self.validator_signature.hex(),
        }
        if self.recipient:
            d["recipient"] = self.recipient
        return d
