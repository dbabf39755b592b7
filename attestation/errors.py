"""
Attestation Errors
==================

[ERRORS] Failure taxonomy for one verify-then-submit attempt:

- StructuralError:  malformed bundle fields (never reaches crypto)
- TrustError:       well-formed bundle that must not be trusted
- EnvironmentPreconditionError: wrong network / no wallet (checked before launch)
- ServiceError:     attestor unreachable, user aborted, predicate failed
- SubmissionError:  chain rejected the call after verification succeeded

Structural and trust failures are never retried and always surface with
their own RejectReason.
"""

from enum import Enum
from typing import Optional


class RejectReason(str, Enum):
    """Reason attached to a Rejected attempt."""

    SCHEMA_MISMATCH = "SchemaMismatch"
    UNTRUSTED_ALLOCATOR = "UntrustedAllocator"
    VALIDATOR_MISMATCH = "ValidatorMismatch"
    MALFORMED_SIGNATURE = "MalformedSignature"
    MALFORMED_BUNDLE = "MalformedBundle"
    PREDICATE_NOT_SATISFIED = "PredicateNotSatisfied"
    LAUNCH_UNAVAILABLE = "LaunchUnavailable"
    USER_CANCELLED = "UserCancelled"


class AttestationError(Exception):
    """Base class for all attestation pipeline errors."""

    reason: Optional[RejectReason] = None


# ============================================================================
# Verification (structural + trust)
# ============================================================================

class VerificationError(AttestationError):
    """Bundle failed verification."""


class StructuralError(VerificationError):
    """Bundle does not match the expected shape."""


class MalformedBundleError(StructuralError):
    reason = RejectReason.MALFORMED_BUNDLE


class MalformedSignatureError(StructuralError):
    reason = RejectReason.MALFORMED_SIGNATURE


class TrustError(VerificationError):
    """Bundle is well-formed but not trustworthy."""


class SchemaMismatchError(TrustError):
    reason = RejectReason.SCHEMA_MISMATCH

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Bundle schema {actual!r} does not match requested {expected!r}")
        self.expected = expected
        self.actual = actual


class UntrustedAllocatorError(TrustError):
    reason = RejectReason.UNTRUSTED_ALLOCATOR

    def __init__(self, recovered: str):
        super().__init__(f"Allocator signature recovered to untrusted signer {recovered}")
        self.recovered = recovered


class ValidatorMismatchError(TrustError):
    reason = RejectReason.VALIDATOR_MISMATCH

    def __init__(self, declared: str, recovered: str):
        super().__init__(
            f"Validator signature recovered to {recovered}, bundle declares {declared}"
        )
        self.declared = declared
        self.recovered = recovered


class RecipientMismatchError(ValidatorMismatchError):
    """Validator signed the result for a different wallet."""

    def __init__(self, signed_for: str, account: str):
        TrustError.__init__(
            self, f"Bundle was signed for recipient {signed_for}, submitting account is {account}"
        )
        self.signed_for = signed_for
        self.account = account


# ============================================================================
# Environment (checked before launch)
# ============================================================================

class EnvironmentPreconditionError(AttestationError):
    """The flow cannot start in the current environment."""


class WrongNetworkError(EnvironmentPreconditionError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"Connected to chain {actual}, expected chain {expected}")
        self.expected = expected
        self.actual = actual


class WalletUnavailableError(EnvironmentPreconditionError):
    pass


class NetworkUnavailableError(EnvironmentPreconditionError):
    """The RPC endpoint could not be queried."""


# ============================================================================
# Attestation service
# ============================================================================

class ServiceError(AttestationError):
    """The attestation launch collaborator failed."""


class PredicateNotSatisfiedError(ServiceError):
    reason = RejectReason.PREDICATE_NOT_SATISFIED


class LaunchUnavailableError(ServiceError):
    reason = RejectReason.LAUNCH_UNAVAILABLE


class UserCancelledError(ServiceError):
    reason = RejectReason.USER_CANCELLED


# ============================================================================
# Chain submission
# ============================================================================

class SubmissionError(AttestationError):
    """The chain rejected or failed to accept the attestation call."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
