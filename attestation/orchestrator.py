"""
Submission Orchestrator
=======================

[FLOW] One attestation attempt, request -> verify -> encode -> submit:

    Idle -> Launched -> Verifying -> Verified | Rejected
                                     Verified -> Submitting -> Confirmed | SubmissionFailed

Each state is its own frozen dataclass and each transition is a plain
function taking the one state it is legal from. There is no way to build
a Submitting state without a Verified one.

[CONCURRENCY] An attempt awaits exactly two collaborators, one at a time:
the launcher (returns the bundle) and the submitter (returns a tx hash).
Attempts share nothing mutable, so several may run concurrently.

No retries. Confirmed, Rejected and SubmissionFailed end the attempt.

[USAGE]
    orchestrator = SubmissionOrchestrator(launcher, contract, verifier)
    attempt = await orchestrator.run("b7724d4fce7d480ca9658730fdc4b8cf")
    if isinstance(attempt.state, Confirmed):
        print(attempt.state.transaction_id)
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from eth_utils import is_address

from config import config
from core.events import ATTESTATION_STATE, EventBus
from attestation.binding import bind, bind_recipient
from attestation.bundle import ResultBundle
from attestation.chain import ChainSubmitter
from attestation.encoder import AttestationCallPayload, encode
from attestation.errors import (
    LaunchUnavailableError,
    NetworkUnavailableError,
    RejectReason,
    VerificationError,
    WalletUnavailableError,
    WrongNetworkError,
)
from attestation.launcher import AttestationLauncher, classify_launch_failure
from attestation.signatures import SignatureVerifier

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    IDLE = "Idle"
    LAUNCHED = "Launched"
    VERIFYING = "Verifying"
    VERIFIED = "Verified"
    REJECTED = "Rejected"
    SUBMITTING = "Submitting"
    CONFIRMED = "Confirmed"
    SUBMISSION_FAILED = "SubmissionFailed"


# ============================================================================
# States
# ============================================================================

@dataclass(frozen=True)
class Idle:
    schema_id: str
    account: str
    kind: ClassVar[AttemptState] = AttemptState.IDLE


@dataclass(frozen=True)
class Launched:
    schema_id: str
    account: str
    kind: ClassVar[AttemptState] = AttemptState.LAUNCHED


@dataclass(frozen=True)
class Verifying:
    schema_id: str
    account: str
    raw_bundle: Any
    kind: ClassVar[AttemptState] = AttemptState.VERIFYING


@dataclass(frozen=True)
class Verified:
    account: str
    bundle: ResultBundle
    kind: ClassVar[AttemptState] = AttemptState.VERIFIED


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    error: BaseException
    kind: ClassVar[AttemptState] = AttemptState.REJECTED


@dataclass(frozen=True)
class Submitting:
    payload: AttestationCallPayload
    kind: ClassVar[AttemptState] = AttemptState.SUBMITTING


@dataclass(frozen=True)
class Confirmed:
    transaction_id: str
    kind: ClassVar[AttemptState] = AttemptState.CONFIRMED


@dataclass(frozen=True)
class SubmissionFailed:
    error: BaseException
    kind: ClassVar[AttemptState] = AttemptState.SUBMISSION_FAILED


State = Union[Idle, Launched, Verifying, Verified, Rejected, Submitting, Confirmed, SubmissionFailed]

TERMINAL_STATES = (Confirmed, Rejected, SubmissionFailed)


# ============================================================================
# Transitions
# ============================================================================

def launch(state: Idle) -> Launched:
    return Launched(schema_id=state.schema_id, account=state.account)


def reject_launch(state: Launched, error: BaseException) -> Rejected:
    """Launcher failed, was unavailable, or the user aborted."""
    return Rejected(reason=classify_launch_failure(error), error=error)


def receive(state: Launched, raw_bundle: Any) -> Verifying:
    return Verifying(schema_id=state.schema_id, account=state.account, raw_bundle=raw_bundle)


def verify(state: Verifying, verifier: SignatureVerifier) -> Union[Verified, Rejected]:
    """
    Parse, bind and verify the bundle. First failure wins:
    structure, then schema, then allocator, then validator, then the
    signed recipient against the attempt account.
    """
    try:
        bundle = ResultBundle.from_dict(state.raw_bundle)
        bind(bundle, state.schema_id)
        verifier.verify(bundle)
        bind_recipient(bundle, state.account)
    except VerificationError as e:
        return Rejected(reason=e.reason, error=e)
    return Verified(account=state.account, bundle=bundle)


def prepare_submission(state: Verified) -> Submitting:
    return Submitting(payload=encode(state.bundle, recipient=state.account))


def confirm(state: Submitting, transaction_id: str) -> Confirmed:
    return Confirmed(transaction_id=transaction_id)


def fail_submission(state: Submitting, error: BaseException) -> SubmissionFailed:
    return SubmissionFailed(error=error)


def describe(state: State) -> Dict[str, Any]:
    """Caller-facing summary of a state."""
    d: Dict[str, Any] = {"state": state.kind.value}
    if isinstance(state, Confirmed):
        d["transaction_id"] = state.transaction_id
    elif isinstance(state, Rejected):
        d["reason"] = state.reason.value
        d["message"] = str(state.error)
    elif isinstance(state, SubmissionFailed):
        d["error"] = str(state.error)
    return d


# ============================================================================
# Orchestrator
# ============================================================================

@dataclass
class Attempt:
    """State history of a single attempt."""

    schema_id: str
    account: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    history: List[State] = field(default_factory=list)

    @property
    def state(self) -> State:
        return self.history[-1]

    @property
    def finished(self) -> bool:
        return isinstance(self.state, TERMINAL_STATES)

    def states(self) -> List[AttemptState]:
        return [s.kind for s in self.history]


class SubmissionOrchestrator:
    """
    Drives attempts through the state machine.

    Holds only read-only collaborators; every run() starts a fresh Attempt.
    """

    def __init__(
        self,
        launcher: AttestationLauncher,
        submitter: ChainSubmitter,
        verifier: SignatureVerifier,
        expected_chain_id: int = config.network.chain_id,
        events: Optional[EventBus] = None,
    ):
        self.launcher = launcher
        self.submitter = submitter
        self.verifier = verifier
        self.expected_chain_id = expected_chain_id
        self.events = events

    async def _advance(self, attempt: Attempt, state: State) -> None:
        previous = attempt.history[-1].kind.value if attempt.history else "-"
        attempt.history.append(state)

        if isinstance(state, Rejected):
            logger.warning(f"[ATTEST] {attempt.id[:8]} {previous} -> Rejected({state.reason.value}): {state.error}")
        elif isinstance(state, SubmissionFailed):
            logger.error(f"[ATTEST] {attempt.id[:8]} {previous} -> SubmissionFailed: {state.error}")
        else:
            logger.info(f"[ATTEST] {attempt.id[:8]} {previous} -> {state.kind.value}")

        if self.events is not None:
            payload = {"attempt_id": attempt.id, "schema_id": attempt.schema_id}
            payload.update(describe(state))
            await self.events.broadcast(ATTESTATION_STATE, payload)

    async def ensure_environment(self, account: Optional[str]) -> str:
        """
        Check flow preconditions before anything is launched.

        Returns:
            The account the attempt runs for

        Raises:
            WalletUnavailableError: no usable account
            WrongNetworkError: connected to the wrong chain
            NetworkUnavailableError: chain id could not be read
        """
        account = account or self.submitter.address
        if not account or not is_address(account):
            raise WalletUnavailableError("No wallet account available")

        try:
            chain_id = await self.submitter.chain_id()
        except Exception as e:
            raise NetworkUnavailableError(f"Cannot query chain id: {e}") from e
        if chain_id != self.expected_chain_id:
            raise WrongNetworkError(expected=self.expected_chain_id, actual=chain_id)
        return account

    async def run(self, schema_id: str, account: Optional[str] = None) -> Attempt:
        """
        Run one attempt to a terminal state.

        Environment preconditions raise before the attempt starts; every
        later failure ends the attempt in Rejected or SubmissionFailed.
        """
        account = await self.ensure_environment(account)

        attempt = Attempt(schema_id=schema_id, account=account)
        idle = Idle(schema_id=schema_id, account=account)
        await self._advance(attempt, idle)

        launched = launch(idle)
        await self._advance(attempt, launched)

        try:
            if not await self.launcher.is_available():
                raise LaunchUnavailableError("Attestation service is not available")
            raw_bundle = await self.launcher.launch(schema_id, account)
        except Exception as e:
            await self._advance(attempt, reject_launch(launched, e))
            return attempt

        verifying = receive(launched, raw_bundle)
        await self._advance(attempt, verifying)

        checked = verify(verifying, self.verifier)
        await self._advance(attempt, checked)
        if isinstance(checked, Rejected):
            return attempt

        submitting = prepare_submission(checked)
        await self._advance(attempt, submitting)

        try:
            tx_hash = await self.submitter.submit(submitting.payload)
        except Exception as e:
            await self._advance(attempt, fail_submission(submitting, e))
            return attempt

        await self._advance(attempt, confirm(submitting, tx_hash))
        return attempt
