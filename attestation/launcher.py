"""
Attestation Launch
==================

[SERVICE] Boundary to the off-chain attestation service. The service
itself (proof generation, user interaction) is opaque; the orchestrator
only needs:

    launcher.is_available()              -> bool
    launcher.launch(schema_id, account)  -> raw result dict

Launch failures carry a message that may be a JSON object with a numeric
"code". Code 110001 means the user does not satisfy the predicate and is
reported separately from every other failure.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from config import config
from attestation.errors import RejectReason, UserCancelledError

logger = logging.getLogger(__name__)


class AttestationLauncher(ABC):
    """Launch collaborator interface."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the attestation service can be reached at all."""
        pass

    @abstractmethod
    async def launch(self, schema_id: str, account: str) -> Dict[str, Any]:
        """
        Run one attestation for schema_id on behalf of account.

        Returns:
            The attestor's raw (untrusted) result object
        """
        pass


def _error_code(exc: BaseException) -> Optional[int]:
    message = exc.args[0] if exc.args else str(exc)
    if isinstance(message, dict):
        data = message
    else:
        try:
            data = json.loads(str(message))
        except ValueError:
            return None
    if not isinstance(data, dict):
        return None
    code = data.get("code")
    if isinstance(code, bool) or not isinstance(code, int):
        return None
    return code


def classify_launch_failure(
    exc: BaseException,
    predicate_failed_code: int = config.transgate.predicate_failed_code,
) -> RejectReason:
    """
    Map a launch failure to a rejection reason.

    - UserCancelledError                      -> UserCancelled
    - JSON message with code 110001           -> PredicateNotSatisfied
    - anything else (non-JSON, other codes)   -> LaunchUnavailable
    """
    if isinstance(exc, UserCancelledError):
        return RejectReason.USER_CANCELLED
    if _error_code(exc) == predicate_failed_code:
        return RejectReason.PREDICATE_NOT_SATISFIED
    return RejectReason.LAUNCH_UNAVAILABLE


class BundleFileLauncher(AttestationLauncher):
    """
    Launcher that reads a result the attestor already produced.

    The attestation service runs as a browser extension; its result JSON
    (or its JSON error object) is saved to a file and handed in here.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def is_available(self) -> bool:
        return self.path.is_file()

    async def launch(self, schema_id: str, account: str) -> Dict[str, Any]:
        logger.info(f"[ATTEST] Loading result for schema {schema_id} ({account}) from {self.path}")
        text = self.path.read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except ValueError as e:
            raise RuntimeError(f"Attestation result is not JSON: {e}") from e
        if isinstance(data, dict) and "code" in data and "taskId" not in data:
            # The attestor's error object, re-raised the way the service reports it
            raise RuntimeError(json.dumps(data))
        return data
