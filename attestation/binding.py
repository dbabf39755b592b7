"""Schema binding: a bundle is only valid for the schema that was requested."""

import logging

from attestation.bundle import ResultBundle
from attestation.errors import RecipientMismatchError, SchemaMismatchError

logger = logging.getLogger(__name__)


def bind(bundle: ResultBundle, requested_schema_id: str) -> None:
    """
    Check that the attestor answered the question that was asked.

    Schema identifiers are opaque strings and are compared exactly. A
    valid proof for one predicate must never be accepted as proof of
    another.

    Raises:
        SchemaMismatchError: bundle.schema_id != requested_schema_id
    """
    if bundle.schema_id != requested_schema_id:
        logger.warning(
            f"[VERIFY] Schema mismatch for task {bundle.task_id}: "
            f"requested={requested_schema_id} got={bundle.schema_id}"
        )
        raise SchemaMismatchError(expected=requested_schema_id, actual=bundle.schema_id)


def bind_recipient(bundle: ResultBundle, account: str) -> None:
    """
    Check that a recipient-bound bundle is submitted by that recipient.

    The validator signature covers bundle.recipient when present, and the
    contract checks it against the submitted recipient. Bundles without a
    recipient are accepted for any account.

    Raises:
        RecipientMismatchError: bundle.recipient set and != account
    """
    if bundle.recipient is None:
        return
    if bundle.recipient.lower() != account.lower():
        logger.warning(
            f"[VERIFY] Recipient mismatch for task {bundle.task_id}: "
            f"signed_for={bundle.recipient} account={account}"
        )
        raise RecipientMismatchError(signed_for=bundle.recipient, account=account)
