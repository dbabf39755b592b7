#!/usr/bin/env python3
"""
Attestation Relay
=================

[FLOW] Verifies an attestation result produced by the attestation service
and commits it to the on-chain attestation contract:

- Loads the attestor's result JSON (untrusted)
- Checks it was produced for the requested schema
- Checks the allocator and validator signatures
- Encodes attest() and submits it from the configured wallet

Usage:
    python main.py schemas
    python main.py verify --bundle result.json --schema <schema_id> --recipient 0x...
    python main.py submit --bundle result.json --schema <schema_id> [--wait]

Examples:
    # Inspect the payload without touching the chain
    python main.py verify --bundle result.json \\
        --schema b7724d4fce7d480ca9658730fdc4b8cf --recipient 0xYourWallet

    # Submit (WALLET_PRIVATE_KEY from .env)
    python main.py submit --bundle result.json \\
        --schema b7724d4fce7d480ca9658730fdc4b8cf --wait
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

# Load .env before config reads the environment
from dotenv import load_dotenv
load_dotenv()

from eth_utils import is_address

from config import config, get_current_network, VALIDATION_SCHEMAS
from core.events import ATTESTATION_STATE, EventBus
from core.logger import BufferHandler, setup_logging
from attestation.binding import bind, bind_recipient
from attestation.bundle import ResultBundle
from attestation.chain import AttestationContract
from attestation.encoder import encode, encode_call_data
from attestation.errors import EnvironmentPreconditionError, SubmissionError, VerificationError
from attestation.launcher import BundleFileLauncher
from attestation.orchestrator import Confirmed, SubmissionOrchestrator, describe
from attestation.signatures import SignatureVerifier

logger = logging.getLogger("attest")

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_ENVIRONMENT = 2
EXIT_SUBMISSION = 3


def cmd_schemas(args: argparse.Namespace) -> int:
    """List the known validations."""
    print(f"App ID: {config.transgate.app_id}")
    for schema_id, name in VALIDATION_SCHEMAS:
        print(f"  {schema_id}  {name}")
    return EXIT_OK


def cmd_verify(args: argparse.Namespace) -> int:
    """Verify a result file offline and print the attest() payload."""
    if not is_address(args.recipient):
        print(f"[ERROR] Invalid recipient address: {args.recipient}")
        return EXIT_ENVIRONMENT

    verifier = SignatureVerifier(config.trust.trusted_allocators)
    try:
        with open(args.bundle, encoding="utf-8") as f:
            bundle = ResultBundle.from_json(f.read())
        bind(bundle, args.schema)
        allocator, validator = verifier.verify(bundle)
        bind_recipient(bundle, args.recipient)
    except OSError as e:
        print(f"[ERROR] Cannot read bundle: {e}")
        return EXIT_ENVIRONMENT
    except VerificationError as e:
        print(json.dumps({"state": "Rejected", "reason": e.reason.value, "message": str(e)}, indent=2))
        return EXIT_REJECTED

    payload = encode(bundle, recipient=args.recipient)
    print(json.dumps({
        "state": "Verified",
        "allocator": allocator,
        "validator": validator,
        "payload": payload.to_dict(),
        "calldata": "0x" + encode_call_data(payload).hex(),
    }, indent=2))
    return EXIT_OK


async def cmd_submit(args: argparse.Namespace, buffer: BufferHandler) -> int:
    """Run one full attempt and submit on success."""
    private_key = args.private_key or os.getenv("WALLET_PRIVATE_KEY", "")
    contract = AttestationContract(
        rpc_url=args.rpc_url,
        private_key=private_key or None,
        contract_address=args.contract,
    )

    events = EventBus()

    async def on_state(event):
        logger.debug(f"[EVENTS] {event}")

    await events.subscribe(ATTESTATION_STATE, on_state)

    orchestrator = SubmissionOrchestrator(
        launcher=BundleFileLauncher(args.bundle),
        submitter=contract,
        verifier=SignatureVerifier(config.trust.trusted_allocators),
        expected_chain_id=config.network.chain_id,
        events=events,
    )

    try:
        attempt = await orchestrator.run(args.schema, account=args.account)
    except EnvironmentPreconditionError as e:
        print(f"[ERROR] {e}")
        return EXIT_ENVIRONMENT

    result = describe(attempt.state)
    result["history"] = [s.value for s in attempt.states()]
    code = EXIT_OK

    if isinstance(attempt.state, Confirmed):
        tx_hash = attempt.state.transaction_id
        result["explorer"] = contract.get_explorer_url(tx_hash)
        if args.wait:
            try:
                result["receipt"] = contract.wait_for_receipt(tx_hash)
            except SubmissionError as e:
                result["receipt_error"] = str(e)
                code = EXIT_SUBMISSION
    elif result["state"] == "Rejected":
        code = EXIT_REJECTED
    else:
        code = EXIT_SUBMISSION

    if args.trace:
        result["trace"] = buffer.lines("ATTEST")

    print(json.dumps(result, indent=2, default=str))
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Verify attestation results and commit them on chain",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("schemas", help="List known validation schemas")

    verify_p = sub.add_parser("verify", help="Verify a result file without submitting")
    verify_p.add_argument("--bundle", "-b", required=True, help="Attestor result JSON file")
    verify_p.add_argument("--schema", "-s", required=True, help="Requested schema id")
    verify_p.add_argument("--recipient", "-r", required=True, help="Recipient wallet address")

    submit_p = sub.add_parser("submit", help="Verify a result file and submit attest()")
    submit_p.add_argument("--bundle", "-b", required=True, help="Attestor result JSON file")
    submit_p.add_argument("--schema", "-s", required=True, help="Requested schema id")
    submit_p.add_argument("--account", "-a", default=None, help="Recipient (default: wallet address)")
    submit_p.add_argument("--private-key", default=None, help="Wallet key (default: WALLET_PRIVATE_KEY)")
    submit_p.add_argument(
        "--rpc-url",
        default=None,
        help=f"RPC endpoint (default: {config.network.rpc_url})",
    )
    submit_p.add_argument(
        "--contract",
        default=None,
        help=f"Attestation contract (default: {config.network.contract_address})",
    )
    submit_p.add_argument("--wait", action="store_true", help="Wait for the transaction receipt")
    submit_p.add_argument("--trace", action="store_true", help="Include state transition log in output")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    buffer = BufferHandler()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, buffer=buffer)

    net = get_current_network()
    logger.info("[INFO] Network: %s (%s)", net["name"], net["chain_id"])

    if args.command == "schemas":
        return cmd_schemas(args)
    if args.command == "verify":
        return cmd_verify(args)
    return asyncio.run(cmd_submit(args, buffer))


if __name__ == "__main__":
    sys.exit(main())
