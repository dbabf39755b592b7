"""
Attestation Module
==================
Verification and submission pipeline for off-chain attestations:
- ResultBundle: parsed, untrusted attestor result
- bind / SignatureVerifier: schema binding and two-party signature checks
- encode: verified bundle -> attest() call payload
- SubmissionOrchestrator: launch -> verify -> encode -> submit
"""

from .bundle import ResultBundle
from .binding import bind
from .signatures import SignatureVerifier
from .encoder import AttestationCallPayload, encode, encode_call_data
from .errors import RejectReason
from .orchestrator import SubmissionOrchestrator

__all__ = [
    "ResultBundle",
    "bind",
    "SignatureVerifier",
    "AttestationCallPayload",
    "encode",
    "encode_call_data",
    "RejectReason",
    "SubmissionOrchestrator",
]
