"""
Core Runtime Module
===================
Process-wide plumbing shared by the attestation pipeline:
- EventBus: async in-process notifications
- setup_logging / BufferHandler: logging configuration and in-memory trace
"""

from .events import ATTESTATION_STATE, EventBus
from .logger import BufferHandler, setup_logging

__all__ = [
    "ATTESTATION_STATE",
    "EventBus",
    "BufferHandler",
    "setup_logging",
]
