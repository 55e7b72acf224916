"""
Router module - Backend side of Study Buddy.

This module is responsible for:
1. Routing chat and generation actions to the gateway
2. Transcribing recorded audio
"""

from .action_router import ActionRouter, build_instruction, build_upstream_payload
from .transcription import Transcriber, decode_base64_chunks

__all__ = [
    "ActionRouter",
    "build_instruction",
    "build_upstream_payload",
    "Transcriber",
    "decode_base64_chunks",
]
