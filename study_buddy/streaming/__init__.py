"""
Streaming module - Client-side consumption of chat event streams.

This module is responsible for:
1. Framing raw text into lines (framer)
2. Decoding lines into content deltas (events)
3. Folding deltas into conversation state (conversation)
"""

from .conversation import Conversation, ConversationState, Turn
from .events import EventDecoder, EventKind, StreamEvent
from .framer import LineFramer

__all__ = [
    "Conversation",
    "ConversationState",
    "Turn",
    "EventDecoder",
    "EventKind",
    "StreamEvent",
    "LineFramer",
]
