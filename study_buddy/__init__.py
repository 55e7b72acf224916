"""
Study Buddy - An AI tutor with streaming chat and study artifact generation.

This package provides:
- An action router that proxies chat and generation requests to an
  OpenAI-compatible chat-completion gateway
- A streaming chat consumer that reassembles server-sent events into messages
- A client for quizzes, flashcards, mind maps, notes, podcasts and writing practice
- An audio transcription endpoint
- CLI and Web interfaces
"""

__version__ = "0.1.0"
__author__ = "Study Buddy Developers"
