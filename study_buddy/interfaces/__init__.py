"""
Interfaces module - User-facing interfaces for Study Buddy.

This module provides:
1. CLI interface for command-line study sessions
2. Web interface using FastAPI (hosts the router)
"""
