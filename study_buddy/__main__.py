"""
Entry point for running the Study Buddy package as a module.

Run with:
    python -m study_buddy
"""

from study_buddy.interfaces.cli import main

if __name__ == "__main__":
    main()
