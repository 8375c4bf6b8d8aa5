"""
Mindsort: AI-sorted personal notes.

A note-taking backend that provides:
- LLM-powered splitting of free text into categorized chunks
- Review-then-confirm storage, scoped per owner
- Pinning, starring and a four-tier priority ladder
"""

__version__ = "0.1.0"
