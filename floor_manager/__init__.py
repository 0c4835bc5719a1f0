# floor_manager/__init__.py
"""
Order and receivables ledger for a flooring retail/installation business.

The pure computation layer lives in ``floor_manager.modules.ledger``; storage,
repositories and printable documents are thin collaborators around it.
"""

__version__ = "1.0.0"
