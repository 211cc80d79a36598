"""
earnhub.

Referral tree, commission settlement and VIP ledger core.
"""

__version__ = "0.1.0"
