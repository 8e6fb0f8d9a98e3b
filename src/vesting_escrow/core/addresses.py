"""
Address helpers shared by the ledger and the escrow.

Addresses are compared case-insensitively, so every address is stored in
lower case. The empty string and the all-zero address both act as the
null sentinel.
"""

from __future__ import annotations

from typing import Optional

ZERO_ADDRESS = "0x" + "0" * 40


def normalize_address(address: Optional[str]) -> str:
    """Normalize address to lowercase (``None`` becomes the empty string)."""
    if address is None:
        return ""
    return str(address).strip().lower()


def is_zero_address(address: Optional[str]) -> bool:
    """True for ``None``, the empty string and the all-zero address."""
    normalized = normalize_address(address)
    return not normalized or normalized == ZERO_ADDRESS


def short(address: Optional[str]) -> str:
    """Truncated form used in log records."""
    return normalize_address(address)[:10]
