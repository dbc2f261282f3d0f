"""
Change detection by content identity.
"""

from typing import Optional


def is_new_content(identity: Optional[str], previous: Optional[str]) -> bool:
    """
    New content means a resolved identity that differs from the stored one.

    Plain string comparison: no trailing-slash, scheme or case normalization,
    so callers must store identities exactly as returned. A first check
    (previous is None) with any identity counts as new.
    """
    if not identity:
        return False
    return identity != previous
