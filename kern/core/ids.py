"""
Identifier generation.

Ledger entry ids only need to be unique within and across runs; they are
excluded from entry hashes, so random ids do not affect replay.
"""

import uuid


def new_id() -> str:
    """Random RFC 4122 version 4 identifier."""
    return str(uuid.uuid4())
