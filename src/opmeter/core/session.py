# src/opmeter/core/session.py
"""Process session identity.

Every operation id embeds a session id so that records emitted by different
runs of the same program can be told apart. The id is generated once per
process.
"""

import uuid

SESSION_UUID: str = uuid.uuid4().hex


def short_session_id(size: int) -> str:
    """Trailing ``size`` characters of the session uuid."""
    return SESSION_UUID[-size:]
