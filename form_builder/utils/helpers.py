"""
Utility helpers for the form builder

Simple utility functions for ID and timestamp generation.
"""

import uuid
from datetime import datetime, timezone


def generate_id(prefix, short=True):
    """
    Generate unique prefixed identifier

    Args:
        prefix (str): Entity prefix ('field', 'page', 'form', 'group', 'cond')
        short (bool): If True, use 12-char hex. If False, use full UUID.

    Returns:
        str: Identifier

    Examples:
        >>> generate_id('field')
        'field-a3f7e2b9c1d2'

        >>> generate_id('form', short=False)
        'form-a3f7e2b9c1d2e3f4a5b6c7d8e9f0a1b2'
    """
    full_id = uuid.uuid4().hex
    return f"{prefix}-{full_id[:12] if short else full_id}"


def generate_session_id():
    """8-char hex identifier for an editor session"""
    return uuid.uuid4().hex[:8]


def utc_now_iso():
    """Current UTC time as ISO 8601 string"""
    return datetime.now(timezone.utc).isoformat()
