"""
Human-readable messages for rejected model replies.

A reply naming a nonexistent action kind gets a message listing the accepted
kinds; every other violation keeps pydantic's own message.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError
from pydantic_core import ErrorDetails

from taskpilot.agent.schema import ATTEMPT_KINDS

_MISSING = object()


def classify_violation(error: ErrorDetails, attempted_value: Any = _MISSING) -> str:
    """
    Message for a single validation error.

    Args:
        error: One entry of `ValidationError.errors()`
        attempted_value: The whole reply that was validated; defaults to the error's input
    """
    if error['type'] == 'union_tag_invalid' and not error['loc']:
        data = error.get('input') if attempted_value is _MISSING else attempted_value
        received = data.get('kind') if isinstance(data, dict) else data
        return f"{json.dumps(received, default=str)} not among {' | '.join(ATTEMPT_KINDS)}"
    return error['msg']


def classify_validation_error(exc: ValidationError, attempted_value: Any = _MISSING) -> str:
    """Messages of every violation in `exc`, joined."""
    return '; '.join(classify_violation(error, attempted_value) for error in exc.errors())
