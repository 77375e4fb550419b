"""
Utility Functions
Helper functions shared by the tool handlers and the dispatcher.
"""
import json
from typing import Any, Dict


def clamp_max_results(value: int, minimum: int, maximum: int = 100) -> int:
    """
    Clamp a requested result count into the range an endpoint accepts.

    Args:
        value: Count requested by the caller
        minimum: Smallest count the endpoint accepts
        maximum: Largest count the endpoint accepts

    Returns:
        ``value`` limited to ``[minimum, maximum]``
    """
    return max(minimum, min(value, maximum))


def format_envelope(envelope: Dict[str, Any]) -> str:
    """Render a tool envelope as the indented JSON text shown to the host."""
    return json.dumps(envelope, indent=2, ensure_ascii=False)
