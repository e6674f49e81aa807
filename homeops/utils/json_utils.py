"""
JSON utilities for parsing LLM responses.
"""

import json
import re
from typing import Any, Dict

_FENCE = re.compile(r'^```(?:json)?\s*|\s*```$')
_OBJECT = re.compile(r'\{.*\}', re.DOTALL)


def parse_json_object(response: str) -> Dict[str, Any]:
    """Extract the single JSON object from an LLM response.

    Code fences and any prose around the object are ignored.

    Args:
        response: Raw LLM response

    Returns:
        Parsed object

    Raises:
        ValueError: If no JSON object can be parsed
    """
    cleaned = _FENCE.sub('', (response or '').strip())
    match = _OBJECT.search(cleaned)
    if not match:
        raise ValueError('No JSON object in response')

    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError(f'Expected JSON object, got {type(data).__name__}')
    return data
