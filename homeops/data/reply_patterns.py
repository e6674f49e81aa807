"""
Reply vocabulary and templates for disambiguation prompts.
"""

import re
from typing import Optional

CLARIFICATION_TEMPLATE = 'Did you mean {activity}?'
CLARIFICATION_PATTERN = re.compile(r'Did you mean (.+)\?')

ACKNOWLEDGMENT_TEXT = 'Noted ✓'

AFFIRMATIVE_WORDS = frozenset({
    'yes',
    'yeah',
    'yep',
    'yup',
    'ya',
    'correct',
    'exactly',
    'right',
    'sure',
    'ok',
    'okay',
    'absolutely',
    'indeed',
    'that is right',
    "that's right",
    'mm',
})

NEGATION_PREFIX = re.compile(r'^(?:no|nope|nah|not)\b[,.!]?\s*')

_TRAILING_PUNCTUATION = re.compile(r'[\s.!?,;:]+$')


def normalize_reply(text: str) -> str:
    """Trim, lowercase and strip trailing punctuation."""
    return _TRAILING_PUNCTUATION.sub('', (text or '').strip().lower())


def extract_negation_remainder(normalized: str) -> Optional[str]:
    """Strip a leading negation.

    Returns:
        The remaining text ('' when the reply was a bare negation), or None
        if the reply does not start with a negation
    """
    match = NEGATION_PREFIX.match(normalized)
    if not match:
        return None
    return normalized[match.end():].strip()


def format_clarification(activity: str) -> str:
    return CLARIFICATION_TEMPLATE.format(activity=activity)
