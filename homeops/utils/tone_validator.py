"""
Content policy checker for outbound assistant messages.

The assistant never blames, compares, commands or judges. A message that
trips any pattern is suppressed as a whole rather than edited.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

BLOCKED_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r'\byou should\b', re.IGNORECASE), 'blame'),
    (re.compile(r'\byou never\b', re.IGNORECASE), 'blame'),
    (re.compile(r'\bmore than\b', re.IGNORECASE), 'comparison'),
    (re.compile(r'\bless than\b', re.IGNORECASE), 'comparison'),
    (re.compile(r'\bdo this\b', re.IGNORECASE), 'command'),
    (re.compile(r'\bgood job\b', re.IGNORECASE), 'judgment'),
    (re.compile(r'\bbad\b', re.IGNORECASE), 'judgment'),
    (re.compile(r'\blazy\b', re.IGNORECASE), 'judgment'),
]


@dataclass
class ToneResult:
    valid: bool
    reason: Optional[str] = None


def validate_tone(text: str) -> ToneResult:
    """Check text against the blocked language patterns.

    Args:
        text: Candidate outbound message

    Returns:
        ToneResult, with the offending category when invalid
    """
    for pattern, category in BLOCKED_PATTERNS:
        if pattern.search(text):
            return ToneResult(valid=False, reason=f'Contains {category} language')
    return ToneResult(valid=True)
