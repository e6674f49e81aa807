"""
Read access to the raw message log written by the ingestion step.

Log entries live under pk 'MSG#{conversation}' with sort key
'{epoch_seconds:012d}#{message_id}' and carry a 'sender_id' attribute.
"""

from datetime import datetime

from ..utils.household_time import to_epoch_seconds
from ..utils.kv_store import KeyValueStore

MAX_SCANNED_MESSAGES = 50


def message_sort_key(epoch_seconds: int, message_id: str) -> str:
    return f'{epoch_seconds:012d}#{message_id}'


class ConversationLog:

    def __init__(self, store: KeyValueStore):
        self.store = store

    def count_recent_from_others(self, conversation_id: str, sender_id: str, until: datetime, window_seconds: int) -> int:
        """Count messages by anyone but sender_id in [until - window, until]."""
        end = to_epoch_seconds(until)
        start = end - window_seconds
        items = self.store.query(f'MSG#{conversation_id}',
                                 sk_range=(f'{start:012d}', f'{end:012d}#~'),
                                 limit=MAX_SCANNED_MESSAGES,
                                 descending=True)
        return sum(1 for item in items if str(item.get('sender_id')) != str(sender_id))
