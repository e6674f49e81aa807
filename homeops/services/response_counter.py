"""
Per-conversation daily response counters.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..utils.household_time import to_iso
from ..utils.kv_store import KeyValueStore
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ResponseCount:
    count: int
    last_response_at: Optional[datetime]


class ResponseCounter:
    """How often the assistant has replied in a conversation on a given local day."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def _pk(conversation_id: str) -> str:
        return f'COUNTER#{conversation_id}'

    def get(self, conversation_id: str, date_key: str) -> ResponseCount:
        item = self.store.get_item(self._pk(conversation_id), date_key)
        if item is None:
            return ResponseCount(count=0, last_response_at=None)

        last = item.get('last_response_at')
        return ResponseCount(count=int(item.get('count', 0)),
                             last_response_at=datetime.fromisoformat(last) if last else None)

    def record_response(self, conversation_id: str, date_key: str, sent_at: datetime) -> int:
        """Count one confirmed send. Returns the new daily total."""
        item = self.store.increment(self._pk(conversation_id),
                                    date_key,
                                    'count',
                                    set_attributes={'last_response_at': to_iso(sent_at)})
        logger.debug(f'Response count for {conversation_id} on {date_key}: {item.get("count")}')
        return int(item.get('count', 0))
