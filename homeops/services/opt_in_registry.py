"""
Private-message opt-in status per person.
"""

from typing import Optional

from ..utils.household_time import to_iso, utc_now
from ..utils.kv_store import KeyValueStore
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


class OptInRegistry:
    """Whether a person has agreed to receive unsolicited private messages."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def is_opted_in(self, subject_id: str) -> bool:
        item = self.store.get_item(f'OPTIN#{subject_id}', 'STATUS')
        return bool(item and item.get('opted_in'))

    def get_private_conversation(self, subject_id: str) -> Optional[str]:
        item = self.store.get_item(f'OPTIN#{subject_id}', 'STATUS')
        return item.get('private_conversation_id') if item else None

    def set_opted_in(self, subject_id: str, private_conversation_id: str) -> None:
        now = to_iso(utc_now())
        self.store.put_item({
            'pk': f'OPTIN#{subject_id}',
            'sk': 'STATUS',
            'opted_in': True,
            'private_conversation_id': private_conversation_id,
            'opted_in_at': now,
            'updated_at': now,
        })
        logger.info(f'Subject {subject_id} opted in to private messages')
