"""
Activity persistence: the must-succeed step of the classification pipeline,
and the lookups that answer questions about past activities.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.core import ActivityRecord, ClassifiedEvent
from ..utils.household_time import to_epoch_seconds, to_iso
from ..utils.kv_store import KeyValueStore
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


class ActivityStore:
    """Stores classified activities, time-ordered within each conversation.

    Every activity is written under three partitions sharing one sort key:
    the conversation timeline, the conversation's timeline for that activity
    name, and the subject's timeline across conversations.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def _pk(conversation_id: str) -> str:
        return f'ACTIVITY#{conversation_id}'

    @staticmethod
    def _by_name_pk(conversation_id: str, activity: str) -> str:
        return f'ACTIVITY_BY_NAME#{conversation_id}#{activity}'

    @staticmethod
    def _by_subject_pk(subject_id: str) -> str:
        return f'ACTIVITY_BY_SUBJECT#{subject_id}'

    @staticmethod
    def _to_record(item: Dict[str, Any]) -> ActivityRecord:
        return ActivityRecord(conversation_id=item.get('conversation_id', ''),
                              activity_id=item['sk'],
                              subject_id=item.get('subject_id', ''),
                              activity=item.get('activity', ''),
                              effort=item.get('effort', ''),
                              confidence=float(item.get('confidence', 0.0)),
                              occurred_at=item.get('occurred_at', ''))

    def save_activity(self, event: ClassifiedEvent, message_id: Optional[str] = None) -> str:
        """
        Persist one classified event.

        Args:
            event: Classified, non-none event
            message_id: Source message, used to keep redelivered events idempotent

        Returns:
            The activity id

        Raises:
            StoreError: If any write fails
        """
        suffix = message_id or uuid.uuid4().hex
        activity_id = f'{to_epoch_seconds(event.occurred_at):012d}#{suffix}'

        record = {
            'sk': activity_id,
            'conversation_id': event.conversation_id,
            'subject_id': event.subject_id,
            'type': event.event_type.value,
            'activity': event.activity_key,
            'effort': event.effort,
            'confidence': event.confidence,
            'occurred_at': to_iso(event.occurred_at),
        }
        for pk in (self._pk(event.conversation_id), self._by_name_pk(event.conversation_id, event.activity_key),
                   self._by_subject_pk(event.subject_id)):
            self.store.put_item(dict(record, pk=pk))

        logger.info(f'Saved activity {event.activity_key!r} for {event.subject_id} in {event.conversation_id}')
        return activity_id

    def recent_activities(self, conversation_id: str, limit: int = 20) -> List[ActivityRecord]:
        items = self.store.query(self._pk(conversation_id), limit=limit, descending=True)
        return [self._to_record(item) for item in items]

    def last_activity(self, conversation_id: str, activity: str) -> Optional[ActivityRecord]:
        """Most recent occurrence of an activity in a conversation, by anyone."""
        items = self.store.query(self._by_name_pk(conversation_id, activity), limit=1, descending=True)
        return self._to_record(items[0]) if items else None

    def activities_for_subject(self, subject_id: str, activity: str, since: datetime) -> List[ActivityRecord]:
        """
        A person's occurrences of one activity, oldest first.

        Args:
            subject_id: Person ID
            activity: Canonical activity name
            since: Timezone-aware lower bound, inclusive

        Returns:
            List of ActivityRecord across all conversations
        """
        items = self.store.query(self._by_subject_pk(subject_id), sk_range=(f'{to_epoch_seconds(since):012d}', '~'))
        return [self._to_record(item) for item in items if item.get('activity') == activity]

    def activity_count(self, subject_id: str, activity: str, since: datetime) -> int:
        return len(self.activities_for_subject(subject_id, activity, since))
