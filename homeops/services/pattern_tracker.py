"""
Pattern Habit Aggregator: when in the week and day each activity happens.
"""

from datetime import datetime
from typing import Optional

from ..models.core import PatternHabit
from ..utils.household_time import local_day_and_hour, to_iso
from ..utils.kv_store import KeyValueStore
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

DAYS_PER_WEEK = 7
HOURS_PER_DAY = 24


class PatternTracker:
    """Per (conversation, subject, activity) day-of-week and hour-of-day histograms.

    Writes are unsynchronized read-modify-write. Two invocations colliding on
    the same key can lose one increment; the histogram is a soft signal, so
    that under-count is accepted.
    """

    def __init__(self, store: KeyValueStore, tz_name: Optional[str] = None):
        self.store = store
        self.tz_name = tz_name

    @staticmethod
    def _pk(conversation_id: str, subject_id: str) -> str:
        return f'PATTERN#{conversation_id}#{subject_id}'

    def get_habit(self, conversation_id: str, subject_id: str, activity_key: str) -> Optional[PatternHabit]:
        """Read the histogram for one activity, or None if never seen."""
        item = self.store.get_item(self._pk(conversation_id, subject_id), activity_key)
        if item is None:
            return None

        return PatternHabit(conversation_id=conversation_id,
                            subject_id=subject_id,
                            activity_key=activity_key,
                            day_counts=[int(c) for c in item['day_counts']],
                            hour_counts=[int(c) for c in item['hour_counts']],
                            total_count=int(item['total_count']),
                            last_seen=item.get('last_seen', ''))

    def record_occurrence(self, conversation_id: str, subject_id: str, activity_key: str, event_time_utc: datetime) -> PatternHabit:
        """
        Count one occurrence of an activity in the household's local time.

        Args:
            conversation_id: Conversation the activity was reported in
            subject_id: Person who did the activity
            activity_key: Canonical activity name
            event_time_utc: Timezone-aware event time

        Returns:
            The histogram as written

        Raises:
            ValueError: If event_time_utc is naive
            StoreError: On store failures
        """
        day, hour = local_day_and_hour(event_time_utc, self.tz_name)

        habit = self.get_habit(conversation_id, subject_id, activity_key)
        if habit is None:
            habit = PatternHabit(conversation_id=conversation_id,
                                 subject_id=subject_id,
                                 activity_key=activity_key,
                                 day_counts=[0] * DAYS_PER_WEEK,
                                 hour_counts=[0] * HOURS_PER_DAY,
                                 total_count=0,
                                 last_seen='')

        habit.day_counts[day] += 1
        habit.hour_counts[hour] += 1
        habit.total_count += 1
        habit.last_seen = to_iso(event_time_utc)

        self.store.put_item({
            'pk': self._pk(conversation_id, subject_id),
            'sk': activity_key,
            'day_counts': habit.day_counts,
            'hour_counts': habit.hour_counts,
            'total_count': habit.total_count,
            'last_seen': habit.last_seen,
        })

        logger.debug(f'Pattern {conversation_id}/{subject_id}/{activity_key}: day={day} hour={hour} total={habit.total_count}')
        return habit
