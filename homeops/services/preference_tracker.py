"""
Preference signals derived from how a person interacts with the assistant.
"""

from datetime import datetime
from typing import Optional

from ..utils.household_time import local_date_key
from ..utils.kv_store import ConcurrencyConflict, KeyValueStore, WriteCondition
from ..utils.logging_config import get_logger
from .ema_tracker import EmaTracker

logger = get_logger(__name__)

MESSAGE_COUNT_SK = 'messageCount'


class PreferenceTracker:
    """Feeds the ignore-rate and interaction-frequency EMAs.

    Interaction frequency is the number of messages a person sends per local
    day. Messages are counted in a per-subject counter; when the first
    message of a new day arrives, the finished day's count is folded into the
    EMA and the counter restarts.
    """

    def __init__(self, store: KeyValueStore, ema: Optional[EmaTracker] = None):
        self.store = store
        self.ema = ema or EmaTracker(store)

    def record_ignore(self, subject_id: str, ignored: bool) -> bool:
        """Record whether the subject ignored the assistant's last message."""
        return self.ema.record_ignore(subject_id, ignored)

    def observe_message(self, subject_id: str, occurred_at: datetime) -> None:
        """
        Count one message and roll the period over when the day changes.

        Args:
            subject_id: Sender of the message
            occurred_at: Timezone-aware send time
        """
        pk = f'EMA#{subject_id}'
        period_key = local_date_key(occurred_at)
        counter = self.store.get_item(pk, MESSAGE_COUNT_SK)

        if counter is None:
            try:
                self.store.put_item({'pk': pk, 'sk': MESSAGE_COUNT_SK, 'period_key': period_key, 'count': 1},
                                    condition=WriteCondition.not_exists())
            except ConcurrencyConflict:
                self.store.increment(pk, MESSAGE_COUNT_SK, 'count')
            return

        previous_period = counter.get('period_key', '')
        if period_key <= previous_period:
            # Same day, or a late delivery from an earlier one
            self.store.increment(pk, MESSAGE_COUNT_SK, 'count')
            return

        self.ema.record_interaction_frequency(subject_id, counter.get('count', 0), previous_period)

        try:
            self.store.put_item({'pk': pk, 'sk': MESSAGE_COUNT_SK, 'period_key': period_key, 'count': 1},
                                condition=WriteCondition.attribute_equals('period_key', previous_period))
        except ConcurrencyConflict:
            logger.warning(f'Message counter for {subject_id} already rolled over, counting into current period')
            self.store.increment(pk, MESSAGE_COUNT_SK, 'count')
