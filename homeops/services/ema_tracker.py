"""
EMA Tracker: incremental smoothed statistics per (subject, metric).

Every update is a read, a local computation and a conditional write. The
condition is the sample count that was just read, so two invocations racing
on the same key cannot both win; the loser drops its observation and the
next observation re-converges the average.
"""

from typing import Optional

from ..models.core import EmaSample
from ..utils.config import TrackerConfig, config
from ..utils.household_time import to_iso, utc_now
from ..utils.kv_store import ConcurrencyConflict, KeyValueStore, WriteCondition
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

EFFORT_VALUES = {
    'low': 1.0,
    'medium': 2.0,
    'high': 3.0,
}

IGNORE_RATE_METRIC = 'ignoreRate'
INTERACTION_FREQUENCY_METRIC = 'interactionFrequency'


def round4(value: float) -> float:
    return round(value, 4)


def encode_effort(effort: str) -> float:
    """Map an effort category to 1/2/3.

    Raises:
        ValueError: If the category is unknown
    """
    try:
        return EFFORT_VALUES[effort.strip().lower()]
    except (KeyError, AttributeError):
        raise ValueError(f'Unknown effort category: {effort!r}')


def encode_ignore(ignored: bool) -> float:
    return 1.0 if ignored else 0.0


def encode_frequency(count: float) -> float:
    if count < 0:
        raise ValueError(f'Interaction count must be non-negative, got {count}')
    return float(count)


def effort_metric(activity_key: str) -> str:
    return f'effort#{activity_key}'


class EmaTracker:
    """Exponentially weighted moving averages with optimistic concurrency."""

    def __init__(self, store: KeyValueStore, tracker_config: Optional[TrackerConfig] = None):
        """
        Initialize the tracker.

        Args:
            store: Persistent store holding the EMA records
            tracker_config: Smoothing factors, uses global config if None
        """
        self.store = store
        self.config = tracker_config or config.trackers

    @staticmethod
    def _pk(subject_key: str) -> str:
        return f'EMA#{subject_key}'

    def get(self, subject_key: str, metric_key: str) -> Optional[EmaSample]:
        """Read the current sample for a key, or None if never observed."""
        item = self.store.get_item(self._pk(subject_key), metric_key)
        if item is None:
            return None

        return EmaSample(value=float(item['value']),
                         sample_count=int(item['sample_count']),
                         updated_at=item.get('updated_at'),
                         last_period_key=item.get('last_period_key'))

    def update(self,
               subject_key: str,
               metric_key: str,
               raw_value: float,
               alpha: float,
               period_key: Optional[str] = None) -> bool:
        """
        Fold one encoded observation into the average.

        Args:
            subject_key: Subject the statistic belongs to
            metric_key: Metric name within the subject
            raw_value: Already-encoded observation
            alpha: Smoothing factor in (0, 1]
            period_key: When set, at most one update is admitted per key

        Returns:
            True if the write was applied, False if it was skipped or lost a race

        Raises:
            StoreError: On unexpected store failures
        """
        current = self.get(subject_key, metric_key)

        if current is not None and period_key is not None and current.last_period_key == period_key:
            logger.debug(f'Period {period_key} already folded into {subject_key}/{metric_key}, skipping')
            return False

        if current is None:
            new_value = float(raw_value)
            new_count = 1
            condition = WriteCondition.not_exists()
        else:
            new_value = round4(alpha * raw_value + (1 - alpha) * current.value)
            new_count = current.sample_count + 1
            condition = WriteCondition.attribute_equals('sample_count', current.sample_count)

        item = {
            'pk': self._pk(subject_key),
            'sk': metric_key,
            'value': new_value,
            'sample_count': new_count,
            'updated_at': to_iso(utc_now()),
        }
        if period_key is not None:
            item['last_period_key'] = period_key
        elif current is not None and current.last_period_key is not None:
            item['last_period_key'] = current.last_period_key

        try:
            self.store.put_item(item, condition=condition)
        except ConcurrencyConflict:
            logger.warning(f'Optimistic lock failed for {subject_key}/{metric_key}, skipping update')
            return False

        logger.debug(f'EMA {subject_key}/{metric_key} -> {new_value} (n={new_count})')
        return True

    # Effort per activity

    def record_effort(self, subject_id: str, activity_key: str, effort: str) -> bool:
        return self.update(subject_id, effort_metric(activity_key), encode_effort(effort), self.config.effort_alpha)

    def get_effort(self, subject_id: str, activity_key: str) -> Optional[EmaSample]:
        return self.get(subject_id, effort_metric(activity_key))

    # Ignore rate

    def record_ignore(self, subject_id: str, ignored: bool) -> bool:
        return self.update(subject_id, IGNORE_RATE_METRIC, encode_ignore(ignored), self.config.ignore_alpha)

    def get_ignore_rate(self, subject_id: str) -> Optional[EmaSample]:
        return self.get(subject_id, IGNORE_RATE_METRIC)

    # Interaction frequency

    def record_interaction_frequency(self, subject_id: str, message_count: float, period_key: str) -> bool:
        return self.update(subject_id,
                           INTERACTION_FREQUENCY_METRIC,
                           encode_frequency(message_count),
                           self.config.frequency_alpha,
                           period_key=period_key)

    def get_interaction_frequency(self, subject_id: str) -> Optional[EmaSample]:
        return self.get(subject_id, INTERACTION_FREQUENCY_METRIC)
