from datetime import datetime, timedelta, timezone

import pytest
from conftest import MIDDAY_UTC, ExplodingStore

from homeops.models.core import ActivityType, ClassifiedEvent, ContentType
from homeops.services.conversation_log import ConversationLog, message_sort_key
from homeops.services.ema_tracker import EmaTracker
from homeops.services.response_counter import ResponseCounter
from homeops.services.response_policy import ResponsePolicyEngine
from homeops.utils.config import PolicyConfig
from homeops.utils.household_time import to_epoch_seconds
from homeops.utils.tone_validator import ToneResult

POLICY = PolicyConfig(high_confidence=0.85,
                      clarify_confidence=0.50,
                      daily_cap=3,
                      cooldown_minutes=15,
                      fast_window_seconds=60,
                      fast_message_threshold=3,
                      quiet_start_hour=22,
                      quiet_end_hour=7,
                      ignore_rate_threshold=0.7,
                      low_frequency_threshold=1.0,
                      min_data_points=10)

# 23:00 in Stockholm
LATE_EVENING_UTC = datetime(2024, 7, 1, 21, 0, tzinfo=timezone.utc)


def event(confidence=0.9, activity='laundry', event_type=ActivityType.CHORE, direct=False, at=MIDDAY_UTC):
    return ClassifiedEvent(conversation_id='c1',
                           subject_id='u1',
                           event_type=event_type,
                           activity_key=activity,
                           confidence=confidence,
                           effort='medium',
                           raw_text='...',
                           is_direct_address=direct,
                           occurred_at=at)


def make_engine(store, with_preferences=False, **kwargs):
    return ResponsePolicyEngine(ResponseCounter(store),
                                ConversationLog(store),
                                preferences=EmaTracker(store) if with_preferences else None,
                                policy_config=POLICY,
                                **kwargs)


def log_message(store, sender, at, message_id):
    store.put_item({'pk': 'MSG#c1', 'sk': message_sort_key(to_epoch_seconds(at), message_id), 'sender_id': sender})


def seed_sample(store, metric, value, count):
    store.put_item({'pk': 'EMA#u1', 'sk': metric, 'value': value, 'sample_count': count})


def test_none_type_exits_before_any_io():
    engine = make_engine(ExplodingStore(), with_preferences=True)

    decision = engine.evaluate(event(event_type=ActivityType.NONE))

    assert decision.respond is False
    assert decision.reason == 'none'


def test_high_confidence_gets_acknowledgment(store):
    decision = make_engine(store).evaluate(event(confidence=0.85))

    assert decision.respond is True
    assert decision.text == 'Noted ✓'
    assert decision.content_type == ContentType.ACKNOWLEDGMENT


def test_medium_confidence_gets_disambiguation_question(store):
    decision = make_engine(store).evaluate(event(confidence=0.5))

    assert decision.respond is True
    assert decision.text == 'Did you mean laundry?'
    assert decision.content_type == ContentType.CLARIFICATION


def test_quiet_hours(store):
    decision = make_engine(store).evaluate(event(at=LATE_EVENING_UTC))

    assert decision.reason == 'quiet_hours'


def test_quiet_hours_take_precedence_over_daily_cap(store):
    counter = ResponseCounter(store)
    for _ in range(3):
        counter.record_response('c1', '2024-07-01', LATE_EVENING_UTC - timedelta(hours=5))

    decision = make_engine(store).evaluate(event(at=LATE_EVENING_UTC))

    assert decision.reason == 'quiet_hours'


def test_daily_cap(store):
    counter = ResponseCounter(store)
    for _ in range(3):
        counter.record_response('c1', '2024-07-01', MIDDAY_UTC - timedelta(hours=3))

    assert make_engine(store).evaluate(event()).reason == 'daily_cap'


def test_daily_cap_resets_on_new_local_day(store):
    counter = ResponseCounter(store)
    for _ in range(3):
        counter.record_response('c1', '2024-06-30', MIDDAY_UTC - timedelta(days=1))

    assert make_engine(store).evaluate(event()).respond is True


def test_fast_conversation(store):
    for i in range(3):
        log_message(store, f'u{i + 2}', MIDDAY_UTC - timedelta(seconds=10 * i), f'm{i}')

    assert make_engine(store).evaluate(event()).reason == 'fast_conversation'


def test_own_and_old_messages_do_not_make_conversation_fast(store):
    log_message(store, 'u1', MIDDAY_UTC - timedelta(seconds=5), 'm1')
    log_message(store, 'u1', MIDDAY_UTC - timedelta(seconds=6), 'm2')
    log_message(store, 'u2', MIDDAY_UTC - timedelta(seconds=10), 'm3')
    log_message(store, 'u3', MIDDAY_UTC - timedelta(seconds=20), 'm4')
    log_message(store, 'u4', MIDDAY_UTC - timedelta(seconds=90), 'm5')

    assert make_engine(store).evaluate(event()).respond is True


def test_cooldown(store):
    ResponseCounter(store).record_response('c1', '2024-07-01', MIDDAY_UTC - timedelta(minutes=10))

    assert make_engine(store).evaluate(event()).reason == 'cooldown'


def test_cooldown_expires(store):
    ResponseCounter(store).record_response('c1', '2024-07-01', MIDDAY_UTC - timedelta(minutes=16))

    assert make_engine(store).evaluate(event()).respond is True


def test_low_confidence_is_silent(store):
    assert make_engine(store).evaluate(event(confidence=0.49)).reason == 'low_confidence'


def test_direct_address_bypasses_low_confidence_only(store):
    engine = make_engine(store)

    decision = engine.evaluate(event(confidence=0.3, direct=True))
    assert decision.respond is True
    assert decision.text == 'Did you mean laundry?'

    ResponseCounter(store).record_response('c1', '2024-07-01', MIDDAY_UTC - timedelta(minutes=1))
    assert engine.evaluate(event(confidence=0.3, direct=True)).reason == 'cooldown'
    assert engine.evaluate(event(confidence=0.3, direct=True, at=LATE_EVENING_UTC)).reason == 'quiet_hours'


def test_frequent_ignoring_suppresses_acknowledgments(store):
    seed_sample(store, 'ignoreRate', 0.8, 10)
    engine = make_engine(store, with_preferences=True)

    assert engine.evaluate(event(confidence=0.9)).reason == 'preference_suppressed'
    assert engine.evaluate(event(confidence=0.6)).respond is True


@pytest.mark.parametrize('rate,count', [(0.8, 9), (0.7, 10)])
def test_ignore_rate_needs_enough_data_and_strict_threshold(store, rate, count):
    seed_sample(store, 'ignoreRate', rate, count)

    assert make_engine(store, with_preferences=True).evaluate(event(confidence=0.9)).respond is True


def test_low_frequency_suppresses_questions_only(store):
    seed_sample(store, 'interactionFrequency', 0.5, 12)
    engine = make_engine(store, with_preferences=True)

    assert engine.evaluate(event(confidence=0.6)).reason == 'low_frequency_suppressed'
    assert engine.evaluate(event(confidence=0.9)).respond is True


def test_preference_rules_disabled_without_source(store):
    seed_sample(store, 'ignoreRate', 0.95, 50)
    seed_sample(store, 'interactionFrequency', 0.1, 50)
    engine = make_engine(store)

    assert engine.evaluate(event(confidence=0.9)).respond is True
    assert engine.evaluate(event(confidence=0.6)).respond is True


def test_tone_violation_suppresses_whole_message(store):
    decision = make_engine(store).evaluate(event(confidence=0.6, activity='more than laundry'))

    assert decision.respond is False
    assert decision.reason == 'tone'
    assert decision.text is None


def test_custom_tone_checker(store):
    engine = make_engine(store, tone_checker=lambda text: ToneResult(valid=False, reason='nope'))

    assert engine.evaluate(event()).reason == 'tone'


def test_rules_are_listed_in_evaluation_order(store):
    engine = make_engine(store, with_preferences=True)

    assert [r.reason for r in engine.silence_rules] == ['quiet_hours', 'daily_cap', 'fast_conversation', 'cooldown', 'low_confidence']
    assert [r.reason for r in engine.candidate_rules] == ['preference_suppressed', 'low_frequency_suppressed', 'tone']
