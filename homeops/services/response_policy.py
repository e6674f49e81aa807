"""
Response Policy Engine: decides whether the assistant speaks, and what it says.

Evaluation is an ordered list of rules, first match wins:

    none -> silence rules -> candidate composition -> candidate rules -> respond

Silence rules look only at the event and conversation state. Candidate rules
see the composed message and can veto it. Neither kind writes anything;
callers record a response only after the send succeeded.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, List, Optional

from ..data.reply_patterns import ACKNOWLEDGMENT_TEXT, format_clarification
from ..models.core import ActivityType, ClassifiedEvent, ContentType, PolicyDecision
from ..utils.config import PolicyConfig, config
from ..utils.household_time import is_quiet_hours, local_date_key
from ..utils.logging_config import get_logger
from ..utils.tone_validator import ToneResult, validate_tone
from .conversation_log import ConversationLog
from .ema_tracker import EmaTracker
from .response_counter import ResponseCounter

logger = get_logger(__name__)


@dataclass
class Candidate:
    text: str
    content_type: ContentType


@dataclass
class SilenceRule:
    reason: str
    applies: Callable[[ClassifiedEvent], bool]


@dataclass
class CandidateRule:
    reason: str
    applies: Callable[[ClassifiedEvent, Candidate], bool]


class ResponsePolicyEngine:
    """Ordered, short-circuiting response policy."""

    def __init__(self,
                 counter: ResponseCounter,
                 conversation_log: ConversationLog,
                 preferences: Optional[EmaTracker] = None,
                 tone_checker: Callable[[str], ToneResult] = validate_tone,
                 policy_config: Optional[PolicyConfig] = None,
                 tz_name: Optional[str] = None):
        """
        Initialize the engine.

        Args:
            counter: Daily response counts per conversation
            conversation_log: Recent message activity per conversation
            preferences: Ignore-rate and interaction-frequency source; None disables
                preference-aware suppression entirely
            tone_checker: Content policy check applied to the final text
            policy_config: Thresholds, uses global config if None
            tz_name: Household timezone override
        """
        self.counter = counter
        self.conversation_log = conversation_log
        self.preferences = preferences
        self.tone_checker = tone_checker
        self.config = policy_config or config.policy
        self.tz_name = tz_name

        self.silence_rules: List[SilenceRule] = [
            SilenceRule('quiet_hours', self._in_quiet_hours),
            SilenceRule('daily_cap', self._daily_cap_reached),
            SilenceRule('fast_conversation', self._conversation_is_fast),
            SilenceRule('cooldown', self._in_cooldown),
            SilenceRule('low_confidence', self._confidence_too_low),
        ]

        self.candidate_rules: List[CandidateRule] = []
        if preferences is not None:
            self.candidate_rules.append(CandidateRule('preference_suppressed', self._acknowledgments_ignored))
            self.candidate_rules.append(CandidateRule('low_frequency_suppressed', self._rarely_interacts))
        self.candidate_rules.append(CandidateRule('tone', self._fails_tone))

    def evaluate(self, event: ClassifiedEvent) -> PolicyDecision:
        """
        Decide the response for one classified event.

        Args:
            event: The classified event

        Returns:
            PolicyDecision with the suppression reason, or the text to send
        """
        if event.event_type == ActivityType.NONE:
            return PolicyDecision(respond=False, reason='none')

        for rule in self.silence_rules:
            if rule.applies(event):
                logger.info(f'Suppressed response in {event.conversation_id}: {rule.reason}')
                return PolicyDecision(respond=False, reason=rule.reason)

        candidate = self.compose(event)

        for rule in self.candidate_rules:
            if rule.applies(event, candidate):
                logger.info(f'Suppressed {candidate.content_type.value} in {event.conversation_id}: {rule.reason}')
                return PolicyDecision(respond=False, reason=rule.reason, content_type=candidate.content_type)

        return PolicyDecision(respond=True, text=candidate.text, content_type=candidate.content_type)

    def compose(self, event: ClassifiedEvent) -> Candidate:
        """Acknowledge confident events, ask about the rest."""
        if event.confidence >= self.config.high_confidence:
            return Candidate(ACKNOWLEDGMENT_TEXT, ContentType.ACKNOWLEDGMENT)
        return Candidate(format_clarification(event.activity_key), ContentType.CLARIFICATION)

    # Silence rules

    def _in_quiet_hours(self, event: ClassifiedEvent) -> bool:
        return is_quiet_hours(event.occurred_at, self.config.quiet_start_hour, self.config.quiet_end_hour, self.tz_name)

    def _daily_cap_reached(self, event: ClassifiedEvent) -> bool:
        today = local_date_key(event.occurred_at, self.tz_name)
        return self.counter.get(event.conversation_id, today).count >= self.config.daily_cap

    def _conversation_is_fast(self, event: ClassifiedEvent) -> bool:
        recent = self.conversation_log.count_recent_from_others(event.conversation_id, event.subject_id, event.occurred_at,
                                                                self.config.fast_window_seconds)
        return recent >= self.config.fast_message_threshold

    def _in_cooldown(self, event: ClassifiedEvent) -> bool:
        today = local_date_key(event.occurred_at, self.tz_name)
        last = self.counter.get(event.conversation_id, today).last_response_at
        if last is None:
            return False
        return event.occurred_at - last < timedelta(minutes=self.config.cooldown_minutes)

    def _confidence_too_low(self, event: ClassifiedEvent) -> bool:
        return event.confidence < self.config.clarify_confidence and not event.is_direct_address

    # Candidate rules

    def _acknowledgments_ignored(self, event: ClassifiedEvent, candidate: Candidate) -> bool:
        if candidate.content_type != ContentType.ACKNOWLEDGMENT:
            return False
        sample = self.preferences.get_ignore_rate(event.subject_id)
        return (sample is not None and sample.sample_count >= self.config.min_data_points
                and sample.value > self.config.ignore_rate_threshold)

    def _rarely_interacts(self, event: ClassifiedEvent, candidate: Candidate) -> bool:
        if candidate.content_type != ContentType.CLARIFICATION:
            return False
        sample = self.preferences.get_interaction_frequency(event.subject_id)
        return (sample is not None and sample.sample_count >= self.config.min_data_points
                and sample.value < self.config.low_frequency_threshold)

    def _fails_tone(self, event: ClassifiedEvent, candidate: Candidate) -> bool:
        return not self.tone_checker(candidate.text).valid
