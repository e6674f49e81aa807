"""
Core data models for the household learning and response-decision core.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class ActivityType(str, Enum):
    """Classification categories produced by the classifier."""
    CHORE = 'chore'
    RECOVERY = 'recovery'
    NONE = 'none'


class ContentType(str, Enum):
    """Kinds of outbound content, each routed differently."""
    ACKNOWLEDGMENT = 'acknowledgment'
    CLARIFICATION = 'clarification'
    ADAPTATION_HINT = 'adaptation_hint'
    QUERY_RESULT = 'query_result'


class ConversationKind(str, Enum):
    PRIVATE = 'private'
    GROUP = 'group'


class Destination(str, Enum):
    GROUP = 'group'
    PRIVATE = 'private'
    NONE = 'none'


class AliasSource(str, Enum):
    SEED = 'seed'
    LEARNED = 'learned'


class ClarificationKind(str, Enum):
    """Every way a clarification reply can be interpreted."""
    CONFIRMED = 'confirmed'
    CORRECTED = 'corrected'
    REJECTED_NO_REMAINDER = 'rejected_no_remainder'
    LOW_CONFIDENCE = 'low_confidence'
    AMBIGUOUS = 'ambiguous'
    NOT_CLARIFICATION = 'not_clarification'


@dataclass
class ClassificationResult:
    """Output of the classification collaborator."""
    type: ActivityType
    activity: str
    effort: str  # low | medium | high
    confidence: float


@dataclass
class IncomingMessage:
    """A chat message as delivered by the upstream event source."""
    conversation_id: str
    conversation_kind: ConversationKind
    message_id: str
    subject_id: str
    text: str
    occurred_at: datetime  # timezone-aware UTC
    is_direct_address: bool = False
    reply_to_text: Optional[str] = None  # text of the bot message being replied to


@dataclass
class ClassifiedEvent:
    """A message after classification, as seen by trackers and the policy engine."""
    conversation_id: str
    subject_id: str
    event_type: ActivityType
    activity_key: str
    confidence: float
    effort: str
    raw_text: str
    is_direct_address: bool
    occurred_at: datetime


@dataclass
class EmaSample:
    """Smoothed statistic for one (subject, metric) key."""
    value: float
    sample_count: int
    updated_at: Optional[str] = None
    last_period_key: Optional[str] = None


@dataclass
class PatternHabit:
    """Day-of-week and hour-of-day occurrence histogram.

    day_counts is indexed Monday=0 .. Sunday=6, hour_counts by local hour.
    """
    conversation_id: str
    subject_id: str
    activity_key: str
    day_counts: List[int]
    hour_counts: List[int]
    total_count: int
    last_seen: str


@dataclass
class AliasEntry:
    """Maps a normalized alias key to a canonical activity within a scope."""
    scope_id: str
    alias_key: str
    canonical_activity: str
    confirmations: int = 0
    source: AliasSource = AliasSource.LEARNED


@dataclass
class AppliedAlias:
    alias: str
    canonical_activity: str


@dataclass
class AliasResolution:
    resolved_text: str
    applied_aliases: List[AppliedAlias] = field(default_factory=list)


@dataclass
class ClarificationReply:
    """A user reply to a bot message, possibly a disambiguation prompt."""
    scope_id: str
    original_prompt_text: str
    reply_text: str
    source_text: Optional[str] = None  # the user's original wording, if known


@dataclass
class ClarificationOutcome:
    """Tagged result of interpreting a clarification reply."""
    kind: ClarificationKind
    activity: Optional[str] = None

    @property
    def handled(self) -> bool:
        return self.kind in (ClarificationKind.CONFIRMED, ClarificationKind.CORRECTED)


@dataclass
class PolicyDecision:
    """Whether to reply, and with what."""
    respond: bool
    reason: Optional[str] = None
    text: Optional[str] = None
    content_type: Optional[ContentType] = None


@dataclass
class ActivityRecord:
    conversation_id: str
    activity_id: str
    subject_id: str
    activity: str
    effort: str
    confidence: float
    occurred_at: str
