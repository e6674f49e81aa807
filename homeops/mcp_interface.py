"""
MCP Interface Layer using fastmcp for read-only inspection of learned household state.
"""
from dataclasses import asdict
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from homeops.models.core import ContentType, ConversationKind
from homeops.services.activity_store import ActivityStore
from homeops.services.alias_resolver import AliasResolver
from homeops.services.alias_store import AliasStore
from homeops.services.channel_router import route
from homeops.services.ema_tracker import EmaTracker
from homeops.services.pattern_tracker import PatternTracker
from homeops.utils.config import config
from homeops.utils.dynamodb_client import DynamoDBStore
from homeops.utils.health_check import get_system_info
from homeops.utils.household_time import utc_now
from homeops.utils.logging_config import get_logger

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('HomeOps')
store = DynamoDBStore(config.dynamodb)
alias_store = AliasStore(store)
alias_resolver = AliasResolver(alias_store)
ema_tracker = EmaTracker(store)
pattern_tracker = PatternTracker(store)
activity_store = ActivityStore(store)


@mcp.tool()
def get_effort_estimate(user_id: str, activity: str) -> Optional[Dict[str, Any]]:
    """Get a person's smoothed effort estimate for an activity.

    Args:
        user_id: Person ID
        activity: Canonical activity name

    Returns:
        Dict with value (1=low .. 3=high) and sample_count, or None if never observed
    """
    if not user_id or not activity:
        raise ValueError('User ID and activity are required')

    sample = ema_tracker.get_effort(user_id, activity)
    if sample is None:
        return None
    return {'value': sample.value, 'sample_count': sample.sample_count, 'updated_at': sample.updated_at}


@mcp.tool()
def get_pattern_habit(conversation_id: str, user_id: str, activity: str) -> Optional[Dict[str, Any]]:
    """Get the day-of-week and hour-of-day histogram for an activity.

    Args:
        conversation_id: Conversation ID
        user_id: Person ID
        activity: Canonical activity name

    Returns:
        Dict with day_counts (Monday first), hour_counts and total_count, or None
    """
    habit = pattern_tracker.get_habit(conversation_id, user_id, activity)
    if habit is None:
        return None
    return {
        'day_counts': habit.day_counts,
        'hour_counts': habit.hour_counts,
        'total_count': habit.total_count,
        'last_seen': habit.last_seen
    }


@mcp.tool()
def list_aliases(conversation_id: str) -> List[Dict[str, Any]]:
    """List the vocabulary learned in a conversation.

    Args:
        conversation_id: Conversation ID (alias scope)

    Returns:
        List of alias entries
    """
    entries = alias_store.get_aliases_for_scope(conversation_id)
    logger.debug(f'MCP list_aliases returned {len(entries)} entries for {conversation_id}')
    return [{
        'alias': e.alias_key,
        'canonical_activity': e.canonical_activity,
        'confirmations': e.confirmations,
        'source': e.source.value
    } for e in entries]


@mcp.tool()
def resolve_aliases(conversation_id: str, text: str) -> Dict[str, Any]:
    """Show how a message would be rewritten before classification.

    Args:
        conversation_id: Conversation ID (alias scope)
        text: Message text

    Returns:
        Dict with resolved_text and applied_aliases
    """
    resolution = alias_resolver.resolve(conversation_id, text)
    return {
        'resolved_text': resolution.resolved_text,
        'applied_aliases': [{
            'alias': a.alias,
            'canonical_activity': a.canonical_activity
        } for a in resolution.applied_aliases]
    }


@mcp.tool()
def get_last_activity(conversation_id: str, activity: str) -> Optional[Dict[str, Any]]:
    """Get the most recent time anyone in a conversation did an activity.

    Args:
        conversation_id: Conversation ID
        activity: Canonical activity name

    Returns:
        Activity record dict, or None if never recorded
    """
    record = activity_store.last_activity(conversation_id, activity)
    return asdict(record) if record else None


@mcp.tool()
def get_user_activities(user_id: str, activity: str, days: int = 7) -> List[Dict[str, Any]]:
    """List a person's occurrences of an activity over the last few days.

    Args:
        user_id: Person ID
        activity: Canonical activity name
        days: Look-back window in days

    Returns:
        Activity record dicts, oldest first
    """
    since = utc_now() - timedelta(days=days)
    return [asdict(r) for r in activity_store.activities_for_subject(user_id, activity, since)]


@mcp.tool()
def get_activity_count(user_id: str, activity: str, days: int = 7) -> int:
    """Count how often a person did an activity over the last few days."""
    return activity_store.activity_count(user_id, activity, utc_now() - timedelta(days=days))


@mcp.tool()
def route_content(content_type: str, is_opted_in: bool, conversation_kind: str) -> str:
    """Show where a piece of content would be delivered.

    Args:
        content_type: acknowledgment | clarification | adaptation_hint | query_result
        is_opted_in: Whether the recipient accepts private messages
        conversation_kind: private | group

    Returns:
        group | private | none
    """
    return route(ContentType(content_type), is_opted_in, ConversationKind(conversation_kind)).value


@mcp.tool()
def system_info() -> Dict[str, Any]:
    """Report configuration and component health."""
    return get_system_info()


if __name__ == '__main__':
    transport = config.mcp.transport
    host = config.mcp.host
    port = config.mcp.port
    mcp.run(transport=transport, host=host, port=port)
