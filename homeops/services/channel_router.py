"""
Channel Router: where a given piece of content may be delivered.
"""

from ..models.core import ContentType, ConversationKind, Destination


def route(content_type: ContentType, is_opted_in: bool, conversation_kind: ConversationKind) -> Destination:
    """
    Pick the destination for outbound content.

    Content arising in a private conversation always stays private. Adaptation
    hints are never posted to a group: they go privately to people who opted
    in and are dropped for everyone else. All other content replies where the
    conversation happened.

    Args:
        content_type: Kind of content to deliver
        is_opted_in: Whether the recipient accepts unsolicited private messages
        conversation_kind: Kind of conversation the content relates to

    Returns:
        Destination
    """
    if conversation_kind == ConversationKind.PRIVATE:
        return Destination.PRIVATE

    if content_type == ContentType.ADAPTATION_HINT:
        return Destination.PRIVATE if is_opted_in else Destination.NONE

    return Destination.GROUP
