"""
Chat session helpers.

A chat session is identified by its conversation id (falling back to the sender
id). The OAuth state sent to the provider is "<providerId>" or, when bound to a
session, "<providerId>:<ticket>".
"""

from typing import Optional, Tuple

STATE_SEPARATOR = ":"


def session_key(context) -> str:
    """Conversation id of the turn, or the sender id if the activity has none."""
    activity = context.activity
    conversation = getattr(activity, "conversation", None)
    if conversation is not None and getattr(conversation, "id", None):
        return conversation.id
    sender = getattr(activity, "from_property", None)
    if sender is not None and getattr(sender, "id", None):
        return sender.id
    return "default"


def is_message(context) -> bool:
    """Only user messages are gated; typing, conversationUpdate, etc. pass through."""
    activity_type = getattr(context.activity, "type", None)
    return str(getattr(activity_type, "value", activity_type)) == "message"


def message_text(context) -> str:
    return getattr(context.activity, "text", None) or ""


def compose_state(provider_id: str, ticket: Optional[str] = None) -> str:
    if not ticket:
        return provider_id
    return f"{provider_id}{STATE_SEPARATOR}{ticket}"


def split_state(state: Optional[str]) -> Tuple[str, Optional[str]]:
    """Return (provider part, ticket or None)."""
    if not state:
        return "", None
    provider_part, _, ticket = state.partition(STATE_SEPARATOR)
    return provider_part, ticket or None
