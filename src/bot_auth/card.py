"""
Login card: one "open URL" button per enabled provider.

Each button opens the provider's authorization URL. The OAuth state carries the
provider identifier so the callback knows which client should redeem the code.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List

from bot_auth.clients import ConfiguredOAuthClient
from bot_auth.providers import CARD_ORDER, ProviderId

THUMBNAIL_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.thumbnail"


@dataclass
class CardAction:
    title: str
    value: str
    type: str = "openUrl"

    def to_dict(self) -> dict:
        return {"type": self.type, "title": self.title, "value": self.value}


@dataclass
class LoginCard:
    actions: List[CardAction] = field(default_factory=list)
    title: str = ""

    def to_attachment(self) -> dict:
        return {
            "contentType": THUMBNAIL_CARD_CONTENT_TYPE,
            "content": {
                "title": self.title,
                "buttons": [action.to_dict() for action in self.actions],
            },
        }

    def to_activity(self) -> dict:
        """Bot Framework message activity carrying the card as its only attachment."""
        return {
            "type": "message",
            "attachmentLayout": "list",
            "attachments": [self.to_attachment()],
        }


def provider_state(provider_id: ProviderId) -> str:
    return provider_id.value


def build_login_card(
    clients: Dict[ProviderId, ConfiguredOAuthClient],
    callback_url: str,
    state_for: Callable[[ProviderId], str] = provider_state,
) -> LoginCard:
    """Build the card for every provider in clients; no clients gives an empty card."""
    actions = []
    for provider_id in CARD_ORDER:
        client = clients.get(provider_id)
        if client is None:
            continue
        url = client.build_authorization_url(
            redirect_uri=callback_url,
            scope=client.scopes,
            state=state_for(provider_id),
        )
        actions.append(CardAction(title=client.button_text, value=url))
    return LoginCard(actions=actions)
