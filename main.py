"""
FastAPI app: echo bot gated behind OAuth login (Facebook, Microsoft, GitHub).

Decisions:
- .env is loaded before importing bot_auth so provider credentials and
  AUTH_CALLBACK_URL are available when the config is built (Ruff E402 suppressed).
- /api/messages accepts a Bot Framework activity and returns the replies the bot
  produced, so the flow can be driven with curl or a test client. A real channel
  adapter would call middleware.on_turn() with its own TurnContext instead.
- Logged-in conversations are kept in memory only (lost on restart).
"""

import logging
import os
from types import SimpleNamespace

from dotenv import load_dotenv
from fastapi import FastAPI, Request

load_dotenv()

# Load .env before bot_auth so provider credentials are set; Ruff E402.
from bot_auth import AuthenticationConfig, AuthenticationMiddleware, create_auth_router  # noqa: E402
from bot_auth.session import session_key  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# conversation id -> provider token response
ACCESS_TOKENS: dict[str, dict] = {}


def user_is_authenticated(context) -> bool:
    return session_key(context) in ACCESS_TOKENS


async def on_login_success(context, token) -> None:
    ACCESS_TOKENS[session_key(context)] = token


class CollectingTurnContext:
    """TurnContext whose replies are collected and returned in the HTTP response."""

    def __init__(self, activity: dict):
        self.activity = _to_namespace(activity)
        self.replies: list = []

    async def send_activity(self, activity_or_text):
        self.replies.append(activity_or_text)


def _to_namespace(value):
    if isinstance(value, dict):
        # Bot Framework JSON uses "from"; botbuilder exposes it as from_property.
        return SimpleNamespace(
            **{("from_property" if k == "from" else k): _to_namespace(v) for k, v in value.items()}
        )
    return value


def create_app(config: AuthenticationConfig, transport=None) -> FastAPI:
    """Wire the auth middleware, the OAuth callback router and the bot endpoint."""
    auth_middleware = AuthenticationMiddleware(config, transport=transport)

    app = FastAPI()
    app.state.auth_middleware = auth_middleware
    app.include_router(create_auth_router(auth_middleware))

    @app.post("/api/messages")
    async def messages(request: Request):
        context = CollectingTurnContext(await request.json())

        async def echo():
            if context.activity.type == "message":
                await context.send_activity(f"You said: {context.activity.text}")

        await auth_middleware.on_turn(context, echo)
        return {"replies": context.replies}

    @app.get("/logout/{conversation_id}")
    async def logout(conversation_id: str):
        """Forget the conversation's token; the next message shows the login card again."""
        removed = ACCESS_TOKENS.pop(conversation_id, None) is not None
        auth_middleware.store.clear(conversation_id)
        return {"logged_out": removed}

    @app.get("/healthz")
    async def healthz():
        auth_middleware.store.purge_expired()
        return {
            "ok": True,
            "providers": sorted(p.value for p in auth_middleware.clients),
            "pending": len(auth_middleware.store),
        }

    return app


app = create_app(
    AuthenticationConfig.from_env(
        is_authenticated=user_is_authenticated,
        on_login_success=on_login_success,
    )
)
