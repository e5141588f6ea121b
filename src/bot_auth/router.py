"""
FastAPI auth router: the OAuth redirect endpoint.

The provider redirects the browser to /auth/callback?code=...&state=...; the page
it gets back tells the user which magic code to type into the bot.
"""

from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

from bot_auth.middleware import AuthenticationMiddleware


def create_auth_router(middleware: AuthenticationMiddleware) -> APIRouter:
    """Create an APIRouter with the /auth/callback endpoint bound to middleware."""
    router = APIRouter()

    @router.get("/auth/callback", name="auth_callback", response_class=PlainTextResponse)
    async def auth_callback(
        code: Optional[str] = Query(None),
        state: Optional[str] = Query(None),
    ):
        """Exchange the code for a token and show the magic code to the user."""
        result = await middleware.handle_callback(code, state)
        return PlainTextResponse(result.body, status_code=result.status_code)

    return router
