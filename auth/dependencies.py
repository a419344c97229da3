"""
auth/dependencies.py -- FastAPI Depends() helper for bearer-token routes.

Protected routes declare:

    @router.post("/create-blog")
    async def route(user_id: int = Depends(require_user_id)): ...

require_user_id() reads "Authorization: Bearer <token>", verifies it with the
TokenIssuer on app.state, stores the id on request.state.user_id for anything
downstream, and returns it. It does not load the user: the token proves a
past authentication, and the route decides what to do with the id.

  no header / no token      -> InkwellError(MISSING_CREDENTIAL)  -> 401
  bad signature / malformed -> InkwellError(INVALID_CREDENTIAL)  -> 403

Layer rule: no imports from api/ or blogs/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.tokens import TokenIssuer


def bearer_token(request: Request) -> str | None:
    """Return the token from the Authorization header, or None.

    Takes the second space-separated part, so "Bearer abc" yields "abc" and
    a bare "Bearer" yields None.
    """
    parts = request.headers.get("Authorization", "").split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def require_user_id(request: Request) -> int:
    tokens: TokenIssuer = request.app.state.tokens
    user_id = tokens.verify(bearer_token(request))
    request.state.user_id = user_id
    return user_id
