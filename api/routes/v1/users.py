"""
api/routes/v1/users.py -- Public author lookup routes.

Routes:
  POST /search-users  -- up to 50 users whose username contains the query
  POST /get-profile   -- public profile for one username

Neither route exposes email, password digest, or how the account signs in.
"""

from fastapi import APIRouter, HTTPException, Request

from api.models import GetProfileRequest, ProfileResponse, SearchUsersRequest, SearchUsersResponse, UserCard
from auth.store import UserStore

# Auth policy: both routes are public.
router = APIRouter()

SEARCH_USERS_LIMIT = 50


@router.post("/search-users", response_model=SearchUsersResponse)
def search_users(request: Request, body: SearchUsersRequest) -> SearchUsersResponse:
    user_store: UserStore = request.app.state.user_store
    users = user_store.search_by_username(body.query, limit=SEARCH_USERS_LIMIT)
    return SearchUsersResponse(users=[UserCard.from_user(u) for u in users])


@router.post("/get-profile", response_model=ProfileResponse)
def get_profile(request: Request, body: GetProfileRequest) -> ProfileResponse:
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_username(body.username)
    if user is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "User not found"})
    return ProfileResponse.from_user(user)
