"""
api/routes/v1/subscriptions.py -- Subscriber -> channel endpoints.

Routes:
  POST   /api/v1/subscriptions/c/{channel_id}     -- subscribe the caller (idempotent)
  DELETE /api/v1/subscriptions/c/{channel_id}     -- unsubscribe the caller
  GET    /api/v1/subscriptions/c/{channel_id}     -- subscribers of a channel
  GET    /api/v1/subscriptions/u/{subscriber_id}  -- channels a user subscribes to

All routes require auth. Channel ids are user ids.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import SubscriptionResponse
from api.responses import api_response
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from core.errors import NotFoundError
from subscriptions.store import SubscriptionStore

# Router-level dependency enforces auth; handlers that need the caller
# declare get_current_user again (FastAPI caches it per request).
router = APIRouter(prefix="/subscriptions", dependencies=[Depends(get_current_user)])


def _require_channel(request: Request, channel_id: int) -> User:
    user_store: UserStore = request.app.state.user_store
    channel = user_store.get_by_id(channel_id)
    if channel is None:
        raise NotFoundError("Channel does not exist")
    return channel


@router.post("/c/{channel_id}", status_code=201)
def subscribe(request: Request, channel_id: int, current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Subscribe the caller to channel_id. Repeating the call is a no-op."""
    _require_channel(request, channel_id)
    store: SubscriptionStore = request.app.state.subscription_store
    sub = store.subscribe(current_user.id, channel_id)
    return api_response(201, SubscriptionResponse.from_subscription(sub), "Subscribed successfully")


@router.delete("/c/{channel_id}")
def unsubscribe(request: Request, channel_id: int, current_user: User = Depends(get_current_user)) -> JSONResponse:
    store: SubscriptionStore = request.app.state.subscription_store
    if not store.unsubscribe(current_user.id, channel_id):
        raise NotFoundError("Subscription not found")
    return api_response(200, {}, "Unsubscribed successfully")


@router.get("/c/{channel_id}")
def list_subscribers(request: Request, channel_id: int) -> JSONResponse:
    _require_channel(request, channel_id)
    store: SubscriptionStore = request.app.state.subscription_store
    subs = [SubscriptionResponse.from_subscription(s) for s in store.list_subscribers(channel_id)]
    return api_response(200, subs, "Subscribers fetched successfully")


@router.get("/u/{subscriber_id}")
def list_subscribed_channels(request: Request, subscriber_id: int) -> JSONResponse:
    store: SubscriptionStore = request.app.state.subscription_store
    subs = [SubscriptionResponse.from_subscription(s) for s in store.list_subscribed_channels(subscriber_id)]
    return api_response(200, subs, "Subscribed channels fetched successfully")
