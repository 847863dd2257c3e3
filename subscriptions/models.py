"""
subscriptions/models.py -- Domain dataclass for the subscriber -> channel edge.

A channel is just a User; the edge is directed from the subscribing user to
the channel's owner.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Subscription:
    subscriber_id: int  # the user who subscribes
    channel_id: int  # the user being subscribed to
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
