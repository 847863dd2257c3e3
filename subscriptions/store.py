"""
subscriptions/store.py -- SQLAlchemy Core persistence for subscriptions.

Pattern: Repository + Data Mapper (same as auth/store.py).

UNIQUE(subscriber_id, channel_id) is enforced in SQL: a user holds at most
one subscription per channel. subscribe() is therefore idempotent -- a repeat
call returns the existing edge instead of inserting a duplicate.

Layer rule: no imports from api/ or auth/. The store deals in user ids only;
callers check that both users exist.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, UniqueConstraint, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.errors import ValidationError
from subscriptions.models import Subscription

_metadata = MetaData()

_subscriptions = Table(
    "subscriptions",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("subscriber_id", Integer, nullable=False, index=True),
    Column("channel_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("subscriber_id", "channel_id", name="uq_subscriber_channel"),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SubscriptionStore:
    """Repository for Subscription edges."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        _metadata.create_all(self.engine)

    def subscribe(self, subscriber_id: int, channel_id: int) -> Subscription:
        """Create the edge, or return the existing one.

        Raises ValidationError when a user tries to subscribe to themselves.
        """
        if subscriber_id == channel_id:
            raise ValidationError("You cannot subscribe to your own channel")
        existing = self.get(subscriber_id, channel_id)
        if existing is not None:
            return existing
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _subscriptions.insert().values(
                        subscriber_id=subscriber_id,
                        channel_id=channel_id,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError:
            # A concurrent request inserted the same edge first.
            pass
        return self.get(subscriber_id, channel_id)

    def unsubscribe(self, subscriber_id: int, channel_id: int) -> bool:
        """Delete the edge. Returns True if one existed."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _subscriptions.delete().where(
                    (_subscriptions.c.subscriber_id == subscriber_id) & (_subscriptions.c.channel_id == channel_id)
                )
            )
            conn.commit()
        return result.rowcount > 0

    def get(self, subscriber_id: int, channel_id: int) -> Subscription | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                _subscriptions.select().where(
                    (_subscriptions.c.subscriber_id == subscriber_id) & (_subscriptions.c.channel_id == channel_id)
                )
            ).fetchone()
        return _row_to_subscription(row) if row is not None else None

    def is_subscribed(self, subscriber_id: int, channel_id: int) -> bool:
        return self.get(subscriber_id, channel_id) is not None

    def count_subscribers(self, channel_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_subscriptions).where(_subscriptions.c.channel_id == channel_id)
            ).scalar()
        return result or 0

    def count_subscribed_to(self, subscriber_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(_subscriptions)
                .where(_subscriptions.c.subscriber_id == subscriber_id)
            ).scalar()
        return result or 0

    def list_subscribers(self, channel_id: int) -> list[Subscription]:
        """Subscriptions to channel_id, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _subscriptions.select()
                .where(_subscriptions.c.channel_id == channel_id)
                .order_by(_subscriptions.c.id.desc())
            ).fetchall()
        return [_row_to_subscription(r) for r in rows]

    def list_subscribed_channels(self, subscriber_id: int) -> list[Subscription]:
        """Subscriptions held by subscriber_id, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _subscriptions.select()
                .where(_subscriptions.c.subscriber_id == subscriber_id)
                .order_by(_subscriptions.c.id.desc())
            ).fetchall()
        return [_row_to_subscription(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


def _row_to_subscription(row) -> Subscription:
    return Subscription(
        id=row.id,
        subscriber_id=row.subscriber_id,
        channel_id=row.channel_id,
        created_at=row.created_at,
    )
