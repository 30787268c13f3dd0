# services/throttle_store.py
"""
Push throttle records.

The pipeline runs check-then-act: was_recently_notified(), then push, then
record_notified(). The sequence is not atomic. Two proximity events for the
same recipient handled at the same moment (in this process or another one
sharing Redis) can both see "not notified" and each send a push, so a member
may get one duplicate inside the cooldown. That duplicate is tolerated; no
lock is taken around the sequence.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from infra.redis_client import RedisClient, recently_pushed_key

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ThrottleStore:
    def __init__(self, redis_client: RedisClient, ttl_seconds: int = 3600,
                 clock: Callable[[], datetime] = utcnow):
        self.redis_client = redis_client
        # Records also expire in Redis once the cooldown has passed; the age
        # check below stays authoritative.
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    async def last_notified(self, member_name: str) -> Optional[datetime]:
        raw = await self.redis_client.get(recently_pushed_key(member_name))
        if not raw:
            return None
        try:
            ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Ignoring unparsable push timestamp for %s: %r", member_name, raw)
            return None
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts

    async def was_recently_notified(self, member_name: str, cooldown_seconds: int) -> bool:
        ts = await self.last_notified(member_name)
        if ts is None:
            return False
        return self.clock() - ts < timedelta(seconds=cooldown_seconds)

    async def record_notified(self, member_name: str) -> bool:
        now = self.clock()
        return await self.redis_client.set(
            recently_pushed_key(member_name), now.isoformat(), ttl=self.ttl_seconds
        )
