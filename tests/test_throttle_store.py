from datetime import datetime, timedelta, timezone

import pytest

from infra.redis_client import RedisClient, recently_pushed_key
from services.throttle_store import ThrottleStore


@pytest.mark.asyncio
async def test_absent_record_is_not_recent(throttle):
    assert await throttle.was_recently_notified("bob", 3600) is False


@pytest.mark.asyncio
async def test_record_then_check_within_cooldown(throttle, redis_client):
    assert await throttle.record_notified("bob") is True
    assert await throttle.was_recently_notified("bob", 3600) is True

    stored = await redis_client.get(recently_pushed_key("bob"))
    ts = datetime.fromisoformat(stored)
    assert datetime.now(timezone.utc) - ts < timedelta(seconds=1)


@pytest.mark.asyncio
async def test_record_twice_refreshes_single_key(throttle, redis_client):
    await throttle.record_notified("bob")
    first = await redis_client.get(recently_pushed_key("bob"))
    await throttle.record_notified("bob")
    second = await redis_client.get(recently_pushed_key("bob"))

    assert datetime.fromisoformat(second) >= datetime.fromisoformat(first)
    assert [k for k in redis_client.redis.data if "bob" in k] == [recently_pushed_key("bob")]
    assert await throttle.was_recently_notified("bob", 3600) is True


@pytest.mark.asyncio
async def test_old_record_is_not_recent(throttle, redis_client):
    two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
    await redis_client.set(recently_pushed_key("bob"), two_hours_ago.isoformat())
    assert await throttle.was_recently_notified("bob", 3600) is False


@pytest.mark.asyncio
async def test_java_style_instant_is_parsed(throttle, redis_client):
    thirty_min_ago = datetime.now(timezone.utc) - timedelta(minutes=30)
    await redis_client.set(recently_pushed_key("bob"), thirty_min_ago.strftime("%Y-%m-%dT%H:%M:%S.%fZ"))
    assert await throttle.was_recently_notified("bob", 3600) is True


@pytest.mark.asyncio
async def test_garbage_record_is_ignored(throttle, redis_client):
    await redis_client.set(recently_pushed_key("bob"), "not-a-date")
    assert await throttle.was_recently_notified("bob", 3600) is False


@pytest.mark.asyncio
async def test_injected_clock_controls_age(redis_client):
    now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    store = ThrottleStore(redis_client, clock=lambda: now)

    await store.record_notified("bob")
    store.clock = lambda: now + timedelta(minutes=59)
    assert await store.was_recently_notified("bob", 3600) is True
    store.clock = lambda: now + timedelta(minutes=61)
    assert await store.was_recently_notified("bob", 3600) is False


@pytest.mark.asyncio
async def test_redis_unavailable_degrades_to_not_recent():
    store = ThrottleStore(RedisClient("redis://unreachable"))
    assert await store.was_recently_notified("bob", 3600) is False
    assert await store.record_notified("bob") is False
