from concurrent.futures import ThreadPoolExecutor

import redis

from forward_relay.services.replay import (
    IdempotencyGuard,
    InMemoryReplayStore,
    RedisReplayStore,
    get_replay_store,
)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_second_mark_is_rejected_until_expiry() -> None:
    clock = FakeClock()
    guard = IdempotencyGuard(ttl_seconds=300, clock=clock)

    assert guard.try_mark_pending("0xabc-1") is True
    assert guard.try_mark_pending("0xabc-1") is False

    clock.now += 299
    assert guard.try_mark_pending("0xabc-1") is False
    clock.now += 1
    assert guard.try_mark_pending("0xabc-1") is True


def test_release_allows_retry() -> None:
    guard = IdempotencyGuard(clock=FakeClock())
    guard.try_mark_pending("k")
    guard.release("k")

    assert guard.try_mark_pending("k") is True


def test_sweep_purges_expired_records() -> None:
    clock = FakeClock()
    store = InMemoryReplayStore()
    guard = IdempotencyGuard(store, ttl_seconds=300, clock=clock)
    guard.try_mark_pending("old")
    clock.now += 200
    guard.try_mark_pending("new")
    clock.now += 100

    assert guard.sweep() == 1
    assert "old" not in store
    assert "new" in store


def test_concurrent_marks_admit_exactly_one() -> None:
    guard = IdempotencyGuard()
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: guard.try_mark_pending("same"), range(32)))

    assert results.count(True) == 1


def test_redis_store_uses_set_nx_with_ttl(mocker) -> None:
    client = mocker.MagicMock()
    client.set.return_value = True
    store = RedisReplayStore(client)

    assert store.add_if_absent("0xabc-1", 1000.0, 300) is True
    client.set.assert_called_once_with("relay:pending:0xabc-1", 1000, nx=True, ex=300)

    client.set.return_value = None
    assert store.add_if_absent("0xabc-1", 1001.0, 300) is False


def test_redis_store_falls_back_when_unreachable(mocker) -> None:
    client = mocker.MagicMock()
    client.set.side_effect = redis.ConnectionError("down")
    store = RedisReplayStore(client)

    assert store.add_if_absent("k", 1000.0, 300) is True
    assert store.add_if_absent("k", 1001.0, 300) is False


def test_get_replay_store_defaults_to_memory() -> None:
    assert isinstance(get_replay_store(None), InMemoryReplayStore)
