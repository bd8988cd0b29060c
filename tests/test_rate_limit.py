import pytest
from starlette.requests import Request

from fakes import FailingStore, FakeClock, StubRedis
from helpers import PASSWORD
from petpro.core.rate_limit import (
    LoginRateLimiter,
    MemoryRateLimitStore,
    RedisRateLimitStore,
    build_store,
    client_ip,
)
from petpro.core.logger import get_log_lines


def _limiter(store=None, clock=None, max_attempts=3, window=60):
    return LoginRateLimiter(store or MemoryRateLimitStore(), max_attempts=max_attempts, window_seconds=window, clock=clock or FakeClock())


def _request(headers=None, client=("10.0.0.1", 1234)):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/auth/login",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_allows_up_to_max_then_blocks():
    limiter = _limiter()
    decisions = [limiter.check("1.2.3.4") for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert decisions[-1].count == 4


def test_retry_after_counts_down_to_window_end():
    clock = FakeClock()
    limiter = _limiter(clock=clock)
    for _ in range(3):
        limiter.check("ip")
    clock.advance(20)
    decision = limiter.check("ip")
    assert not decision.allowed
    assert decision.retry_after == 40


def test_retry_after_is_at_least_one_second():
    clock = FakeClock()
    limiter = _limiter(clock=clock)
    for _ in range(3):
        limiter.check("ip")
    clock.advance(59.9)
    assert limiter.check("ip").retry_after == 1


def test_window_expiry_resets_counter():
    clock = FakeClock()
    limiter = _limiter(clock=clock)
    for _ in range(4):
        limiter.check("ip")
    clock.advance(60)
    decision = limiter.check("ip")
    assert decision.allowed
    assert decision.count == 1


def test_keys_are_independent():
    limiter = _limiter(max_attempts=1)
    assert limiter.check("a").allowed
    assert not limiter.check("a").allowed
    assert limiter.check("b").allowed


def test_reset_clears_all_keys():
    limiter = _limiter(max_attempts=1)
    limiter.check("a")
    limiter.check("a")
    limiter.reset()
    assert limiter.check("a").allowed


def test_memory_store_prunes_expired_entries():
    store = MemoryRateLimitStore()
    store.PRUNE_THRESHOLD = 5
    for i in range(5):
        store.hit(f"old-{i}", now=0, window=10)
    store.hit("fresh", now=100, window=10)
    assert len(store) == 1


def test_failing_store_lets_attempts_through():
    limiter = _limiter(store=FailingStore(), max_attempts=1)
    assert all(limiter.check("ip").allowed for _ in range(5))


def test_redis_store_counts_and_sets_window_expiry():
    redis_client = StubRedis()
    store = RedisRateLimitStore(redis_client)
    first = store.hit("9.9.9.9", now=1000.0, window=900)
    second = store.hit("9.9.9.9", now=1001.0, window=900)
    assert (first.count, second.count) == (1, 2)
    assert redis_client.ttl_ms["login_rl:9.9.9.9"] == 900_000
    assert first.reset_at == 1900.0


def test_redis_store_backed_limiter_blocks_after_max():
    limiter = _limiter(store=RedisRateLimitStore(StubRedis()), max_attempts=2)
    assert [limiter.check("ip").allowed for _ in range(3)] == [True, True, False]
    limiter.reset()
    assert limiter.check("ip").allowed


def test_build_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_store("memcached")
    assert isinstance(build_store("memory"), MemoryRateLimitStore)


def test_client_ip_prefers_first_forwarded_for_entry():
    assert client_ip(_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})) == "203.0.113.7"
    assert client_ip(_request()) == "10.0.0.1"
    assert client_ip(_request(client=None)) == "unknown"


# ---- through the API ----

def test_eleventh_login_is_rejected_even_with_correct_password(client, register, login, clock):
    register()
    for _ in range(10):
        assert login(password="wrong-password").status_code == 401

    res = login()
    assert res.status_code == 429
    assert res.json()["code"] == "RATE_LIMITED"
    assert int(res.headers["Retry-After"]) == 900

    clock.advance(900)
    assert login().status_code == 200


def test_rate_limit_is_per_client_address(client, register, login):
    register()
    for _ in range(11):
        login(password="wrong-password", headers={"X-Forwarded-For": "198.51.100.1"})
    assert login(headers={"X-Forwarded-For": "198.51.100.1"}).status_code == 429
    assert login(headers={"X-Forwarded-For": "198.51.100.2"}).status_code == 200


def test_rate_limit_runs_before_payload_validation(client, limiter):
    for _ in range(10):
        client.post("/auth/login", json={})
    res = client.post("/auth/login", json={})
    assert res.status_code == 429


def test_rejection_is_logged_as_security_event(client, login):
    for _ in range(11):
        login(email="nobody@test.local", password=PASSWORD)
    assert any('"result": "rate_limited"' in line for line in get_log_lines())
