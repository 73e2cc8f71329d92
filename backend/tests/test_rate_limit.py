import threading

from services.rate_limit import FixedWindowRateLimiter


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def test_allows_up_to_limit_then_denies():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)
    statuses = [limiter.check_rate_limit("1.2.3.4") for _ in range(4)]
    assert [s.allowed for s in statuses] == [True, True, True, False]
    assert [s.remaining for s in statuses] == [2, 1, 0, 0]
    assert statuses[-1].reset_at == 1060.0
    assert statuses[-1].limit == 3


def test_window_resets():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
    assert limiter.check_rate_limit("a").allowed
    assert not limiter.check_rate_limit("a").allowed
    clock.t += 60
    status = limiter.check_rate_limit("a")
    assert status.allowed
    assert status.reset_at == 1120.0


def test_clients_are_independent():
    limiter = FixedWindowRateLimiter(max_requests=1, clock=FakeClock())
    assert limiter.check_rate_limit("a").allowed
    assert limiter.check_rate_limit("b").allowed
    assert not limiter.check_rate_limit("a").allowed


def test_sweeps_expired_windows():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=5, window_seconds=10, sweep_threshold=3, clock=clock)
    for cid in ("a", "b", "c"):
        limiter.check_rate_limit(cid)
    clock.t += 11
    limiter.check_rate_limit("d")
    assert limiter.tracked_clients() == 1


def test_concurrent_requests_never_exceed_limit():
    limiter = FixedWindowRateLimiter(max_requests=50, clock=FakeClock())
    allowed = []

    def worker():
        for _ in range(20):
            allowed.append(limiter.check_rate_limit("shared").allowed)

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sum(allowed) == 50
