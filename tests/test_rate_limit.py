"""
Admission limiter tests
"""

import threading

import pytest

from sitepulse.rate_limit import AdmissionLimiter, InMemoryRateWindowStore

WINDOW_MS = 60_000


class BlockingWindowStore(InMemoryRateWindowStore):
    """Holds reads of one user until released, like a slow remote store"""

    def __init__(self, blocked_user):
        super().__init__()
        self.blocked_user = blocked_user
        self.entered = threading.Event()
        self.release = threading.Event()

    def get(self, user_id):
        if user_id == self.blocked_user:
            self.entered.set()
            self.release.wait(timeout=5)
        return super().get(user_id)


class TestAdmissionLimiter:

    def setup_method(self):
        self.store = InMemoryRateWindowStore()
        self.limiter = AdmissionLimiter(
            max_requests=3,
            window_ms=WINDOW_MS,
            store=self.store,
            clock=lambda: 0,
            cleanup_probability=0.0,
        )

    def test_accepts_exactly_max_requests(self):
        results = [self.limiter.allow("user-1", now=1_000 + i) for i in range(4)]
        assert results == [True, True, True, False]

    def test_rejections_are_not_recorded(self):
        for i in range(10):
            self.limiter.allow("user-1", now=1_000 + i)
        assert len(self.store.get("user-1")) == 3

    def test_window_slides(self):
        for t in (1_000, 2_000, 3_000):
            assert self.limiter.allow("user-1", now=t)
        assert not self.limiter.allow("user-1", now=WINDOW_MS + 999)
        # A timestamp exactly one window old has left the window
        assert self.limiter.allow("user-1", now=WINDOW_MS + 1_000)

    def test_users_are_independent(self):
        for i in range(3):
            self.limiter.allow("user-1", now=1_000 + i)
        assert not self.limiter.allow("user-1", now=2_000)
        assert self.limiter.allow("user-2", now=2_000)

    def test_remaining(self):
        assert self.limiter.remaining("user-1", now=1_000) == 3
        self.limiter.allow("user-1", now=1_000)
        assert self.limiter.remaining("user-1", now=1_001) == 2
        assert self.limiter.remaining("user-1", now=1_000 + WINDOW_MS) == 3

    def test_uses_clock_when_no_time_given(self):
        now = [1_000]
        limiter = AdmissionLimiter(max_requests=1, window_ms=WINDOW_MS, clock=lambda: now[0], cleanup_probability=0.0)

        assert limiter.allow("user-1")
        assert not limiter.allow("user-1")
        now[0] += WINDOW_MS
        assert limiter.allow("user-1")

    @pytest.mark.parametrize("window_ms, expected", [(900_000, 900), (1_500, 2), (1_000, 1)])
    def test_retry_after_rounds_up(self, window_ms, expected):
        limiter = AdmissionLimiter(max_requests=1, window_ms=window_ms)
        assert limiter.retry_after_seconds == expected

    @pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"window_ms": 0}, {"window_ms": -5}, {"lock_stripes": 0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            AdmissionLimiter(**kwargs)


class TestCompaction:

    def test_compact_drops_idle_users(self):
        limiter = AdmissionLimiter(max_requests=5, window_ms=WINDOW_MS, cleanup_probability=0.0)
        limiter.allow("idle", now=0)
        limiter.allow("busy", now=0)
        limiter.allow("busy", now=2 * WINDOW_MS)

        removed = limiter.compact(now=2 * WINDOW_MS + 1)

        assert removed == 1
        assert list(limiter.store.keys()) == ["busy"]
        assert limiter.store.get("busy") == [2 * WINDOW_MS]

    def test_probabilistic_compaction_runs_on_allow(self):
        store = InMemoryRateWindowStore()
        limiter = AdmissionLimiter(
            max_requests=5,
            window_ms=WINDOW_MS,
            store=store,
            rng=lambda: 0.0,
            cleanup_probability=0.01,
        )
        limiter.allow("idle", now=0)
        limiter.allow("other", now=3 * WINDOW_MS)

        assert len(store) == 1
        assert list(store.keys()) == ["other"]

    def test_no_compaction_when_rng_above_probability(self):
        store = InMemoryRateWindowStore()
        limiter = AdmissionLimiter(
            max_requests=5,
            window_ms=WINDOW_MS,
            store=store,
            rng=lambda: 0.5,
            cleanup_probability=0.01,
        )
        limiter.allow("idle", now=0)
        limiter.allow("other", now=3 * WINDOW_MS)

        assert len(store) == 2

    def test_compaction_does_not_change_decisions(self):
        limiter = AdmissionLimiter(max_requests=2, window_ms=WINDOW_MS, rng=lambda: 0.0, cleanup_probability=1.0)
        assert limiter.allow("user-1", now=1_000)
        assert limiter.allow("user-1", now=2_000)
        assert not limiter.allow("user-1", now=3_000)


class TestLocking:

    def setup_method(self):
        self.store = BlockingWindowStore("slow-user")
        self.limiter = AdmissionLimiter(
            max_requests=1,
            window_ms=WINDOW_MS,
            store=self.store,
            cleanup_probability=0.0,
            lock_stripes=2,
        )
        self.results = []
        self.slow = threading.Thread(target=self.call, args=("slow-user",))

    def teardown_method(self):
        self.store.release.set()
        if self.slow.ident is not None:
            self.slow.join(timeout=5)

    def call(self, user_id):
        self.results.append((user_id, self.limiter.allow(user_id, now=1_000)))

    def test_slow_store_call_does_not_block_other_users(self):
        fast_user = next(
            user for user in (f"user-{i}" for i in range(100))
            if self.limiter._lock_for(user) is not self.limiter._lock_for("slow-user")
        )
        self.slow.start()
        assert self.store.entered.wait(timeout=5)

        fast = threading.Thread(target=self.call, args=(fast_user,))
        fast.start()
        fast.join(timeout=2)

        assert not fast.is_alive()
        assert self.results == [(fast_user, True)]

    def test_same_user_is_serialized(self):
        self.slow.start()
        assert self.store.entered.wait(timeout=5)

        second = threading.Thread(target=self.call, args=("slow-user",))
        second.start()
        second.join(timeout=0.2)
        assert second.is_alive()

        self.store.release.set()
        second.join(timeout=5)
        self.slow.join(timeout=5)

        assert sorted(allowed for _, allowed in self.results) == [False, True]
        assert len(self.store.get("slow-user")) == 1
