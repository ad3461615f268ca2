from datetime import timedelta

import pytest

from cartsync import Policy


class TestPolicy:
    def test_defaults(self):
        policy = Policy()

        assert policy.call_timeout == timedelta(seconds=10)
        assert policy.lock_timeout == timedelta(seconds=15)
        assert policy.session_attempts == 3
        assert policy.session_backoff == timedelta(seconds=1)
        assert policy.cleanup_attempts == 2
        assert policy.max_listeners == 32

    def test_builders_return_new_policy(self):
        base = Policy()

        tuned = base.with_call_timeout(seconds=2).with_session_retry(attempts=5, backoff_seconds=0.5)

        assert base.call_timeout == timedelta(seconds=10)
        assert tuned.call_timeout == timedelta(seconds=2)
        assert tuned.session_attempts == 5
        assert tuned.session_backoff == timedelta(milliseconds=500)

    def test_delta_wins_over_seconds(self):
        policy = Policy().with_lock_timeout(seconds=1, delta=timedelta(seconds=3))

        assert policy.lock_timeout == timedelta(seconds=3)

    def test_retry_without_backoff_keeps_current(self):
        policy = Policy().with_cleanup_retry(attempts=4)

        assert policy.cleanup_attempts == 4
        assert policy.cleanup_backoff == Policy().cleanup_backoff

    @pytest.mark.parametrize(
        "build",
        [
            lambda: Policy().with_session_retry(attempts=0),
            lambda: Policy().with_cleanup_retry(attempts=0),
            lambda: Policy().with_call_timeout(seconds=0),
        ],
    )
    def test_rejects_invalid_values(self, build):
        with pytest.raises(ValueError):
            build()
