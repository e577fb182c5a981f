from unittest.mock import Mock

import pytest

from utils.retry import backoff_delays, retry_with_backoff


def test_backoff_schedule_doubles():
    assert backoff_delays() == [1.0, 2.0, 4.0]
    assert backoff_delays(max_retries=2, base_delay=0.5) == [0.5, 1.0]


def test_returns_first_success_without_sleeping():
    sleep = Mock()
    assert retry_with_backoff(lambda: "ok", sleep=sleep) == "ok"
    sleep.assert_not_called()


def test_retries_until_success():
    fn = Mock(side_effect=[ConnectionError("down"), ConnectionError("down"), "ok"])
    sleep = Mock()

    assert retry_with_backoff(fn, sleep=sleep) == "ok"
    assert fn.call_count == 3
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]


def test_raises_last_error_when_exhausted(caplog):
    fn = Mock(side_effect=TimeoutError("slow"))
    sleep = Mock()

    with pytest.raises(TimeoutError):
        retry_with_backoff(fn, max_retries=3, sleep=sleep)

    assert fn.call_count == 4
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 4.0]
    assert any("retry_exhausted" in r.getMessage() for r in caplog.records)


def test_should_retry_veto_raises_immediately():
    fn = Mock(side_effect=ValueError("client error"))
    sleep = Mock()

    with pytest.raises(ValueError):
        retry_with_backoff(fn, should_retry=lambda e: False, sleep=sleep)

    assert fn.call_count == 1
    sleep.assert_not_called()


def test_errors_outside_retry_on_are_not_retried():
    fn = Mock(side_effect=KeyError("x"))
    with pytest.raises(KeyError):
        retry_with_backoff(fn, retry_on=(ConnectionError,), sleep=Mock())
    assert fn.call_count == 1
