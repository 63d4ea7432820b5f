"""
Retry helper tests.
"""

import pytest
from sqlalchemy.orm.exc import StaleDataError

from optistore.services import concurrency
from optistore.services.concurrency import run_with_retry


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)


def _flaky(failures, exc=StaleDataError):
    calls = []

    def op():
        calls.append(1)
        if len(calls) <= failures:
            raise exc("version mismatch")
        return "done"

    return op, calls


def test_retries_version_conflicts(db_session):
    op, calls = _flaky(2)

    assert run_with_retry(op) == "done"
    assert len(calls) == 3


def test_gives_up_after_configured_attempts(app, db_session):
    op, calls = _flaky(5)
    app.config["DB_RETRY_ATTEMPTS"] = 2
    try:
        with pytest.raises(StaleDataError):
            run_with_retry(op)
    finally:
        app.config["DB_RETRY_ATTEMPTS"] = 3

    assert len(calls) == 2


def test_other_errors_are_not_retried(db_session):
    op, calls = _flaky(1, exc=ValueError)

    with pytest.raises(ValueError):
        run_with_retry(op)

    assert len(calls) == 1
