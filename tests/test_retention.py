from datetime import datetime, timedelta, timezone

import pytest

from buildinfo_engine.models import BuildRecord, LogRotator
from buildinfo_engine.retention import create_build_retention, get_build_numbers_not_to_be_deleted


def _history():
    return [BuildRecord(number=n, keep_forever=n in (3, 5, 7)) for n in range(8, 0, -1)]


def test_keep_forever_builds_and_count_limit(make_context):
    context = make_context(builds=_history(), log_rotator=LogRotator(days_to_keep=-1, num_to_keep=10))
    retention = create_build_retention(context, discard_artifacts=True)

    assert set(retention.build_numbers_not_to_be_deleted) == {"3", "5", "7"}
    assert retention.days_to_keep is None
    assert retention.minimum_build_date is None
    assert retention.count == 10
    assert retention.delete_build_artifacts is True


def test_days_limit_sets_minimum_build_date(make_context):
    now = datetime(2024, 3, 10, tzinfo=timezone.utc)
    context = make_context(log_rotator=LogRotator(days_to_keep=7, num_to_keep=-1))
    retention = create_build_retention(context, discard_artifacts=False, now=now)

    assert retention.count is None
    assert retention.days_to_keep == 7
    assert retention.minimum_build_date == now - timedelta(days=7)


def test_no_rotator_means_no_limits(make_context):
    retention = create_build_retention(make_context(builds=_history()), discard_artifacts=False)
    assert retention.count is None
    assert retention.days_to_keep is None
    assert retention.build_numbers_not_to_be_deleted == ("7", "5", "3")


def test_history_query_failure_propagates(make_context):
    context = make_context()

    def broken_history():
        raise RuntimeError("history unavailable")

    context.get_builds = broken_history
    with pytest.raises(RuntimeError, match="history unavailable"):
        get_build_numbers_not_to_be_deleted(context)
