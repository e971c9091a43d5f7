from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .build_info import BuildRetention
from .models import BuildContext


def get_build_numbers_not_to_be_deleted(context: BuildContext) -> List[str]:
    """Build numbers of the job's history marked 'keep forever'."""
    return [str(record.number) for record in context.get_builds() if record.keep_forever]


def _limit(value: int) -> Optional[int]:
    return value if value is not None and value > -1 else None


def create_build_retention(context: BuildContext, discard_artifacts: bool,
                           now: Optional[datetime] = None) -> BuildRetention:
    count = None
    days_to_keep = None
    minimum_build_date = None

    rotator = context.log_rotator
    if rotator is not None:
        count = _limit(rotator.num_to_keep)
        days_to_keep = _limit(rotator.days_to_keep)
        if days_to_keep is not None:
            now = now or datetime.now(timezone.utc)
            minimum_build_date = now - timedelta(days=days_to_keep)

    return BuildRetention(
        delete_build_artifacts=discard_artifacts,
        count=count,
        days_to_keep=days_to_keep,
        minimum_build_date=minimum_build_date,
        build_numbers_not_to_be_deleted=get_build_numbers_not_to_be_deleted(context),
    )
