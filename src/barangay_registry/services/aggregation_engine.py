"""
Dashboard statistics.

The distribution helpers are pure functions over a snapshot of records; the
`AggregationEngine` only adds the Redis reads (counters and record scans) around them.

Age is computed as `current year - birth year`, without looking at month or day.
Registration months are taken in UTC.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from redis.exceptions import RedisError

from barangay_registry.config import settings
from barangay_registry.exceptions import StoreError
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import FAMILY_HEADS_COUNTER_KEY, RESIDENTS_COUNTER_KEY
from barangay_registry.models.dashboard_models import (
    AgeBucket,
    DashboardStats,
    GenderBucket,
    LiveCounts,
    MonthlyBucket,
    RecentRegistration,
    TotalCounts,
)
from barangay_registry.models.record_models import PersonRecord, RecordType
from barangay_registry.services.id_generator import utc_now
from barangay_registry.services.record_repository import RecordRepository
from barangay_registry.utils.logging_utils import log_performance

logger = get_logger(prefix="[AggregationEngine]")

UNKNOWN_GENDER = "Unknown"
GENDER_COLORS: Dict[str, str] = {"Male": "#0088FE", "Female": "#FF8042"}
DEFAULT_GENDER_COLOR = "#FFBB28"

# (label, inclusive upper bound)
AGE_RANGES = [
    ("0-10", 10),
    ("11-20", 20),
    ("21-30", 30),
    ("31-40", 40),
    ("41-50", 50),
    ("51-60", 60),
]
OLDEST_AGE_LABEL = "61+"
AGE_LABELS = [label for label, _ in AGE_RANGES] + [OLDEST_AGE_LABEL]

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so mixed records can be compared."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def age_bucket(age: int) -> str:
    for label, upper in AGE_RANGES:
        if age <= upper:
            return label
    return OLDEST_AGE_LABEL


def gender_distribution(records: Iterable[PersonRecord]) -> List[GenderBucket]:
    """Count records per gender; blank genders land in `Unknown`."""
    counts = Counter((record.gender or "").strip() or UNKNOWN_GENDER for record in records)
    return [
        GenderBucket(name=name, value=value, color=GENDER_COLORS.get(name, DEFAULT_GENDER_COLOR))
        for name, value in counts.items()
    ]


def age_distribution(records: Iterable[PersonRecord], current_year: Optional[int] = None) -> List[AgeBucket]:
    """Bucket records by calendar-year age. Records without a birth date are skipped."""
    year = current_year or utc_now().year
    counts = dict.fromkeys(AGE_LABELS, 0)
    for record in records:
        if record.birthDate is None:
            continue
        counts[age_bucket(year - record.birthDate.year)] += 1
    return [AgeBucket(name=label, count=count) for label, count in counts.items()]


def monthly_trend(records: Iterable[PersonRecord]) -> List[MonthlyBucket]:
    """Registrations per calendar month, all twelve months present."""
    counts = dict.fromkeys(MONTH_LABELS, 0)
    for record in records:
        if record.registrationDate is None:
            continue
        counts[MONTH_LABELS[as_utc(record.registrationDate).month - 1]] += 1
    return [MonthlyBucket(name=label, newResidents=count) for label, count in counts.items()]


def recent_registrations(records: Iterable[PersonRecord], n: int = 5) -> List[RecentRegistration]:
    """The `n` most recently registered records, newest first."""
    dated = [record for record in records if record.registrationDate is not None]
    dated.sort(key=lambda record: as_utc(record.registrationDate), reverse=True)
    return [
        RecentRegistration(
            id=record.id,
            name=record.full_name,
            date=record.registrationDate,
            type=getattr(record, "type", None) or RecordType.RESIDENT.value,
        )
        for record in dated[:n]
    ]


def _parse_counter(value: Optional[str]) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


class AggregationEngine:
    """Read-only statistics over the stored records."""

    def __init__(self, repository: RecordRepository, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.clock = clock

    async def total_counts(self) -> TotalCounts:
        """Lifetime creation counters. Deleting records does not lower them."""
        try:
            residents, family_heads = await self.repository.redis.mget(
                [RESIDENTS_COUNTER_KEY, FAMILY_HEADS_COUNTER_KEY]
            )
        except RedisError as e:
            logger.error("Failed to read record counters: %s", e)
            raise StoreError("Could not read record counters") from e
        return TotalCounts(totalResidents=_parse_counter(residents), totalFamilyHeads=_parse_counter(family_heads))

    async def live_counts(self) -> LiveCounts:
        residents = await self.repository.get_all_residents()
        family_heads = await self.repository.get_all_family_heads()
        return LiveCounts(activeResidents=len(residents), activeFamilyHeads=len(family_heads))

    async def everyone(self) -> List[PersonRecord]:
        """Residents followed by family heads."""
        residents = await self.repository.get_all_residents()
        family_heads = await self.repository.get_all_family_heads()
        return [*residents, *family_heads]

    async def gender_distribution(self) -> List[GenderBucket]:
        return gender_distribution(await self.everyone())

    async def age_distribution(self) -> List[AgeBucket]:
        return age_distribution(await self.everyone(), current_year=self.clock().year)

    async def monthly_trend(self) -> List[MonthlyBucket]:
        return monthly_trend(await self.everyone())

    async def recent_registrations(self, n: Optional[int] = None) -> List[RecentRegistration]:
        residents = await self.repository.get_all_residents()
        return recent_registrations(residents, n or settings.RECENT_REGISTRATIONS_LIMIT)

    @log_performance("dashboard_stats")
    async def dashboard_stats(self) -> DashboardStats:
        """Totals plus resident-only distributions for the dashboard landing page."""
        totals = await self.total_counts()
        residents = await self.repository.get_all_residents()
        family_heads = await self.repository.get_all_family_heads()

        stats = DashboardStats(
            totalResidents=totals.totalResidents,
            totalFamilyHeads=totals.totalFamilyHeads,
            activeResidents=len(residents),
            activeFamilyHeads=len(family_heads),
            genderData=gender_distribution(residents),
            ageData=age_distribution(residents, current_year=self.clock().year),
            monthlyRegistrations=monthly_trend(residents),
            recentRegistrations=recent_registrations(residents, settings.RECENT_REGISTRATIONS_LIMIT),
        )
        logger.debug(
            "Computed dashboard stats over %d residents and %d family heads", len(residents), len(family_heads)
        )
        return stats
