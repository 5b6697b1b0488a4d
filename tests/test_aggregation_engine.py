from datetime import date, datetime, timedelta, timezone

import pytest

from barangay_registry.models.record_models import FamilyHead, Resident
from barangay_registry.services.aggregation_engine import (
    AGE_LABELS,
    AggregationEngine,
    MONTH_LABELS,
    age_bucket,
    age_distribution,
    gender_distribution,
    monthly_trend,
    recent_registrations,
)
from barangay_registry.services.record_repository import RecordRepository

from conftest import FIXED_NOW


def resident(record_id="R-2024001", gender="Male", birth_year=1990, registered=FIXED_NOW, **extra):
    return Resident(
        id=record_id,
        firstName="Test",
        lastName=record_id,
        gender=gender,
        birthDate=date(birth_year, 1, 1) if birth_year else None,
        address="Somewhere",
        registrationDate=registered,
        **extra,
    )


class StepClock:
    """Returns successive timestamps one minute apart."""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        value = self.current
        self.current += timedelta(minutes=1)
        return value


@pytest.mark.parametrize(
    "age,label",
    [(0, "0-10"), (10, "0-10"), (11, "11-20"), (30, "21-30"), (60, "51-60"), (61, "61+"), (200, "61+"), (-3, "0-10")],
)
def test_age_bucket_edges(age, label):
    assert age_bucket(age) == label


def test_gender_distribution_labels_blank_as_unknown():
    records = [resident(gender="Male"), resident(gender="Female"), resident(gender="Female"), resident(gender="  ")]

    buckets = {b.name: b for b in gender_distribution(records)}

    assert buckets["Female"].value == 2
    assert buckets["Male"].value == 1
    assert buckets["Unknown"].value == 1
    assert buckets["Male"].color == "#0088FE"
    assert buckets["Female"].color == "#FF8042"
    assert buckets["Unknown"].color == "#FFBB28"
    assert sum(b.value for b in buckets.values()) == len(records)


def test_gender_distribution_empty():
    assert gender_distribution([]) == []


def test_age_distribution_has_every_bucket():
    records = [
        resident(birth_year=2014),
        resident(birth_year=2013),
        resident(birth_year=1950),
        resident(birth_year=None),
    ]

    buckets = age_distribution(records, current_year=2024)

    assert [b.name for b in buckets] == AGE_LABELS
    counts = {b.name: b.count for b in buckets}
    assert counts["0-10"] == 1
    assert counts["11-20"] == 1
    assert counts["61+"] == 1
    assert sum(counts.values()) == 3


def test_age_distribution_uses_calendar_year_only():
    # Born on the last day of the year: still counted as 10 in January of year + 10.
    late = resident(birth_year=None)
    late.birthDate = date(2014, 12, 31)

    assert {b.name: b.count for b in age_distribution([late], current_year=2024)}["0-10"] == 1


def test_monthly_trend_covers_all_months():
    records = [
        resident(registered=datetime(2024, 1, 5, tzinfo=timezone.utc)),
        resident(registered=datetime(2023, 1, 20, tzinfo=timezone.utc)),
        resident(registered=datetime(2024, 12, 31, 23, 0, tzinfo=timezone.utc)),
    ]

    buckets = monthly_trend(records)

    assert [b.name for b in buckets] == MONTH_LABELS
    counts = {b.name: b.newResidents for b in buckets}
    assert counts["Jan"] == 2
    assert counts["Dec"] == 1
    assert sum(counts.values()) == 3


def test_monthly_trend_groups_by_utc_month():
    manila = timezone(timedelta(hours=8))
    record = resident(registered=datetime(2024, 3, 1, 2, 0, tzinfo=manila))

    counts = {b.name: b.newResidents for b in monthly_trend([record])}

    assert counts["Feb"] == 1
    assert counts["Mar"] == 0


def test_recent_registrations_newest_first():
    records = [
        resident(record_id=f"R-202400{i}", registered=FIXED_NOW - timedelta(days=i))
        for i in range(1, 8)
    ]

    recent = recent_registrations(records, n=5)

    assert [r.id for r in recent] == [f"R-202400{i}" for i in range(1, 6)]
    assert recent[0].name == "Test R-2024001"
    assert recent[0].type == "Resident"


def test_recent_registrations_with_fewer_records():
    assert len(recent_registrations([resident()], n=5)) == 1
    assert recent_registrations([], n=5) == []


@pytest.mark.asyncio
async def test_total_counts_are_lifetime(engine, repository, person_fields):
    head = await repository.create_family_head(person_fields())
    first = await repository.create_resident(person_fields())
    await repository.create_resident(person_fields())
    await repository.delete_resident(first.id)
    await repository.delete_family_head(head.id)

    totals = await engine.total_counts()
    live = await engine.live_counts()

    assert totals.totalResidents == 2
    assert totals.totalFamilyHeads == 1
    assert live.activeResidents == 1
    assert live.activeFamilyHeads == 0


@pytest.mark.asyncio
async def test_total_counts_before_any_record(engine):
    totals = await engine.total_counts()
    assert (totals.totalResidents, totals.totalFamilyHeads) == (0, 0)


@pytest.mark.asyncio
async def test_distributions_include_family_heads(engine, repository, person_fields):
    await repository.create_family_head(person_fields(gender="Female", birthDate="1950-02-02"))
    await repository.create_resident(person_fields(gender="Male", birthDate="2020-02-02"))

    genders = {b.name: b.value for b in await engine.gender_distribution()}
    ages = {b.name: b.count for b in await engine.age_distribution()}
    months = {b.name: b.newResidents for b in await engine.monthly_trend()}

    assert genders == {"Male": 1, "Female": 1}
    assert ages["0-10"] == 1
    assert ages["61+"] == 1
    assert months["Mar"] == 2


@pytest.mark.asyncio
async def test_recent_registrations_exclude_family_heads(redis_client, person_fields):
    clock = StepClock(FIXED_NOW)
    repository = RecordRepository(redis_client, clock=clock)

    engine = AggregationEngine(repository, clock=clock)
    for name in ("Ana", "Ben", "Carla"):
        await repository.create_resident(person_fields(firstName=name))
    await repository.create_family_head(person_fields(firstName="Head"))

    recent = await engine.recent_registrations(2)

    assert [r.name for r in recent] == ["Carla Santos", "Ben Santos"]


@pytest.mark.asyncio
async def test_dashboard_stats_counts_residents_only(engine, repository, person_fields):
    await repository.create_family_head(person_fields(gender="Female"))
    await repository.create_resident(person_fields(gender="Male"))

    stats = await engine.dashboard_stats()

    assert stats.totalResidents == 1
    assert stats.totalFamilyHeads == 1
    assert stats.activeFamilyHeads == 1
    assert [(b.name, b.value) for b in stats.genderData] == [("Male", 1)]
    assert len(stats.ageData) == len(AGE_LABELS)
    assert len(stats.monthlyRegistrations) == 12
    assert [r.type for r in stats.recentRegistrations] == ["Resident"]


def test_family_head_recent_entry_type():
    head = FamilyHead(id="F-2024001", firstName="A", lastName="B", registrationDate=FIXED_NOW)
    assert recent_registrations([head])[0].type == "Family Head"
