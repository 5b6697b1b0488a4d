"""
# Dashboard Models

Chart-ready shapes returned by the dashboard endpoints.

- **Gender**: `{name, value, color}` slices for a pie chart.
- **Age**: `{name, count}` bars over fixed age ranges.
- **Monthly**: `{name, newResidents}` points, January through December.
- **Recent**: `{id, name, date, type}` rows, newest first.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class GenderBucket(BaseModel):
    """One slice of the gender distribution."""

    name: str = Field(..., description="Gender label, 'Unknown' when blank")
    value: int = Field(..., ge=0)
    color: str = Field(..., description="Chart color")


class AgeBucket(BaseModel):
    """One age range of the age distribution."""

    name: str = Field(..., description="Age range label, e.g. '21-30'")
    count: int = Field(..., ge=0)


class MonthlyBucket(BaseModel):
    """Registrations within one calendar month."""

    name: str = Field(..., description="Three-letter month name")
    newResidents: int = Field(..., ge=0)


class RecentRegistration(BaseModel):
    """A recently registered person."""

    id: str
    name: str
    date: datetime
    type: str


class TotalCounts(BaseModel):
    """Lifetime creation counters. Deletions never reduce these."""

    totalResidents: int = 0
    totalFamilyHeads: int = 0


class LiveCounts(BaseModel):
    """Number of records currently stored."""

    activeResidents: int = 0
    activeFamilyHeads: int = 0


class DashboardStats(BaseModel):
    """Combined payload for `GET /dashboard/stats`."""

    totalResidents: int
    totalFamilyHeads: int
    activeResidents: int
    activeFamilyHeads: int
    genderData: List[GenderBucket]
    ageData: List[AgeBucket]
    monthlyRegistrations: List[MonthlyBucket]
    recentRegistrations: List[RecentRegistration]
