from typing import ClassVar, Literal

from pydantic import Field

from .base import CamelModel, PartialUpdate

ActivityCategory = Literal["Health", "Education", "Environment", "Social Welfare"]
AchievementLevel = Literal["State Level", "National Level", "Regional Level", "District Level"]
AchievementCategory = Literal["award", "recognition", "milestone"]
TeamRole = Literal["Leader", "Program Officer"]
BloodUrgency = Literal["Low", "Medium", "High", "Critical"]
BloodRequestStatus = Literal["Pending", "Fulfilled", "Cancelled"]


# Team members

class TeamMemberCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    position: str = Field(..., min_length=1, max_length=200)
    role: TeamRole
    email: str = ""
    phone: str = ""
    image: str = ""


class TeamMemberUpdate(PartialUpdate):
    name: str | None = Field(None, min_length=1, max_length=200)
    position: str | None = Field(None, min_length=1, max_length=200)
    role: TeamRole | None = None
    email: str | None = None
    phone: str | None = None
    image: str | None = None


class TeamMember(TeamMemberCreate):
    id: str


# Activities

class ActivityCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=300)
    date: str = Field(..., min_length=1)
    location: str = ""
    participants: int = Field(default=0, ge=0)
    description: str = ""
    category: ActivityCategory
    month: str = ""
    year: str = ""
    images: list[str] | None = None


class ActivityUpdate(PartialUpdate):
    nullable_fields: ClassVar[frozenset[str]] = frozenset({"images"})

    title: str | None = Field(None, min_length=1, max_length=300)
    date: str | None = Field(None, min_length=1)
    location: str | None = None
    participants: int | None = Field(None, ge=0)
    description: str | None = None
    category: ActivityCategory | None = None
    month: str | None = None
    year: str | None = None
    images: list[str] | None = None


class Activity(ActivityCreate):
    id: str


# Achievements

class AchievementCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=300)
    year: str = Field(..., min_length=1)
    level: AchievementLevel
    description: str = ""
    category: AchievementCategory
    icon: str = ""
    color: str = ""


class AchievementUpdate(PartialUpdate):
    title: str | None = Field(None, min_length=1, max_length=300)
    year: str | None = Field(None, min_length=1)
    level: AchievementLevel | None = None
    description: str | None = None
    category: AchievementCategory | None = None
    icon: str | None = None
    color: str | None = None


class Achievement(AchievementCreate):
    id: str


# Gallery

class GalleryImageCreate(CamelModel):
    src: str = Field(..., min_length=1)
    alt: str = ""
    title: str = Field(..., min_length=1, max_length=300)
    category: ActivityCategory
    date: str = Field(..., min_length=1)
    activity_id: str | None = None


class GalleryImageUpdate(PartialUpdate):
    nullable_fields: ClassVar[frozenset[str]] = frozenset({"activity_id"})

    src: str | None = Field(None, min_length=1)
    alt: str | None = None
    title: str | None = Field(None, min_length=1, max_length=300)
    category: ActivityCategory | None = None
    date: str | None = Field(None, min_length=1)
    activity_id: str | None = None


class GalleryImage(GalleryImageCreate):
    id: str


# Monthly reports

class MonthlyReportCreate(CamelModel):
    month: str = Field(..., min_length=1)
    year: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=300)
    pdf_url: str = ""
    summary: str = ""
    total_activities: int = Field(default=0, ge=0)
    total_participants: int = Field(default=0, ge=0)
    total_volunteers: int = Field(default=0, ge=0)
    budget_utilized: str = ""
    upload_date: str = ""
    file_size: str = ""


class MonthlyReportUpdate(PartialUpdate):
    month: str | None = Field(None, min_length=1)
    year: str | None = Field(None, min_length=1)
    title: str | None = Field(None, min_length=1, max_length=300)
    pdf_url: str | None = None
    summary: str | None = None
    total_activities: int | None = Field(None, ge=0)
    total_participants: int | None = Field(None, ge=0)
    total_volunteers: int | None = Field(None, ge=0)
    budget_utilized: str | None = None
    upload_date: str | None = None
    file_size: str | None = None


class MonthlyReport(MonthlyReportCreate):
    id: str


# Blood requests

class BloodRequestCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=40)
    blood_group: str = Field(..., min_length=1, max_length=10)
    hospital: str = Field(..., min_length=1, max_length=300)
    urgency: BloodUrgency
    description: str | None = None
    location: str = ""
    contact_person: str | None = None
    contact_phone: str | None = None


class BloodRequestUpdate(PartialUpdate):
    nullable_fields: ClassVar[frozenset[str]] = frozenset({"description", "contact_person", "contact_phone"})

    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, min_length=1, max_length=40)
    blood_group: str | None = Field(None, min_length=1, max_length=10)
    hospital: str | None = Field(None, min_length=1, max_length=300)
    urgency: BloodUrgency | None = None
    description: str | None = None
    location: str | None = None
    status: BloodRequestStatus | None = None
    contact_person: str | None = None
    contact_phone: str | None = None


class BloodRequest(BloodRequestCreate):
    id: str
    status: BloodRequestStatus = "Pending"
    created_at: str
    updated_at: str


class DashboardStats(CamelModel):
    team_members: int
    activities: int
    achievements: int
    gallery_images: int
    reports: int
