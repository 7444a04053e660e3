from datetime import datetime
from typing import Optional, Any, Dict, Literal, List
from pydantic import BaseModel, EmailStr, ConfigDict, Field

from .models import GROWTH_STAGES, PLANT_CONDITIONS, ROLES, SUBMISSION_STATUSES

REPORT_TYPES = ("summary", "detailed", "field_analysis")

# Literal[tuple] expands to the tuple's members
Role = Literal[ROLES]
SubmissionStatus = Literal[SUBMISSION_STATUSES]
ReportType = Literal[REPORT_TYPES]


def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Wrap a handler result in the ``{success, data, message}`` envelope."""
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body


class UserOut(BaseModel):
    id: str
    email: EmailStr
    name: Optional[str] = ""
    picture: Optional[str] = ""
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class UserPatch(BaseModel):
    name: Optional[str] = None
    picture: Optional[str] = None
    role: Optional[Role] = None


class GoogleTokenRequest(BaseModel):
    token: str = Field(min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class AuthResponse(BaseModel):
    user: UserOut
    access_token: str
    refresh_token: str
    expires_in: int


class Coordinates(BaseModel):
    latitude: float = 0.0
    longitude: float = 0.0


class FieldCreate(BaseModel):
    name: str = Field(min_length=1)
    location: str = Field(min_length=1)
    rice_variety: str = ""
    tentative_date: str = ""
    coordinates: Coordinates = Coordinates()
    area: float = 0.0


class FieldPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    rice_variety: Optional[str] = None
    tentative_date: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    area: Optional[float] = None


class FieldOut(BaseModel):
    id: str
    name: str
    location: str
    rice_variety: Optional[str] = ""
    tentative_date: Optional[str] = ""
    coordinates: Coordinates = Coordinates()
    area: Optional[float] = 0.0
    owner_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TraitMeasurements(BaseModel):
    culm_length: float = 0.0
    panicle_length: float = 0.0
    panicles_per_hill: int = 0
    hills_observed: int = 0


class SubmissionCreate(BaseModel):
    field_id: str = Field(min_length=1)
    date: datetime
    growth_stage: str = Field(min_length=1)
    plant_conditions: List[str] = []
    trait_measurements: TraitMeasurements = TraitMeasurements()
    notes: str = ""
    observer_name: str = Field(min_length=1)
    images: List[str] = []


class SubmissionPatch(BaseModel):
    """Client-writable submission fields; anything else in the body is dropped."""

    field_id: Optional[str] = Field(default=None, min_length=1)
    date: Optional[datetime] = None
    growth_stage: Optional[str] = Field(default=None, min_length=1)
    plant_conditions: Optional[List[str]] = None
    trait_measurements: Optional[TraitMeasurements] = None
    notes: Optional[str] = None
    observer_name: Optional[str] = Field(default=None, min_length=1)
    status: Optional[SubmissionStatus] = None


class StatusChange(BaseModel):
    status: SubmissionStatus


class SubmissionOut(BaseModel):
    id: str
    user_id: str
    field_id: str
    field: Optional[FieldOut] = None
    date: datetime
    growth_stage: str
    plant_conditions: List[str] = []
    trait_measurements: TraitMeasurements = TraitMeasurements()
    notes: Optional[str] = ""
    observer_name: Optional[str] = ""
    images: List[str] = []
    status: SubmissionStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SubmissionPage(BaseModel):
    submissions: List[SubmissionOut]
    page: int
    limit: int
    total: int


class ImageOut(BaseModel):
    filename: str
    url: str


class DashboardOut(BaseModel):
    total_submissions: int
    submissions_by_status: Dict[str, int]
    submissions_by_stage: Dict[str, int]
    recent_submissions: List[SubmissionOut]
    last_updated: datetime


class TrendsOut(BaseModel):
    daily_submissions: Dict[str, int]
    stage_progression: Dict[str, List[str]]
    period: Dict[str, Any]


class ReportOut(BaseModel):
    type: ReportType
    data: Dict[str, Any]
    generated_at: datetime


class VocabularyOut(BaseModel):
    """Values clients offer in their pickers; the API does not enforce stages or conditions."""

    growth_stages: List[str] = list(GROWTH_STAGES)
    plant_conditions: List[str] = list(PLANT_CONDITIONS)
    statuses: List[str] = list(SUBMISSION_STATUSES)
    roles: List[str] = list(ROLES)
    report_types: List[str] = list(REPORT_TYPES)
