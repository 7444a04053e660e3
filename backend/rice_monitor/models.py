import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, JSON, Float, Text, Index

from .database import Base

ROLES = ("admin", "researcher", "observer")
SUBMISSION_STATUSES = ("submitted", "under_review", "approved", "rejected")
GROWTH_STAGES = (
    "Seedling",
    "Tillering",
    "Panicle Initiation",
    "Flowering",
    "Milk Stage",
    "Dough Stage",
    "Maturity",
    "Harvested",
)
PLANT_CONDITIONS = (
    "Healthy",
    "Unhealthy",
    "Signs of pest infestation",
    "Signs of nutrient deficiency",
    "Water stress (drought or flood)",
    "Lodging (bent/broken stems)",
    "Weed infestation",
    "Disease symptoms",
    "Other",
)


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, default="")
    picture = Column(String, default="")
    role = Column(String, default="observer", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    last_login_at = Column(DateTime(timezone=True), default=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Field(Base):
    __tablename__ = "fields"
    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    location = Column(String, nullable=False)
    rice_variety = Column(String, default="")
    tentative_date = Column(String, default="")
    coordinates = Column(JSON, default=lambda: {"latitude": 0.0, "longitude": 0.0})
    area = Column(Float, default=0.0)
    owner_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class Submission(Base):
    __tablename__ = "submissions"
    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), nullable=False, index=True)
    # not a foreign key: submissions outlive the field they were filed against
    field_id = Column(String(36), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False)
    growth_stage = Column(String, nullable=False)
    plant_conditions = Column(JSON, default=list)
    trait_measurements = Column(JSON, default=dict)
    notes = Column(Text, default="")
    observer_name = Column(String, default="")
    images = Column(JSON, default=list)
    status = Column(String, default="submitted", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (Index("ix_submissions_user_created", "user_id", "created_at"),)
