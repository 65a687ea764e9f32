import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

from src.auth.schemas import Role

# Define naming conventions for constraints and indexes
# https://alembic.sqlalchemy.org/en/latest/naming.html
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)
Base = declarative_base(metadata=metadata)


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the auth provider's user record
    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(Enum(Role, name="user_role", values_callable=lambda e: [m.value for m in e]), nullable=False, default=Role.RESPONDENT)
    coach_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    # Trainer or partner overseeing this coach (or this client directly)
    trainer_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    assessments = relationship("Assessment", back_populates="user", cascade="all, delete-orphan")


class HarmonicStateRecord(Base):
    __tablename__ = "harmonic_states"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=False)
    description = Column(Text, nullable=False)
    coaching_tips = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    questions = relationship("QuestionRecord", back_populates="harmonic_state")


class QuestionRecord(Base):
    __tablename__ = "questions"

    id = Column(String(64), primary_key=True)
    question_text = Column(Text, nullable=False)
    harmonic_state_id = Column(String(64), ForeignKey("harmonic_states.id", ondelete="RESTRICT"), nullable=False)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    harmonic_state = relationship("HarmonicStateRecord", back_populates="questions")


class Assessment(Base):
    __tablename__ = "assessments"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    completed = Column(Boolean, nullable=False, default=False)
    dominant_state = Column(String(64), ForeignKey("harmonic_states.id", ondelete="RESTRICT"), nullable=True)
    results = Column(JSON, nullable=True)  # {harmonic_state_id: total score}
    question_order = Column(JSON, nullable=True)  # shuffled question ids, fixed per assessment
    current_question_index = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user = relationship("Profile", back_populates="assessments")
    responses = relationship("ResponseRecord", back_populates="assessment", cascade="all, delete-orphan")


class ResponseRecord(Base):
    __tablename__ = "responses"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    assessment_id = Column(String(36), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(String(64), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    score = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    assessment = relationship("Assessment", back_populates="responses")

    __table_args__ = (UniqueConstraint("assessment_id", "question_id", name="uq_responses_assessment_question"),)
