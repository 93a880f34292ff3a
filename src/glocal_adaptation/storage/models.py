"""SQLAlchemy models for the Glocal Adaptation Engine."""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


def _new_id() -> str:
    return str(uuid.uuid4())


class JSONType(TypeDecorator):
    """Platform-independent JSON type.

    Uses JSONB for PostgreSQL and JSON for other databases (like SQLite).
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(JSON())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class AdaptationProjectModel(Base):
    """Adaptation project table model."""
    __tablename__ = "glocal_adaptation_projects"

    id = Column(String(64), primary_key=True, default=_new_id)
    brand_id = Column(String(64), nullable=False)
    project_name = Column(String(255))
    source_language = Column(String(16), default="en")
    source_markets = Column(JSONType)
    target_markets = Column(JSONType)
    target_languages = Column(JSONType)
    therapeutic_area = Column(String(128))
    indication = Column(String(255))
    project_metadata = Column(JSONType)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_glocal_projects_brand_id", "brand_id"),
    )


class ContentSegmentModel(Base):
    """Content segment table model, keyed by (project_id, id)."""
    __tablename__ = "glocal_content_segments"

    project_id = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)
    segment_index = Column(Integer, default=0)
    segment_type = Column(String(64), default="body")
    segment_name = Column(String(255))
    source_text = Column(Text, nullable=False)
    translated_text = Column(Text)
    complexity_level = Column(String(16), default="medium")
    cultural_sensitivity_level = Column(String(16), default="medium")
    regulatory_risk_level = Column(String(16), default="medium")
    translation_status = Column(String(16), default="pending")
    translation_method = Column(String(16))
    tm_match_type = Column(String(16))
    confidence = Column(Integer, default=0)
    tm_match_percentage = Column(Integer)
    segment_metadata = Column(JSONType)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_glocal_segments_status", "project_id", "translation_status"),
    )


class TranslationMemoryModel(Base):
    """Translation memory entry, unique per (segment_id, project_id)."""
    __tablename__ = "glocal_tm_intelligence"

    id = Column(String(64), primary_key=True, default=_new_id)
    segment_id = Column(String(64), nullable=False)
    project_id = Column(String(64), nullable=False)
    brand_id = Column(String(64))
    source_text = Column(Text, nullable=False)
    target_text = Column(Text, nullable=False)
    source_language = Column(String(16), nullable=False)
    target_language = Column(String(16), nullable=False)
    therapeutic_area = Column(String(128))
    match_type = Column(String(16), default="exact")
    match_score = Column(Integer, default=0)
    quality_score = Column(Integer, default=0)
    confidence_level = Column(Integer, default=0)
    exact_match_words = Column(Integer, default=0)
    fuzzy_match_words = Column(Integer, default=0)
    new_words = Column(Integer, default=0)
    total_words = Column(Integer, default=0)
    leverage_percentage = Column(Integer, default=0)
    usage_count = Column(Integer, default=0)
    last_used_at = Column(DateTime(timezone=True))
    human_approval_status = Column(String(16), default="pending")
    reviewed_by = Column(String(64))
    reviewed_at = Column(DateTime(timezone=True))
    tm_metadata = Column(JSONType)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("segment_id", "project_id", name="uq_glocal_tm_segment_project"),
        Index("idx_glocal_tm_language_pair", "source_language", "target_language"),
    )


class AITranslationModel(Base):
    """AI translation output record used for audit and quality review."""
    __tablename__ = "glocal_ai_translations"

    project_id = Column(String(64), primary_key=True)
    segment_id = Column(String(64), primary_key=True)
    source_text = Column(Text, nullable=False)
    translated_text = Column(Text, nullable=False)
    source_language = Column(String(16))
    target_language = Column(String(16))
    confidence = Column(Integer, default=0)
    review_status = Column(String(16), default="pending")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class WorkflowSnapshotModel(Base):
    """Full workflow snapshot written by the autosave controller."""
    __tablename__ = "glocal_workflows"

    project_id = Column(String(64), primary_key=True)
    current_phase = Column(Integer, default=1)
    phases_completed = Column(JSONType)
    phase_data = Column(JSONType)
    closing_report = Column(JSONType)
    segments = Column(JSONType)
    overall_progress = Column(Integer, default=0)
    source_language = Column(String(16))
    target_language = Column(String(16))
    therapeutic_area = Column(String(128))
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class InitializationMarkerModel(Base):
    """One-time initialization markers."""
    __tablename__ = "glocal_initialization_markers"

    key = Column(String(255), primary_key=True)
    initialized_at = Column(DateTime(timezone=True), default=datetime.utcnow)


class ReferenceDataModel(Base):
    """Inert per-brand reference data (regulatory templates)."""
    __tablename__ = "glocal_reference_data"

    id = Column(String(64), primary_key=True, default=_new_id)
    brand_id = Column(String(64), nullable=False)
    kind = Column(String(64), nullable=False)
    market = Column(String(64))
    payload = Column(JSONType)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    __table_args__ = (
        Index("idx_glocal_reference_brand_kind", "brand_id", "kind"),
    )


class AuditEventModel(Base):
    """Audit events table model."""
    __tablename__ = "audit_events"

    id = Column(String(64), primary_key=True, default=_new_id)
    event_type = Column(String(50), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=datetime.utcnow)
    project_id = Column(String(64))
    segment_id = Column(String(64))
    user_id = Column(String(100))
    details = Column(JSONType, nullable=False, default=dict)
    score = Column(Float)

    __table_args__ = (
        Index("idx_audit_events_project_id", "project_id"),
        Index("idx_audit_events_event_type", "event_type"),
        Index("idx_audit_events_timestamp", "timestamp"),
    )
