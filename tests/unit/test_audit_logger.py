"""Unit tests for the Audit Logger."""

import csv
import io
import json
import uuid
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from glocal_adaptation.audit.audit_logger import AuditLogger
from glocal_adaptation.interfaces.audit import AuditEvent, AuditEventType


class MockSession:
    """Mock SQLAlchemy session for testing."""

    def __init__(self):
        self.added = []
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True

    def execute(self, query):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        return result


class MockDatabaseManager:
    """Mock DatabaseManager for testing."""

    def __init__(self):
        self._session = MockSession()

    def get_session(self):
        return MockContextManager(self._session)

    def close(self):
        pass


class MockContextManager:
    """Mock context manager for session."""

    def __init__(self, session):
        self._session = session

    def __enter__(self):
        return self._session

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._session.commit()
        else:
            self._session.rollback()
        self._session.close()
        return False


@pytest.fixture
def mock_db():
    return MockDatabaseManager()


class TestConvenienceLogging:
    """Tests for the event helpers of AuditLogger."""

    def test_log_event_adds_to_session(self, mock_db):
        """Test that log_event adds an event to the database session."""
        logger = AuditLogger(db_manager=mock_db)

        logger.log_event(AuditEvent(
            id=str(uuid.uuid4()),
            event_type=AuditEventType.SEGMENT_EDITED,
            timestamp=datetime.utcnow(),
            project_id="proj-1",
            segment_id="seg-1",
        ))

        assert len(mock_db._session.added) == 1
        assert mock_db._session.committed

    def test_log_segment_translated(self, mock_db):
        """Test that translation events carry method, confidence and leverage."""
        logger = AuditLogger(db_manager=mock_db)

        logger.log_segment_translated("proj-1", "seg-1", "tm", 82, 60, review_flag_count=1)

        added = mock_db._session.added[0]
        assert added.event_type == AuditEventType.SEGMENT_TRANSLATED.value
        assert added.segment_id == "seg-1"
        assert added.details == {
            "method": "tm",
            "confidence": 82,
            "leverage_percentage": 60,
            "review_flag_count": 1,
        }
        assert added.score == 82.0

    def test_log_batch_completed(self, mock_db):
        logger = AuditLogger(db_manager=mock_db)
        logger.log_batch_completed("proj-1", total=5, succeeded=4)

        added = mock_db._session.added[0]
        assert added.event_type == AuditEventType.BATCH_COMPLETED.value
        assert added.details["failed"] == 1
        assert added.score is None

    def test_log_phase_completed(self, mock_db):
        logger = AuditLogger(db_manager=mock_db)
        logger.log_phase_completed("proj-1", 3, 43, user_id="editor-1")

        added = mock_db._session.added[0]
        assert added.user_id == "editor-1"
        assert added.details == {"phase_number": 3, "overall_progress": 43}

    def test_log_tm_approved(self, mock_db):
        logger = AuditLogger(db_manager=mock_db)
        logger.log_tm_approved("proj-1", "seg-1", "reviewer-1", "approve_fuzzy", True)

        added = mock_db._session.added[0]
        assert added.event_type == AuditEventType.TM_APPROVED.value
        assert added.user_id == "reviewer-1"
        assert added.details == {"action": "approve_fuzzy", "updated": True}

    def test_log_save_failed(self, mock_db):
        logger = AuditLogger(db_manager=mock_db)
        logger.log_save_failed("proj-1", 3, "connection refused")

        added = mock_db._session.added[0]
        assert added.event_type == AuditEventType.SAVE_FAILED.value
        assert added.details["attempts"] == 3

    def test_unsupported_export_format(self, mock_db):
        logger = AuditLogger(db_manager=mock_db)
        with pytest.raises(ValueError, match="Unsupported export format"):
            logger.export_log("proj-1", format="xml")


class TestAuditQueries:
    """Tests against a real SQLite database."""

    @pytest.fixture
    def audit(self, db_manager):
        return AuditLogger(db_manager=db_manager)

    def test_events_are_filtered_and_newest_first(self, audit):
        base = datetime(2024, 5, 1, 12, 0, 0)
        for offset, (event_type, project_id) in enumerate([
            (AuditEventType.SEGMENT_EDITED, "proj-1"),
            (AuditEventType.PHASE_COMPLETED, "proj-1"),
            (AuditEventType.SEGMENT_EDITED, "proj-2"),
        ]):
            audit.log_event(AuditEvent(
                id=str(uuid.uuid4()),
                event_type=event_type,
                timestamp=base + timedelta(minutes=offset),
                project_id=project_id,
            ))

        events = audit.get_events(project_id="proj-1")
        assert [e.event_type for e in events] == [
            AuditEventType.PHASE_COMPLETED,
            AuditEventType.SEGMENT_EDITED,
        ]

        edited = audit.get_events(event_type=AuditEventType.SEGMENT_EDITED)
        assert {e.project_id for e in edited} == {"proj-1", "proj-2"}

        windowed = audit.get_events(start_time=base + timedelta(minutes=1), end_time=base + timedelta(minutes=1))
        assert len(windowed) == 1

    def test_json_export_summarizes_translations(self, audit):
        audit.log_segment_translated("proj-1", "seg-1", "tm", 90, 80)
        audit.log_segment_translated("proj-1", "seg-2", "ai", 70, 20)
        audit.log_phase_completed("proj-1", 1, 14)
        audit.log_segment_translated("proj-2", "seg-9", "ai", 70, 0)

        exported = json.loads(audit.export_log("proj-1", format="json"))

        assert exported["project_id"] == "proj-1"
        assert exported["event_count"] == 3
        assert sorted(t["segment_id"] for t in exported["translations"]) == ["seg-1", "seg-2"]
        assert exported["leverage_summary"] == {"translated_segments": 2, "average_leverage": 50}

    def test_csv_export(self, audit):
        audit.log_segment_edited("proj-1", "seg-1", "editor-1")

        rows = list(csv.reader(io.StringIO(audit.export_log("proj-1", format="csv"))))

        assert rows[0][:3] == ["id", "event_type", "timestamp"]
        assert rows[1][1] == "segment_edited"
        assert rows[1][5] == "editor-1"
