"""Shared fakes and fixtures for the Glocal Adaptation Engine tests."""

import copy

import pytest

from glocal_adaptation.interfaces.store import IRecordStore
from glocal_adaptation.interfaces.translation import ITranslationService
from glocal_adaptation.models.enums import TMMatchType
from glocal_adaptation.models.leverage import LeverageResult, TMStats, word_count
from glocal_adaptation.models.project import AdaptationProject
from glocal_adaptation.models.segment import ContentSegment
from glocal_adaptation.storage.database import DatabaseManager
from glocal_adaptation.storage.record_store import SqlRecordStore


class InMemoryStore(IRecordStore):
    """Dictionary-backed record store with failure injection."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failures = {}

    def fail(self, operation, table, times=1, error=None):
        """Make the next ``times`` calls of ``operation`` on ``table`` raise."""
        self.failures[(operation, table)] = [times, error or ConnectionError("store unavailable")]

    def _maybe_fail(self, operation, table):
        entry = self.failures.get((operation, table))
        if entry and entry[0] != 0:
            entry[0] -= 1
            raise entry[1]

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def upsert(self, table, record, conflict_key, ignore_duplicates=False):
        self.calls.append(("upsert", table, dict(record)))
        self._maybe_fail("upsert", table)
        rows = self.rows(table)
        for row in rows:
            if all(row.get(k) == record.get(k) for k in conflict_key):
                if not ignore_duplicates:
                    row.update(copy.deepcopy(dict(record)))
                return
        row = copy.deepcopy(dict(record))
        row.setdefault("id", f"{table}-{len(rows) + 1}")
        rows.append(row)

    def update(self, table, filters, patch):
        self.calls.append(("update", table, dict(patch)))
        self._maybe_fail("update", table)
        count = 0
        for row in self.rows(table):
            if all(row.get(k) == v for k, v in filters.items()):
                row.update(copy.deepcopy(dict(patch)))
                count += 1
        return count

    def select(self, table, filters=None, limit=None):
        self.calls.append(("select", table, dict(filters or {})))
        self._maybe_fail("select", table)
        found = [
            copy.deepcopy(row) for row in self.rows(table)
            if all(row.get(k) == v for k, v in (filters or {}).items())
        ]
        return found[:limit] if limit is not None else found

    def writes(self, table):
        return [c for c in self.calls if c[0] == "upsert" and c[1] == table]


class ScriptedTranslator(ITranslationService):
    """
    Translation service returning scripted results keyed by source text.

    A value may be a LeverageResult, a payload dict, or an exception to raise.
    Unscripted text is "translated" by upper-casing it with all words new.
    """

    def __init__(self, script=None):
        self.script = dict(script or {})
        self.requests = []
        self.analysis = {"analysis": {"summary": "ok"}}

    async def translate(self, request):
        self.requests.append(request)
        outcome = self.script.get(request.source_text)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            return copy.deepcopy(outcome)
        return LeverageResult(
            translated_text=request.source_text.upper(),
            tm_stats=TMStats.all_new(word_count(request.source_text)),
        )

    async def analyze(self, source_text, translated_text, context=None):
        if isinstance(self.analysis, Exception):
            raise self.analysis
        return self.analysis


class SleepRecorder:
    """Replacement for asyncio.sleep that records delays without waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def make_segments(project_id, texts, segment_type="body"):
    return [
        ContentSegment(
            id=f"seg-{i + 1}",
            project_id=project_id,
            source_text=text,
            segment_index=i,
            segment_type=segment_type,
        )
        for i, text in enumerate(texts)
    ]


def tm_entry(source_text, target_text, **overrides):
    segment_id = overrides.pop("segment_id", f"tm-{abs(hash(source_text)) % 10000}")
    entry = {
        "id": f"entry-{segment_id}",
        "segment_id": segment_id,
        "project_id": overrides.pop("project_id", "history-project"),
        "source_text": source_text,
        "target_text": target_text,
        "source_language": "en",
        "target_language": "de",
        "therapeutic_area": "cardiology",
        "match_type": TMMatchType.EXACT.value,
        "quality_score": 80,
        "confidence_level": 80,
        "usage_count": 0,
        "human_approval_status": "approved",
        "tm_metadata": {"segment_type": "body"},
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def translator():
    return ScriptedTranslator()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def project():
    return AdaptationProject(
        id="proj-1",
        brand_id="brand-1",
        project_name="Launch email",
        source_language="en",
        source_markets={"US"},
        target_markets={"DE"},
        target_languages={"de"},
        therapeutic_area="cardiology",
        indication="hypertension",
    )


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(database_url=f"sqlite:///{tmp_path / 'glocal.db'}")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def sql_store(db_manager):
    return SqlRecordStore(db_manager=db_manager)


@pytest.fixture
def fakes():
    """Expose the fake classes and helpers to test modules."""
    class Fakes:
        InMemoryStore = InMemoryStore
        ScriptedTranslator = ScriptedTranslator
        SleepRecorder = SleepRecorder
        make_segments = staticmethod(make_segments)
        tm_entry = staticmethod(tm_entry)
    return Fakes
