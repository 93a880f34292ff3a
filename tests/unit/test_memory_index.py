"""Unit tests for the translation memory index."""

import pytest

from glocal_adaptation.config.models import MatchingSettings
from glocal_adaptation.models.enums import TMMatchType, TranslationMethod
from glocal_adaptation.models.segment import ContentSegment
from glocal_adaptation.translation.memory_index import (
    TM_TABLE,
    TranslationMemoryIndex,
    classify_match,
    cost_savings,
    levenshtein_distance,
    similarity,
)


WARNING = "Keep out of reach of children."


class TestScoring:
    """Tests for similarity scoring and classification."""

    def test_levenshtein_distance(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_similarity(self):
        assert similarity(WARNING, WARNING) == 100
        assert similarity(WARNING, WARNING.upper()) == 100
        assert similarity(WARNING, "Keep out of reach of children!") == 97
        assert similarity(WARNING, "Keep out of reach of childrXX.") == 93
        assert similarity(WARNING, "Keep out of reach of xxxxxxxx.") == 73
        assert similarity("", "") == 100

    @pytest.mark.parametrize("score,expected", [
        (100, TMMatchType.EXACT),
        (95, TMMatchType.EXACT),
        (94, TMMatchType.FUZZY),
        (80, TMMatchType.FUZZY),
        (79, TMMatchType.CONTEXT),
        (70, TMMatchType.CONTEXT),
        (69, TMMatchType.TERMINOLOGY),
    ])
    def test_classify_match(self, score, expected):
        assert classify_match(score) == expected

    @pytest.mark.parametrize("score,expected", [
        (100, 1.5),
        (90, 1.125),
        (80, 0.75),
        (72, 0.375),
        (0, 0.0),
    ])
    def test_cost_savings(self, score, expected):
        assert cost_savings(score, 10) == pytest.approx(expected)


@pytest.fixture
def index(store):
    return TranslationMemoryIndex(store)


class TestFindMatches:
    """Tests for candidate lookup."""

    def test_scores_and_filters_candidates(self, fakes, store, index):
        store.rows(TM_TABLE).extend([
            fakes.tm_entry(WARNING, "Für Kinder unzugänglich aufbewahren.", segment_id="a"),
            fakes.tm_entry("Keep out of reach of xxxxxxxx.", "x", segment_id="b"),
            fakes.tm_entry("Keep out of xxxxxxxxxxxxxxxxxx", "y", segment_id="c"),
            fakes.tm_entry(WARNING, "Tenir hors de portée.", segment_id="d", target_language="fr"),
        ])

        matches = index.find_matches(WARNING, "en", "de")

        assert [(m.id, m.match_score) for m in matches] == [("entry-a", 100), ("entry-b", 73)]
        assert matches[0].match_type == TMMatchType.EXACT
        assert matches[1].match_type == TMMatchType.CONTEXT

    def test_rejected_entries_are_skipped(self, fakes, store, index):
        store.rows(TM_TABLE).append(
            fakes.tm_entry(WARNING, "x", segment_id="a", human_approval_status="rejected")
        )
        assert index.find_matches(WARNING, "en", "de") == []

    def test_same_segment_type_is_boosted(self, fakes, store, index):
        store.rows(TM_TABLE).append(fakes.tm_entry(
            "Keep out of reach of xxxxxxxx.", "x", segment_id="a",
            tm_metadata={"segment_type": "headline"},
        ))

        plain = index.find_matches(WARNING, "en", "de", segment_type="body")
        boosted = index.find_matches(WARNING, "en", "de", segment_type="headline")

        assert plain[0].match_score == 73
        assert boosted[0].match_score == 83
        assert boosted[0].match_type == TMMatchType.FUZZY

    def test_boost_is_capped(self, fakes, store, index):
        store.rows(TM_TABLE).append(fakes.tm_entry(WARNING, "x", segment_id="a"))
        assert index.find_matches(WARNING, "en", "de", segment_type="body")[0].match_score == 100

    def test_ranked_by_match_and_quality(self, fakes, store, index):
        store.rows(TM_TABLE).extend([
            fakes.tm_entry("Keep out of reach of children!", "x", segment_id="a", quality_score=0),
            fakes.tm_entry("Keep out of reach of childrXX.", "y", segment_id="b", quality_score=100),
        ])

        matches = index.find_matches(WARNING, "en", "de")

        assert [m.id for m in matches] == ["entry-b", "entry-a"]

    def test_domain_scopes_candidates(self, fakes, store, index):
        store.rows(TM_TABLE).append(fakes.tm_entry(WARNING, "x", segment_id="a", therapeutic_area="oncology"))
        assert index.find_matches(WARNING, "en", "de", domain_context="cardiology") == []
        assert len(index.find_matches(WARNING, "en", "de", domain_context="oncology")) == 1

    def test_candidate_limit(self, fakes, store):
        store.rows(TM_TABLE).extend(
            fakes.tm_entry(WARNING, "x", segment_id=f"s{i}") for i in range(5)
        )
        index = TranslationMemoryIndex(store, MatchingSettings(max_candidates=2))
        assert len(index.find_matches(WARNING, "en", "de")) == 2


class TestSuggestions:
    """Tests for per-segment suggestions and analytics."""

    def test_suggest_reasoning(self, fakes, store, index):
        store.rows(TM_TABLE).append(fakes.tm_entry(
            WARNING, "x", segment_id="a", quality_score=95, usage_count=6,
        ))
        segments = fakes.make_segments("proj-1", [WARNING, "Brand new headline text"])

        found, missing = index.suggest(segments, "en", "de", "cardiology")

        assert found.best_match.id == "entry-a"
        assert found.leverage_score == 100
        assert found.cost_savings == pytest.approx(6 * 0.15)
        assert found.reasoning == [
            "Exact or near-exact match found",
            "Excellent historical quality rating",
            "Frequently used translation (6 times)",
            "Therapeutic area match: cardiology",
        ]
        assert missing.best_match is None
        assert missing.cost_savings == 0
        assert missing.reasoning == ["No TM matches found - will require new translation"]

    def test_analytics(self, fakes, store, index):
        store.rows(TM_TABLE).extend([
            fakes.tm_entry("a", "x", segment_id="1", project_id="proj-1", match_type="exact", quality_score=90),
            fakes.tm_entry("b", "x", segment_id="2", project_id="proj-1", match_type="fuzzy", quality_score=70,
                           human_approval_status="pending"),
            fakes.tm_entry("c", "x", segment_id="3", project_id="other"),
        ])

        analytics = index.analytics("proj-1")

        assert analytics.total_entries == 2
        assert analytics.exact_matches == 1
        assert analytics.fuzzy_matches == 1
        assert analytics.approved_entries == 1
        assert analytics.average_quality == 80
        assert analytics.leverage_rate == pytest.approx(85.0)

    def test_analytics_of_empty_project(self, index):
        assert index.analytics("proj-1").total_entries == 0


class TestUpsertFromSegment:
    """Tests for writing translated segments into the memory."""

    def _translated(self, match_type=None):
        segment = ContentSegment(id="seg-1", project_id="proj-1", source_text=WARNING)
        segment.apply_translation("Für Kinder unzugänglich.", TranslationMethod.TM, 88, 60, match_type)
        segment.metadata["tm_stats"] = {
            "exact_words": 2, "fuzzy_words": 1, "new_words": 2,
            "total_words": 5, "leverage_percentage": 60,
        }
        return segment

    def test_recorded_match_type_is_kept(self, store, index):
        match_type = index.upsert_from_segment(
            self._translated(TMMatchType.FUZZY), "en", "de", "cardiology", "brand-1"
        )

        entry = store.rows(TM_TABLE)[0]
        assert match_type == TMMatchType.FUZZY
        assert entry["match_type"] == "fuzzy"
        assert entry["target_text"] == "Für Kinder unzugänglich."
        assert entry["exact_match_words"] == 2
        assert entry["leverage_percentage"] == 60

    def test_missing_match_type_defaults_to_exact(self, store, index):
        assert index.upsert_from_segment(self._translated(), "en", "de") == TMMatchType.EXACT

    def test_upsert_replaces_existing_entry(self, store, index):
        segment = self._translated(TMMatchType.EXACT)
        index.upsert_from_segment(segment, "en", "de")
        segment.apply_manual_edit("Für Kinder unzugänglich aufbewahren.")
        index.upsert_from_segment(segment, "en", "de")

        assert len(store.rows(TM_TABLE)) == 1
        assert store.rows(TM_TABLE)[0]["target_text"] == "Für Kinder unzugänglich aufbewahren."

    def test_untranslated_segment_is_rejected(self, index):
        segment = ContentSegment(id="seg-1", project_id="proj-1", source_text=WARNING)
        with pytest.raises(ValueError):
            index.upsert_from_segment(segment, "en", "de")

    def test_promote_existing(self, fakes, store, index):
        store.rows(TM_TABLE).append(fakes.tm_entry(
            WARNING, "x", segment_id="seg-1", project_id="proj-1", usage_count=2,
        ))

        assert index.promote_existing("seg-1", "proj-1", "reviewer-1")
        assert store.rows(TM_TABLE)[0]["usage_count"] == 3
        assert not index.promote_existing("seg-2", "proj-1", "reviewer-1")
