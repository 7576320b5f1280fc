"""
Tests for the text duplicate scorer.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest

from helpers.text_similarity import (
    TextDuplicateScorer,
    compare_two_strings,
    composite_score,
    score_text_duplicates,
)


@dataclass
class Report:
    title: str
    description: str
    id: int = 0


class TestCompareTwoStrings:
    def test_identical_strings(self) -> None:
        assert compare_two_strings("streetlight out", "streetlight out") == 1.0

    def test_whitespace_is_ignored(self) -> None:
        assert compare_two_strings("street light", "streetlight") == 1.0

    def test_short_strings_score_zero(self) -> None:
        assert compare_two_strings("a", "ab") == 0.0
        assert compare_two_strings("", "") == 0.0

    def test_known_value(self) -> None:
        # night/nacht share only "ht": 2*1 / (4+4)
        assert compare_two_strings("night", "nacht") == pytest.approx(0.25)

    def test_repeated_bigrams_counted_once_each(self) -> None:
        assert compare_two_strings("aaaa", "aa") == pytest.approx(2 * 1 / (3 + 1))

    def test_symmetric(self) -> None:
        a, b = "overflowing garbage bin", "garbage bin overflowing again"
        assert compare_two_strings(a, b) == pytest.approx(compare_two_strings(b, a))


class TestScoreTextDuplicates:
    def test_weights_title_and_description(self) -> None:
        score = composite_score("same", "completely different words", "same", "nothing alike here zz")

        assert score == pytest.approx(0.3 * 1.0 + 0.7 * compare_two_strings(
            "completely different words", "nothing alike here zz"))

    def test_threshold_is_strict(self) -> None:
        reports = [Report("broken bench", "the bench in the park is broken", id=1)]

        score = composite_score("broken bench", "the bench in a park is broken", "broken bench", "the bench in the park is broken")

        assert score_text_duplicates("broken bench", "the bench in a park is broken", reports, threshold=score) == []
        assert len(score_text_duplicates("broken bench", "the bench in a park is broken", reports, threshold=score - 0.01)) == 1

    def test_order_follows_input(self) -> None:
        reports = [Report("x", "water leak on 5th avenue", id=i) for i in (3, 2, 1)]

        found = score_text_duplicates("x", "water leak on 5th avenue", reports)

        assert [c.issue.id for c in found] == [3, 2, 1]


class FakeStore:
    def __init__(self, issues):
        self.issues = issues
        self.calls = []

    def recent_issues(self, category, since):
        self.calls.append((category, since))
        return self.issues


class TestTextDuplicateScorer:
    def test_queries_trailing_window(self) -> None:
        store = FakeStore([])
        now = datetime(2025, 3, 10, 12, 0)

        TextDuplicateScorer(store, window_days=7).score("t", "d", "ROADS", now=now)

        assert store.calls == [("ROADS", now - timedelta(days=7))]

    def test_returns_qualifying_candidates(self) -> None:
        store = FakeStore([
            Report("Pothole", "deep pothole outside school gate", id=1),
            Report("Tree", "fallen tree blocking the lane", id=2),
        ])

        found = TextDuplicateScorer(store).score("Pothole", "deep pothole outside school gate", "ROADS")

        assert [c.issue.id for c in found] == [1]
        assert found[0].score == pytest.approx(1.0)
