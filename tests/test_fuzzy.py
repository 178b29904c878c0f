# tests/test_fuzzy.py
"""Test approximate title matching"""

import pytest

from yoto_sync.matching import match, match_all, title_distance
from yoto_sync.sync.models import Container, TargetItem


def fixed_scorer(distances):
    """Scorer returning a preset distance per candidate text"""
    return lambda query, candidate: distances[candidate]


class TestTitleDistance:
    """Test the default WRatio-based scorer"""

    def test_identical_titles(self):
        """Identical titles have distance 0"""
        assert title_distance("Hotel California", "Hotel California") == pytest.approx(0.0)

    def test_case_and_punctuation_ignored(self):
        """Case and punctuation do not count as differences"""
        assert title_distance("Hotel California!", "hotel california") == pytest.approx(0.0)

    def test_unrelated_titles_are_far_apart(self):
        """Unrelated titles are above the default threshold"""
        assert title_distance("Free Bird", "Old Song") >= 0.4

    def test_distance_is_bounded(self):
        """Distances stay within [0, 1]"""
        for a, b in [("a", "b"), ("Wonderwall", ""), ("Take It Easy", "Take It Easy (Live)")]:
            assert 0.0 <= title_distance(a, b) <= 1.0


class TestMatchAll:
    """Test candidate filtering and ordering"""

    def test_threshold_is_exclusive(self):
        """A candidate exactly at the threshold is rejected"""
        candidates = [TargetItem(key="a", title="at"), TargetItem(key="b", title="below")]
        scorer = fixed_scorer({"at": 0.4, "below": 0.39})

        result = match_all("query", candidates, threshold=0.4, scorer=scorer)

        assert [item.key for item in result] == ["b"]

    def test_sorted_by_distance(self):
        """Closest candidates come first"""
        candidates = [TargetItem(key=k, title=k) for k in ("far", "near", "mid")]
        scorer = fixed_scorer({"far": 0.3, "near": 0.05, "mid": 0.2})

        result = match_all("query", candidates, scorer=scorer)

        assert [item.key for item in result] == ["near", "mid", "far"]

    def test_ties_keep_candidate_order(self):
        """Equal distances keep the input order"""
        candidates = [TargetItem(key=k, title=k) for k in ("first", "second", "third")]
        scorer = fixed_scorer({"first": 0.1, "second": 0.1, "third": 0.1})

        result = match_all("query", candidates, scorer=scorer)

        assert [item.key for item in result] == ["first", "second", "third"]

    def test_custom_key(self):
        """key selects the text compared"""
        containers = [Container(id="c1", name="Bedtime Songs"), Container(id="c2", name="Road Trip")]

        result = match_all("bedtime songs", containers, key=lambda c: c.name)

        assert [c.id for c in result] == ["c1"]

    def test_no_candidates(self):
        """An empty candidate list gives no matches"""
        assert match_all("anything", []) == []

    @pytest.mark.parametrize("threshold", [0, -0.1, 1.5])
    def test_invalid_threshold(self, threshold):
        """Thresholds outside (0, 1] are rejected"""
        with pytest.raises(ValueError):
            match_all("query", [], threshold=threshold)

    def test_threshold_one_accepts_everything_but_total_mismatch(self):
        """threshold=1 accepts any candidate with distance below 1"""
        candidates = [TargetItem(key="a", title="a"), TargetItem(key="b", title="b")]
        scorer = fixed_scorer({"a": 0.99, "b": 1.0})

        result = match_all("query", candidates, threshold=1, scorer=scorer)

        assert [item.key for item in result] == ["a"]


class TestMatch:
    """Test single best match"""

    def test_best_candidate(self):
        """Returns the closest candidate"""
        candidates = [TargetItem(key="x", title="Sweet Home Alabama"),
                      TargetItem(key="y", title="Hotel California")]

        assert match("Hotel California", candidates).key == "y"

    def test_no_match_returns_none(self):
        """Returns None when nothing is close enough"""
        candidates = [TargetItem(key="z", title="Old Song")]

        assert match("Free Bird", candidates) is None
