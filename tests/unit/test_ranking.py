"""
Tests for ledger_core.ranking module.
"""
import pytest

from ledger_core.exceptions import ValidationError
from ledger_core.models import RankingEntry
from ledger_core.ranking import percent, rank_records, scale_to_max, top_n


class TestTopN:
    """Tests for top_n ranking."""

    def test_descending_and_truncated(self):
        """Highest values first, cut to n."""
        result = top_n({"a": 1, "b": 5, "c": 3}, 2)
        assert [e.as_tuple() for e in result] == [("b", 5), ("c", 3)]

    def test_ties_broken_by_label(self):
        """Equal values are ordered by label."""
        result = top_n({"zeta": 2, "alpha": 2, "mid": 2}, 3)
        assert [e.label for e in result] == ["alpha", "mid", "zeta"]

    def test_fewer_than_n(self):
        """Short inputs are returned whole."""
        assert len(top_n({"a": 1}, 5)) == 1

    def test_empty(self):
        assert top_n({}, 5) == []

    def test_invalid_n(self):
        """n must be positive."""
        with pytest.raises(ValidationError):
            top_n({"a": 1}, 0)


class TestRankRecords:
    """Tests for rank_records."""

    def test_ascending(self):
        """Ascending order keeps the label tie-break."""
        rows = [("x", 3), ("y", 1), ("z", 1)]
        result = rank_records(rows, lambda r: r[1], lambda r: r[0], n=2, descending=False)
        assert result == [("y", 1), ("z", 1)]

    def test_descending_ties(self):
        """Descending order still breaks ties by ascending label."""
        rows = [("b", 2), ("a", 2), ("c", 5)]
        result = rank_records(rows, lambda r: r[1], lambda r: r[0], n=3)
        assert result == [("c", 5), ("a", 2), ("b", 2)]


class TestPercentages:
    """Tests for percent and scale_to_max."""

    def test_percent(self):
        """A zero denominator gives 0 rather than an error."""
        assert percent(1, 4) == 25.0
        assert percent(1, 0) == 0.0

    def test_scale_to_max(self):
        """Bars are scaled against the largest value."""
        scaled = scale_to_max([RankingEntry("a", 10), RankingEntry("b", 5)])
        assert [s["percent_of_max"] for s in scaled] == [100.0, 50.0]

    def test_scale_all_zero(self):
        """All-zero and empty inputs do not divide by zero."""
        scaled = scale_to_max([RankingEntry("a", 0)])
        assert scaled[0]["percent_of_max"] == 0.0
        assert scale_to_max([]) == []
