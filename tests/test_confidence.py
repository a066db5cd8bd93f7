"""Tests for confidence scores."""

import pytest

from budgetsync.domain.categorization import calculate_average_confidence
from budgetsync.domain.confidence import ConfidenceScore


@pytest.mark.parametrize("raw,expected", [(1.5, 1.0), (-0.2, 0.0), (0.42, 0.42)])
def test_score_is_clamped(raw, expected):
    """Test out-of-range values are clamped instead of rejected."""
    assert ConfidenceScore(raw).value == expected


def test_score_levels():
    """Test named confidence bands."""
    assert ConfidenceScore(0.8).level == "high"
    assert ConfidenceScore(0.6).level == "medium"
    assert ConfidenceScore(0.2).level == "low"
    assert ConfidenceScore(0.9).is_high
    assert not ConfidenceScore(0.79).is_high


def test_score_ordering_and_threshold():
    """Test scores order by value and exceeds() is strict."""
    assert ConfidenceScore(0.3) < ConfidenceScore(0.7)
    assert max(ConfidenceScore(0.3), ConfidenceScore(0.7)) == ConfidenceScore(0.7)
    assert ConfidenceScore(0.71).exceeds(0.7)
    assert not ConfidenceScore(0.7).exceeds(0.7)


def test_average_of_scores():
    """Test the arithmetic mean of present scores."""
    scores = [ConfidenceScore(0.9), ConfidenceScore(0.6), None, ConfidenceScore(0.3)]
    assert calculate_average_confidence(scores) == ConfidenceScore(0.6)


def test_average_of_nothing_is_none():
    """Test empty input returns no value instead of dividing by zero."""
    assert calculate_average_confidence([]) is None
    assert calculate_average_confidence([None, None]) is None
    assert ConfidenceScore.average([]) is None
