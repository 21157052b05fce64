"""Tests for dice module."""

import random
from unittest.mock import patch

import pytest

from shared.dice import COMMON_DIE_SIZES, MAX_DIE_SIZE, recommended_die_size, roll_die


class TestRollDie:
    """Tests for roll_die."""

    def test_within_range(self):
        """Rolls stay within 1..sides."""
        random.seed(42)
        rolls = [roll_die(6) for _ in range(500)]
        assert min(rolls) >= 1
        assert max(rolls) <= 6

    def test_every_face_reachable(self):
        """Every face, including the extremes, comes up."""
        random.seed(7)
        assert {roll_die(4) for _ in range(400)} == {1, 2, 3, 4}

    def test_single_face(self):
        """A d1 always rolls 1."""
        assert roll_die(1) == 1

    def test_uses_randint(self):
        """Draws are uniform integers from the random module."""
        with patch("shared.dice.random.randint", return_value=17) as mock_randint:
            assert roll_die(20) == 17
        mock_randint.assert_called_once_with(1, 20)

    def test_max_size(self):
        """The largest die is allowed."""
        assert 1 <= roll_die(MAX_DIE_SIZE) <= MAX_DIE_SIZE

    @pytest.mark.parametrize("sides", [0, -1, MAX_DIE_SIZE + 1])
    def test_out_of_range(self, sides):
        """Sizes outside 1..10000 are rejected."""
        with pytest.raises(ValueError):
            roll_die(sides)

    @pytest.mark.parametrize("sides", [6.0, "6", True])
    def test_non_integer(self, sides):
        """Only real integers are accepted."""
        with pytest.raises(ValueError):
            roll_die(sides)


class TestRecommendedDieSize:
    """Tests for recommended_die_size."""

    @pytest.mark.parametrize(
        "count,expected",
        [(0, 4), (4, 4), (5, 6), (9, 10), (13, 20), (20, 20), (21, 100), (500, 100)],
    )
    def test_smallest_fitting_die(self, count, expected):
        """The smallest common die that fits is chosen."""
        assert recommended_die_size(count) == expected

    def test_result_is_common_size(self):
        """Recommendations are always common sizes."""
        assert all(recommended_die_size(n) in COMMON_DIE_SIZES for n in range(0, 150, 7))
