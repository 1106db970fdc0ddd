import pytest

from learnhub.utils.calculations import average_grade, completion_rate, round_half_up


class TestRoundHalfUp:
    def test_half_rounds_up(self):
        assert round_half_up(155, 2) == 78  # 77.5
        assert round_half_up(5, 2) == 3  # 2.5, where round() would give 2

    def test_below_half_rounds_down(self):
        assert round_half_up(10, 3) == 3

    def test_exact(self):
        assert round_half_up(300, 4) == 75


class TestAverageGrade:
    def test_empty_is_none(self):
        assert average_grade([]) is None

    def test_mean_rounded(self):
        assert average_grade([70, 85]) == 78
        assert average_grade([100]) == 100
        assert average_grade([0, 0, 1]) == 0


class TestCompletionRate:
    def test_no_assignments(self):
        assert completion_rate(5, []) == 0

    def test_no_enrollments(self):
        assert completion_rate(0, [{1, 2}, {3}]) == 0

    def test_partial_completion(self):
        # A and B submit the first assignment, only A the second
        assert completion_rate(2, [{1, 2}, {1}]) == 75

    def test_full_completion(self):
        assert completion_rate(2, [{1, 2}, {1, 2}]) == 100

    def test_submitters_capped_at_enrollment(self):
        # Stale enrollment data: more submitters than enrolled students
        assert completion_rate(2, [{1, 2, 3, 4}, set()]) == 50

    @pytest.mark.parametrize("enrolled,submitters", [
        (1, [{1, 2, 3}]),
        (3, [{1}, {1, 2}, {1, 2, 3}]),
        (7, [set(), set()]),
    ])
    def test_always_within_bounds(self, enrolled, submitters):
        assert 0 <= completion_rate(enrolled, submitters) <= 100
