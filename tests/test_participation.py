import pytest

from wge.scoring.participation import officer_efficiency, participation_score


def test_participation_fixture():
    assert participation_score(submitted=10, verified=10) == 7.5


def test_participation_zero_submissions():
    assert participation_score(submitted=0, verified=0) == 0.0


def test_participation_caps_at_ten():
    assert participation_score(submitted=200, verified=200) == 10.0


def test_participation_ignores_excess_verified():
    assert participation_score(submitted=4, verified=9) == participation_score(submitted=4, verified=4)


def test_participation_rounds_to_one_decimal():
    # 5*(1/3) + 3/20 + 2 = 3.8167
    assert participation_score(submitted=3, verified=1) == 3.8


@pytest.mark.parametrize(
    ("assigned", "completed", "expected"),
    [(10, 7, 70.0), (3, 2, 67.0), (8, 1, 13.0), (0, 0, 0.0), (0, 5, 0.0), (3, 5, 100.0)],
)
def test_officer_efficiency(assigned, completed, expected):
    assert officer_efficiency(assigned, completed) == expected
