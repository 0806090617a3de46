import pytest

from gm_os.dice import DiceRoller


def test_deterministic_rolls_with_seed() -> None:
    first = DiceRoller(seed=1234)
    second = DiceRoller(seed=1234)

    assert first.roll() == second.roll()
    assert first.roll("2d6+3") == second.roll("2d6+3")
    assert first.roll("1d8-1") == second.roll("1d8-1")


def test_roll_reports_parts() -> None:
    result = DiceRoller(seed=42).roll("3d4+2")
    assert result.formula == "3d4+2"
    assert len(result.rolls) == 3
    assert all(1 <= value <= 4 for value in result.rolls)
    assert result.total == sum(result.rolls) + 2


def test_default_roll_is_a_d6() -> None:
    roller = DiceRoller(seed=9)
    for _ in range(50):
        result = roller.roll()
        assert 1 <= result.total <= 6


@pytest.mark.parametrize("formula", ["", "d0", "0d6", "2x6", "101d6"])
def test_invalid_formulas_raise(formula: str) -> None:
    with pytest.raises(ValueError):
        DiceRoller().roll(formula)
