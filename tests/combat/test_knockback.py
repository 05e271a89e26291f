"""
Tests for knockback rolls.
"""

import pytest
from herosim.combat.knockback import roll_knockback
from herosim.core.constants import KnockbackOutcome
from herosim.core.dice import ScriptedDiceRoller


@pytest.fixture
def seven():
    return ScriptedDiceRoller([3, 4])


def test_knockback_distance(seven):
    """Test that each point of knockback is 2m."""
    result = roll_knockback(10, 1, seven)
    assert result.faces == [3, 4]
    assert result.total == 3
    assert result.outcome == KnockbackOutcome.KNOCKBACK
    assert result.meters == 6
    assert result.message == "Knocked back 6m"


def test_knockdown_at_zero(seven):
    """Test that a result of exactly 0 is a knockdown."""
    result = roll_knockback(7, 1, seven)
    assert result.outcome == KnockbackOutcome.KNOCKDOWN
    assert result.meters == 0


def test_no_knockback_below_zero(seven):
    """Test that a negative result is no knockback."""
    result = roll_knockback(5, 1, seven)
    assert result.total == -2
    assert result.outcome == KnockbackOutcome.NONE


def test_double_knockback(seven):
    """Test the knockback multiplier."""
    assert roll_knockback(5, 2, seven).total == 3


def test_knockback_resistance(seven):
    """Test that knockback resistance lowers the result."""
    result = roll_knockback(10, 1, seven, resistance=3)
    assert result.total == 0
    assert result.outcome == KnockbackOutcome.KNOCKDOWN
    assert [tag.label for tag in result.tags][-1] == "knockback resistance"


def test_fewer_dice():
    """Test that situational modifiers change the number of dice."""
    roller = ScriptedDiceRoller([3])
    result = roll_knockback(10, 1, roller, modifier_dice=-1)
    assert result.faces == [3]
    assert result.meters == 14
