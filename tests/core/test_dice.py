"""
Tests for the dice roller and rolled damage formulas.
"""

import random

import pytest
from herosim.core.constants import ExtraDice
from herosim.core.dice import (
    DiceRoll,
    DiceRoller,
    ScriptedDiceRoller,
    counted_body,
    dice_formula,
    roll_damage_dice,
)


@pytest.fixture
def seeded_roller():
    return DiceRoller(rng=random.Random(1234))


def test_roller_faces_in_range(seeded_roller):
    """Test that rolled faces stay between 1 and the number of sides."""
    faces = seeded_roller.roll(50, 6)
    assert len(faces) == 50
    assert all(1 <= face <= 6 for face in faces)


def test_roller_zero_or_invalid_dice(seeded_roller):
    """Test that zero dice and dice without sides roll nothing."""
    assert seeded_roller.roll(0, 6) == []
    assert seeded_roller.roll(-2, 6) == []
    assert seeded_roller.roll(3, 0) == []


def test_scripted_roller_replays_faces():
    """Test that the scripted roller returns its faces in order."""
    roller = ScriptedDiceRoller([6, 1, 3, 4])
    assert roller.roll(3) == [6, 1, 3]
    assert roller.roll_3d6()[0] == 4
    assert roller.consumed[:4] == [6, 1, 3, 4]


def test_counted_body():
    """Test the counted BODY of single faces."""
    assert counted_body(1) == 0
    assert counted_body(2) == 1
    assert counted_body(5) == 1
    assert counted_body(6) == 2


def test_dice_formula():
    """Test formatting of dice counts and remainders."""
    assert dice_formula(3) == "3d6"
    assert dice_formula(2, ExtraDice.HALF) == "2½d6"
    assert dice_formula(0, ExtraDice.HALF) == "½d6"
    assert dice_formula(1, ExtraDice.PIP) == "1d6+1"
    assert dice_formula(4, ExtraDice.ONE_PIP) == "4d6-1"


def test_dice_roll_readings():
    """Test the STUN and BODY readings of a normal roll."""
    roll = DiceRoll(faces=[6, 6, 1])
    assert roll.total == 13
    assert roll.body == 4
    assert roll.penetrating_body() == 4
    assert roll.penetrating_body(impenetrable=3) == 1
    assert roll.penetrating_body(impenetrable=10) == 0


def test_dice_roll_minus_pip_never_negative():
    """Test that a -1 pip cannot take a roll below zero."""
    roll = DiceRoll(faces=[], extra=ExtraDice.ONE_PIP, extra_value=-1)
    assert roll.total == 0


def test_truncated_reuses_faces():
    """Test that a reduced roll keeps the faces already rolled."""
    roll = DiceRoll(faces=[6, 5, 4])
    reduced = roll.truncated(1, ExtraDice.HALF)
    assert reduced.faces == [6]
    assert reduced.extra == ExtraDice.HALF
    assert reduced.extra_value == 3
    assert reduced.total == 9


def test_roll_damage_dice_half_die():
    """Test that a half die rolls 1d3 after the whole dice."""
    roller = ScriptedDiceRoller([4, 2, 3])
    roll = roll_damage_dice(roller, 2, ExtraDice.HALF)
    assert roll.faces == [4, 2]
    assert roll.extra_value == 3
    assert roll.total == 9


def test_roll_damage_dice_standard_effect():
    """Test that standard effect fixes faces at 3 without rolling."""
    roller = ScriptedDiceRoller([])
    roll = roll_damage_dice(roller, 3, ExtraDice.HALF, standard_effect=True)
    assert roll.faces == [3, 3, 3]
    assert roll.total == 10
    assert roll.body == 4
    assert roller.consumed == []
