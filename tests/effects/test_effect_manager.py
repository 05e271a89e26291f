"""
Tests for timed effects and the effect manager.
"""

import pytest
from herosim.character.character import Character
from herosim.effects.timed_effect import TimedEffect, effect_name


@pytest.fixture
def hero():
    return Character(
        id="hero",
        name="Defender",
        characteristics={"str": 20, "dex": 18, "dcv": 6, "spd": 4},
    )


@pytest.fixture
def aid():
    return TimedEffect(
        name=effect_name("AID", 5, "str", "Doc"),
        source="aid",
        source_identifier="AID",
        source_actor="Doc",
        characteristic="STR",
        value=5,
        active_points=30,
        seconds=12,
    )


def test_effect_name():
    """Test the conventional adjustment effect name."""
    assert effect_name("DRAIN", -10, "dex", "Viper") == "DRAIN -10 DEX [Viper]"


def test_effect_key_and_description(aid):
    """Test that effects are keyed by source and lower case characteristic."""
    assert aid.characteristic == "str"
    assert aid.key == ("aid", "str")
    assert aid.describe() == "+5 STR"
    assert not aid.is_permanent


def test_effect_requires_source():
    """Test that an effect must name the power that created it."""
    with pytest.raises(Exception):
        TimedEffect(name="nameless", source="")


def test_add_shifts_value_and_max(hero, aid):
    """Test that adding an effect changes the characteristic and its maximum."""
    hero.effects.add_effect(aid)
    record = hero.characteristic("str")
    assert record.value == 25
    assert record.max == 25
    assert hero.effects.total_for("STR") == 5


def test_lingering_effect_leaves_max(hero):
    """Test that an effect not affecting the maximum only moves the value."""
    hero.effects.add_effect(
        TimedEffect(name="Dodge +3 DCV", source="dodge", characteristic="dcv", value=3, affects_max=False, next_phase=True)
    )
    assert hero.characteristic("dcv").value == 9
    assert hero.characteristic("dcv").max == 6


def test_same_source_updates_instead_of_duplicating(hero, aid):
    """Test that a second effect from the same source replaces the first."""
    hero.effects.add_effect(aid)
    hero.effects.add_effect(aid.model_copy(update={"value": 8, "active_points": 48}))
    assert len(hero.effects) == 1
    assert hero.value("str") == 28
    assert hero.effects.find("aid", "str").active_points == 48


def test_advance_time_expires_effects(hero, aid):
    """Test that effects run out and revert their change."""
    hero.effects.add_effect(aid)
    assert hero.effects.advance_time(6) == []
    assert hero.value("str") == 25
    expired = hero.effects.advance_time(6)
    assert [e.source for e in expired] == ["aid"]
    assert hero.value("str") == 20


def test_permanent_effects_do_not_expire(hero):
    """Test that an effect without a duration lasts until removed."""
    suppress = TimedEffect(name="SUPPRESS -4 DEX [Viper]", source="suppress", characteristic="dex", value=-4)
    hero.effects.add_effect(suppress)
    assert suppress.is_permanent
    assert hero.effects.advance_time(3600) == []
    assert hero.value("dex") == 14
    assert hero.effects.remove_from_source("suppress") == [suppress]
    assert hero.value("dex") == 18


def test_start_phase_clears_next_phase_effects(hero, aid):
    """Test that next-phase effects end when the owner's phase starts."""
    hero.effects.add_effect(aid)
    hero.effects.add_effect(TimedEffect(name="Stunned", source="hit", next_phase=True, status="stunned"))
    assert "stunned" in hero.effects.statuses()
    expired = hero.effects.start_phase()
    assert [e.name for e in expired] == ["Stunned"]
    assert len(hero.effects) == 1


def test_remove_unknown_effect(hero, aid):
    """Test that removing an effect that is not live does nothing."""
    assert hero.effects.remove_effect(aid) is False
    assert hero.value("str") == 20
