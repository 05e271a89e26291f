"""
Tests for the damage pipeline.
"""

import pytest
from herosim.character.character import Character
from herosim.combat.damage import (
    DamageOptions,
    DamageRoll,
    apply_target_traits,
    calculate_damage,
    damage_dice,
    explosion_falloff,
    extra_damage_classes,
    flash_segments,
    negate_damage_classes,
    roll_damage,
    roll_hit_location,
    roll_stun_multiplier,
)
from herosim.combat.defense import DefenseProfile
from herosim.combat.results import DamageResult
from herosim.core.config import CombatConfig
from herosim.core.constants import (
    HIT_LOCATIONS,
    AreaShape,
    ExtraDice,
    HitLocationTracking,
    KnockbackOutcome,
    RulesEdition,
    StunBodyDamage,
)
from herosim.core.dice import DiceRoll, ScriptedDiceRoller
from herosim.powers.attack_profile import AreaOfEffect, AttackProfile, DamageClassData, make_attack_profile
from herosim.powers.model import PowerInstance

SIXTH = RulesEdition.SIXTH


@pytest.fixture
def config():
    return CombatConfig()


@pytest.fixture
def killing():
    return DamageClassData(dice=3, killing=True)


@pytest.fixture
def normal():
    return DamageClassData(dice=4, killing=False)


@pytest.fixture
def brawler():
    return Character(
        id="brawler",
        name="Brawler",
        characteristics={"str": 15, "con": 10},
        powers=[
            PowerInstance(id="claws", identifier="HKA", levels=1),
            PowerInstance(id="csl", identifier="COMBAT_LEVELS", option_id="HTH", levels=4, csl_allocation={"dc": 4}),
        ],
    )


def _damage(roll, data, config, defenses=None, roller=None, options=None, profile=None, edition=SIXTH):
    return calculate_damage(
        "target",
        roll,
        data,
        profile or AttackProfile(killing=data.killing, dice=data.dice),
        defenses or DefenseProfile(),
        config,
        roller or ScriptedDiceRoller([]),
        edition,
        options,
    )


def test_killing_attack_body_is_total(config, killing):
    """Test that a killing attack's BODY is the dice total times the STUN multiplier."""
    result = _damage(DiceRoll(faces=[6, 6, 1]), killing, config, options=DamageOptions(stun_multiplier=2))
    assert result.body == 13
    assert result.stun == 26
    assert result.stun_multiplier == 2


def test_killing_attack_rolls_stun_multiplier(config, killing):
    """Test that the 6e STUN multiplier is rolled on 1d3."""
    result = _damage(DiceRoll(faces=[6, 6, 1]), killing, config, roller=ScriptedDiceRoller([3]))
    assert result.stun_multiplier == 3
    assert result.stun_multiplier_faces == [3]
    assert result.stun == 39


def test_stun_multiplier_editions():
    """Test the 1d3 and 1d6-1 multipliers."""
    assert roll_stun_multiplier(SIXTH, ScriptedDiceRoller([2])) == (2, [2])
    assert roll_stun_multiplier(RulesEdition.FIFTH, ScriptedDiceRoller([4])) == (3, [4])
    assert roll_stun_multiplier(RulesEdition.FIFTH, ScriptedDiceRoller([1])) == (1, [1])


def test_killing_attack_only_resistant_stops_body(config, killing):
    """Test that normal defense stops killing STUN but not BODY."""
    defenses = DefenseProfile(defense=5, resistant=3)
    result = _damage(DiceRoll(faces=[6, 6, 1]), killing, config, defenses, options=DamageOptions(stun_multiplier=2))
    assert result.stun == 18
    assert result.body == 10


def test_normal_attack_counts_body(config, normal):
    """Test that a normal attack counts BODY from the faces."""
    result = _damage(DiceRoll(faces=[6, 5, 1, 3]), normal, config, DefenseProfile(defense=5))
    assert result.stun_rolled == 15
    assert result.body_rolled == 4
    assert result.stun == 10
    assert result.body == 0
    assert result.effects == []


def test_minimum_damage(config):
    """Test that STUN taken is never less than BODY taken."""
    data = DamageClassData(dice=2, killing=True)
    result = _damage(
        DiceRoll(faces=[5, 5]),
        data,
        config,
        DefenseProfile(defense=6),
        options=DamageOptions(stun_multiplier=1),
    )
    assert result.body == 10
    assert result.stun == 10
    assert "minimum damage invoked" in result.effects


def test_damage_reduction(config, normal):
    """Test that damage reduction applies after defenses."""
    result = _damage(DiceRoll(faces=[6, 6, 6, 6]), normal, config, DefenseProfile(damage_reduction=50))
    assert result.stun == 12
    assert result.body == 4


def test_penetrating_damage(config):
    """Test that penetrating BODY gets through as STUN."""
    data = DamageClassData(dice=3)
    profile = AttackProfile(dice=3, penetrating=1)
    result = _damage(DiceRoll(faces=[6, 6, 6]), data, config, DefenseProfile(defense=20), profile=profile)
    assert result.penetrating_body == 6
    assert result.stun == 6
    assert result.body == 0
    assert "penetrating damage" in result.effects


def test_impenetrable_stops_penetrating(config):
    """Test that impenetrable defense cancels penetrating BODY."""
    data = DamageClassData(dice=3)
    profile = AttackProfile(dice=3, penetrating=1)
    defenses = DefenseProfile(defense=20, impenetrable=6)
    result = _damage(DiceRoll(faces=[6, 6, 6]), data, config, defenses, profile=profile)
    assert result.stun == 0
    assert "penetrating damage" not in result.effects


def test_stun_only(config):
    """Test that a STUN only attack does no BODY."""
    data = DamageClassData(dice=2, stun_body=StunBodyDamage.STUN_ONLY)
    result = _damage(DiceRoll(faces=[6, 6]), data, config)
    assert result.stun == 12
    assert result.body == 0


def test_hit_location_killing(killing):
    """Test that a killing head shot multiplies STUN and BODY."""
    config = CombatConfig(hit_locations=True)
    result = _damage(DiceRoll(faces=[6, 6, 1]), killing, config, options=DamageOptions(aim="Head"))
    assert result.hit_location == "Head"
    assert result.stun_multiplier == 5
    assert result.body == 26
    assert result.stun == 65


def test_hit_location_normal(normal):
    """Test that a normal head shot multiplies STUN and BODY after defenses."""
    config = CombatConfig(hit_locations=True)
    result = _damage(
        DiceRoll(faces=[6, 5, 1, 3]), normal, config, DefenseProfile(defense=5), options=DamageOptions(aim="Head")
    )
    assert result.stun == 20
    assert result.body == 0
    assert result.hit_location_text.startswith("Hit Head")


def test_knockback_after_defenses(normal):
    """Test that knockback is rolled from the BODY that got through."""
    config = CombatConfig(knockback=True)
    result = _damage(DiceRoll(faces=[6, 6, 6, 6]), normal, config, roller=ScriptedDiceRoller([3, 4]))
    assert result.knockback.total == 1
    assert result.knockback.outcome == KnockbackOutcome.KNOCKBACK
    assert result.knockback.meters == 2


def test_roll_hit_location():
    """Test aimed, rolled and sided hit locations."""
    config = CombatConfig(hit_locations=True)
    assert roll_hit_location("Chest", config, ScriptedDiceRoller([])) == ("Chest", HIT_LOCATIONS["Chest"])
    assert roll_hit_location(None, config, ScriptedDiceRoller([1, 1, 1]))[0] == "Head"
    assert roll_hit_location("Tail", config, ScriptedDiceRoller([4, 4, 3]))[0] == "Chest"
    sided = CombatConfig(hit_locations=True, hit_location_tracking=HitLocationTracking.ALL)
    assert roll_hit_location("Arm", sided, ScriptedDiceRoller([1]))[0] == "Left Arm"
    assert roll_hit_location("Arm", sided, ScriptedDiceRoller([2]))[0] == "Right Arm"


def test_explosion_falloff():
    """Test that the highest dice are removed away from the center."""
    roll = DiceRoll(faces=[1, 2, 3, 4, 5, 6])
    area = AreaOfEffect(shape=AreaShape.RADIUS, size=8, is_explosion=True)
    assert explosion_falloff(roll, 4, area).faces == [4, 3, 2, 1]
    assert explosion_falloff(roll, 0, area).faces == roll.faces
    assert explosion_falloff(roll, 100, area).faces == [1]


def test_explosion_falloff_fifth_edition():
    """Test that 5e explosions lose a die per falloff step."""
    roll = DiceRoll(faces=[1, 2, 3, 4, 5, 6])
    area = AreaOfEffect(shape=AreaShape.RADIUS, size=12, is_explosion=True, dc_falloff=2)
    assert explosion_falloff(roll, 5, area).faces == [4, 3, 2, 1]


def test_damage_negation_removes_dice():
    """Test that negated damage classes drop dice already rolled."""
    damage = DamageRoll(
        power_id="claws",
        data=DamageClassData(dice=2, killing=True),
        roll=DiceRoll(faces=[5, 3]),
    )
    roll, data = negate_damage_classes(damage, 3)
    assert roll.faces == [5]
    assert data.dice == 1
    assert negate_damage_classes(damage, 0) == (damage.roll, damage.data)


def test_extra_damage_classes(brawler):
    """Test damage classes from Haymaker and Combat Skill Levels."""
    total, tags = extra_damage_classes(brawler, brawler.power("claws"), ["Haymaker"])
    assert total == 6
    assert [tag.label for tag in tags] == ["Haymaker", "COMBAT_LEVELS"]


def test_damage_dice_and_roll(brawler):
    """Test that STR and skill levels add dice to a hand killing attack."""
    claws = brawler.power("claws")
    profile = make_attack_profile(claws, SIXTH)
    data = damage_dice(brawler, claws, profile, DamageOptions(effective_strength=15))
    assert data.dice == 2
    assert data.extra == ExtraDice.HALF
    damage = roll_damage(brawler, claws, profile, ScriptedDiceRoller([4, 5, 3]), DamageOptions(effective_strength=15))
    assert damage.roll.faces == [4, 5]
    assert damage.roll.total == 12
    assert damage.maximum_effect == 15


def test_apply_target_traits(config):
    """Test Stunned and the Automaton STUN options."""
    result = DamageResult(target_id="t", roll=DiceRoll(faces=[6]), stun=15, body=3)
    defender = Character(id="t", name="Target", characteristics={"con": 10})
    stunned = apply_target_traits(result, defender, config)
    assert stunned.stunned
    assert "inflicts Stunned" in stunned.effects

    robot = Character(
        id="t",
        name="Robot",
        characteristics={"con": 10},
        powers=[PowerInstance(id="auto", identifier="AUTOMATON", option_id="NOSTUN2")],
    )
    traits = apply_target_traits(result, robot, config)
    assert traits.stun == 0
    assert not traits.stunned
    assert "Takes No STUN" in traits.effects

    assert not apply_target_traits(result, defender, CombatConfig(stunned=False)).stunned


def test_flash_segments():
    """Test blindness from counted BODY less Flash Defense."""
    assert flash_segments(DiceRoll(faces=[6, 6, 1]), 1) == 3
    assert flash_segments(DiceRoll(faces=[1, 1]), 3) == 0
