"""
Tests for to-hit resolution.
"""

import pytest
from herosim.character.character import Character
from herosim.combat.attack import (
    AttackOptions,
    TargetInfo,
    combat_skill_levels,
    count_shots,
    declared_maneuvers,
    lingering_dcv_effect,
    multiple_attack_penalty,
    range_penalty,
    resolve_to_hit,
    roll_aoe_origin,
)
from herosim.core.config import AutomationLevel, CombatConfig
from herosim.core.constants import AttackState, RulesEdition
from herosim.core.dice import ScriptedDiceRoller
from herosim.core.error_handling import Refusal
from herosim.effects.timed_effect import TimedEffect
from herosim.powers.attack_profile import make_attack_profile
from herosim.powers.model import Modifier, PowerInstance

AUTOFIRE = Modifier(identifier="AUTOFIRE", option_id="FIVE", base_cost=0.5)


@pytest.fixture
def config():
    return CombatConfig()


@pytest.fixture
def attacker():
    return Character(
        id="hero",
        name="Hero",
        characteristics={"ocv": 7, "dcv": 5, "spd": 4, "end": 30, "stun": 30, "str": 10},
        powers=[
            PowerInstance(id="blast", identifier="ENERGYBLAST", name="Blast", levels=8),
            PowerInstance(id="burst", identifier="ENERGYBLAST", name="Burst", levels=6, modifiers=[AUTOFIRE]),
            PowerInstance(
                id="bomb",
                identifier="ENERGYBLAST",
                name="Bomb",
                levels=6,
                modifiers=[Modifier(identifier="EXPLOSION", option_id="NORMAL", levels=8, base_cost=0.5)],
            ),
        ],
    )


@pytest.fixture
def target():
    return Character(id="thug", name="Thug", characteristics={"dcv": 3, "stun": 20, "body": 10})


def test_range_penalty():
    """Test -2 OCV per doubling of the range increment."""
    assert range_penalty(0, 8) == 0
    assert range_penalty(4, 8) == 0
    assert range_penalty(8, 8) == 0
    assert range_penalty(16, 8) == -2
    assert range_penalty(20, 8) == -4
    assert range_penalty(16, 4) == -4


def test_multiple_attack_penalty():
    """Test -2 OCV per attack after the first."""
    assert multiple_attack_penalty(1) == 0
    assert multiple_attack_penalty(3) == -4


def test_declared_maneuvers():
    """Test that unknown and disabled optional maneuvers are dropped."""
    options = AttackOptions(maneuvers=["Set", "Haymaker", "Cartwheel"])
    assert declared_maneuvers(options, CombatConfig()) == ["Set"]
    assert declared_maneuvers(options, CombatConfig(optional_maneuvers=True)) == ["Set", "Haymaker"]


def test_combat_skill_levels(attacker):
    """Test summing the allocations of Combat Skill Levels."""
    attacker.powers.append(
        PowerInstance(id="csl", identifier="COMBAT_LEVELS", option_id="ALL", levels=3, csl_allocation={"ocv": 2, "dcv": 1})
    )
    levels = combat_skill_levels(attacker)
    assert levels["ocv"] == 2
    assert levels["dcv"] == 1
    assert levels["dc"] == 0


def test_to_hit(attacker, target, config):
    """Test that one 3d6 roll gives the combat value hit."""
    options = AttackOptions(targets=[TargetInfo(character=target)])
    result = resolve_to_hit(attacker, attacker.power("blast"), options, config, ScriptedDiceRoller([3, 3, 4]))
    assert result.faces == [3, 3, 4]
    assert result.roll_value == 8
    assert result.text == "Hits a DCV of 8"
    assert result.state == AttackState.HIT
    assert result.target_ids == ["thug"]
    assert result.hits[0].by == 5
    assert result.endurance.end == 4
    assert result.written == []
    assert result.pending[0].values == {"end": 26}


def test_miss(attacker, target, config):
    """Test that a roll below the target's DCV misses."""
    options = AttackOptions(targets=[TargetInfo(character=target)])
    result = resolve_to_hit(attacker, attacker.power("blast"), options, config, ScriptedDiceRoller([6, 6, 5]))
    assert result.roll_value == 1
    assert result.state == AttackState.MISS
    assert not result.is_hit
    assert result.target_ids == []


def test_modifiers_and_range(attacker, target, config):
    """Test the free OCV modifier, Set and the range penalty."""
    options = AttackOptions(
        ocv_modifier=1,
        maneuvers=["Set"],
        targets=[TargetInfo(character=target, distance=16)],
    )
    result = resolve_to_hit(attacker, attacker.power("blast"), options, config, ScriptedDiceRoller([3, 3, 4]))
    assert result.roll_value == 8
    labels = [tag.label for tag in result.tags]
    assert labels == ["OCV", "Blast", "Set", "range penalty", "3d6"]


def test_end_written_with_automation(attacker, target):
    """Test that END is written when automation covers the attacker."""
    config = CombatConfig(automation=AutomationLevel.ALL)
    options = AttackOptions(targets=[TargetInfo(character=target)])
    result = resolve_to_hit(attacker, attacker.power("blast"), options, config, ScriptedDiceRoller([3, 3, 4]))
    assert result.written[0].values == {"end": 26}
    assert result.pending == []


def test_refused_when_stunned(attacker, target, config):
    """Test that a stunned character cannot attack, and nothing is rolled."""
    attacker.effects.add_effect(TimedEffect(name="Stunned", source="hit", next_phase=True, status="stunned"))
    roller = ScriptedDiceRoller([3, 3, 4])
    options = AttackOptions(targets=[TargetInfo(character=target)])
    result = resolve_to_hit(attacker, attacker.power("blast"), options, config, roller)
    assert isinstance(result, Refusal)
    assert result.reason == "Hero is stunned and cannot act."
    assert roller.consumed == []


def test_failed_activation(attacker, target, config):
    """Test that a failed activation roll misses after END is spent."""
    power = attacker.power("blast").model_copy(
        update={"modifiers": [Modifier(identifier="ACTIVATIONROLL", option_id="11", base_cost=-0.5)]}
    )
    options = AttackOptions(targets=[TargetInfo(character=target)])
    result = resolve_to_hit(attacker, power, options, config, ScriptedDiceRoller([6, 6, 6]))
    assert result.state == AttackState.MISS
    assert not result.activation.success
    assert result.faces == []
    assert "failed its activation roll" in result.text
    assert result.pending


def test_dodge_aborts(attacker, target, config):
    """Test that a Dodge aborts with a DCV bonus until the next phase."""
    options = AttackOptions(maneuvers=["Dodge"], targets=[TargetInfo(character=target)])
    result = resolve_to_hit(attacker, attacker.power("blast"), options, config, ScriptedDiceRoller([3, 3, 4]))
    assert result.state == AttackState.ABORTED
    assert result.text == "Blast +3 DCV"
    effects = result.written[0].create_effects
    assert [effect.characteristic for effect in effects] == ["dcv", None]
    assert effects[0].value == 3
    assert effects[1].status == "aborted"


def test_lingering_dcv_effect(attacker):
    """Test the DCV change left on the attacker, once per power."""
    blast = attacker.power("blast")
    effect = lingering_dcv_effect(attacker, blast, -2, 0)
    assert effect.name == "Blast -2 DCV"
    assert effect.seconds == 3
    assert not effect.affects_max
    assert lingering_dcv_effect(attacker, blast, 0, 0) is None
    attacker.effects.add_effect(effect)
    assert lingering_dcv_effect(attacker, blast, -2, 0) is None


def test_autofire_shots(attacker, target, config):
    """Test that each autofire shot hits at -2 OCV per shot."""
    options = AttackOptions(targets=[TargetInfo(character=target)])
    result = resolve_to_hit(attacker, attacker.power("burst"), options, config, ScriptedDiceRoller([3, 3, 4]))
    assert result.shots_fired == 5
    assert [hit.roll_value for hit in result.hits] == [8, 6, 4, 2, 0]
    assert [hit.hit for hit in result.hits] == [True, True, True, False, False]


def test_autofire_too_many_shots(attacker, target):
    """Test that autofire cannot spread more shots than it has."""
    other = Character(id="other", name="Other", characteristics={"dcv": 3})
    burst = attacker.power("burst")
    profile = make_attack_profile(burst, attacker.edition)
    options = AttackOptions(targets=[TargetInfo(character=target, shots=3), TargetInfo(character=other, shots=3)])
    refusal = count_shots(attacker, profile, options)
    assert isinstance(refusal, Refusal)
    assert "at most 5 shots" in refusal.reason

    options = AttackOptions(targets=[TargetInfo(character=target, shots=2), TargetInfo(character=other, shots=2)])
    assert count_shots(attacker, profile, options) == 4


def test_explosion_hits_everyone(attacker, target, config):
    """Test that explosion targets are all hit, ordered from the center out."""
    near = Character(id="near", name="Near", characteristics={"dcv": 9})
    options = AttackOptions(
        targets=[
            TargetInfo(character=target, distance_from_origin=4),
            TargetInfo(character=near, distance_from_origin=0),
        ]
    )
    result = resolve_to_hit(attacker, attacker.power("bomb"), options, config, ScriptedDiceRoller([6, 6, 6]))
    assert result.target_ids == ["near", "thug"]
    assert all(hit.hit for hit in result.hits)
    assert result.hits[1].text.endswith("(4m from center)")


def test_aoe_origin(attacker):
    """Test placing an area template beyond the free distance."""
    placed = roll_aoe_origin(5, 10, attacker, ScriptedDiceRoller([]))
    assert placed.hit
    assert placed.target_number == 3

    missed = roll_aoe_origin(1, 10, attacker, ScriptedDiceRoller([4]))
    assert not missed.hit
    assert missed.miss_by == 2
    assert missed.displacement == 4
    assert missed.direction == 4

    assert roll_aoe_origin(0, 1, attacker, ScriptedDiceRoller([])).hit
    veteran = Character(id="old", name="Veteran", edition=RulesEdition.FIFTH)
    assert roll_aoe_origin(1, 10, veteran, ScriptedDiceRoller([2])).displacement == 2


def test_aoe_origin_within_free_distance(attacker):
    """Test that a template close to the attacker is placed even on a poor roll."""
    placed = roll_aoe_origin(-1, 1, attacker, ScriptedDiceRoller([]))
    assert placed.hit
    assert placed.miss_by == 0
    assert placed.text == "Template placed as declared"


def test_template_in_open_space_takes_range_penalty(attacker, config):
    """Test that a template placed without targets is ranged to its origin."""
    options = AttackOptions(aoe_origin_distance=40)
    roller = ScriptedDiceRoller([3, 3, 4, 5])
    result = resolve_to_hit(attacker, attacker.power("bomb"), options, config, roller)
    assert result.roll_value == 2
    assert ("-6", "range penalty") in [(tag.value, tag.label) for tag in result.tags]
    assert not result.aoe_origin.hit
    assert result.aoe_origin.miss_by == 1
    assert result.state == AttackState.MISS
