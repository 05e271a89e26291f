"""
Tests for END, charges and activation rolls.
"""

import pytest
from herosim.character.character import Character, CharacteristicValue
from herosim.combat.endurance import (
    activation_target,
    power_endurance,
    roll_activation,
    spend_endurance,
    strength_endurance,
)
from herosim.core.config import CombatConfig
from herosim.core.constants import RulesEdition
from herosim.core.dice import ScriptedDiceRoller
from herosim.core.error_handling import Refusal
from herosim.powers.attack_profile import make_attack_profile
from herosim.powers.model import Charges, Modifier, PowerInstance

SIXTH = RulesEdition.SIXTH


@pytest.fixture
def config():
    return CombatConfig()


@pytest.fixture
def agent():
    return Character(
        id="agent",
        name="Agent",
        characteristics={"str": 15, "end": 20, "stun": 20},
        powers=[
            PowerInstance(id="blast", identifier="ENERGYBLAST", levels=8),
            PowerInstance(id="claws", identifier="HKA", levels=1),
            PowerInstance(id="gun", identifier="RKA", levels=1, charges=Charges(value=6, max=6)),
            PowerInstance(id="battery", identifier="ENERGYBLAST", levels=8, use_end_reserve=True),
        ],
        endurance_reserve=CharacteristicValue(value=20, max=20),
    )


def test_strength_endurance():
    """Test 1 END per 10 STR, rounded, at least 1."""
    assert strength_endurance(0) == 0
    assert strength_endurance(3) == 1
    assert strength_endurance(15) == 2
    assert strength_endurance(30) == 3


def test_power_endurance(agent):
    """Test END for a power and for the STR behind an attack."""
    assert power_endurance(agent.power("blast"), SIXTH) == 4
    claws = agent.power("claws")
    profile = make_attack_profile(claws, SIXTH)
    assert power_endurance(claws, SIXTH, profile) == 1
    assert power_endurance(claws, SIXTH, profile, strength=15) == 3


def test_spend_endurance(agent, config):
    """Test that spending END plans a lower END value."""
    spend = spend_endurance(agent, agent.power("blast"), 4, ScriptedDiceRoller([]), config)
    assert spend.characteristics.values == {"end": 16}
    assert spend.resources.is_empty
    assert spend.result.end == 4
    assert spend.result.text == "Spent 4 END"
    assert agent.value("end") == 20


def test_stun_for_endurance(agent, config):
    """Test that END below zero is paid with 1d6 STUN per 2 END."""
    agent.characteristic("end").value = 3
    spend = spend_endurance(agent, agent.power("blast"), 6, ScriptedDiceRoller([4, 2]), config)
    assert spend.characteristics.values == {"end": 0, "stun": 14}
    assert spend.result.end == 3
    assert spend.result.stun == 6
    assert spend.result.stun_faces == [4, 2]
    assert spend.result.text == "Spent 3 END and 6 STUN"


def test_endurance_reserve(agent, config):
    """Test paying from an Endurance Reserve."""
    spend = spend_endurance(agent, agent.power("battery"), 4, ScriptedDiceRoller([]), config)
    assert spend.resources.endurance_reserve == 16
    assert spend.characteristics.is_empty
    assert spend.result.from_reserve
    assert spend.result.text == "Spent 4 END from Endurance Reserve (16/20)"


def test_endurance_reserve_too_low(agent, config):
    """Test that a reserve short of END refuses the power."""
    agent.endurance_reserve.value = 3
    refusal = spend_endurance(agent, agent.power("battery"), 4, ScriptedDiceRoller([]), config)
    assert isinstance(refusal, Refusal)
    assert not refusal
    assert "only has 3 END" in refusal.reason


def test_charges(agent, config):
    """Test spending charges, one per shot."""
    gun = agent.power("gun")
    spend = spend_endurance(agent, gun, 0, ScriptedDiceRoller([]), config, shots=3)
    assert spend.resources.charges == {"gun": 3}
    assert spend.result.charges == 3
    assert spend.result.text == "Spent 3 charges"

    spend = spend_endurance(agent, gun, 2, ScriptedDiceRoller([]), config)
    assert spend.result.text == "Spent 2 END and 1 charge"


def test_no_charges_left(agent, config):
    """Test that a power without charges is refused."""
    gun = agent.power("gun").model_copy(update={"charges": Charges(value=0, max=6)})
    refusal = spend_endurance(agent, gun, 0, ScriptedDiceRoller([]), config)
    assert not refusal
    assert refusal.reason == "RKA has no more charges."


def test_endurance_not_tracked(agent):
    """Test that END is not spent when the campaign does not use it."""
    spend = spend_endurance(agent, agent.power("blast"), 4, ScriptedDiceRoller([]), CombatConfig(use_endurance=False))
    assert spend.characteristics.is_empty
    assert spend.result.end == 0


def test_activation_target():
    """Test the roll needed by activation limitations."""
    blast = PowerInstance(id="b", identifier="ENERGYBLAST", levels=8)
    assert activation_target(blast) is None
    act14 = blast.model_copy(update={"modifiers": [Modifier(identifier="ACTIVATIONROLL", option_id="14", base_cost=-0.5)]})
    assert activation_target(act14) == 14
    skill = blast.model_copy(update={"modifiers": [Modifier(identifier="REQUIRESASKILLROLL", base_cost=-0.5)]})
    assert activation_target(skill) == 11


def test_roll_activation():
    """Test rolling an activation check."""
    power = PowerInstance(
        id="b",
        identifier="ENERGYBLAST",
        levels=8,
        modifiers=[Modifier(identifier="ACTIVATIONROLL", option_id="14", base_cost=-0.5)],
    )
    roll = roll_activation(power, ScriptedDiceRoller([5, 5, 5]))
    assert roll.total == 15
    assert not roll.success
    assert roll_activation(power, ScriptedDiceRoller([4, 5, 5])).success
    assert roll_activation(PowerInstance(id="c", identifier="HKA", levels=1), ScriptedDiceRoller([])) is None
