"""
Tests for defense determination.
"""

import pytest
from herosim.character.character import Character
from herosim.combat.defense import (
    DefenseProfile,
    avad_matches,
    conditional_defense_options,
    defense_kind,
    determine_defenses,
)
from herosim.core.constants import AttackClass
from herosim.powers.attack_profile import AttackProfile
from herosim.powers.model import Adder, Modifier, PowerInstance


def _force_field(**update):
    power = PowerInstance(
        id="ff",
        identifier="FORCEFIELD",
        name="Force Field",
        levels=14,
        adders=[Adder(identifier="PDLEVELS", levels=8), Adder(identifier="EDLEVELS", levels=6)],
    )
    return power.model_copy(update=update)


@pytest.fixture
def brick():
    return Character(
        id="brick",
        name="Brick",
        characteristics={"pd": 5, "ed": 4},
        powers=[_force_field()],
    )


@pytest.fixture
def physical():
    return AttackProfile(attack_class=AttackClass.PHYSICAL)


def test_defense_kind():
    """Test which defense each class of attack is resisted by."""
    assert defense_kind(AttackProfile(attack_class=AttackClass.ENERGY)) == "ED"
    assert defense_kind(AttackProfile(attack_class=AttackClass.MENTAL)) == "MD"
    assert defense_kind(AttackProfile(attack_class=AttackClass.ADJUSTMENT)) == "POWD"
    assert defense_kind(AttackProfile(attack_class=AttackClass.AVAD, input="Flash Defense")) == "Flash Defense"
    assert defense_kind(AttackProfile(attack_class=AttackClass.ENTANGLE)) is None


def test_characteristic_and_resistant_defense(brick, physical):
    """Test PD from the characteristic and resistant PD from a Force Field."""
    defenses = determine_defenses(brick, physical)
    assert defenses.defense == 5
    assert defenses.resistant == 8
    assert defenses.text == "5 normal; 8 resistant"

    energy = determine_defenses(brick, AttackProfile(attack_class=AttackClass.ENERGY))
    assert energy.defense == 4
    assert energy.resistant == 6


def test_armor_piercing_halves_defense(brick):
    """Test that Armor Piercing halves defenses that are not Hardened."""
    profile = AttackProfile(attack_class=AttackClass.PHYSICAL, piercing=1)
    defenses = determine_defenses(brick, profile)
    assert defenses.defense == 2
    assert defenses.resistant == 4

    hardened = _force_field(modifiers=[Modifier(identifier="HARDENED", levels=1, base_cost=0.25)])
    brick.replace_power(hardened)
    assert determine_defenses(brick, profile).resistant == 8


def test_impenetrable(brick, physical):
    """Test that Impenetrable defense is recorded for penetrating attacks."""
    brick.replace_power(_force_field(modifiers=[Modifier(identifier="IMPENETRABLE", base_cost=0.25)]))
    assert determine_defenses(brick, physical).impenetrable == 8


def test_damage_reduction_and_negation(brick, physical):
    """Test damage reduction percent and negated damage classes."""
    brick.powers.append(
        PowerInstance(id="dr", identifier="DAMAGEREDUCTION", input="PHYSICAL", option_id="RESISTANT50")
    )
    brick.powers.append(
        PowerInstance(id="dn", identifier="DAMAGENEGATION", adders=[Adder(identifier="PHYSICAL", levels=2)])
    )
    defenses = determine_defenses(brick, physical)
    assert defenses.damage_reduction == 50
    assert defenses.damage_negation == 2
    assert defenses.text.startswith("Damage Negation 2DC(s)")
    assert defenses.text.endswith("damage reduction 50%")

    energy = determine_defenses(brick, AttackProfile(attack_class=AttackClass.ENERGY))
    assert energy.damage_reduction == 0
    assert energy.damage_negation == 0


def test_knockback_resistance(brick, physical):
    """Test that knockback resistance is collected for any attack."""
    brick.powers.append(PowerInstance(id="kb", identifier="KBRESISTANCE", levels=4))
    assert determine_defenses(brick, physical).knockback_resistance == 4


def test_ignored_defenses(brick, physical):
    """Test that declared defenses can be left out."""
    defenses = determine_defenses(brick, physical, {"ff"})
    assert defenses.resistant == 0
    assert defenses.ignored == ["ff"]


def test_conditional_defense_options(brick, physical):
    """Test that only conditional defenses need a decision."""
    assert conditional_defense_options(brick, physical) == []
    limited = _force_field(modifiers=[Modifier(identifier="ONLYAGAINSTLIMITEDTYPE", base_cost=-0.5)])
    brick.replace_power(limited)
    options = conditional_defense_options(brick, physical)
    assert [(o.power_id, o.name, o.checked) for o in options] == [("ff", "Force Field", True)]


def test_avad_options(brick):
    """Test that every defense is offered against an AVAD, matching ones checked."""
    brick.powers.append(
        PowerInstance(id="dr", identifier="DAMAGEREDUCTION", input="PHYSICAL", option_id="RESISTANT50")
    )
    brick.powers.append(PowerInstance(id="ls", identifier="LIFESUPPORT"))
    profile = AttackProfile(attack_class=AttackClass.AVAD, input="ED")
    checked = {o.power_id: o.checked for o in conditional_defense_options(brick, profile)}
    assert checked == {"ff": True, "dr": False, "ls": False}


def test_avad_matches():
    """Test matching defenses against the text an AVAD names."""
    assert avad_matches("Power Defense", PowerInstance(id="p", identifier="POWERDEFENSE", levels=5))
    assert avad_matches("Flash Defense", PowerInstance(id="f", identifier="FLASHDEFENSE", levels=5))
    assert avad_matches("Life Support", PowerInstance(id="l", identifier="LIFESUPPORT"))
    assert avad_matches("Resistant PD", _force_field())
    assert not avad_matches("Power Defense", _force_field())
    reduction = PowerInstance(id="dr", identifier="DAMAGEREDUCTION", input="ENERGY", option_id="NORMAL25")
    assert avad_matches("ED", reduction)
    assert not avad_matches("Resistant ED", reduction)


def test_avad_defenses_are_matched(brick):
    """Test that matching AVAD defenses are listed."""
    profile = AttackProfile(attack_class=AttackClass.AVAD, input="ED")
    defenses = determine_defenses(brick, profile)
    assert defenses.matched == ["ed", "ff"]
    assert determine_defenses(brick, profile, {"ff"}).matched == ["ed"]


def test_power_defense_against_adjustment(brick):
    """Test that Power Defense is normal defense against adjustment powers."""
    brick.powers.append(PowerInstance(id="powd", identifier="POWERDEFENSE", levels=10))
    defenses = determine_defenses(brick, AttackProfile(attack_class=AttackClass.ADJUSTMENT))
    assert defenses.defense == 10
    assert defenses.resistant == 0


def test_flash_defense(brick):
    """Test that Flash Defense is the defense against a Flash."""
    brick.powers.append(PowerInstance(id="fd", identifier="FLASHDEFENSE", levels=5))
    defenses = determine_defenses(brick, AttackProfile(attack_class=AttackClass.FLASH))
    assert defenses.flash_defense == 5
    assert defenses.defense == 5


def test_empty_profile_total():
    """Test that no defenses add up to 0."""
    assert DefenseProfile().total == 0
    assert DefenseProfile(defense=3, resistant=2).total == 5
