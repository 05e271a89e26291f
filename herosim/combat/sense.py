"""
Sense-affecting powers.

A Flash rolls dice like a normal attack but only its counted BODY matters:
less the target's Flash Defense, it is how many segments the target is
blinded for.
"""

from herosim.character.update import CharacterUpdate
from herosim.core.dice import DiceRoll
from herosim.core.logging import log_debug
from herosim.core.tags import Tag
from herosim.effects.timed_effect import TimedEffect
from herosim.powers.model import PowerInstance

from .defense import DefenseProfile
from .results import SenseAffectingResult


def apply_sense_affecting(
    attacker,
    defender,
    power: PowerInstance,
    roll: DiceRoll,
    defenses: DefenseProfile,
) -> SenseAffectingResult:
    """
    Works out the blindness a sense-affecting power inflicts.

    Args:
        attacker (Character): The character using the power.
        defender (Character): The target.
        power (PowerInstance): The sense-affecting power.
        roll (DiceRoll): The rolled dice.
        defenses (DefenseProfile): The target's defenses; only Flash Defense applies.

    Returns:
        SenseAffectingResult: The segments of blindness and the effect that imposes it.

    """
    body = max(0, roll.body - defenses.flash_defense)
    tags = [Tag(value=str(roll.body), label="BODY")]
    if defenses.flash_defense:
        tags.append(Tag(value=f"-{defenses.flash_defense}", label="Flash Defense"))

    effect = None
    written: list[CharacterUpdate] = []
    if body > 0:
        effect = TimedEffect(
            name=f"{power.identifier} {body} [{attacker.name}]",
            source=power.id,
            source_identifier=power.identifier,
            source_actor=attacker.name,
            seconds=body,
            status="blind",
        )
        written.append(CharacterUpdate(character_id=defender.id, create_effects=[effect]))

    log_debug(f"{power.display_name} blinds {defender.name} for {body} segments", {"faces": roll.faces})
    return SenseAffectingResult(
        target_id=defender.id,
        body=body,
        flash_defense=defenses.flash_defense,
        effect=effect,
        tags=tags,
        written=written,
    )
