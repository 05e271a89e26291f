"""
Damage resolution.

The damage pipeline turns rolled dice into the STUN and BODY a target takes.
The stages run strictly in order:

1. dice total (or standard effect values)
2. penetrating BODY from the same faces, less impenetrable defense
3. BODY/STUN split: killing attacks roll a STUN multiplier, normal attacks
   count BODY from the faces
4. defense subtraction, rounding in the defender's favor, floored at 0
5. hit location multipliers (killing: BODY after resistant defense;
   normal: STUN and BODY after all defenses)
6. damage reduction percent
7. minimum damage: STUN is raised to BODY
8. penetrating override
9. stun only / body only / effect only

Damage negation and explosion falloff act on the dice before stage 1.
"""

import math

from pydantic import BaseModel, Field

from herosim.core.config import CombatConfig
from herosim.core.constants import (
    HAYMAKER_DAMAGE_CLASSES,
    HIT_LOCATION_ROLLS,
    HIT_LOCATIONS,
    SIDED_LOCATIONS,
    HitLocation,
    HitLocationTracking,
    RulesEdition,
    StunBodyDamage,
)
from herosim.core.dice import DiceRoll, DiceRoller, roll_damage_dice
from herosim.core.logging import log_debug, log_warning
from herosim.core.tags import Tag
from herosim.core.utils import round_favor_player_down
from herosim.powers.attack_profile import (
    AreaOfEffect,
    AttackProfile,
    DamageClassData,
    damage_class_data,
)
from herosim.powers.model import PowerInstance

from .defense import DefenseProfile
from .knockback import roll_knockback
from .results import DamageResult

AUTOMATON_NO_STUN = {
    "NOSTUN1": "Takes No STUN (loses abilities when takes BODY)",
    "NOSTUN2": "Takes No STUN",
}


class DamageOptions(BaseModel):
    """Per-attack choices that affect damage."""

    aim: str | None = Field(default=None, description="Hit location aimed at; rolled when None.")
    stun_multiplier: float | None = Field(
        default=None,
        description="Forced STUN multiplier for killing attacks.",
    )
    effective_strength: int | None = Field(
        default=None,
        ge=0,
        description="STR put behind the attack; the character's STR when None.",
    )
    maneuvers: list[str] = Field(default_factory=list, description="Declared combat maneuvers.")
    knockback_modifier_dice: int = Field(default=0, description="Situational knockback dice.")
    distance_from_center: float | None = Field(
        default=None,
        ge=0,
        description="Meters from an explosion's center.",
    )


class DamageRoll(BaseModel):
    """A rolled damage formula, ready to be applied to any number of targets."""

    power_id: str
    data: DamageClassData
    roll: DiceRoll
    tags: list[Tag] = Field(default_factory=list)

    @property
    def maximum_effect(self) -> int:
        return self.data.maximum_effect


# ==============================================================================
# DICE
# ==============================================================================


def extra_damage_classes(attacker, power: PowerInstance, maneuvers: list[str]) -> tuple[float, list[Tag]]:
    """
    Damage classes added by maneuvers, martial Extra DCs and Combat Skill Levels.

    Args:
        attacker (Character): The attacking character.
        power (PowerInstance): The attack.
        maneuvers (list[str]): Declared combat maneuvers.

    Returns:
        tuple[float, list[Tag]]: The damage classes and where they came from.

    """
    total = 0.0
    tags: list[Tag] = []
    if "Haymaker" in maneuvers:
        total += HAYMAKER_DAMAGE_CLASSES
        tags.append(Tag(value=f"+{HAYMAKER_DAMAGE_CLASSES}DC", label="Haymaker"))
    if power.identifier == "MANEUVER":
        for extra in attacker.find_powers("EXTRADC"):
            if "RANGED" in (extra.option_alias or extra.name or "").upper():
                continue
            total += extra.levels
            tags.append(Tag(value=f"+{extra.levels}DC", label=extra.display_name))
    for csl in attacker.find_powers("COMBAT_LEVELS") + attacker.find_powers("MENTAL_COMBAT_LEVELS"):
        levels = csl.csl_allocation.get("dc", 0)
        if levels >= 2:
            total += levels // 2
            tags.append(Tag(value=f"+{levels // 2}DC", label=csl.display_name))
    return total, tags


def damage_dice(
    attacker,
    power: PowerInstance,
    profile: AttackProfile,
    options: DamageOptions,
) -> DamageClassData:
    """
    The dice an attack rolls once strength and extra damage classes are added.

    Args:
        attacker (Character): The attacking character.
        power (PowerInstance): The attack.
        profile (AttackProfile): The attack's profile.
        options (DamageOptions): Per-attack choices.

    Returns:
        DamageClassData: The dice to roll.

    """
    strength = options.effective_strength
    if strength is None:
        strength = attacker.value("str")
    extra, tags = extra_damage_classes(attacker, power, options.maneuvers)
    data = damage_class_data(power, profile, strength=strength, extra_damage_classes=extra)
    return data.model_copy(update={"tags": [*data.tags, *tags]})


def roll_damage(
    attacker,
    power: PowerInstance,
    profile: AttackProfile,
    roller: DiceRoller,
    options: DamageOptions | None = None,
) -> DamageRoll:
    """
    Rolls an attack's damage dice, or assigns its standard effect.

    Args:
        attacker (Character): The attacking character.
        power (PowerInstance): The attack.
        profile (AttackProfile): The attack's profile.
        roller (DiceRoller): The dice source.
        options (DamageOptions | None): Per-attack choices.

    Returns:
        DamageRoll: The dice and the damage class data they came from.

    """
    options = options or DamageOptions()
    data = damage_dice(attacker, power, profile, options)
    roll = roll_damage_dice(roller, data.dice, data.extra, power.standard_effect)
    log_debug(
        f"{power.display_name} rolls {roll.formula}: {roll.faces}",
        {"total": roll.total, "killing": data.killing},
    )
    return DamageRoll(power_id=power.id, data=data, roll=roll, tags=data.tags)


def negate_damage_classes(
    damage: DamageRoll,
    negation: int,
) -> tuple[DiceRoll, DamageClassData]:
    """
    Removes damage classes negated by the defender, keeping the faces already rolled.

    Args:
        damage (DamageRoll): The rolled damage.
        negation (int): Damage classes negated.

    Returns:
        tuple[DiceRoll, DamageClassData]: The reduced roll and dice.

    """
    if negation <= 0:
        return damage.roll, damage.data
    data = damage.data.plus_damage_classes(-negation, "damage negation")
    return damage.roll.truncated(data.dice, data.extra), data


def explosion_falloff(roll: DiceRoll, distance: float, area: AreaOfEffect) -> DiceRoll:
    """
    Removes the highest dice for a target away from an explosion's center.

    6e explosions remove floor(distance / radius x (dice - 1)) of the highest
    dice. 5e explosions lose one die per falloff step.

    Args:
        roll (DiceRoll): The rolled damage.
        distance (float): Meters from the center.
        area (AreaOfEffect): The explosion's template.

    Returns:
        DiceRoll: The roll the target takes.

    """
    if not roll.faces or distance <= 0:
        return roll
    if area.dc_falloff:
        remove = math.floor(distance / area.dc_falloff)
    elif area.size > 0:
        ratio = min(1.0, distance / area.size)
        remove = math.floor(ratio * (roll.dice - 1))
    else:
        return roll
    remove = min(remove, roll.dice)
    kept = sorted(roll.faces, reverse=True)[remove:]
    return roll.model_copy(update={"faces": kept})


# ==============================================================================
# HIT LOCATIONS
# ==============================================================================


def roll_hit_location(
    aim: str | None,
    config: CombatConfig,
    roller: DiceRoller,
) -> tuple[str, HitLocation]:
    """
    Picks the location an attack lands on.

    Args:
        aim (str | None): Location aimed at; rolled on 3d6 when None or unknown.
        config (CombatConfig): Combat settings, for left/right tracking.
        roller (DiceRoller): The dice source.

    Returns:
        tuple[str, HitLocation]: The display name, possibly with a side, and the location row.

    """
    if aim and aim != "none" and aim not in HIT_LOCATIONS:
        log_warning(f"Unknown hit location {aim}, rolling instead", {"aim": aim})
        aim = None
    if not aim or aim == "none":
        aim = HIT_LOCATION_ROLLS[sum(roller.roll_3d6())]
    location = HIT_LOCATIONS[aim]
    name = aim
    if config.hit_location_tracking == HitLocationTracking.ALL and aim in SIDED_LOCATIONS:
        side = roller.roll(1, 2)
        name = f"{'Left' if side and side[0] == 1 else 'Right'} {aim}"
    return name, location


def roll_stun_multiplier(edition: RulesEdition, roller: DiceRoller) -> tuple[int, list[int]]:
    """Rolls a killing attack's STUN multiplier: 1d3, or max(1d6-1, 1) in 5e."""
    if edition.is_5e:
        faces = roller.roll(1, 6)
        return max((faces[0] if faces else 1) - 1, 1), faces
    faces = roller.roll(1, 3)
    return (faces[0] if faces else 1), faces


# ==============================================================================
# PIPELINE
# ==============================================================================


def calculate_damage(
    target_id: str,
    roll: DiceRoll,
    data: DamageClassData,
    profile: AttackProfile,
    defenses: DefenseProfile,
    config: CombatConfig,
    roller: DiceRoller,
    edition: RulesEdition,
    options: DamageOptions | None = None,
    reduced_penetration: bool = False,
) -> DamageResult:
    """
    Runs the damage pipeline for one target.

    Args:
        target_id (str): The target character.
        roll (DiceRoll): The dice as they apply to this target.
        data (DamageClassData): Killing flag, knockback multiplier and damage type.
        profile (AttackProfile): The attack's profile.
        defenses (DefenseProfile): The target's applicable defenses.
        config (CombatConfig): Combat settings.
        roller (DiceRoller): Source for location, multiplier and knockback dice.
        edition (RulesEdition): The attacker's rules edition.
        options (DamageOptions | None): Per-attack choices.
        reduced_penetration (bool): Check BODY against defenses twice.

    Returns:
        DamageResult: STUN and BODY taken, with the intermediate values.

    """
    options = options or DamageOptions()
    effects: list[str] = []
    tags = [Tag(value=roll.formula, label=f"{roll.faces}")]

    # 1-2. Dice total and penetrating BODY.
    penetrating = roll.penetrating_body(defenses.impenetrable) if profile.penetrating else 0
    counted = roll.body

    use_locations = config.hit_locations and not profile.no_hit_locations
    location_name: str | None = None
    location = HitLocation("None", 1, 1, 1, 0)
    if use_locations:
        location_name, location = roll_hit_location(options.aim, config, roller)

    # 3. BODY/STUN split.
    stun_multiplier: float = 1
    multiplier_faces: list[int] = []
    if data.killing:
        body: float = roll.total
        if options.stun_multiplier is not None:
            stun_multiplier = options.stun_multiplier
        elif use_locations:
            stun_multiplier = location.stun_x
        else:
            stun_multiplier, multiplier_faces = roll_stun_multiplier(edition, roller)
        stun: float = body * stun_multiplier
        tags.append(Tag(value=f"x{stun_multiplier:g}", label="STUN multiplier"))
    else:
        stun = roll.total
        body = counted
    body_rolled, stun_rolled = int(body), int(stun)

    if reduced_penetration:
        if data.killing:
            body = max(0, body - defenses.resistant)
        else:
            body = max(0, body - defenses.defense - defenses.resistant)
        effects.append("reduced penetration")

    # 4. Defenses.
    stun -= defenses.defense + defenses.resistant
    if data.killing:
        body -= defenses.resistant
    else:
        body -= defenses.defense + defenses.resistant
    stun = round_favor_player_down(max(0, stun))
    body = round_favor_player_down(max(0, body))

    # 5. Hit location.
    location_text = ""
    if use_locations:
        if data.killing:
            body = body * location.body_x
            location_text = f"Hit {location_name} (x{location.stun_x:g} STUN x{location.body_x:g} BODY)"
        else:
            stun = round_favor_player_down(stun * location.n_stun_x)
            body = round_favor_player_down(body * location.body_x)
            location_text = f"Hit {location_name} (x{location.n_stun_x:g} STUN x{location.body_x:g} BODY)"

    # 6. Damage reduction.
    if defenses.damage_reduction > 0:
        factor = 1 - defenses.damage_reduction / 100
        stun = round_favor_player_down(stun * factor)
        body = round_favor_player_down(body * factor)

    # 7. Minimum damage.
    if stun < body:
        stun = body
        effects.append("minimum damage invoked")

    # 8. Penetrating.
    if penetrating > body:
        if data.killing:
            body = penetrating
            stun = body * stun_multiplier
        else:
            stun = penetrating
        effects.append("penetrating damage")

    knockback = None
    if config.knockback and data.knockback_multiplier:
        knockback = roll_knockback(
            round_favor_player_down(body),
            data.knockback_multiplier,
            roller,
            resistance=defenses.knockback_resistance,
            modifier_dice=options.knockback_modifier_dice,
        )

    # 9. Damage type.
    if data.stun_body == StunBodyDamage.STUN_ONLY:
        body = 0
    elif data.stun_body == StunBodyDamage.BODY_ONLY:
        stun = 0
    elif data.stun_body == StunBodyDamage.EFFECT_ONLY:
        stun = body = 0

    result = DamageResult(
        target_id=target_id,
        roll=roll,
        body_rolled=body_rolled,
        stun_rolled=stun_rolled,
        counted_body=counted,
        penetrating_body=penetrating,
        stun_multiplier=stun_multiplier,
        stun_multiplier_faces=multiplier_faces,
        hit_location=location_name,
        hit_location_text=location_text,
        body=round_favor_player_down(body),
        stun=round_favor_player_down(stun),
        effects=effects,
        knockback=knockback,
        defense=defenses,
        tags=tags,
    )
    log_debug(
        f"Damage to {target_id}: {result.stun} STUN, {result.body} BODY",
        {"rolled": f"{stun_rolled}/{body_rolled}", "defense": defenses.text},
    )
    return result


def apply_target_traits(result: DamageResult, defender, config: CombatConfig) -> DamageResult:
    """
    Applies the defender's Automaton options and checks for Stunned.

    Args:
        result (DamageResult): The pipeline result.
        defender (Character): The target.
        config (CombatConfig): Combat settings.

    Returns:
        DamageResult: The result with STUN and the stunned flag adjusted.

    """
    effects = list(result.effects)
    stun = result.stun
    options = {(p.option_id or "").upper() for p in defender.find_powers("AUTOMATON")}
    for option, text in AUTOMATON_NO_STUN.items():
        if option in options:
            stun = 0
            effects.append(text)
    stunned = False
    if config.stunned and stun > defender.value("con") and "CANNOTBESTUNNED" not in options:
        stunned = True
        effects.append("inflicts Stunned")
    return result.model_copy(update={"stun": stun, "stunned": stunned, "effects": effects})


def flash_segments(roll: DiceRoll, flash_defense: int) -> int:
    """Segments of blindness: counted BODY less Flash Defense."""
    return max(0, roll.body - flash_defense)
