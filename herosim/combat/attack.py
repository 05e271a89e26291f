"""
To-hit resolution.

An attack is declared with its targets and options, paid for, checked for an
activation roll and then rolled once on 3d6: the roll hits every combat
value at or below 11 + combat value + modifiers - 3d6. Abort maneuvers stop
at declaration, area templates may need to hit a point in space, and
autofire repeats the comparison per shot.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from herosim.character.update import CharacterUpdate
from herosim.core.config import CombatConfig
from herosim.core.constants import (
    AOE_ORIGIN_FREE_DISTANCE,
    AOE_ORIGIN_TARGET_DCV,
    COMBAT_MANEUVERS,
    DEFAULT_TARGET_NUMBER,
    HIT_LOCATIONS,
    RANGE_FACTOR,
    SECONDS_PER_TURN,
    AttackState,
)
from herosim.core.dice import DiceRoller
from herosim.core.error_handling import Refusal
from herosim.core.logging import log_debug, log_info, log_warning
from herosim.core.tags import Tag, add_modifier_tag
from herosim.core.utils import make_ocv_modifier, round_favor_player_down, round_favor_player_up, signed_string
from herosim.effects.timed_effect import TimedEffect
from herosim.powers.attack_profile import AttackProfile, make_attack_profile
from herosim.powers.model import PowerInstance

from .endurance import power_endurance, roll_activation, spend_endurance
from .results import AoeOrigin, TargetHit, ToHitResult

AUTOFIRE_SHOT_PENALTY = 2
MULTIPLE_ATTACK_PENALTY = 2


class TargetInfo(BaseModel):
    """A declared target and its precomputed distances."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    character: Any = Field(description="The target Character.")
    distance: float = Field(default=0, ge=0, description="Meters from the attacker.")
    distance_from_previous: float = Field(
        default=0,
        ge=0,
        description="Meters from the previous target, for autofire spread across targets.",
    )
    distance_from_origin: float = Field(
        default=0,
        ge=0,
        description="Meters from the center of an area template.",
    )
    shots: int | None = Field(
        default=None,
        ge=1,
        description="Autofire shots assigned to this target.",
    )


class AttackOptions(BaseModel):
    """Everything declared along with an attack."""

    ocv_modifier: int = Field(default=0, description="Free-form OCV modifier entered by the user.")
    dcv_modifier: int = Field(default=0, description="DCV change lasting until the next phase.")
    aim: str | None = Field(default=None, description="Hit location aimed at.")
    use_penalty_skill_levels: bool = Field(default=False, description="Offset the aim penalty.")
    effective_strength: int | None = Field(
        default=None,
        ge=0,
        description="STR put behind the attack; the character's STR when None.",
    )
    maneuvers: list[str] = Field(default_factory=list, description="Declared combat maneuvers.")
    targets: list[TargetInfo] = Field(default_factory=list)
    aoe_origin_distance: float | None = Field(
        default=None,
        ge=0,
        description="Meters from the attacker to an area template placed in open space.",
    )
    multiple_attack_penalty: int = Field(
        default=0,
        le=0,
        description="OCV penalty applied to every attack of a Multiple Attack.",
    )


# ==============================================================================
# MODIFIERS
# ==============================================================================


def declared_maneuvers(options: AttackOptions, config: CombatConfig) -> list[str]:
    """
    The declared maneuvers that are in play.

    Unknown maneuvers, and optional ones when optional maneuvers are off, are
    dropped with a warning.
    """
    maneuvers = []
    for name in options.maneuvers:
        maneuver = COMBAT_MANEUVERS.get(name)
        if maneuver is None:
            log_warning(f"Unknown combat maneuver {name}, ignoring it", {"maneuver": name})
            continue
        if maneuver.optional and not config.optional_maneuvers:
            log_warning(f"Optional maneuver {name} is not enabled, ignoring it", {"maneuver": name})
            continue
        maneuvers.append(name)
    return maneuvers


def range_penalty(distance: float, factor: int) -> int:
    """
    OCV penalty for attacking at range: -2 per doubling beyond the first increment.

    Args:
        distance (float): Meters to the target.
        factor (int): Meters of the first range increment.

    Returns:
        int: The penalty, never positive.

    """
    if distance <= 0:
        return 0
    return min(0, -math.ceil(math.log2(distance / factor)) * 2)


def combat_skill_levels(attacker) -> dict[str, int]:
    """Sum of the Combat Skill Level allocations of a character's active levels."""
    total = {"ocv": 0, "omcv": 0, "dcv": 0, "dmcv": 0, "dc": 0}
    for csl in attacker.find_powers("COMBAT_LEVELS") + attacker.find_powers("MENTAL_COMBAT_LEVELS"):
        for key, value in csl.csl_allocation.items():
            if key in total:
                total[key] += value
    return total


def autofire_skills(attacker) -> set[str]:
    """Options of the character's Autofire Skills, e.g. ACCURATE."""
    return {(skill.option_id or "").upper() for skill in attacker.find_powers("AUTOFIRE_SKILLS")}


def _attack_text(power: PowerInstance, maneuvers: list[str]) -> str:
    return " ".join([power.effect.lower(), *(m.lower() for m in maneuvers)])


# ==============================================================================
# RESOLUTION
# ==============================================================================


def lingering_dcv_effect(
    attacker,
    power: PowerInstance,
    dcv: int,
    dmcv: int,
) -> TimedEffect | None:
    """
    The DCV or DMCV change an attack leaves on its user until their next phase.

    Only one such effect exists per power; None is returned when the power
    already has one or there is nothing to change.
    """
    if not dcv and not dmcv:
        return None
    if attacker.effects.has_effect_from(power.id):
        return None
    characteristic, value = ("dmcv", dmcv) if dmcv else ("dcv", dcv)
    spd = max(1, attacker.value("spd"))
    return TimedEffect(
        name=f"{power.display_name} {signed_string(value)} {characteristic.upper()}",
        source=power.id,
        source_identifier=power.identifier,
        source_actor=attacker.name,
        characteristic=characteristic,
        value=value,
        affects_max=False,
        seconds=math.ceil(SECONDS_PER_TURN / spd),
        next_phase=True,
    )


def roll_aoe_origin(
    roll_value: int,
    distance: float,
    attacker,
    roller: DiceRoller,
) -> AoeOrigin:
    """
    Checks whether an area template lands where it was placed.

    Placing the origin beyond the free distance needs the roll to hit DCV 3.
    A miss moves the template half the distance at most, in a 1d6 direction.
    """
    if distance <= AOE_ORIGIN_FREE_DISTANCE[attacker.edition]:
        return AoeOrigin(target_number=0, hit=True, text="Template placed as declared")
    target_number = AOE_ORIGIN_TARGET_DCV
    if roll_value >= target_number:
        return AoeOrigin(target_number=target_number, hit=True, text="Template placed as declared")
    miss_by = target_number - roll_value
    moved = miss_by if attacker.edition.is_5e else miss_by * 2
    displacement = round_favor_player_down(min(distance / 2, moved))
    direction = (roller.roll(1, 6) or [1])[0]
    return AoeOrigin(
        target_number=target_number,
        hit=False,
        miss_by=miss_by,
        displacement=displacement,
        direction=direction,
        text=f"Template misses by {miss_by} and moves {displacement}m in direction {direction}",
    )


def _skipped_shots(attacker, profile: AttackProfile, targets: list[TargetInfo]) -> list[int]:
    """Shots wasted on the gap before each target of an autofire spread."""
    skipped = [0] * len(targets)
    if not profile.is_autofire or "SKIPOVER" in autofire_skills(attacker):
        return skipped
    for index, target in enumerate(targets[1:], start=1):
        skipped[index] = max(0, math.floor(target.distance_from_previous / 2 - 1))
    return skipped


def _shots_on(profile: AttackProfile, target: TargetInfo, single: bool) -> int:
    if target.shots:
        return target.shots
    return profile.autofire_shots if single and profile.is_autofire else 1


def count_shots(attacker, profile: AttackProfile, options: AttackOptions) -> int | Refusal:
    """
    Shots an attack fires, counting autofire shots skipped between targets.

    Returns:
        int | Refusal: The shots, or a refusal when autofire cannot cover them.

    """
    targets = options.targets
    single = len(targets) == 1
    skipped = _skipped_shots(attacker, profile, targets)
    shots = sum(_shots_on(profile, t, single) + s for t, s in zip(targets, skipped))
    if profile.is_autofire and shots > profile.autofire_shots:
        return Refusal(
            reason=f"Autofire fires at most {profile.autofire_shots} shots, but {shots} are needed.",
            context={"character": attacker.id, "shots": shots},
        )
    return max(shots, 1)


def _spread_modifier(attacker, profile: AttackProfile, targets: list[TargetInfo]) -> tuple[int, list[Tag]]:
    """OCV modifier for autofire spread across several targets."""
    tags: list[Tag] = []
    if not profile.is_autofire or len(targets) < 2:
        return 0, tags
    skills = autofire_skills(attacker)
    if "ACCURATE" in skills:
        modifier = -1
        add_modifier_tag(tags, -1, "Accurate Sprayfire")
    else:
        skipped_meters = sum(t.distance_from_previous for t in targets[1:])
        modifier = make_ocv_modifier(skipped_meters / -2)
        add_modifier_tag(tags, modifier, "Autofire spread")
    if "CONCENTRATED" in skills:
        modifier -= 1
        add_modifier_tag(tags, -1, "Concentrated Sprayfire")
    if "SKIPOVER" in skills:
        modifier -= 1
        add_modifier_tag(tags, -1, "Skipover Sprayfire")
    return modifier, tags


def _target_hits(
    power: PowerInstance,
    profile: AttackProfile,
    targets: list[TargetInfo],
    roll_value: int,
    spread_modifier: int,
) -> list[TargetHit]:
    """Compares the roll with every declared target, one comparison per shot."""
    area = profile.area
    explosion = area is not None and area.is_explosion
    if explosion:
        targets = sorted(targets, key=lambda t: t.distance_from_origin)
    always_hits = area is not None and area.always_hits
    single = len(targets) == 1
    modifier = power.modifier("EXPLOSION") or power.modifier("AOE")

    hits: list[TargetHit] = []
    for target in targets:
        character = target.character
        value = round_favor_player_up(character.value(profile.targets.value))
        for shot in range(_shots_on(profile, target, single)):
            shot_value = roll_value + spread_modifier - AUTOFIRE_SHOT_PENALTY * shot
            hit = TargetHit(
                target_id=character.id,
                name=character.name,
                defends_with=profile.targets,
                value=value,
                roll_value=shot_value,
                hit=value <= shot_value or always_hits or power.identifier == "AID",
                by=shot_value - value,
                shot=shot,
                distance=target.distance,
            )
            if explosion and modifier is not None:
                alias = modifier.option_alias or modifier.option_id or ""
                hit = hit.model_copy(
                    update={
                        "value": 0,
                        "hit": True,
                        "by": shot_value,
                        "text": f"{alias}{modifier.levels} ({target.distance_from_origin:g}m from center)",
                    }
                )
            hits.append(hit)
    return hits


def resolve_to_hit(
    attacker,
    power: PowerInstance,
    options: AttackOptions,
    config: CombatConfig,
    roller: DiceRoller,
) -> ToHitResult | Refusal:
    """
    Resolves the to-hit roll of a declared attack.

    Args:
        attacker (Character): The attacking character.
        power (PowerInstance): The power attacked with.
        options (AttackOptions): Targets, maneuvers and modifiers.
        config (CombatConfig): Combat settings.
        roller (DiceRoller): The dice source.

    Returns:
        ToHitResult | Refusal: The result with the updates to write, or a refusal
            when the attack cannot be made. A refusal mutates nothing and rolls nothing.

    """
    reason = attacker.cannot_act_reason()
    if reason:
        return Refusal(reason=reason, context={"character": attacker.id, "power": power.id})

    edition = attacker.edition
    profile = make_attack_profile(power, edition)
    maneuvers = declared_maneuvers(options, config)
    text = _attack_text(power, maneuvers)

    strength = 0
    if profile.uses_telekinesis:
        strength = power.levels
    elif profile.uses_strength:
        strength = options.effective_strength if options.effective_strength is not None else attacker.value("str")

    base = attacker.value(profile.uses.value)
    shots_fired = count_shots(attacker, profile, options)
    if isinstance(shots_fired, Refusal):
        return shots_fired

    end = power_endurance(power, edition, profile, strength)
    spend = spend_endurance(attacker, power, end, roller, config, shots=shots_fired)
    if isinstance(spend, Refusal):
        return spend

    written: list[CharacterUpdate] = []
    pending: list[CharacterUpdate] = []
    resources = spend.resources
    if not spend.characteristics.is_empty:
        if config.writes_endurance(attacker.actor_type):
            written.append(spend.characteristics)
        else:
            pending.append(spend.characteristics)

    result = ToHitResult(
        attacker_id=attacker.id,
        power_id=power.id,
        uses=profile.uses,
        targets=profile.targets,
        endurance=spend.result,
        shots_fired=shots_fired,
        attack_tags=profile.tags,
    )

    activation = roll_activation(power, roller)
    if activation is not None and not activation.success:
        result = result.model_copy(
            update={
                "state": AttackState.MISS,
                "activation": activation,
                "text": f"{power.display_name} failed its activation roll ({activation.total} vs {activation.target}-)",
            }
        )
        return _finish(result, resources, written, pending)

    # Combat value and modifiers.
    tags = [Tag(value=signed_string(base), label=profile.uses.name)]
    modifiers = 0
    if options.ocv_modifier:
        modifiers += options.ocv_modifier
        add_modifier_tag(tags, options.ocv_modifier, power.display_name)
    if power.ocv:
        modifiers += power.ocv
        add_modifier_tag(tags, power.ocv, f"{power.display_name} OCV")
    if "Set" in maneuvers:
        modifiers += COMBAT_MANEUVERS["Set"].ocv
        add_modifier_tag(tags, COMBAT_MANEUVERS["Set"].ocv, "Set")

    # A template placed in open space is ranged to its origin.
    distance = options.targets[0].distance if options.targets else options.aoe_origin_distance
    if profile.takes_range_penalty and distance is not None:
        penalty = range_penalty(distance, RANGE_FACTOR[edition])
        modifiers += penalty
        add_modifier_tag(tags, penalty, "range penalty")
        if "Brace" in maneuvers:
            brace = min(-penalty, COMBAT_MANEUVERS["Brace"].ocv)
            if brace > 0:
                modifiers += brace
                add_modifier_tag(tags, brace, "Brace")

    csl = combat_skill_levels(attacker)
    csl_ocv = csl["omcv"] if profile.uses.is_mental else csl["ocv"]
    modifiers += csl_ocv
    add_modifier_tag(tags, csl_ocv, "Combat Skill Levels")

    aim = options.aim
    hit_location = None
    if config.hit_locations and aim and aim != "none" and not profile.no_hit_locations:
        location = HIT_LOCATIONS.get(aim)
        if location is None:
            log_warning(f"Unknown hit location {aim}, attacking without aiming", {"aim": aim})
        else:
            hit_location = aim
            modifiers += location.ocv
            add_modifier_tag(tags, location.ocv, aim)
            if options.use_penalty_skill_levels:
                psl = next(iter(attacker.find_powers("PENALTY_SKILL_LEVELS")), None)
                if psl is not None:
                    offset = min(psl.levels, abs(location.ocv))
                    modifiers += offset
                    add_modifier_tag(tags, offset, psl.display_name)

    if options.multiple_attack_penalty:
        modifiers += options.multiple_attack_penalty
        add_modifier_tag(tags, options.multiple_attack_penalty, "Multiple Attack")

    faces = roller.roll_3d6()
    roll_value = DEFAULT_TARGET_NUMBER + base + modifiers - sum(faces)
    tags.append(Tag(value=f"-{sum(faces)}", label="3d6"))
    combat_value = "DMCV" if profile.targets.is_mental else "DCV"
    result = result.model_copy(
        update={
            "faces": faces,
            "roll_value": roll_value,
            "tags": tags,
            "activation": activation,
            "hit_location": hit_location,
            "text": f"Hits a {combat_value} of {roll_value}",
        }
    )

    # Lingering DCV from skill levels, the power and declared maneuvers.
    dcv = power.dcv + csl["dcv"] + options.dcv_modifier
    for name in maneuvers:
        maneuver_dcv = COMBAT_MANEUVERS[name].dcv
        if maneuver_dcv:
            dcv += maneuver_dcv
    lingering = lingering_dcv_effect(attacker, power, dcv, csl["dmcv"])
    if lingering is not None:
        resources = resources.merge(CharacterUpdate(character_id=attacker.id, create_effects=[lingering]))

    aborts = "abort" in text or any(COMBAT_MANEUVERS[name].aborts for name in maneuvers)
    if aborts:
        aborted = TimedEffect(
            name=f"Aborted [{power.display_name}]",
            source=f"{power.id}:abort",
            source_identifier=power.identifier,
            source_actor=attacker.name,
            next_phase=True,
            status="aborted",
        )
        resources = resources.merge(CharacterUpdate(character_id=attacker.id, create_effects=[aborted]))
    if "dodge" in text:
        return _finish(
            result.model_copy(update={"state": AttackState.ABORTED, "text": f"{power.display_name} {signed_string(dcv)} DCV"}),
            resources,
            written,
            pending,
        )
    if "block" in text:
        return _finish(
            result.model_copy(
                update={
                    "state": AttackState.ABORTED,
                    "text": f"Block roll of {roll_value} vs OCV of pending attack.",
                }
            ),
            resources,
            written,
            pending,
        )

    spread, autofire_tags = _spread_modifier(attacker, profile, options.targets)
    hits = _target_hits(power, profile, options.targets, roll_value, spread)

    aoe_origin = None
    if profile.area is not None and options.aoe_origin_distance is not None:
        aoe_origin = roll_aoe_origin(roll_value, options.aoe_origin_distance, attacker, roller)

    state = AttackState.HIT if any(hit.hit for hit in hits) else AttackState.MISS
    if not hits and aoe_origin is not None:
        state = AttackState.HIT if aoe_origin.hit else AttackState.MISS
    result = result.model_copy(
        update={
            "state": state,
            "hits": hits,
            "tags": [*tags, *autofire_tags],
            "always_hits": profile.area is not None and profile.area.always_hits,
            "aoe_origin": aoe_origin,
        }
    )
    log_info(
        f"{attacker.name} attacks with {power.display_name}: {result.text}",
        {"hits": len(result.target_ids), "faces": faces},
    )
    return _finish(result, resources, written, pending)


def _finish(
    result: ToHitResult,
    resources: CharacterUpdate,
    written: list[CharacterUpdate],
    pending: list[CharacterUpdate],
) -> ToHitResult:
    if not resources.is_empty:
        written = [resources, *written]
    log_debug(
        f"To-hit {result.state.value} for {result.power_id}",
        {"written": len(written), "pending": len(pending)},
    )
    return result.model_copy(update={"written": written, "pending": pending})


def multiple_attack_penalty(attacks: int) -> int:
    """OCV penalty on every attack of a Multiple Attack: -2 per attack after the first."""
    return -MULTIPLE_ATTACK_PENALTY * max(0, attacks - 1)

