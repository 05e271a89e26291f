"""
Adjustment powers.

AID, DRAIN, TRANSFER, HEALING, SUPPRESS and their kin change characteristics
instead of dealing damage. The rolled total is a number of active points;
each characteristic converts them to levels at its own cost. The change is
kept as a timed effect keyed by the source power and the characteristic, so
a second roll from the same power tops up the first, capped at what the
dice could ever roll.
"""

import re

from herosim.character.update import CharacterUpdate
from herosim.core.constants import (
    ADJUSTMENT_ENHANCERS,
    DEFAULT_ADJUSTMENT_RETURN_SECONDS,
    DEFENSIVE_ADJUSTMENT_TARGETS,
    DELAYED_RETURN_SECONDS,
)
from herosim.core.error_handling import Refusal, log_error
from herosim.core.logging import log_debug, log_warning
from herosim.core.tags import Tag
from herosim.effects.timed_effect import TimedEffect, effect_name
from herosim.powers.catalog import cost_per_level
from herosim.powers.model import PowerInstance

from .defense import DefenseProfile
from .results import AdjustmentResult

# Powers that cannot be used on their own user.
SELF_EXCLUDED = frozenset({"DRAIN", "TRANSFER"})

# Powers reduced by the target's Power Defense.
POWER_DEFENSE_APPLIES = frozenset({"DRAIN", "TRANSFER"})

# 5e Variable Effect advantage value to number of characteristics affected.
_VARIABLE_EFFECT_TARGETS = {0.5: 2, 1.0: 4}


def adjustment_targets(power: PowerInstance) -> tuple[list[str], list[str]]:
    """
    The characteristics an adjustment power reduces or raises, and those a TRANSFER raises.

    The input names them, e.g. "STR", "STR, DEX", "STR to CON" or "STR -> CON".

    Returns:
        tuple[list[str], list[str]]: Lower case keys affected, and keys enhanced on the user.

    """
    text = power.input or ""
    parts = re.split(r"\s*->\s*|\s+to\s+", text, maxsplit=1, flags=re.IGNORECASE)
    affected = [m.group(0).lower() for m in (re.search(r"\w+", p) for p in parts[0].split(",")) if m]
    enhanced: list[str] = []
    if len(parts) > 1:
        enhanced = [m.group(0).lower() for m in (re.search(r"\w+", p) for p in parts[1].split(",")) if m]
    return affected, enhanced


def maximum_targets(power: PowerInstance, edition) -> int | None:
    """
    How many characteristics one roll may affect at once.

    6e counts Expanded Effect levels; 5e Variable Effect affects 2, 4 or every
    listed characteristic at +1/2, +1 and +2.

    Returns:
        int | None: The cap, or None for no cap.

    """
    if edition.is_5e:
        variable = power.modifier("VARIABLEEFFECT")
        if variable is None:
            return 1
        if variable.base_cost >= 2:
            return None
        return _VARIABLE_EFFECT_TARGETS.get(float(variable.base_cost), 1)
    expanded = power.modifier("EXPANDEDEFFECT")
    if expanded is None:
        return 1
    return max(1, expanded.levels)


def adjustment_cost(characteristic: str, edition) -> float:
    """Active points per level of a characteristic; defensive ones cost double."""
    identifier = characteristic.upper()
    cost = cost_per_level(identifier, edition)
    if identifier in DEFENSIVE_ADJUSTMENT_TARGETS:
        cost *= 2
    return cost or 1


def return_seconds(power: PowerInstance) -> float | None:
    """
    How long an adjustment lasts before it fades.

    Returns:
        float | None: Seconds; None for SUPPRESS, which lasts while maintained.

    """
    if power.identifier == "SUPPRESS":
        return None
    delayed = power.modifier("DELAYEDRETURNRATE")
    if delayed is None:
        return DEFAULT_ADJUSTMENT_RETURN_SECONDS
    seconds = DELAYED_RETURN_SECONDS.get((delayed.option_id or "").upper())
    if seconds is None:
        log_error(
            f"DELAYEDRETURNRATE has unhandled option {delayed.option_id}",
            {"power": power.display_name},
        )
        return DEFAULT_ADJUSTMENT_RETURN_SECONDS
    return seconds


def _adjust(
    holder,
    power: PowerInstance,
    source_actor: str,
    key: str,
    active_points: float,
    maximum_effect: int,
    sign: int,
    seconds: float | None,
) -> tuple[int, TimedEffect | None, bool]:
    """
    One characteristic's change: the levels moved, the effect to write and
    whether it updates a live effect.
    """
    cost = adjustment_cost(key, holder.edition)
    previous = holder.effects.find(power.id, key)
    if previous is not None:
        total = min(previous.active_points + active_points, maximum_effect)
        new_levels = int(total / cost)
        levels = new_levels - abs(previous.value)
        effect = previous.model_copy(
            update={
                "value": sign * new_levels,
                "active_points": total,
                "name": effect_name(power.identifier, sign * new_levels, key, source_actor),
            }
        )
        return levels, effect, True
    levels = int(active_points / cost)
    if active_points <= 0:
        return 0, None, False
    effect = TimedEffect(
        name=effect_name(power.identifier, sign * levels, key, source_actor),
        source=power.id,
        source_identifier=power.identifier,
        source_actor=source_actor,
        characteristic=key,
        value=sign * levels,
        active_points=active_points,
        seconds=seconds,
    )
    return levels, effect, False


def apply_adjustment(
    attacker,
    defender,
    power: PowerInstance,
    rolled_active_points: int,
    maximum_effect: int,
    defenses: DefenseProfile | None = None,
) -> AdjustmentResult | Refusal:
    """
    Works out the characteristic changes of an adjustment power.

    Args:
        attacker (Character): The character using the power.
        defender (Character): The character it is used on.
        power (PowerInstance): The adjustment power.
        rolled_active_points (int): The dice total.
        maximum_effect (int): Highest total the dice could roll, capping repeated uses.
        defenses (DefenseProfile | None): The target's Power Defense, for DRAIN and TRANSFER.

    Returns:
        AdjustmentResult | Refusal: The changes with their updates, which the caller
            writes; a refusal when the power cannot target its own user.

    """
    identifier = power.identifier
    if identifier in SELF_EXCLUDED and attacker.id == defender.id:
        return Refusal(
            reason=(
                f"{identifier} attacker ({attacker.name}) and defender ({defender.name}) cannot be the same."
            ),
            context={"character": attacker.id, "power": power.id},
        )

    defenses = defenses or DefenseProfile()
    active_points = float(rolled_active_points)
    tags = [Tag(value=str(rolled_active_points), label="active points rolled")]
    if identifier in POWER_DEFENSE_APPLIES:
        reduction = defenses.defense + defenses.resistant
        active_points = max(0.0, active_points - reduction)
        if reduction:
            tags.append(Tag(value=f"-{reduction}", label="Power Defense"))

    affected, enhanced_keys = adjustment_targets(power)
    cap = maximum_targets(power, attacker.edition)
    if cap is not None and len(affected) > cap:
        log_warning(
            f"{power.display_name} can affect {cap} characteristics at once, ignoring the rest",
            {"listed": affected},
        )
        affected = affected[:cap]

    sign = 1 if identifier in ADJUSTMENT_ENHANCERS else -1
    seconds = return_seconds(power)
    target_update = CharacterUpdate(character_id=defender.id)
    attacker_update = CharacterUpdate(character_id=attacker.id)
    levels: dict[str, int] = {}
    enhanced: dict[str, int] = {}
    effects: list[TimedEffect] = []

    for key in affected:
        if not defender.has_characteristic(key):
            log_warning(
                f"{defender.name} has no characteristic {key.upper()} for {power.display_name}",
                {"character": defender.id},
            )
            continue
        if identifier == "HEALING":
            record = defender.characteristic(key)
            healed = min(record.max, record.value + int(active_points / adjustment_cost(key, defender.edition)))
            levels[key] = max(0, healed - record.value)
            target_update.values[key] = max(record.value, healed)
            continue
        moved, effect, is_update = _adjust(
            defender, power, attacker.name, key, active_points, maximum_effect, sign, seconds
        )
        levels[key] = sign * moved
        if effect is None:
            continue
        effects.append(effect)
        if is_update:
            target_update.update_effects.append(effect)
        else:
            target_update.create_effects.append(effect)

    if identifier == "TRANSFER" and levels:
        for key in enhanced_keys:
            moved, effect, is_update = _adjust(
                attacker, power, attacker.name, key, active_points, maximum_effect, 1, seconds
            )
            enhanced[key] = moved
            if effect is None:
                continue
            effects.append(effect)
            if is_update:
                attacker_update.update_effects.append(effect)
            else:
                attacker_update.create_effects.append(effect)

    written = [u for u in (target_update, attacker_update) if not u.is_empty]
    log_debug(
        f"{power.display_name} on {defender.name}: {active_points:g} AP",
        {"levels": levels, "enhanced": enhanced},
    )
    return AdjustmentResult(
        target_id=defender.id,
        active_points=active_points,
        characteristics=affected,
        levels=levels,
        enhanced=enhanced,
        effects=effects,
        defense=defenses,
        tags=tags,
        written=written,
    )
