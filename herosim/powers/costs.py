"""
Cost engine.

Derives base points, active points, the active points that count toward
damage classes, real cost and END cost from a declared power record. All
functions are pure: the same record always yields the same costs.

Active Points = (Base Points + Adders) x (1 + Advantages)
Real Cost = Active Points / (1 + Limitations)
"""

import math
from typing import Any

from catchery import log_warning
from pydantic import BaseModel, ConfigDict, Field

from herosim.core.constants import PowerCategory, RulesEdition
from herosim.core.error_handling import log_error, safe_operation
from herosim.core.utils import round_favor_player_down

from .catalog import lookup, lookup_modifier
from .definition import PowerDefinition
from .model import Modifier, PowerInstance

MINIMUM_LIMITATION = 0.25

# Option specific cost per level, keyed by (identifier, edition).
OPTION_COST_PER_LEVEL: dict[tuple[str, RulesEdition], dict[str, float]] = {
    ("PENALTY_SKILL_LEVELS", RulesEdition.FIFTH): {"SINGLE": 2, "TIGHT": 2, "ALL": 3},
    ("PENALTY_SKILL_LEVELS", RulesEdition.SIXTH): {
        "SINGLE": 1,
        "THREE": 2,
        "SINGLEDCV": 2,
        "GROUPDCV": 3,
        "ALL": 3,
    },
    ("MENTAL_COMBAT_LEVELS", RulesEdition.SIXTH): {"SINGLE": 1, "TIGHT": 3, "BROAD": 6},
    ("COMBAT_LEVELS", RulesEdition.FIFTH): {
        "SINGLESINGLE": 1,
        "SINGLESTRIKE": 2,
        "SINGLE": 2,
        "MAGIC": 3,
        "MARTIAL": 3,
        "STRIKE": 3,
        "TIGHT": 3,
        "BROAD": 4,
        "DECV": 4,
        "HTHDCV": 4,
        "TWODCV": 4,
        "TWOOCV": 4,
        "DCV": 5,
        "HTH": 5,
        "MENTAL": 5,
        "RANGED": 5,
        "HTHMENTAL": 6,
        "HTHRANGED": 6,
        "MENTALRANGED": 6,
        "ALL": 8,
    },
    ("COMBAT_LEVELS", RulesEdition.SIXTH): {
        "SINGLE": 2,
        "TIGHT": 3,
        "BROAD": 5,
        "HTH": 8,
        "RANGED": 8,
        "ALL": 10,
    },
    ("SKILL_LEVELS", RulesEdition.FIFTH): {
        "CHARACTERISTIC": 2,
        "SINGLEMOVEMENT": 2,
        "ALLMOVEMENT": 3,
        "RELATED": 3,
        "SIMILAR": 5,
        "NONCOMBAT": 8,
        "OVERALL": 10,
    },
    ("SKILL_LEVELS", RulesEdition.SIXTH): {
        "CHARACTERISTIC": 2,
        "RELATED": 3,
        "GROUP": 4,
        "AGILITY": 6,
        "NONCOMBAT": 10,
        "SINGLEMOVEMENT": 2,
        "ALLMOVEMENT": 3,
        "SIMILAR": 5,
        "OVERALL": 12,
    },
    ("DEADLYBLOW", RulesEdition.FIFTH): {"VERYLIMITED": 4, "LIMITED": 7, "ANY": 10},
    ("DEADLYBLOW", RulesEdition.SIXTH): {"VERYLIMITED": 4, "LIMITED": 7, "ANY": 10},
}

# Minimum levels and free doublings of each 6e area shape.
AOE_SHAPE_MINIMUMS: dict[str, tuple[int, int]] = {
    "SURFACE": (2, 0),
    "ANY": (2, 0),
    "RADIUS": (4, 1),
    "CONE": (8, 2),
    "LINE": (16, 3),
}

# Default damage class falloff of 5e explosion shapes.
EXPLOSION_SHAPE_FALLOFF: dict[str, int] = {"NORMAL": 1, "CONE": 2, "LINE": 3}


class ModifierCost(BaseModel):
    """The computed value of one advantage or limitation."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(description="The modifier identifier.")
    value: float = Field(description="Signed value after levels and adders.")


class PowerCosts(BaseModel):
    """Every number the cost engine derives from a power record."""

    model_config = ConfigDict(frozen=True)

    base_points_plus_adders: float = Field(default=0, description="Base cost plus adders.")
    active_points: int = Field(default=0, description="Cost after advantages.")
    active_points_for_damage_classes: int = Field(
        default=0,
        description=(
            "Cost counting only the advantages that affect damage taken. "
            "Reported only; dice come from the power's levels."
        ),
    )
    active_points_without_end_modifiers: float = Field(
        default=0,
        description="Active points ignoring Reduced Endurance.",
    )
    real_cost: int = Field(default=0, description="Cost after limitations.")
    cost_suffix: str = Field(
        default="",
        description="Multipower slot marker: f/v (6e) or u/m (5e).",
    )
    advantages: float = Field(default=0, description="Sum of advantage values.")
    limitations: float = Field(default=0, description="Sum of limitation magnitudes.")
    end: int = Field(default=0, description="END cost per use.")
    modifier_values: list[ModifierCost] = Field(
        default_factory=list,
        description="Computed value of each advantage and limitation.",
    )

    @property
    def real_cost_text(self) -> str:
        return f"{self.real_cost}{self.cost_suffix}"

    def modifier_value(self, identifier: str) -> float:
        identifier = identifier.upper()
        return next(
            (m.value for m in self.modifier_values if m.identifier == identifier),
            0,
        )


def option_cost_per_level(power: PowerInstance, edition: RulesEdition) -> float | None:
    """
    Cost per level of skill levels and talents whose cost depends on the option.

    Args:
        power (PowerInstance): The power record.
        edition (RulesEdition): The rules edition.

    Returns:
        float | None: The cost per level, or None when the power has no option table.

    """
    if power.identifier == "STRIKING_APPEARANCE":
        return 3 if power.option_id == "ALL" else 2
    if power.identifier == "MENTAL_COMBAT_LEVELS" and edition.is_5e:
        log_error(
            "Mental Combat Levels do not exist in 5e",
            {"power": power.display_name},
        )
        return None
    table = OPTION_COST_PER_LEVEL.get((power.identifier, edition))
    if table is None:
        return None
    if power.option_id not in table:
        log_error(
            f"Unknown {edition.value} {power.identifier} option {power.option_id}",
            {"power": power.display_name},
        )
        return None
    return table[power.option_id]


def resolve_cost_per_level(
    power: PowerInstance, edition: RulesEdition, definition: PowerDefinition | None
) -> float:
    """
    Works out what each level of a power costs.

    The option tables win, then the declared cost, then the catalog (where a
    catalog cost of 0 is honored), then 2 for skills, then the base cost, then 1.
    """
    if power.identifier == "FLASH":
        return 5 if power.option_id == "SIGHTGROUP" else 3
    by_option = option_cost_per_level(power, edition)
    if by_option is not None:
        return by_option
    if power.cost_per_level is not None:
        return power.cost_per_level
    if definition is not None and definition.cost_per_level is not None:
        return definition.cost_per_level
    if definition is not None and definition.is_skill:
        return 2
    return power.base_cost or 1


def modifier_base_cost(modifier: Modifier, edition: RulesEdition) -> float:
    """
    The signed value of a modifier before levels and adders.

    Area of effect and explosion use shape based formulas, Requires a Roll is
    always a limitation, and the catalog overrides the declared cost of a few
    modifiers.

    Args:
        modifier (Modifier): The declared modifier.
        edition (RulesEdition): The rules edition.

    Returns:
        float: The signed base value.

    """
    if modifier.identifier == "AOE" and not edition.is_5e:
        shape = (modifier.option_id or "").upper()
        if shape not in AOE_SHAPE_MINIMUMS:
            log_error(
                f"Unknown area of effect shape {modifier.option_id}, treating as no area",
                {"modifier": modifier.identifier},
            )
            return 0
        min_level, min_doubles = AOE_SHAPE_MINIMUMS[shape]
        levels = max(modifier.levels, min_level)
        return 0.25 * math.ceil(math.log2(levels) - min_doubles)

    if modifier.identifier == "REQUIRESASKILLROLL":
        return -abs(modifier.base_cost)

    if modifier.identifier == "EXPLOSION":
        shape = (modifier.option_id or "NORMAL").upper()
        falloff = EXPLOSION_SHAPE_FALLOFF.get(shape)
        if falloff is None:
            log_error(
                f"Unknown explosion shape {modifier.option_id}",
                {"modifier": modifier.identifier},
            )
            falloff = 1
        return modifier.base_cost + 0.25 * ((modifier.levels or 1) - falloff)

    definition = lookup_modifier(modifier.identifier)
    if definition is not None and definition.base_cost:
        return definition.base_cost
    return modifier.base_cost


def base_points_plus_adders(power: PowerInstance, edition: RulesEdition) -> float:
    """
    Sums the base cost, levels and adders of a power.

    Args:
        power (PowerInstance): The power record.
        edition (RulesEdition): The rules edition.

    Returns:
        float: Base points plus adders, before any advantage.

    """
    if power.everyman or power.native_tongue:
        return 0

    definition = lookup(power.identifier, edition)
    if definition is None:
        log_warning(
            f"Power {power.identifier} is not in the {edition.value} catalog, using declared costs",
            {"power": power.display_name, "edition": edition.value},
        )
    base_cost = power.base_cost or 0
    cost_per_level = resolve_cost_per_level(power, edition, definition)

    sub_cost = cost_per_level * power.levels
    if cost_per_level == 1.5 and sub_cost % 1:
        # 3 CP per 2 points.
        sub_cost = math.ceil(sub_cost) + 1

    if power.identifier == "FORCEWALL":
        base_cost += power.body_levels + power.length_levels + power.height_levels
        base_cost += math.ceil(power.width_levels * 2)
    elif power.identifier == "DUPLICATION":
        base_cost += power.points * cost_per_level

    cost = base_cost + sub_cost

    if power.identifier == "FOLLOWER":
        cost = math.ceil((power.base_points or 5) / 5)
        cost *= math.ceil(math.sqrt(power.number)) + 1

    adder_cost = 0.0
    for adder in power.adders:
        adder_base_cost = adder.base_cost or adder.lvl_cost or 0
        if adder.selected is not False:
            value_per_level = max(1, adder.lvl_val or 0)
            adder_levels = math.ceil(max(1, adder.levels) / value_per_level)
            adder_cost += math.ceil(adder_base_cost * adder_levels)

        sub_adder_cost = 0
        for sub_adder in adder.adders:
            if sub_adder.selected is not False:
                sub_adder_cost += math.ceil(sub_adder.base_cost * max(1, sub_adder.levels))
        # Picking many entries of a category never costs more than the category.
        if not adder.selected and sub_adder_cost > (adder_base_cost or 99):
            sub_adder_cost = adder_base_cost
        adder_cost += sub_adder_cost

    cost += adder_cost

    if power.identifier == "NAKEDMODIFIER":
        naked = [m for m in power.modifiers if not m.private]
        if naked:
            cost *= sum(modifier_base_cost(m, edition) for m in naked)

    return cost


def _advantage_value(
    modifier: Modifier, base_cost: float, has_autofire: bool
) -> tuple[float, float]:
    """Returns (advantage value, END modifier share) of one advantage."""
    end_modifier = 0.0
    if modifier.identifier in ("AOE", "EXPLOSION"):
        value = base_cost
    elif modifier.identifier == "CUMULATIVE":
        value = base_cost + modifier.levels * 0.25
    elif modifier.identifier == "REDUCEDEND":
        end_modifier = 2 * base_cost if has_autofire else base_cost
        value = end_modifier
    else:
        value = base_cost * max(1, modifier.levels)

    if modifier.adders:
        value += sum(adder.base_cost for adder in modifier.adders)
        value = max(0.25, value)
    return max(0, value), end_modifier


def _limitation_value(modifier: Modifier, base_cost: float) -> float:
    value = -base_cost
    for adder in modifier.adders:
        adder_base_cost = adder.base_cost
        if adder.identifier == "JAMMED" and value == MINIMUM_LIMITATION:
            adder_base_cost = 0
        value += -adder_base_cost
        value *= max(1, adder.multiplier or 0)
    if value < MINIMUM_LIMITATION:
        log_warning(
            "Limitation is below the minimum of -1/4, using -1/4",
            {"modifier": modifier.identifier, "value": value},
        )
        value = MINIMUM_LIMITATION
    return value


def _zero_costs(power: PowerInstance, edition: RulesEdition) -> PowerCosts:
    return PowerCosts()


@safe_operation(default_value=_zero_costs, error_message="Cost computation failed")
def compute_costs(power: PowerInstance, edition: RulesEdition) -> PowerCosts:
    """
    Computes every derived cost of a power.

    Args:
        power (PowerInstance): The power record.
        edition (RulesEdition): The rules edition.

    Returns:
        PowerCosts: Base points plus adders, active points, active points for
            damage classes, real cost and END cost. Zero costs if the record
            cannot be costed.

    """
    definition = lookup(power.identifier, edition)
    base = base_points_plus_adders(power, edition)
    is_attack = definition is not None and definition.is_attack
    has_autofire = power.has_modifier("AUTOFIRE")

    values: list[ModifierCost] = []
    advantages = 0.0
    advantages_dc = 0.0
    end_modifier_cost = 0.0
    for modifier in power.modifiers:
        if power.identifier == "NAKEDMODIFIER" and not modifier.private:
            continue
        base_cost = modifier_base_cost(modifier, edition)
        if base_cost < 0:
            continue
        value, end_share = _advantage_value(modifier, base_cost, has_autofire)
        end_modifier_cost += end_share
        advantages += value
        values.append(ModifierCost(identifier=modifier.identifier, value=value))
        modifier_definition = lookup_modifier(modifier.identifier)
        if is_attack and modifier_definition and modifier_definition.affects_damage_classes:
            advantages_dc += value

    active_points = round_favor_player_down(base * (1 + advantages))
    active_points_dc = round_favor_player_down(base * (1 + advantages_dc))
    without_end = base * (1 + advantages - end_modifier_cost)

    inherited = power.parent.modifiers if power.parent else []
    limitations = 0.0
    for modifier in [*power.modifiers, *inherited]:
        base_cost = modifier_base_cost(modifier, edition)
        if base_cost >= 0:
            continue
        value = _limitation_value(modifier, base_cost)
        limitations += value
        values.append(ModifierCost(identifier=modifier.identifier, value=-value))

    real_cost: float = active_points
    cost_suffix = ""
    parent = power.parent
    if parent is not None:
        parent_definition = lookup(parent.identifier, edition)
        if parent_definition is not None and parent_definition.is_enhancer:
            real_cost = max(1, real_cost - 1)
        if parent.identifier == "MULTIPOWER":
            if power.ultra_slot:
                cost_suffix = "u" if edition.is_5e else "f"
                real_cost /= 10
            else:
                cost_suffix = "m" if edition.is_5e else "v"
                real_cost /= 5
        elif parent.identifier == "ELEMENTAL_CONTROL":
            real_cost -= parent.base_cost or 0

    real_cost = round_favor_player_down(real_cost / (1 + limitations))
    if real_cost == 0 and active_points > 0:
        real_cost = 1

    costs = PowerCosts(
        base_points_plus_adders=base,
        active_points=active_points,
        active_points_for_damage_classes=active_points_dc,
        active_points_without_end_modifiers=without_end,
        real_cost=real_cost,
        cost_suffix=cost_suffix,
        advantages=advantages,
        limitations=limitations,
        modifier_values=values,
    )
    return costs.model_copy(update={"end": endurance_cost(power, edition, costs, definition)})


def endurance_cost(
    power: PowerInstance,
    edition: RulesEdition,
    costs: PowerCosts,
    definition: PowerDefinition | None = None,
) -> int:
    """
    END spent each time the power is used.

    Args:
        power (PowerInstance): The power record.
        edition (RulesEdition): The rules edition.
        costs (PowerCosts): The power's computed costs.
        definition (PowerDefinition | None): The catalog entry, looked up when omitted.

    Returns:
        int: END per use; 1 per 10 active points, at least 1 for powers that cost END.

    """
    definition = definition or lookup(power.identifier, edition)
    end = max(1, round_favor_player_down(costs.active_points / 10))

    increased = power.modifier("INCREASEDEND")
    if increased and increased.option_id:
        end *= int(increased.option_id.lower().replace("x", "") or 1)

    reduced = power.modifier("REDUCEDEND")
    if reduced is None and power.parent is not None:
        reduced = power.parent.modifier("REDUCEDEND")
    if reduced is not None and reduced.option_id == "HALFEND":
        end = round_favor_player_down(
            (costs.active_points_without_end_modifiers or costs.active_points) / 10
        )
        end = max(1, round_favor_player_down(end / 2))
    elif reduced is not None and reduced.option_id == "ZERO":
        end = 0

    if not power.has_modifier("COSTSEND"):
        if definition is None or not definition.costs_end:
            end = 0
        if power.has_modifier("CHARGES"):
            end = 0

    if power.identifier == "STR":
        end = 0
    if definition is not None and (
        definition.is_movement
        or definition.has(PowerCategory.PERK)
        or definition.has(PowerCategory.TALENT)
    ):
        end = 0
    return end


def describe_costs(costs: PowerCosts) -> dict[str, Any]:
    """A flat summary of costs for logging and display."""
    return {
        "base": costs.base_points_plus_adders,
        "active": costs.active_points,
        "active_dc": costs.active_points_for_damage_classes,
        "real": costs.real_cost_text,
        "end": costs.end,
    }
