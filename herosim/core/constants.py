"""
Constants and enumerations for the combat engine.

Defines the rules editions, duration and range classes, attack classes,
combat values, hit locations, combat maneuvers and the other fixed tables
used throughout the resolution engines.
"""

from enum import Enum
from typing import NamedTuple


class NiceEnum(Enum):
    """An enumeration that provides a nicer string representation."""

    def __str__(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name.lower().replace("_", " ").capitalize()


class RulesEdition(NiceEnum):
    """The two supported rules editions."""

    SIXTH = "6e"
    FIFTH = "5e"

    @property
    def is_5e(self) -> bool:
        return self == RulesEdition.FIFTH


class PowerCategory(NiceEnum):
    """Categories a catalog entry can belong to."""

    ADJUSTMENT = "adjustment"
    ATTACK = "attack"
    AUTOMATON = "automaton"
    BODY_AFFECTING = "body-affecting"
    CHARACTERISTIC = "characteristic"
    COMPOUND = "compound"
    CUSTOM = "custom"
    DEFENSE = "defense"
    DISADVANTAGE = "disadvantage"
    ENHANCER = "enhancer"
    FRAMEWORK = "framework"
    MARTIAL = "martial"
    MENTAL = "mental"
    MOVEMENT = "movement"
    PERK = "perk"
    SENSE = "sense"
    SENSE_AFFECTING = "sense-affecting"
    SIZE = "size"
    SKILL = "skill"
    SPECIAL = "special"
    STANDARD = "standard"
    TALENT = "talent"
    UNKNOWN = "unknown"


class DurationClass(NiceEnum):
    """How long a power stays on once activated."""

    INSTANT = "instant"
    CONSTANT = "constant"
    PERSISTENT = "persistent"
    INHERENT = "inherent"


class RangeClass(NiceEnum):
    """Default range of a power."""

    SELF = "self"
    NO_RANGE = "no_range"
    STANDARD = "standard"
    LINE_OF_SIGHT = "line_of_sight"
    LIMITED_RANGE = "limited_range"
    RANGE_BASED_ON_STR = "range_based_on_str"
    SPECIAL = "special"


class AttackClass(NiceEnum):
    """What kind of damage or effect an attack delivers."""

    PHYSICAL = "physical"
    ENERGY = "energy"
    MENTAL = "mental"
    ADJUSTMENT = "adjustment"
    ENTANGLE = "entangle"
    DARKNESS = "darkness"
    IMAGES = "images"
    MINDSCAN = "mindscan"
    AVAD = "avad"
    FLASH = "flash"
    CHANGE_ENVIRONMENT = "change_environment"
    MIND_CONTROL = "mindcontrol"
    TELEPATHY = "telepathy"


class CombatValue(NiceEnum):
    """Offensive and defensive combat values."""

    OCV = "ocv"
    OMCV = "omcv"
    DCV = "dcv"
    DMCV = "dmcv"

    @property
    def is_mental(self) -> bool:
        return self in (CombatValue.OMCV, CombatValue.DMCV)


class StunBodyDamage(NiceEnum):
    """Which damage pools an attack affects."""

    STUN_BODY = "stunbody"
    STUN_ONLY = "stunonly"
    BODY_ONLY = "bodyonly"
    EFFECT_ONLY = "effectonly"


class ExtraDice(NiceEnum):
    """Remainder added to a whole number of six-sided dice."""

    ZERO = "zero"
    PIP = "pip"
    HALF = "half"
    ONE_PIP = "one-pip"


class AutomationLevel(NiceEnum):
    """Which updates are written automatically after a resolution."""

    NONE = "none"
    NPC_ONLY = "npc_only"
    PC_END_ONLY = "pc_end_only"
    ALL = "all"


class HitLocationTracking(NiceEnum):
    """Whether hit locations track a left/right side."""

    NONE = "none"
    ALL = "all"


class ActorType(NiceEnum):
    """Whether a character is run by a player or by the game master."""

    PC = "pc"
    NPC = "npc"


class AttackState(NiceEnum):
    """States an attack goes through during to-hit resolution."""

    DECLARED = "declared"
    ABORTED = "aborted"
    REFUSED = "refused"
    HIT = "hit"
    MISS = "miss"


class KnockbackOutcome(NiceEnum):
    """Result of a knockback roll."""

    NONE = "none"
    KNOCKDOWN = "knockdown"
    KNOCKBACK = "knockback"


class AreaShape(NiceEnum):
    """Area-of-effect template shapes."""

    NONE = "none"
    RADIUS = "radius"
    CONE = "cone"
    LINE = "line"
    SURFACE = "surface"
    ANY = "any"
    HEX = "hex"


DEFAULT_TARGET_NUMBER = 11
SECONDS_PER_TURN = 12
DEFAULT_ADJUSTMENT_RETURN_SECONDS = 12

# Meters per range increment before the first -2 OCV.
RANGE_FACTOR = {RulesEdition.SIXTH: 8, RulesEdition.FIFTH: 4}

# Meters from the attacker beyond which an area origin must be rolled for.
AOE_ORIGIN_FREE_DISTANCE = {RulesEdition.SIXTH: 2, RulesEdition.FIFTH: 1}
AOE_ORIGIN_TARGET_DCV = 3

DELAYED_RETURN_SECONDS: dict[str, float] = {
    "MINUTE": 60,
    "FIVEMINUTES": 300,
    "20MINUTES": 1200,
    "HOUR": 3600,
    "6HOURS": 21600,
    "DAY": 86400,
    "WEEK": 604800,
    "MONTH": 2.628e6,
    "SEASON": 2.628e6 * 3,
    "YEAR": 3.154e7,
    "FIVEYEARS": 3.154e7 * 5,
    "TWENTYFIVEYEARS": 3.154e7 * 25,
    "CENTURY": 3.154e7 * 100,
}


class HitLocation(NamedTuple):
    """Damage multipliers and OCV penalty for one body location."""

    name: str
    stun_x: float
    n_stun_x: float
    body_x: float
    ocv: int


HIT_LOCATIONS: dict[str, HitLocation] = {
    "Head": HitLocation("Head", 5, 2, 2, -8),
    "Hand": HitLocation("Hand", 1, 0.5, 0.5, -6),
    "Arm": HitLocation("Arm", 2, 0.5, 0.5, -5),
    "Shoulder": HitLocation("Shoulder", 3, 1, 1, -5),
    "Chest": HitLocation("Chest", 3, 1, 1, -5),
    "Stomach": HitLocation("Stomach", 4, 1.5, 1, -7),
    "Vitals": HitLocation("Vitals", 4, 1.5, 2, -8),
    "Thigh": HitLocation("Thigh", 2, 1, 1, -4),
    "Leg": HitLocation("Leg", 2, 0.5, 0.5, -6),
    "Foot": HitLocation("Foot", 1, 0.5, 0.5, -8),
}

# 3d6 total to location.
HIT_LOCATION_ROLLS: dict[int, str] = {
    3: "Head",
    4: "Head",
    5: "Head",
    6: "Hand",
    7: "Arm",
    8: "Arm",
    9: "Shoulder",
    10: "Chest",
    11: "Chest",
    12: "Stomach",
    13: "Vitals",
    14: "Thigh",
    15: "Leg",
    16: "Leg",
    17: "Foot",
    18: "Foot",
}

SIDED_LOCATIONS = frozenset({"Hand", "Shoulder", "Arm", "Thigh", "Leg", "Foot"})


class Maneuver(NamedTuple):
    """A combat maneuver row: phase cost, OCV and DCV modifiers, and effect text."""

    name: str
    phase: str
    ocv: int | None
    dcv: int | None
    effect: str
    is_attack: bool = False
    optional: bool = False

    @property
    def aborts(self) -> bool:
        return "abort" in self.effect.lower()


COMBAT_MANEUVERS: dict[str, Maneuver] = {
    "Block": Maneuver("Block", "1/2", 0, 0, "Blocks HTH attacks, abort"),
    "Brace": Maneuver("Brace", "0", 2, None, "+2 OCV only to offset the Range Modifier"),
    "Disarm": Maneuver("Disarm", "1/2", -2, 0, "Disarm target, requires STR vs. STR roll", True),
    "Dodge": Maneuver("Dodge", "1/2", None, 3, "Dodge all attacks, abort"),
    "Grab": Maneuver("Grab", "1/2", -1, -2, "Grab two limbs; can Squeeze, Slam, or Throw", True),
    "Grab By": Maneuver("Grab By", "1/2", -3, -4, "Move and Grab object, +(v/10) to STR", True),
    "Haymaker": Maneuver("Haymaker", "1/2", 0, -5, "+4 Damage Classes to any attack", True),
    "Move By": Maneuver("Move By", "1/2", -2, -2, "((STR/2) + (v/10))d6; attacker takes 1/3 damage", True),
    "Move Through": Maneuver("Move Through", "1/2", -3, -3, "(STR + (v/6))d6; attacker takes 1/2 or full damage", True),
    "Set": Maneuver("Set", "1", 1, 0, "Take extra time to aim a Ranged attack at a target"),
    "Shove": Maneuver("Shove", "1/2", -1, -1, "Push target back 1m per 5 STR used", True),
    "Strike": Maneuver("Strike", "1/2", 0, 0, "STR damage or by weapon type", True),
    "Throw": Maneuver("Throw", "1/2", 0, 0, "Throw object or character, does STR damage", True),
    "Trip": Maneuver("Trip", "1/2", -1, -2, "Knock a target to the ground, making him Prone", True),
    "Choke": Maneuver("Choke", "1/2", -2, -2, "NND 1d6, Grabs One Limb; can cause choking", True, True),
    "Club Weapon": Maneuver("Club Weapon", "1/2", 0, 0, "Killing weapon does equivalent Normal Damage", True, True),
    "Cover": Maneuver("Cover", "1/2", -2, 0, "Target held at gunpoint", True, True),
    "Dive For Cover": Maneuver("Dive For Cover", "1/2", 0, 0, "Character avoids attack; abort", False, True),
    "Hipshot": Maneuver("Hipshot", "1/2", -1, 0, "+1 DEX only for purposes of initiative", True, True),
    "Pulling A Punch": Maneuver("Pulling A Punch", "1/2", -1, 0, "Strike, normal STUN damage, 1/2 BODY damage", True, True),
    "Roll With A Punch": Maneuver("Roll With A Punch", "1/2", -2, -2, "Block after being hit; take 1/2 damage; abort", False, True),
    "Snap Shot": Maneuver("Snap Shot", "1", -1, 0, "Lets character duck back behind cover", True, True),
    "Strafe": Maneuver("Strafe", "1/2", -2, -2, "Make Ranged attack while moving", True, True),
    "Suppression Fire": Maneuver("Suppression Fire", "1/2", -2, 0, "Continuous fire through an area, must be Autofire", True, True),
}

HAYMAKER_DAMAGE_CLASSES = 4

# Defensive traits cost double when targeted by adjustment powers.
DEFENSIVE_ADJUSTMENT_TARGETS = frozenset(
    {
        "PD",
        "ED",
        "POWERDEFENSE",
        "MENTALDEFENSE",
        "FLASHDEFENSE",
        "FORCEFIELD",
        "ARMOR",
        "DAMAGENEGATION",
        "DAMAGEREDUCTION",
        "KBRESISTANCE",
        "LACKOFWEAKNESS",
        "DEFLECTION",
        "BARRIER",
        "FORCEWALL",
    }
)

ADJUSTMENT_ENHANCERS = frozenset({"ABSORPTION", "AID", "HEALING", "SUCCOR"})
ADJUSTMENT_REDUCERS = frozenset({"DISPEL", "DRAIN", "SUPPRESS", "TRANSFER"})

