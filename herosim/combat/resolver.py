"""
Combat resolver.

Ties the engines together for a host application: declare an attack, roll
its damage once, apply it to each target, switch powers on and off, and age
timed effects. Every call takes the combat configuration it was built with
and writes each character at most once, keeping the updates the automation
level does not allow as pending for the host to apply by hand.
"""

from collections.abc import Iterable

from herosim.character.character import Character
from herosim.character.update import CharacterUpdate, apply_update
from herosim.core.config import DEFAULT_CONFIG, CombatConfig
from herosim.core.constants import AttackClass, AttackState
from herosim.core.dice import DiceRoller
from herosim.core.error_handling import Refusal, safe_operation
from herosim.core.logging import log_debug, log_info, log_warning
from herosim.effects.timed_effect import TimedEffect
from herosim.powers.attack_profile import make_attack_profile
from herosim.powers.model import PowerInstance

from .adjustment import apply_adjustment
from .attack import AttackOptions, TargetInfo, multiple_attack_penalty, resolve_to_hit
from .damage import (
    DamageOptions,
    DamageRoll,
    apply_target_traits,
    calculate_damage,
    explosion_falloff,
    negate_damage_classes,
    roll_damage,
)
from .defense import DefenseOption, DefenseProfile, conditional_defense_options, determine_defenses
from .endurance import power_endurance, roll_activation, spend_endurance
from .results import (
    AdjustmentResult,
    DamageResult,
    SenseAffectingResult,
    ToggleResult,
    ToHitResult,
)
from .sense import apply_sense_affecting

ApplyResult = DamageResult | AdjustmentResult | SenseAffectingResult


def _failed(reason: str):
    """Builds the fallback of a resolution that raised."""

    def fallback(*_args, **_kwargs) -> Refusal:
        return Refusal(reason=reason)

    return fallback


class CombatResolver:
    """
    Resolves attacks and power use for one combat session.

    Attributes:
        config (CombatConfig):
            The optional rules and automation level in play.
        roller (DiceRoller):
            The dice source shared by every resolution.

    """

    def __init__(self, config: CombatConfig = DEFAULT_CONFIG, roller: DiceRoller | None = None) -> None:
        self.config = config
        self.roller = roller or DiceRoller()

    # ============================================================================
    # HELPERS
    # ============================================================================

    @staticmethod
    def _power(character: Character, power_id: str) -> PowerInstance | Refusal:
        power = character.power(power_id)
        if power is None:
            return Refusal(
                reason=f"{character.name} has no power {power_id}.",
                context={"character": character.id, "power": power_id},
            )
        return power

    @staticmethod
    def _write(characters: Iterable[Character], updates: list[CharacterUpdate]) -> None:
        """Applies updates, merging those that target the same character."""
        by_id = {character.id: character for character in characters}
        merged: dict[str, CharacterUpdate] = {}
        for update in updates:
            if update.character_id in merged:
                merged[update.character_id] = merged[update.character_id].merge(update)
            else:
                merged[update.character_id] = update
        for character_id, update in merged.items():
            character = by_id.get(character_id)
            if character is None:
                log_warning("Update for a character not in this resolution", {"character": character_id})
                continue
            apply_update(character, update)

    # ============================================================================
    # ATTACKS
    # ============================================================================

    @safe_operation(default_value=_failed("The attack could not be resolved."), error_message="Attack failed")
    def attack(
        self,
        attacker: Character,
        power_id: str,
        options: AttackOptions | None = None,
    ) -> ToHitResult | Refusal:
        """
        Declares an attack and rolls to hit.

        Args:
            attacker (Character): The attacking character.
            power_id (str): Id of the power attacked with.
            options (AttackOptions | None): Targets, maneuvers and modifiers.

        Returns:
            ToHitResult | Refusal: The to-hit result, already written where allowed.

        """
        power = self._power(attacker, power_id)
        if isinstance(power, Refusal):
            return power
        options = options or AttackOptions()
        result = resolve_to_hit(attacker, power, options, self.config, self.roller)
        if isinstance(result, Refusal):
            log_info(result.reason, result.context)
            return result
        self._write([attacker], result.written)
        return result

    def multiple_attack(
        self,
        attacker: Character,
        attacks: list[tuple[str, AttackOptions]],
    ) -> list[ToHitResult | Refusal]:
        """
        Resolves a Multiple Attack: every attack at -2 OCV per attack after the first.

        Attacks run in order. After the first miss the remaining attacks are
        forfeit: they still spend END and charges but roll nothing.

        Args:
            attacker (Character): The attacking character.
            attacks (list[tuple[str, AttackOptions]]): Power id and options of each attack.

        Returns:
            list[ToHitResult | Refusal]: One result per attack resolved; stops at a refusal.

        """
        penalty = multiple_attack_penalty(len(attacks))
        results: list[ToHitResult | Refusal] = []
        missed = False
        for power_id, options in attacks:
            if missed:
                results.append(self._forfeit(attacker, power_id))
                continue
            result = self.attack(
                attacker,
                power_id,
                options.model_copy(update={"multiple_attack_penalty": penalty}),
            )
            results.append(result)
            if isinstance(result, Refusal):
                break
            missed = result.state != AttackState.HIT
        return results

    def _forfeit(self, attacker: Character, power_id: str) -> ToHitResult | Refusal:
        power = self._power(attacker, power_id)
        if isinstance(power, Refusal):
            return power
        profile = make_attack_profile(power, attacker.edition)
        strength = attacker.value("str") if profile.uses_strength else 0
        end = power_endurance(power, attacker.edition, profile, strength)
        spend = spend_endurance(attacker, power, end, self.roller, self.config)
        if isinstance(spend, Refusal):
            return spend
        written = [spend.resources]
        pending = []
        if self.config.writes_endurance(attacker.actor_type):
            written.append(spend.characteristics)
        else:
            pending.append(spend.characteristics)
        written = [u for u in written if not u.is_empty]
        self._write([attacker], written)
        return ToHitResult(
            attacker_id=attacker.id,
            power_id=power.id,
            state=AttackState.MISS,
            endurance=spend.result,
            text="Forfeited after a missed attack",
            written=written,
            pending=[u for u in pending if not u.is_empty],
        )

    # ============================================================================
    # DAMAGE
    # ============================================================================

    def conditional_defenses(
        self,
        attacker: Character,
        power_id: str,
        defender: Character,
    ) -> list[DefenseOption]:
        """
        Defenses the user must confirm before damage is applied.

        AID never asks: it is not resisted.
        """
        power = attacker.power(power_id)
        if power is None or power.identifier == "AID":
            return []
        profile = make_attack_profile(power, attacker.edition)
        return conditional_defense_options(defender, profile)

    @safe_operation(default_value=_failed("The damage could not be rolled."), error_message="Damage roll failed")
    def roll_damage(
        self,
        attacker: Character,
        power_id: str,
        options: DamageOptions | None = None,
    ) -> DamageRoll | Refusal:
        """
        Rolls an attack's damage once, to be applied to every target it hit.

        Args:
            attacker (Character): The attacking character.
            power_id (str): Id of the power attacked with.
            options (DamageOptions | None): Strength and maneuvers behind the attack.

        Returns:
            DamageRoll | Refusal: The rolled dice.

        """
        power = self._power(attacker, power_id)
        if isinstance(power, Refusal):
            return power
        profile = make_attack_profile(power, attacker.edition)
        return roll_damage(attacker, power, profile, self.roller, options)

    @safe_operation(default_value=_failed("The damage could not be applied."), error_message="Applying damage failed")
    def apply_damage(
        self,
        attacker: Character,
        power_id: str,
        damage: DamageRoll,
        defender: Character,
        options: DamageOptions | None = None,
        ignore_defense_ids: frozenset[str] | set[str] = frozenset(),
    ) -> ApplyResult | Refusal:
        """
        Applies rolled damage to one target.

        Adjustment powers change characteristics, sense-affecting powers blind,
        everything else runs the damage pipeline.

        Args:
            attacker (Character): The attacking character.
            power_id (str): Id of the power attacked with.
            damage (DamageRoll): The rolled damage.
            defender (Character): The target.
            options (DamageOptions | None): Aim, stun multiplier and explosion distance.
            ignore_defense_ids (set[str]): Defenses declared as not applying.

        Returns:
            DamageResult | AdjustmentResult | SenseAffectingResult | Refusal: The outcome,
                already written where allowed.

        """
        power = self._power(attacker, power_id)
        if isinstance(power, Refusal):
            return power
        options = options or DamageOptions()
        profile = make_attack_profile(power, attacker.edition)
        defenses = determine_defenses(defender, profile, ignore_defense_ids)
        characters = [attacker, defender]

        if profile.is_adjustment:
            result = apply_adjustment(
                attacker, defender, power, damage.roll.total, damage.maximum_effect, defenses
            )
            if isinstance(result, Refusal):
                return result
            self._write(characters, result.written)
            return result

        if profile.attack_class == AttackClass.FLASH:
            sense = apply_sense_affecting(attacker, defender, power, damage.roll, defenses)
            self._write(characters, sense.written)
            return sense

        avad = power.modifier("AVAD")
        if profile.attack_class == AttackClass.AVAD and avad is not None and avad.has_adder("NND"):
            # All or nothing: a matching defense stops it, otherwise nothing reduces it.
            if defenses.matched:
                log_debug(
                    f"{defender.name} has the defense {power.display_name} works against",
                    {"matched": defenses.matched},
                )
                return DamageResult(
                    target_id=defender.id,
                    roll=damage.roll,
                    effects=["no damage: a matching defense applies"],
                    defense=defenses,
                )
            defenses = DefenseProfile(ignored=defenses.ignored)

        roll, data = negate_damage_classes(damage, defenses.damage_negation)
        if profile.area is not None and profile.area.is_explosion and options.distance_from_center:
            roll = explosion_falloff(roll, options.distance_from_center, profile.area)

        result = calculate_damage(
            defender.id,
            roll,
            data,
            profile,
            defenses,
            self.config,
            self.roller,
            attacker.edition,
            options,
            reduced_penetration=power.has_modifier("REDUCEDPENETRATION"),
        )
        result = apply_target_traits(result, defender, self.config)

        update = CharacterUpdate(character_id=defender.id)
        if result.stun:
            update.values["stun"] = defender.value("stun") - result.stun
        if result.body:
            update.values["body"] = defender.value("body") - result.body
        if result.stunned:
            update.create_effects.append(
                TimedEffect(
                    name="Stunned",
                    source=f"{power.id}:stunned",
                    source_identifier=power.identifier,
                    source_actor=attacker.name,
                    next_phase=True,
                    status="stunned",
                )
            )
        if update.is_empty:
            return result
        if self.config.writes_damage(defender.actor_type):
            self._write(characters, [update])
            result = result.model_copy(update={"written": [update]})
        else:
            result = result.model_copy(update={"pending": [update]})
        log_info(
            f"{defender.name} takes {result.stun} STUN and {result.body} BODY from {power.display_name}",
            {"written": bool(result.written)},
        )
        return result

    def apply_to_targets(
        self,
        attacker: Character,
        power_id: str,
        damage: DamageRoll,
        targets: list[TargetInfo],
        options: DamageOptions | None = None,
        ignore_defense_ids: frozenset[str] | set[str] = frozenset(),
    ) -> list[ApplyResult | Refusal]:
        """
        Applies one damage roll to several targets, explosions nearest to the center first.

        Args:
            attacker (Character): The attacking character.
            power_id (str): Id of the power attacked with.
            damage (DamageRoll): The rolled damage.
            targets (list[TargetInfo]): The targets hit.
            options (DamageOptions | None): Options shared by every target.
            ignore_defense_ids (set[str]): Defenses declared as not applying.

        Returns:
            list: One outcome per target, in resolution order.

        """
        options = options or DamageOptions()
        power = attacker.power(power_id)
        is_explosion = False
        if power is not None:
            area = make_attack_profile(power, attacker.edition).area
            is_explosion = area is not None and area.is_explosion
        if is_explosion:
            targets = sorted(targets, key=lambda t: t.distance_from_origin)
        results = []
        for target in targets:
            target_options = options
            if is_explosion:
                target_options = options.model_copy(update={"distance_from_center": target.distance_from_origin})
            results.append(
                self.apply_damage(
                    attacker, power_id, damage, target.character, target_options, ignore_defense_ids
                )
            )
        return results

    # ============================================================================
    # POWERS AND TIME
    # ============================================================================

    def toggle_power(
        self,
        character: Character,
        power_id: str,
        affected: Iterable[Character] = (),
    ) -> ToggleResult | Refusal:
        """
        Switches a constant or persistent power on or off.

        Turning a power on pays its END and rolls any activation roll; a
        character without the END is refused. Turning a power off never
        rolls and ends every effect it maintains, including SUPPRESS
        effects on the characters passed as affected.

        Args:
            character (Character): The power's owner.
            power_id (str): Id of the power.
            affected (Iterable[Character]): Other characters carrying effects of the power.

        Returns:
            ToggleResult | Refusal: The new state, already written.

        """
        power = self._power(character, power_id)
        if isinstance(power, Refusal):
            return power
        affected = list(affected)

        if power.active:
            updates = [
                CharacterUpdate(character_id=c.id, delete_sources=[power.id])
                for c in affected
                if c.effects.has_effect_from(power.id)
            ]
            updates.append(
                CharacterUpdate(character_id=character.id, active={power.id: False}, delete_sources=[power.id])
            )
            self._write([character, *affected], updates)
            return ToggleResult(
                character_id=character.id,
                power_id=power.id,
                active=False,
                text=f"{power.display_name} turned off",
                written=updates,
            )

        end = power_endurance(power, character.edition)
        if self.config.use_endurance and not power.use_end_reserve and end > character.value("end"):
            return Refusal(
                reason=(
                    f"{power.display_name} needs {end} END to activate, "
                    f"but {character.name} only has {character.value('end')} END."
                ),
                context={"character": character.id, "power": power.id},
            )
        spend = spend_endurance(character, power, end, self.roller, self.config)
        if isinstance(spend, Refusal):
            return spend

        written = [spend.resources]
        pending: list[CharacterUpdate] = []
        if self.config.writes_endurance(character.actor_type):
            written.append(spend.characteristics)
        else:
            pending.append(spend.characteristics)

        activation = roll_activation(power, self.roller)
        active = activation is None or activation.success
        if active:
            written.append(CharacterUpdate(character_id=character.id, active={power.id: True}))
            text = f"{power.display_name} turned on"
        else:
            text = f"{power.display_name} failed its activation roll ({activation.total} vs {activation.target}-)"

        written = [u for u in written if not u.is_empty]
        self._write([character], written)
        return ToggleResult(
            character_id=character.id,
            power_id=power.id,
            active=active,
            activation=activation,
            endurance=spend.result,
            text=text if not spend.result.text else f"{text}. {spend.result.text}",
            written=written,
            pending=[u for u in pending if not u.is_empty],
        )

    def start_phase(self, character: Character) -> list[TimedEffect]:
        """Ends the effects that last until the character's next phase."""
        expired = character.effects.start_phase()
        if expired:
            log_debug(f"{character.name} starts a phase", {"expired": [e.name for e in expired]})
        return expired

    def advance_time(self, characters: Iterable[Character], seconds: float) -> dict[str, list[TimedEffect]]:
        """
        Counts down every character's timed effects.

        Returns:
            dict[str, list[TimedEffect]]: Expired effects per character id.

        """
        expired = {}
        for character in characters:
            gone = character.effects.advance_time(seconds)
            if gone:
                expired[character.id] = gone
        return expired
