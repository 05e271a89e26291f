"""
Tests for the combat configuration and its automation rules.
"""

import json

import pytest
from herosim.core.config import DEFAULT_CONFIG, CombatConfig
from herosim.core.constants import ActorType, AutomationLevel, HitLocationTracking


def test_defaults():
    """Test the default optional rules."""
    assert DEFAULT_CONFIG.hit_locations is False
    assert DEFAULT_CONFIG.knockback is False
    assert DEFAULT_CONFIG.use_endurance is True
    assert DEFAULT_CONFIG.stunned is True
    assert DEFAULT_CONFIG.automation == AutomationLevel.NONE


def test_config_is_frozen():
    """Test that settings cannot change during a session."""
    config = CombatConfig()
    with pytest.raises(Exception):
        config.knockback = True


@pytest.mark.parametrize(
    "automation, actor_type, endurance, damage",
    [
        (AutomationLevel.NONE, ActorType.NPC, False, False),
        (AutomationLevel.NONE, ActorType.PC, False, False),
        (AutomationLevel.NPC_ONLY, ActorType.NPC, True, True),
        (AutomationLevel.NPC_ONLY, ActorType.PC, False, False),
        (AutomationLevel.PC_END_ONLY, ActorType.PC, True, False),
        (AutomationLevel.PC_END_ONLY, ActorType.NPC, True, True),
        (AutomationLevel.ALL, ActorType.PC, True, True),
    ],
)
def test_automation_writes(automation, actor_type, endurance, damage):
    """Test which updates each automation level writes."""
    config = CombatConfig(automation=automation)
    assert config.writes_endurance(actor_type) is endurance
    assert config.writes_damage(actor_type) is damage


def test_from_json_file(tmp_path):
    """Test loading settings exported by the host application."""
    path = tmp_path / "combat.json"
    path.write_text(
        json.dumps(
            {
                "hit_locations": True,
                "hit_location_tracking": "all",
                "knockback": True,
                "automation": "npc_only",
            }
        ),
        encoding="utf-8",
    )
    config = CombatConfig.from_json_file(path)
    assert config.hit_locations is True
    assert config.hit_location_tracking == HitLocationTracking.ALL
    assert config.automation == AutomationLevel.NPC_ONLY


def test_from_json_file_errors(tmp_path):
    """Test that a missing file or a non-object file is rejected."""
    with pytest.raises(ValueError):
        CombatConfig.from_json_file(tmp_path / "missing.json")
    path = tmp_path / "list.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        CombatConfig.from_json_file(path)
