"""
Catalog content repository.

Loads the power and modifier tables shipped under herosim/data once per
process and serves them per rules edition.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from catchery import log_warning

from herosim.powers.definition import ModifierDefinition, PowerDefinition

from .constants import RulesEdition
from .utils import Singleton

DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class CatalogRepository(metaclass=Singleton):
    """
    One-stop registry for every catalog table that needs fast by-key access.
    """

    powers: dict[RulesEdition, dict[str, PowerDefinition]]
    modifiers: dict[str, ModifierDefinition]

    def __init__(self, data_dir: Path | None = None) -> None:
        """
        Initialize the CatalogRepository.

        Args:
            data_dir (Path | None):
                The directory containing the catalog files. The bundled
                tables are used when omitted on first use.

        """
        if data_dir:
            self.reload(data_dir)
        elif not hasattr(self, "loaded"):
            self.reload(DEFAULT_DATA_DIR)

    def reload(self, root: Path) -> None:
        """
        (Re)load the catalog tables from disk.

        Args:
            root (Path):
                The directory containing the catalog files.
        """
        newer = _load_json_file(
            root / "powers_6e.json",
            lambda entries: {entry["key"]: entry for entry in entries},
            "6e powers",
        )
        older_overlay = _load_json_file(
            root / "powers_5e.json",
            lambda entries: {entry["key"]: entry for entry in entries},
            "5e power overrides",
        )
        older = {key: dict(entry) for key, entry in newer.items()}
        for key, entry in older_overlay.items():
            older[key] = {**older.get(key, {}), **entry}

        self.powers = {
            RulesEdition.SIXTH: self._load_powers(newer.values()),
            RulesEdition.FIFTH: self._load_powers(older.values()),
        }
        self.modifiers = _load_json_file(
            root / "modifiers.json",
            self._load_modifiers,
            "modifiers",
        )
        self.loaded = True

    def get_power(self, key: str, edition: RulesEdition) -> PowerDefinition | None:
        """
        Returns the catalog entry for a power identifier.

        Args:
            key (str): The power identifier, e.g. "ENERGYBLAST".
            edition (RulesEdition): The rules edition to look in.

        Returns:
            PowerDefinition | None: The entry, or None if the edition has none.

        """
        return self.powers[edition].get(key.upper())

    def get_modifier(self, key: str) -> ModifierDefinition | None:
        """Returns the cost overrides for a modifier identifier, if any."""
        return self.modifiers.get(key.upper())

    @staticmethod
    def _load_powers(entries: Any) -> dict[str, PowerDefinition]:
        powers: dict[str, PowerDefinition] = {}
        for entry in entries:
            if not entry.get("key"):
                log_warning(
                    "Skipping power entry without a key",
                    {"entry": entry},
                )
                continue
            powers[entry["key"]] = PowerDefinition.model_validate(entry)
        return powers

    @staticmethod
    def _load_modifiers(entries: list[dict[str, Any]]) -> dict[str, ModifierDefinition]:
        return {entry["key"]: ModifierDefinition.model_validate(entry) for entry in entries}


def _load_json_file(
    filepath: Path,
    loader_func: Callable[[list[dict[str, Any]]], dict[str, Any]],
    description: str,
) -> dict[str, Any]:
    """
    Load a JSON catalog file and hand its entries to a loader.

    Args:
        filepath (Path): The path to the JSON file.
        loader_func (Callable): Converts the list of entries to a keyed dictionary.
        description (str): Human readable name of the table, for error messages.

    Returns:
        dict[str, Any]: The loaded table.

    Raises:
        ValueError: If the file is missing, malformed, or empty.

    """
    if not filepath.exists() or not filepath.is_file():
        raise ValueError(f"Cannot load {description}: {filepath} not found")
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Cannot load {description} from {filepath}: {e}") from e
    if not isinstance(data, list) or not data:
        raise ValueError(f"Cannot load {description}: {filepath} must hold a non-empty list")
    return loader_func(data)
