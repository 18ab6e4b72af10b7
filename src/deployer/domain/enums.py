"""Enumerations used across the deployment domain."""

from __future__ import annotations

from enum import StrEnum


class Expansion(StrEnum):
    """Product expansions a card can belong to."""

    CORE = "Core"
    TWIN = "Twin"
    HOTH = "Hoth"
    BESPIN = "Bespin"
    JABBA = "Jabba"
    EMPIRE = "Empire"
    LOTHAL = "Lothal"
    OTHER = "Other"


class Faction(StrEnum):
    """Enemy factions a mission can field."""

    IMPERIAL = "Imperial"
    MERCENARY = "Mercenary"
    REBEL = "Rebel"


class CardGroup(StrEnum):
    """Catalog groups supplied by the card loader."""

    ENEMIES = "enemies"
    VILLAINS = "villains"
    ALLIES = "allies"
    HEROES = "heroes"
