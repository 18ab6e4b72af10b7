"""Load card catalogs from JSON into immutable card definitions."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from deployer.domain.enums import CardGroup, Expansion, Faction
from deployer.domain.models import CardDefinition, CardId, Catalog


class CatalogError(ValueError):
    """Raised when catalog data violates the loading contract."""


class CardRecord(BaseModel):
    """One card as stored in the catalog JSON files."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    tier: int = Field(default=1, ge=1, le=3)
    cost: int = Field(default=0, ge=0)
    rcost: int = Field(default=0, ge=0)
    size: int = Field(default=1, ge=1)
    faction: Faction = Faction.IMPERIAL
    expansion: Expansion = Expansion.CORE
    is_elite: bool = Field(default=False, alias="isElite")
    is_dummy: bool = Field(default=False, alias="isDummy")
    fame: int = Field(default=0, ge=0)
    reimb: int = Field(default=0, ge=0)

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        CardId.parse(value)
        return value

    def to_definition(self) -> CardDefinition:
        return CardDefinition(
            id=CardId.parse(self.id),
            name=self.name or self.id,
            tier=self.tier,
            cost=self.cost,
            rcost=self.rcost,
            size=self.size,
            faction=self.faction,
            expansion=self.expansion,
            is_elite=self.is_elite,
            is_dummy=self.is_dummy,
            fame=self.fame,
            reimb=self.reimb,
        )


def _convert_group(group: CardGroup, raw: Any) -> tuple[CardDefinition, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise CatalogError(f"{group}: expected a list of cards")

    cards: list[CardDefinition] = []
    for index, item in enumerate(raw):
        try:
            record = CardRecord.model_validate(item)
        except ValidationError as exc:
            raise CatalogError(f"{group}[{index}]: {exc}") from exc
        cards.append(record.to_definition())
    return tuple(cards)


def build_catalog(data: Mapping[str, Any]) -> Catalog:
    """Validate raw catalog groups and reject duplicate ids across groups."""

    catalog = Catalog(
        deployment_cards=_convert_group(CardGroup.ENEMIES, data.get(CardGroup.ENEMIES)),
        villain_cards=_convert_group(CardGroup.VILLAINS, data.get(CardGroup.VILLAINS)),
        ally_cards=_convert_group(CardGroup.ALLIES, data.get(CardGroup.ALLIES)),
        hero_cards=_convert_group(CardGroup.HEROES, data.get(CardGroup.HEROES)),
    )

    seen: set[CardId] = set()
    for card in catalog.all_enemies + catalog.ally_cards + catalog.hero_cards:
        if card.id in seen:
            raise CatalogError(f"duplicate card id {card.id}")
        seen.add(card.id)
    return catalog


def load_catalog(path: Path | str) -> Catalog:
    """Load a catalog from a JSON file or a directory of per-group files.

    A directory is expected to hold ``enemies.json``, ``villains.json``,
    ``allies.json`` and ``heroes.json``; missing files yield empty groups.
    """

    source = Path(path)
    if not source.exists():
        raise CatalogError(f"catalog not found: {source}")
    if source.is_dir():
        data: dict[str, Any] = {}
        for group in CardGroup:
            group_file = source / f"{group}.json"
            if group_file.exists():
                data[group] = _read_json(group_file)
    else:
        data = _read_json(source)
        if not isinstance(data, dict):
            raise CatalogError("catalog file must hold an object keyed by card group")
    return build_catalog(data)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path.name} is not valid JSON: {exc}") from exc
