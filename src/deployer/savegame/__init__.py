"""Import and export helpers for deployment session snapshots."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4
from zipfile import ZIP_DEFLATED, ZipFile

from pydantic import BaseModel, Field, ValidationError, model_validator

from deployer.catalog import CardRecord
from deployer.domain.engine import DeploymentEngine
from deployer.domain.enums import Expansion, Faction
from deployer.domain.models import (
    CardDefinition,
    CardId,
    CardInstance,
    CardNotFoundError,
    CardPool,
    Catalog,
    DeploymentOverride,
    Pools,
    SessionState,
)
from deployer.domain.overrides import OverrideTable
from deployer.domain.rules_config import DEFAULT_RULES, RulesConfig
from deployer.utils.rng import RandomSource

logger = logging.getLogger(__name__)


class CardInstanceRecord(BaseModel):
    """Serializable state of one card in a pool."""

    id: str
    current_size: int = Field(default=0, ge=0)
    has_activated: bool = False
    color_index: int = Field(default=0, ge=0)
    instruction_option: str | None = None
    bonus_name: str | None = None
    bonus_text: str | None = None
    rebel_name: str | None = None

    @classmethod
    def from_instance(cls, card: CardInstance) -> CardInstanceRecord:
        return cls(
            id=str(card.id),
            current_size=card.current_size,
            has_activated=card.has_activated,
            color_index=card.color_index,
            instruction_option=card.instruction_option,
            bonus_name=card.bonus_name,
            bonus_text=card.bonus_text,
            rebel_name=card.rebel_name,
        )

    def to_instance(self, card: CardDefinition) -> CardInstance:
        instance = CardInstance(
            card=card,
            has_activated=self.has_activated,
            color_index=self.color_index,
            instruction_option=self.instruction_option,
            bonus_name=self.bonus_name,
            bonus_text=self.bonus_text,
            rebel_name=self.rebel_name,
        )
        instance.set_size(self.current_size)
        return instance


class OverrideRecord(BaseModel):
    """Serializable deployment override."""

    id: str
    can_reinforce: bool = True
    can_redeploy: bool = True
    can_be_defeated: bool = True
    is_custom: bool = False
    custom_card: CardRecord | None = None
    use_reset_on_redeployment: bool = False
    use_generic_mugshot: bool = False
    name_override: str | None = None
    modification: str = ""
    show_mod: bool = False
    set_trigger: str | None = None
    set_event: str | None = None
    deployment_count: int = Field(default=0, ge=0)
    has_deployed: bool = False

    @model_validator(mode="after")
    def _check_id(self) -> OverrideRecord:
        CardId.parse(self.id)
        return self

    @classmethod
    def from_override(cls, entry: DeploymentOverride) -> OverrideRecord:
        custom = None
        if entry.custom_card is not None:
            card = entry.custom_card.card
            custom = CardRecord(
                id=str(card.id),
                name=card.name,
                tier=card.tier,
                cost=card.cost,
                rcost=card.rcost,
                size=card.size,
                faction=card.faction,
                expansion=card.expansion,
                is_elite=card.is_elite,
                is_dummy=card.is_dummy,
                fame=card.fame,
                reimb=card.reimb,
            )
        return cls(
            id=str(entry.id),
            can_reinforce=entry.can_reinforce,
            can_redeploy=entry.can_redeploy,
            can_be_defeated=entry.can_be_defeated,
            is_custom=entry.is_custom,
            custom_card=custom,
            use_reset_on_redeployment=entry.use_reset_on_redeployment,
            use_generic_mugshot=entry.use_generic_mugshot,
            name_override=entry.name_override,
            modification=entry.modification,
            show_mod=entry.show_mod,
            set_trigger=entry.set_trigger,
            set_event=entry.set_event,
            deployment_count=entry.deployment_count,
            has_deployed=entry.has_deployed,
        )

    def to_override(self) -> DeploymentOverride:
        custom = None
        if self.custom_card is not None:
            custom = CardInstance.from_definition(self.custom_card.to_definition())
        return DeploymentOverride(
            id=CardId.parse(self.id),
            can_reinforce=self.can_reinforce,
            can_redeploy=self.can_redeploy,
            can_be_defeated=self.can_be_defeated,
            is_custom=self.is_custom,
            custom_card=custom,
            use_reset_on_redeployment=self.use_reset_on_redeployment,
            use_generic_mugshot=self.use_generic_mugshot,
            name_override=self.name_override,
            modification=self.modification,
            show_mod=self.show_mod,
            set_trigger=self.set_trigger,
            set_event=self.set_event,
            deployment_count=self.deployment_count,
            has_deployed=self.has_deployed,
        )


class SessionRecord(BaseModel):
    """Threat economy and mission scoping of a session."""

    threat: int = Field(default=0, ge=0)
    fame: int = Field(default=0, ge=0)
    threat_level: int = 3
    round_number: int = Field(default=1, ge=0)
    use_adaptive_difficulty: bool = False
    owned_expansions: list[Expansion] = Field(default_factory=lambda: [Expansion.CORE])
    faction_filter: list[Faction] | None = None
    ignored: list[str] = Field(default_factory=list)
    starting: list[str] = Field(default_factory=list)
    reserved: list[str] = Field(default_factory=list)
    earned_villains: list[str] = Field(default_factory=list)
    cannot_redeploy: list[str] = Field(default_factory=list)

    @classmethod
    def from_state(cls, state: SessionState) -> SessionRecord:
        return cls(
            threat=state.threat,
            fame=state.fame,
            threat_level=state.threat_level,
            round_number=state.round_number,
            use_adaptive_difficulty=state.use_adaptive_difficulty,
            owned_expansions=sorted(state.owned_expansions),
            faction_filter=sorted(state.faction_filter) if state.faction_filter is not None else None,
            ignored=_id_strings(state.ignored),
            starting=_id_strings(state.starting),
            reserved=_id_strings(state.reserved),
            earned_villains=[str(card_id) for card_id in state.earned_villains],
            cannot_redeploy=[str(card_id) for card_id in state.cannot_redeploy],
        )

    def to_state(self) -> SessionState:
        return SessionState(
            threat=self.threat,
            fame=self.fame,
            threat_level=self.threat_level,
            round_number=self.round_number,
            use_adaptive_difficulty=self.use_adaptive_difficulty,
            owned_expansions=set(self.owned_expansions),
            faction_filter=set(self.faction_filter) if self.faction_filter is not None else None,
            ignored={CardId.parse(raw) for raw in self.ignored},
            starting={CardId.parse(raw) for raw in self.starting},
            reserved={CardId.parse(raw) for raw in self.reserved},
            earned_villains=[CardId.parse(raw) for raw in self.earned_villains],
            cannot_redeploy=[CardId.parse(raw) for raw in self.cannot_redeploy],
        )


class SnapshotMetadata(BaseModel):
    """High-level information about the stored session."""

    id: UUID = Field(default_factory=uuid4)
    name: str = "session"
    seed: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    game_version: str = "0.1.0"
    operation_count: int = Field(default=0, ge=0)


class SessionSnapshot(BaseModel):
    """Everything needed to resume a deployment session."""

    format_version: int = 1
    metadata: SnapshotMetadata = Field(default_factory=SnapshotMetadata)
    session: SessionRecord = Field(default_factory=SessionRecord)
    deployment_hand: list[CardInstanceRecord] = Field(default_factory=list)
    manual_deployment_list: list[CardInstanceRecord] = Field(default_factory=list)
    deployed_enemies: list[CardInstanceRecord] = Field(default_factory=list)
    deployed_heroes: list[CardInstanceRecord] = Field(default_factory=list)
    event_queue: list[str] = Field(default_factory=list)
    villains_to_add: list[str] = Field(default_factory=list)
    overrides: list[OverrideRecord] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_overrides(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        raw = values.get("overrides")
        if not isinstance(raw, list):
            return values
        kept: list[Any] = []
        for item in raw:
            if isinstance(item, OverrideRecord):
                kept.append(item)
                continue
            try:
                kept.append(OverrideRecord.model_validate(item))
            except (ValidationError, ValueError) as exc:
                logger.warning("discarding malformed override %r: %s", item, exc)
        return {**values, "overrides": kept}


def _id_strings(ids: set[CardId]) -> list[str]:
    return [str(card_id) for card_id in sorted(ids)]


def _pool_records(pool: CardPool) -> list[CardInstanceRecord]:
    return [CardInstanceRecord.from_instance(card) for card in pool]


def _lookup(catalog: Catalog, raw_id: str) -> CardDefinition:
    card_id = CardId.parse(raw_id)
    card = catalog.get_enemy(card_id) or catalog.get_hero(card_id)
    if card is None:
        raise CardNotFoundError(raw_id)
    return card


def _restore_pool(catalog: Catalog, records: list[CardInstanceRecord]) -> CardPool:
    return CardPool(record.to_instance(_lookup(catalog, record.id)) for record in records)


def _deployed_definition(catalog: Catalog, overrides: OverrideTable, raw_id: str) -> CardDefinition:
    stock = CardInstance.from_definition(_lookup(catalog, raw_id))
    return overrides.effective_card(stock).card


def snapshot_engine(
    engine: DeploymentEngine,
    *,
    metadata: SnapshotMetadata | None = None,
) -> SessionSnapshot:
    """Produce a snapshot from an in-memory engine."""

    pools = engine.pools
    return SessionSnapshot(
        metadata=metadata or SnapshotMetadata(),
        session=SessionRecord.from_state(engine.session),
        deployment_hand=_pool_records(pools.deployment_hand),
        manual_deployment_list=_pool_records(pools.manual_deployment_list),
        deployed_enemies=_pool_records(pools.deployed_enemies),
        deployed_heroes=_pool_records(pools.deployed_heroes),
        event_queue=list(pools.event_queue),
        villains_to_add=[str(card.id) for card in engine.villains_to_add],
        overrides=[OverrideRecord.from_override(entry) for entry in engine.overrides],
    )


def restore_engine(
    snapshot: SessionSnapshot,
    catalog: Catalog,
    rng: RandomSource | None = None,
    *,
    rules: RulesConfig = DEFAULT_RULES,
    on_all_defeated: Callable[[], None] | None = None,
) -> DeploymentEngine:
    """Rebuild an engine from a snapshot against the given catalog.

    Raises
    ------
    CardNotFoundError
        When a pool references a card id the catalog does not define.
    """

    overrides = OverrideTable()
    for record in snapshot.overrides:
        overrides.set(record.to_override())

    # groups in play keep the custom definition they were deployed with
    deployed = CardPool(
        record.to_instance(_deployed_definition(catalog, overrides, record.id))
        for record in snapshot.deployed_enemies
    )
    pools = Pools(
        deployment_hand=_restore_pool(catalog, snapshot.deployment_hand),
        manual_deployment_list=_restore_pool(catalog, snapshot.manual_deployment_list),
        deployed_enemies=deployed,
        deployed_heroes=_restore_pool(catalog, snapshot.deployed_heroes),
        event_queue=list(snapshot.event_queue),
    )

    if rng is None:
        rng = RandomSource(snapshot.metadata.seed)

    engine = DeploymentEngine(
        catalog,
        snapshot.session.to_state(),
        rng,
        rules=rules,
        overrides=overrides,
        pools=pools,
        on_all_defeated=on_all_defeated,
    )
    engine.villains_to_add = [_lookup(catalog, raw) for raw in snapshot.villains_to_add]
    return engine


SNAPSHOT_PATH = "deployer/snapshot.json"


def load_snapshot(path: Path | str) -> SessionSnapshot:
    """Load a session snapshot from a save archive."""

    zip_path = Path(path)
    with ZipFile(zip_path, "r") as archive:
        try:
            with archive.open(SNAPSHOT_PATH) as snapshot_file:
                payload = json.load(snapshot_file)
        except KeyError as exc:  # pragma: no cover - invalid archive
            raise FileNotFoundError("snapshot.json not found in archive") from exc
    return SessionSnapshot.model_validate(payload)


def save_snapshot(snapshot: SessionSnapshot, path: Path | str) -> Path:
    """Write a session snapshot to a save archive."""

    payload = json.dumps(
        snapshot.model_dump(mode="json"),
        indent=2,
        sort_keys=True,
    ).encode("utf-8")
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with ZipFile(target, "w", ZIP_DEFLATED) as archive:
        archive.writestr(SNAPSHOT_PATH, payload)
    return target


__all__ = [
    "CardInstanceRecord",
    "OverrideRecord",
    "SessionRecord",
    "SessionSnapshot",
    "SnapshotMetadata",
    "load_snapshot",
    "restore_engine",
    "save_snapshot",
    "snapshot_engine",
]
