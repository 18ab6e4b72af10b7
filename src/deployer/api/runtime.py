"""Runtime primitives backing the deployment HTTP API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, TypeVar
from uuid import uuid4

from deployer import savegame
from deployer.catalog import load_catalog
from deployer.config import Settings, get_settings
from deployer.domain.engine import DeploymentEngine
from deployer.domain.enums import Expansion, Faction
from deployer.domain.models import (
    CardId,
    CardInstance,
    Catalog,
    DeploymentOverride,
    SessionState,
)
from deployer.domain.rules_config import DEFAULT_RULES, RulesConfig
from deployer.repository import JsonSessionRepository
from deployer.utils.rng import RandomSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class SessionDraft:
    """API-facing initializer for new sessions."""

    name: str
    seed: str | None = None
    threat: int = 0
    threat_level: int = 3
    use_adaptive_difficulty: bool = False
    owned_expansions: list[Expansion] = field(default_factory=lambda: [Expansion.CORE])
    faction_filter: list[Faction] | None = None
    ignored: list[str] = field(default_factory=list)
    starting: list[str] = field(default_factory=list)
    reserved: list[str] = field(default_factory=list)


class SessionService:
    """Load a session, run one engine operation and persist the result."""

    def __init__(
        self,
        repository: JsonSessionRepository,
        catalog_loader: Callable[[], Catalog],
        *,
        rules: RulesConfig = DEFAULT_RULES,
        default_seed: str | None = None,
    ) -> None:
        self._repository = repository
        self._catalog_loader = catalog_loader
        self._catalog: Catalog | None = None
        self._rules = rules
        self._default_seed = default_seed

    @property
    def catalog(self) -> Catalog:
        if self._catalog is None:
            self._catalog = self._catalog_loader()
        return self._catalog

    def list_sessions(self) -> list[dict[str, object]]:
        """Return a summary of every persisted session ordered by identifier."""

        summaries: list[dict[str, object]] = []
        for session_id in self._repository.list_sessions():
            with suppress(FileNotFoundError):
                snapshot = self._repository.load(session_id)
                summaries.append(self.to_summary_dict(session_id, snapshot))
        return summaries

    def get_snapshot(self, session_id: int) -> savegame.SessionSnapshot:
        """Load a single snapshot or raise ``FileNotFoundError``."""

        return self._repository.load(session_id)

    def create_session(self, draft: SessionDraft) -> tuple[int, savegame.SessionSnapshot]:
        """Create and persist an empty session."""

        state = SessionState(
            threat=draft.threat,
            threat_level=draft.threat_level,
            use_adaptive_difficulty=draft.use_adaptive_difficulty,
            owned_expansions=set(draft.owned_expansions) | {Expansion.CORE},
            faction_filter=set(draft.faction_filter) if draft.faction_filter else None,
            ignored={CardId.parse(raw) for raw in draft.ignored},
            starting={CardId.parse(raw) for raw in draft.starting},
            reserved={CardId.parse(raw) for raw in draft.reserved},
        )
        engine = DeploymentEngine(self.catalog, state, rules=self._rules)
        metadata = savegame.SnapshotMetadata(
            name=draft.name, seed=draft.seed or self._default_seed or uuid4().hex
        )
        snapshot = savegame.snapshot_engine(engine, metadata=metadata)

        session_id = self._next_identifier()
        self._repository.save(session_id, snapshot)
        logger.info("session %s created (seed=%s)", session_id, metadata.seed)
        return session_id, snapshot

    def run(self, session_id: int, operation: Callable[[DeploymentEngine], T]) -> T:
        """Apply ``operation`` to the restored engine and save the new state."""

        snapshot = self._repository.load(session_id)
        metadata = snapshot.metadata
        # each operation gets its own stream so replays stay deterministic
        rng = RandomSource(f"{metadata.seed}:{metadata.operation_count}")
        engine = savegame.restore_engine(snapshot, self.catalog, rng, rules=self._rules)

        result = operation(engine)

        metadata = metadata.model_copy(update={"operation_count": metadata.operation_count + 1})
        self._repository.save(session_id, savegame.snapshot_engine(engine, metadata=metadata))
        return result

    def _next_identifier(self) -> int:
        existing = self._repository.list_sessions()
        return max(existing, default=0) + 1

    # --- serialisation helpers -----------------------------------------------

    @staticmethod
    def to_summary_dict(session_id: int, snapshot: savegame.SessionSnapshot) -> dict[str, object]:
        """Return a JSON-friendly overview of a session."""

        return {
            "id": session_id,
            "name": snapshot.metadata.name,
            "threat": snapshot.session.threat,
            "fame": snapshot.session.fame,
            "threat_level": snapshot.session.threat_level,
            "hand_size": len(snapshot.deployment_hand),
            "manual_size": len(snapshot.manual_deployment_list),
            "deployed_count": len(snapshot.deployed_enemies),
        }

    @staticmethod
    def to_card_dict(card: CardInstance | None) -> dict[str, object] | None:
        if card is None:
            return None
        return {
            "id": str(card.id),
            "name": card.name,
            "tier": card.tier,
            "cost": card.cost,
            "rcost": card.rcost,
            "size": card.size,
            "current_size": card.current_size,
            "has_activated": card.has_activated,
            "color_index": card.color_index,
        }

    @staticmethod
    def to_override_dict(entry: DeploymentOverride | None) -> dict[str, Any] | None:
        if entry is None:
            return None
        return savegame.OverrideRecord.from_override(entry).model_dump(mode="json")


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        catalog: Catalog | None = None,
        rules: RulesConfig = DEFAULT_RULES,
    ) -> None:
        self.settings = settings or get_settings()
        self.repository = JsonSessionRepository(self.settings.data_dir)
        self.rules = rules
        catalog_path = self.settings.catalog_path
        self.sessions = SessionService(
            self.repository,
            (lambda: catalog) if catalog is not None else (lambda: load_catalog(catalog_path)),
            rules=rules,
            default_seed=self.settings.default_seed,
        )
        self.lock = asyncio.Lock()

    async def shutdown(self) -> None:
        logger.debug("api state shut down")


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
