"""HTTP routes for the deployment API."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from deployer import savegame
from deployer.api.runtime import ApiState, SessionDraft, SessionService
from deployer.catalog import CatalogError
from deployer.domain.engine import DeploymentEngine
from deployer.domain.enums import Expansion, Faction
from deployer.domain.models import CardId, CardNotFoundError

router = APIRouter()

T = TypeVar("T")


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


class CreateSessionRequest(BaseModel):
    name: str = Field(min_length=1)
    seed: str | None = None
    threat: int = Field(default=0, ge=0)
    threat_level: int = Field(default=3, ge=1)
    use_adaptive_difficulty: bool = False
    owned_expansions: list[Expansion] = Field(default_factory=lambda: [Expansion.CORE])
    faction_filter: list[Faction] | None = None
    ignored: list[str] = Field(default_factory=list)
    starting: list[str] = Field(default_factory=list)
    reserved: list[str] = Field(default_factory=list)


class BuildHandRequest(BaseModel):
    earned_villains: list[str] = Field(default_factory=list)
    threat_level: int = Field(ge=1)


class ThreatRequest(BaseModel):
    current_threat: int | None = Field(default=None, ge=0)
    is_onslaught: bool = False


class CardActionRequest(BaseModel):
    is_onslaught: bool = False


class SessionSummary(BaseModel):
    id: int
    name: str
    threat: int
    fame: int
    threat_level: int
    hand_size: int
    manual_size: int
    deployed_count: int


async def _run(
    state: ApiState, session_id: int, operation: Callable[[DeploymentEngine], T]
) -> T:
    async with state.lock:
        try:
            return state.sessions.run(session_id, operation)
        except FileNotFoundError as exc:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Session not found") from exc
        except CardNotFoundError as exc:
            raise HTTPException(
                status.HTTP_404_NOT_FOUND, detail=f"Card {exc.args[0]} not found"
            ) from exc
        except CatalogError:
            raise
        except ValueError as exc:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _card_id(raw: str) -> CardId:
    try:
        return CardId.parse(raw)
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _pool(engine: DeploymentEngine, name: str) -> list[dict[str, object] | None]:
    return [SessionService.to_card_dict(card) for card in getattr(engine, name)]


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Readiness check."""

    return {"status": "ok"}


@router.get("/sessions", response_model=list[SessionSummary])
async def list_sessions(state: ApiStateDep) -> list[dict[str, object]]:
    return state.sessions.list_sessions()


@router.post("/sessions", response_model=SessionSummary, status_code=status.HTTP_201_CREATED)
async def create_session(payload: CreateSessionRequest, state: ApiStateDep) -> dict[str, object]:
    draft = SessionDraft(**payload.model_dump())
    async with state.lock:
        try:
            session_id, snapshot = state.sessions.create_session(draft)
        except CatalogError:
            raise
        except ValueError as exc:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return SessionService.to_summary_dict(session_id, snapshot)


@router.get("/sessions/{session_id}/snapshot")
async def get_snapshot(session_id: int, state: ApiStateDep) -> dict[str, Any]:
    try:
        snapshot = state.sessions.get_snapshot(session_id)
    except FileNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Session not found") from exc
    return snapshot.model_dump(mode="json")


@router.post("/sessions/{session_id}/hand")
async def build_hand(
    session_id: int, payload: BuildHandRequest, state: ApiStateDep
) -> dict[str, object]:
    def operation(engine: DeploymentEngine) -> dict[str, object]:
        draw = engine.build_deployment_hand(payload.earned_villains, payload.threat_level)
        return {
            "hand": _pool(engine, "deployment_hand"),
            "injected": str(draw.injected.id) if draw.injected else None,
            "deferred": [str(card.id) for card in draw.deferred],
        }

    return await _run(state, session_id, operation)


@router.post("/sessions/{session_id}/manual")
async def build_manual(session_id: int, state: ApiStateDep) -> list[dict[str, object] | None]:
    def operation(engine: DeploymentEngine) -> list[dict[str, object] | None]:
        engine.build_manual_deployment_list()
        return _pool(engine, "manual_deployment_list")

    return await _run(state, session_id, operation)


@router.post("/sessions/{session_id}/deployable")
async def pick_deployable(
    session_id: int, payload: ThreatRequest, state: ApiStateDep
) -> dict[str, object]:
    def operation(engine: DeploymentEngine) -> dict[str, object]:
        card = engine.pick_fuzzy_deployable(payload.current_threat, payload.is_onslaught)
        return {"card": SessionService.to_card_dict(card)}

    return await _run(state, session_id, operation)


@router.post("/sessions/{session_id}/deploy/{card_id}")
async def deploy(
    session_id: int, card_id: str, payload: CardActionRequest, state: ApiStateDep
) -> dict[str, object]:
    def operation(engine: DeploymentEngine) -> dict[str, object]:
        outcome = engine.deploy(card_id, payload.is_onslaught)
        return {
            "card_id": str(outcome.card_id),
            "source": outcome.source,
            "threat_spent": outcome.threat_spent,
            "threat": engine.session.threat,
        }

    return await _run(state, session_id, operation)


@router.post("/sessions/{session_id}/reinforcement")
async def pick_reinforcement(
    session_id: int, payload: ThreatRequest, state: ApiStateDep
) -> dict[str, object]:
    def operation(engine: DeploymentEngine) -> dict[str, object]:
        card = engine.pick_reinforcement(payload.current_threat, payload.is_onslaught)
        return {"card": SessionService.to_card_dict(card)}

    return await _run(state, session_id, operation)


@router.post("/sessions/{session_id}/reinforce/{card_id}")
async def reinforce(
    session_id: int, card_id: str, payload: CardActionRequest, state: ApiStateDep
) -> dict[str, object]:
    def operation(engine: DeploymentEngine) -> dict[str, object]:
        outcome = engine.resolve_reinforce(card_id, payload.is_onslaught)
        if outcome is None:
            group = engine.deployed_enemies.get(CardId.parse(card_id))
            return {
                "card_id": str(group.id),
                "reinforced": False,
                "new_size": group.current_size,
                "threat_spent": 0,
                "threat": engine.session.threat,
            }
        return {
            "card_id": str(outcome.card_id),
            "reinforced": True,
            "new_size": outcome.new_size,
            "threat_spent": outcome.threat_spent,
            "threat": engine.session.threat,
        }

    return await _run(state, session_id, operation)


@router.post("/sessions/{session_id}/defeat/{card_id}")
async def defeat(session_id: int, card_id: str, state: ApiStateDep) -> dict[str, object]:
    def operation(engine: DeploymentEngine) -> dict[str, object]:
        outcome = engine.resolve_defeat(card_id)
        return {
            "card_id": str(outcome.card_id),
            "defeated": outcome.defeated,
            "returned_to_hand": outcome.returned_to_hand,
            "added_to_manual": outcome.added_to_manual,
            "all_enemies_defeated": outcome.all_enemies_defeated,
            "fame_gained": outcome.fame_gained,
            "threat_reimbursed": outcome.threat_reimbursed,
            "trigger": outcome.trigger,
            "event": outcome.event,
        }

    return await _run(state, session_id, operation)


@router.get("/sessions/{session_id}/overrides/{card_id}")
async def get_override(session_id: int, card_id: str, state: ApiStateDep) -> dict[str, Any]:
    wanted = _card_id(card_id)
    try:
        snapshot = state.sessions.get_snapshot(session_id)
    except FileNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Session not found") from exc
    for record in snapshot.overrides:
        if CardId.parse(record.id) == wanted:
            return record.model_dump(mode="json")
    raise HTTPException(status.HTTP_404_NOT_FOUND, detail="No override for card")


@router.put("/sessions/{session_id}/overrides/{card_id}")
async def set_override(
    session_id: int, card_id: str, payload: savegame.OverrideRecord, state: ApiStateDep
) -> dict[str, Any]:
    if CardId.parse(payload.id) != _card_id(card_id):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Card id mismatch")
    entry = payload.to_override()
    await _run(state, session_id, lambda engine: engine.set_override(entry))
    return SessionService.to_override_dict(entry) or {}


@router.delete("/sessions/{session_id}/overrides/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_override(session_id: int, card_id: str, state: ApiStateDep) -> None:
    await _run(state, session_id, lambda engine: engine.remove_override(card_id))
