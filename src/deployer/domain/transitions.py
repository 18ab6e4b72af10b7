"""Pool transitions triggered by defeat, deployment and reinforcement."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from deployer.domain.models import (
    CUSTOM_GROUP_ID,
    CardId,
    CardInstance,
    Catalog,
    Pools,
    SessionState,
)
from deployer.domain.overrides import OverrideTable
from deployer.domain.rules_config import DEFAULT_RULES, SelectionRules
from deployer.domain.selection import can_reinforce, modified_cost, reinforce_cost

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DefeatOutcome:
    """Returned when a defeat is resolved."""

    card_id: CardId
    defeated: bool
    returned_to_hand: bool = False
    added_to_manual: bool = False
    override_removed: bool = False
    override_reset: bool = False
    all_enemies_defeated: bool = False
    fame_gained: int = 0
    threat_reimbursed: int = 0
    trigger: str | None = None
    event: str | None = None


@dataclass(slots=True)
class ReinforceOutcome:
    """Returned when a reinforcement is resolved."""

    card_id: CardId
    new_size: int
    threat_spent: int


@dataclass(slots=True)
class DeployOutcome:
    """Returned when a group enters play."""

    card_id: CardId
    source: str
    threat_spent: int


def resolve_defeat(
    card: CardInstance,
    *,
    catalog: Catalog,
    session: SessionState,
    overrides: OverrideTable,
    pools: Pools,
    on_all_defeated: Callable[[], None] | None = None,
) -> DefeatOutcome:
    """Move a defeated group out of play and settle the threat economy."""

    override = overrides.get(card.id)
    outcome = DefeatOutcome(card_id=card.id, defeated=True)
    if override is not None:
        outcome.trigger = override.set_trigger
        outcome.event = override.set_event
        if not override.can_be_defeated:
            logger.info("%s cannot be defeated", card.id)
            outcome.defeated = False
            return outcome

    return_to_hand = True
    if override is not None and not override.can_redeploy:
        if card.id not in session.cannot_redeploy:
            session.cannot_redeploy.append(card.id)
        # removed entirely so it can be deployed manually later in a clean state
        overrides.remove(card.id)
        outcome.override_removed = True
        return_to_hand = False

    pools.deployed_enemies.remove(card.id)
    stock = _catalog_instance(card, catalog)

    if card.id != CUSTOM_GROUP_ID and not catalog.is_villain(card.id) and return_to_hand:
        outcome.returned_to_hand = pools.deployment_hand.add(stock)

    if card.id in session.earned_villains and card.id not in pools.manual_deployment_list:
        pools.manual_deployment_list.add(stock)
        pools.manual_deployment_list.sort_by_ordinal()
        outcome.added_to_manual = True

    if override is not None and override.can_redeploy:
        if override.use_reset_on_redeployment:
            overrides.remove(card.id)
            outcome.override_removed = True
        else:
            override.reset_dp()
            outcome.override_reset = True

    if len(pools.deployed_enemies) == 0:
        outcome.all_enemies_defeated = True
        if on_all_defeated is not None:
            on_all_defeated()

    if session.use_adaptive_difficulty:
        session.fame += card.card.fame
        session.modify_threat(card.card.reimb)
        outcome.fame_gained = card.card.fame
        outcome.threat_reimbursed = card.card.reimb

    logger.debug("%s defeated: %s", card.id, outcome)
    return outcome


def resolve_reinforce(
    card: CardInstance,
    *,
    session: SessionState,
    overrides: OverrideTable,
    is_onslaught: bool = False,
    rules: SelectionRules = DEFAULT_RULES.selection,
) -> ReinforceOutcome | None:
    """Add one figure to a deployed group and pay for it.

    Returns ``None`` and changes nothing when the group may not reinforce:
    it is full, never reinforces, costs more than the current threat or its
    override forbids it.
    """

    if not can_reinforce(card, session.threat, overrides, is_onslaught=is_onslaught, rules=rules):
        logger.info("%s cannot reinforce", card.id)
        return None
    cost = reinforce_cost(card, is_onslaught, rules)
    card.set_size(card.current_size + 1)
    session.modify_threat(-cost)
    return ReinforceOutcome(card_id=card.id, new_size=card.current_size, threat_spent=cost)


def deploy_group(
    card: CardInstance,
    *,
    source: str,
    session: SessionState,
    overrides: OverrideTable,
    pools: Pools,
    is_onslaught: bool = False,
    rules: SelectionRules = DEFAULT_RULES.selection,
) -> DeployOutcome:
    """Move a group from the hand or manual list into play.

    Threat is floored at zero, which is how a tier 3 overspend settles.
    """

    if source == "hand":
        pools.deployment_hand.remove(card.id)
    else:
        pools.manual_deployment_list.remove(card.id)

    # a custom override puts its own definition into play under the same id
    card = overrides.effective_card(card)
    cost = max(0, modified_cost(card, is_onslaught, rules))
    spent = min(cost, session.threat)
    session.modify_threat(-cost)

    card.reset_activation()
    card.set_size(card.size)
    pools.deployed_enemies.add(card)

    override = overrides.get(card.id)
    if override is not None:
        override.has_deployed = True
        override.deployment_count += 1

    return DeployOutcome(card_id=card.id, source=source, threat_spent=spent)


def _catalog_instance(card: CardInstance, catalog: Catalog) -> CardInstance:
    """Drop a custom substitution so the group leaves play as its catalog self."""

    definition = catalog.get_enemy(card.id)
    if definition is None or definition == card.card:
        return card
    stock = replace(card, card=definition)
    stock.set_size(card.current_size)
    return stock
