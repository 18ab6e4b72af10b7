"""Activation-time selection of deployable and reinforceable groups.

Neither selector mutates a pool.  The caller moves the chosen card and
deducts threat.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from deployer.domain.models import CardId, CardInstance
from deployer.domain.overrides import OverrideTable
from deployer.domain.rules_config import DEFAULT_RULES, SelectionRules
from deployer.utils.rng import RandomSource

logger = logging.getLogger(__name__)


def modified_cost(card: CardInstance, is_onslaught: bool, rules: SelectionRules) -> int:
    """Deployment cost after the onslaught discount for the card's tier."""

    if not is_onslaught:
        return card.cost
    if card.tier == 2:
        return card.cost - rules.onslaught_tier2_discount
    if card.tier == 3:
        return card.cost - rules.onslaught_tier3_discount
    return card.cost


def reinforce_cost(card: CardInstance, is_onslaught: bool, rules: SelectionRules) -> int:
    modifier = rules.onslaught_reinforce_discount if is_onslaught else 0
    return max(rules.min_reinforce_cost, card.rcost - modifier)


def pick_fuzzy_deployable(
    hand: Iterable[CardInstance],
    deployed_ids: Collection[CardId],
    current_threat: int,
    rng: RandomSource,
    *,
    is_onslaught: bool = False,
    rules: SelectionRules = DEFAULT_RULES.selection,
) -> CardInstance | None:
    """Pick one group from the hand that the current threat can pay for.

    Tier 1 and 2 groups must be affordable outright.  A tier 3 group may
    overspend by up to ``rules.tier3_overspend`` threat.  When both kinds are
    available a coin flip decides between them.
    """

    available = [card for card in hand if card.id not in deployed_ids]

    # tier 1 groups first, then tier 2, so a seeded index lands on the same card
    tier12 = [
        card
        for tier in (1, 2)
        for card in available
        if card.tier == tier and modified_cost(card, is_onslaught, rules) <= current_threat
    ]
    tier12_pick = tier12[rng.pick_index(len(tier12))] if tier12 else None

    ceiling = current_threat + rules.tier3_overspend
    tier3 = [
        card
        for card in available
        if card.tier == 3 and modified_cost(card, is_onslaught, rules) <= ceiling
    ]
    tier3_pick = tier3[rng.pick_index(len(tier3))] if tier3 else None

    if tier12_pick is not None and tier3_pick is not None:
        logger.debug("elite deployment coin flip: %s vs %s", tier12_pick.id, tier3_pick.id)
        return tier12_pick if rng.random_bool() else tier3_pick
    if tier3_pick is not None:
        return tier3_pick
    return tier12_pick


def can_reinforce(
    card: CardInstance,
    current_threat: int,
    overrides: OverrideTable,
    *,
    is_onslaught: bool = False,
    rules: SelectionRules = DEFAULT_RULES.selection,
) -> bool:
    """Whether ``card`` may gain a figure right now.

    A zero ``rcost`` marks a group that never reinforces.
    """

    if card.rcost <= 0 or card.current_size >= card.size:
        return False
    if reinforce_cost(card, is_onslaught, rules) > current_threat:
        return False
    if not overrides.can_reinforce(card.id):
        logger.debug("skipping %s: override forbids reinforcement", card.id)
        return False
    return True


def reinforcement_candidates(
    deployed: Iterable[CardInstance],
    current_threat: int,
    overrides: OverrideTable,
    *,
    is_onslaught: bool = False,
    rules: SelectionRules = DEFAULT_RULES.selection,
) -> list[CardInstance]:
    return [
        card
        for card in deployed
        if can_reinforce(card, current_threat, overrides, is_onslaught=is_onslaught, rules=rules)
    ]


def pick_reinforcement(
    deployed: Iterable[CardInstance],
    current_threat: int,
    overrides: OverrideTable,
    rng: RandomSource,
    *,
    is_onslaught: bool = False,
    rules: SelectionRules = DEFAULT_RULES.selection,
) -> CardInstance | None:
    """Pick one deployed group that may grow by a figure, or ``None``."""

    eligible = reinforcement_candidates(
        deployed, current_threat, overrides, is_onslaught=is_onslaught, rules=rules
    )
    if not eligible:
        return None
    return eligible[rng.pick_index(len(eligible))]
