"""Deployment hand construction: tier quota sampling and villain injection."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from deployer.domain.availability import by_tier
from deployer.domain.models import CardDefinition
from deployer.domain.rules_config import TierQuota
from deployer.utils.rng import RandomSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HandDraw:
    """Returned when a deployment hand is drawn."""

    hand: list[CardDefinition]
    injected: CardDefinition | None = None
    deferred: list[CardDefinition] = field(default_factory=list)
    coin_flipped: bool = False


def sample_by_tier(
    candidates: Sequence[CardDefinition],
    quota: TierQuota,
    rng: RandomSource,
) -> list[CardDefinition]:
    """Draw up to ``quota`` cards per tier without replacement.

    Tiers are drawn in order 1, 2, 3.  A tier with a zero quota does not touch
    the random source.  The result never holds the same id twice.
    """

    result: list[CardDefinition] = []
    seen = set()
    for tier in (1, 2, 3):
        wanted = quota.for_tier(tier)
        if wanted <= 0:
            continue
        pool = by_tier(candidates, tier)
        order = rng.random_permutation(len(pool))
        for index in order[: min(len(pool), wanted)]:
            card = pool[index]
            if card.id not in seen:
                seen.add(card.id)
                result.append(card)
    return result


def inject_villain(
    sampled: list[CardDefinition],
    earned: Sequence[CardDefinition],
    rng: RandomSource,
) -> HandDraw:
    """Fold earned villains into a sampled hand.

    When no earned villain made it into the sample, a coin flip decides
    whether one of them is added anyway.  Every earned villain that does not
    end up in the hand is deferred for manual placement.
    """

    draw = HandDraw(hand=list(sampled))
    if not earned:
        return draw

    in_hand = {card.id for card in draw.hand}
    if not any(villain.id in in_hand for villain in earned):
        draw.coin_flipped = True
        if rng.random_bool():
            villain = earned[rng.pick_index(len(earned))]
            draw.hand.append(villain)
            draw.injected = villain
            in_hand.add(villain.id)
            logger.debug("villain %s injected into deployment hand", villain.id)

    draw.deferred = [villain for villain in earned if villain.id not in in_hand]
    return draw


def draw_deployment_hand(
    candidates: Sequence[CardDefinition],
    earned: Sequence[CardDefinition],
    quota: TierQuota,
    rng: RandomSource,
) -> HandDraw:
    """Sample the hand from candidates plus earned villains, then inject."""

    pool = list(candidates)
    candidate_ids = {card.id for card in pool}
    pool.extend(villain for villain in earned if villain.id not in candidate_ids)

    sampled = sample_by_tier(pool, quota, rng)
    draw = inject_villain(sampled, earned, rng)

    logger.debug(
        "deployment hand: %d cards [%s]",
        len(draw.hand),
        ", ".join(str(card.id) for card in draw.hand),
    )
    return draw
