"""Availability filters deriving the eligible subset of the card catalog.

Each filter is a pure transformation keyed by card id that keeps the
catalog order of the cards it retains.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence

from deployer.domain.enums import Expansion, Faction
from deployer.domain.models import CardDefinition, CardId, Catalog, SessionState

Cards = list[CardDefinition]


def owned_plus_other(cards: Iterable[CardDefinition], owned: Collection[Expansion]) -> Cards:
    return [card for card in cards if card.expansion in owned or card.expansion == Expansion.OTHER]


def filter_by_faction(
    cards: Iterable[CardDefinition], factions: Collection[Faction] | None
) -> Cards:
    """Keep cards of the mission's enemy factions; ``None`` keeps everything."""

    if factions is None:
        return list(cards)
    return [card for card in cards if card.faction in factions]


def minus_ids(cards: Iterable[CardDefinition], ids: Collection[CardId]) -> Cards:
    return [card for card in cards if card.id not in ids]


def minus_ignored(cards: Iterable[CardDefinition], session: SessionState) -> Cards:
    return minus_ids(cards, session.ignored)


def minus_starting(cards: Iterable[CardDefinition], session: SessionState) -> Cards:
    return minus_ids(cards, session.starting)


def minus_reserved(cards: Iterable[CardDefinition], session: SessionState) -> Cards:
    return minus_ids(cards, session.reserved)


def minus_earned_villains(cards: Iterable[CardDefinition], session: SessionState) -> Cards:
    return minus_ids(cards, set(session.earned_villains))


def hand_candidates(catalog: Catalog, session: SessionState) -> Cards:
    """Regular groups eligible for the deployment hand."""

    available = owned_plus_other(catalog.deployment_cards, session.owned_expansions)
    available = filter_by_faction(available, session.faction_filter)
    available = minus_ignored(available, session)
    available = minus_starting(available, session)
    return minus_reserved(available, session)


def manual_candidates(
    catalog: Catalog,
    session: SessionState,
    hand_ids: Collection[CardId],
    deployed_ids: Collection[CardId] = (),
) -> Cards:
    """Owned groups plus every villain that is neither in hand nor in play.

    Reserved, starting and earned villain cards are left out as well.
    """

    available = owned_plus_other(catalog.deployment_cards, session.owned_expansions)
    available = available + list(catalog.villain_cards)
    available = minus_ids(available, hand_ids)
    available = minus_ids(available, deployed_ids)
    available = minus_reserved(available, session)
    available = minus_starting(available, session)
    return minus_earned_villains(available, session)


def by_tier(cards: Iterable[CardDefinition], tier: int) -> Cards:
    return [card for card in cards if card.tier == tier]


def _version_candidates(
    cards: Sequence[CardDefinition],
    session: SessionState,
    deployed_ids: Collection[CardId],
) -> Cards:
    valid = minus_ids(cards, deployed_ids)
    valid = minus_reserved(valid, session)
    return minus_ignored(valid, session)


def get_elite_version(
    catalog: Catalog,
    card: CardDefinition,
    session: SessionState,
    deployed_ids: Collection[CardId] = (),
) -> CardDefinition | None:
    """Find an undeployed elite group whose name contains ``card``'s name."""

    name = card.name.lower()
    elites = [
        other
        for other in catalog.deployment_cards
        if other.is_elite and name in other.name.lower()
    ]
    valid = _version_candidates(elites, session, deployed_ids)
    return valid[0] if valid else None


def get_non_elite_version(
    catalog: Catalog,
    elite: CardDefinition,
    session: SessionState,
    deployed_ids: Collection[CardId] = (),
) -> CardDefinition | None:
    """Find an undeployed regular group whose name is contained in the elite's name."""

    name = elite.name.lower()
    regulars = [
        other
        for other in catalog.deployment_cards
        if not other.is_elite and other.name.lower() in name
    ]
    valid = _version_candidates(regulars, session, deployed_ids)
    return valid[0] if valid else None
