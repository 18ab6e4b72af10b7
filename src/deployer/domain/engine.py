"""Deployment engine owning every pool and the override table of a session.

One engine is constructed per session and handed to the session driver.  All
operations run to completion synchronously; callers serialise access.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from deployer.domain import availability, hand, selection, transitions
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


class DeploymentEngine:
    """Public operation surface consumed by the session driver."""

    def __init__(
        self,
        catalog: Catalog,
        session: SessionState | None = None,
        rng: RandomSource | None = None,
        *,
        rules: RulesConfig = DEFAULT_RULES,
        overrides: OverrideTable | None = None,
        pools: Pools | None = None,
        on_all_defeated: Callable[[], None] | None = None,
    ) -> None:
        self.catalog = catalog
        self.session = session or SessionState()
        self.rng = rng or RandomSource()
        self.rules = rules
        self.overrides = overrides if overrides is not None else OverrideTable()
        self.pools = pools if pools is not None else Pools()
        self.on_all_defeated = on_all_defeated
        self.villains_to_add: list[CardDefinition] = []

    # --- pool shortcuts ------------------------------------------------------

    @property
    def deployment_hand(self) -> CardPool:
        return self.pools.deployment_hand

    @property
    def manual_deployment_list(self) -> CardPool:
        return self.pools.manual_deployment_list

    @property
    def deployed_enemies(self) -> CardPool:
        return self.pools.deployed_enemies

    @property
    def deployed_heroes(self) -> CardPool:
        return self.pools.deployed_heroes

    # --- hand construction ---------------------------------------------------

    def build_deployment_hand(
        self, earned_villains: Iterable[CardId | str], threat_level: int
    ) -> hand.HandDraw:
        """Draw a fresh deployment hand for the mission."""

        earned_ids = [CardId.coerce(value) for value in earned_villains]
        earned = [self._villain(card_id) for card_id in earned_ids]
        self.session.earned_villains = earned_ids
        self.session.threat_level = threat_level

        candidates = availability.hand_candidates(self.catalog, self.session)
        quota = self.rules.quotas.for_threat_level(threat_level)
        draw = hand.draw_deployment_hand(candidates, earned, quota, self.rng)

        self.villains_to_add = list(draw.deferred)
        self.pools.deployment_hand = CardPool(
            CardInstance.from_definition(card) for card in draw.hand
        )
        logger.info(
            "deployment hand built: %d cards, %d villains deferred",
            len(self.pools.deployment_hand),
            len(self.villains_to_add),
        )
        return draw

    def build_manual_deployment_list(self) -> CardPool:
        """Everything the players may deploy by hand, ordered by card number."""

        deployed_ids = set(self.deployed_enemies.ids())
        available = availability.manual_candidates(
            self.catalog, self.session, set(self.deployment_hand.ids()), deployed_ids
        )
        manual = CardPool(CardInstance.from_definition(card) for card in available)
        for villain in self.villains_to_add:
            if villain.id in deployed_ids:
                continue
            manual.add(CardInstance.from_definition(villain))
        manual.sort_by_ordinal()

        self.pools.manual_deployment_list = manual
        logger.info("manual deployment list built: %d cards", len(manual))
        return manual

    def sort_manual_deployment_list(self) -> None:
        self.manual_deployment_list.sort_by_ordinal()

    # --- activation-time selection -------------------------------------------

    def pick_fuzzy_deployable(
        self, current_threat: int | None = None, is_onslaught: bool = False
    ) -> CardInstance | None:
        threat = self.session.threat if current_threat is None else current_threat
        return selection.pick_fuzzy_deployable(
            self.deployment_hand,
            set(self.deployed_enemies.ids()),
            threat,
            self.rng,
            is_onslaught=is_onslaught,
            rules=self.rules.selection,
        )

    def pick_reinforcement(
        self, current_threat: int | None = None, is_onslaught: bool = False
    ) -> CardInstance | None:
        threat = self.session.threat if current_threat is None else current_threat
        return selection.pick_reinforcement(
            self.deployed_enemies,
            threat,
            self.overrides,
            self.rng,
            is_onslaught=is_onslaught,
            rules=self.rules.selection,
        )

    # --- transitions ---------------------------------------------------------

    def deploy(self, card_id: CardId | str, is_onslaught: bool = False) -> transitions.DeployOutcome:
        """Move a card from the hand or the manual list into play."""

        card_id = CardId.coerce(card_id)
        if card_id in self.deployment_hand:
            source = "hand"
            card = self.deployment_hand.get(card_id)
        elif card_id in self.manual_deployment_list:
            source = "manual"
            card = self.manual_deployment_list.get(card_id)
        else:
            raise CardNotFoundError(str(card_id))

        return transitions.deploy_group(
            card,
            source=source,
            session=self.session,
            overrides=self.overrides,
            pools=self.pools,
            is_onslaught=is_onslaught,
            rules=self.rules.selection,
        )

    def deploy_hero(self, card_id: CardId | str) -> CardInstance:
        """Put a hero or ally into play."""

        card_id = CardId.coerce(card_id)
        definition = self.catalog.get_hero(card_id)
        if definition is None:
            raise CardNotFoundError(str(card_id))
        existing = self.deployed_heroes.find(card_id)
        if existing is not None:
            return existing
        card = CardInstance.from_definition(definition)
        self.deployed_heroes.add(card)
        return card

    def resolve_defeat(self, card_id: CardId | str) -> transitions.DefeatOutcome:
        card = self.deployed_enemies.get(CardId.coerce(card_id))
        return transitions.resolve_defeat(
            card,
            catalog=self.catalog,
            session=self.session,
            overrides=self.overrides,
            pools=self.pools,
            on_all_defeated=self.on_all_defeated,
        )

    def resolve_reinforce(
        self, card_id: CardId | str, is_onslaught: bool = False
    ) -> transitions.ReinforceOutcome | None:
        """Reinforce a deployed group, or return ``None`` if it may not grow."""

        card = self.deployed_enemies.get(CardId.coerce(card_id))
        return transitions.resolve_reinforce(
            card,
            session=self.session,
            overrides=self.overrides,
            is_onslaught=is_onslaught,
            rules=self.rules.selection,
        )

    # --- overrides -----------------------------------------------------------

    def get_override(self, card_id: CardId | str) -> DeploymentOverride | None:
        return self.overrides.get(CardId.coerce(card_id))

    def set_override(self, entry: DeploymentOverride) -> None:
        self.overrides.set(entry)

    def remove_override(self, card_id: CardId | str) -> DeploymentOverride | None:
        return self.overrides.remove(CardId.coerce(card_id))

    # --- lookups -------------------------------------------------------------

    def get_elite_version(self, card_id: CardId | str) -> CardDefinition | None:
        card = self._enemy(CardId.coerce(card_id))
        return availability.get_elite_version(
            self.catalog, card, self.session, set(self.deployed_enemies.ids())
        )

    def get_non_elite_version(self, card_id: CardId | str) -> CardDefinition | None:
        card = self._enemy(CardId.coerce(card_id))
        return availability.get_non_elite_version(
            self.catalog, card, self.session, set(self.deployed_enemies.ids())
        )

    def _enemy(self, card_id: CardId) -> CardDefinition:
        card = self.catalog.get_enemy(card_id)
        if card is None:
            raise CardNotFoundError(str(card_id))
        return card

    def _villain(self, card_id: CardId) -> CardDefinition:
        for card in self.catalog.villain_cards:
            if card.id == card_id:
                return card
        raise CardNotFoundError(str(card_id))
