"""Per-card deployment override table.

A card without an entry follows the default policy: it may reinforce, it
returns to the deployment hand after defeat and it can be defeated.  Entries
are created lazily by mission scripting the first time a card needs different
behaviour.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import replace

from deployer.domain.models import CardId, CardInstance, DeploymentOverride


class OverrideTable:
    """Explicit map from card id to :class:`DeploymentOverride`."""

    def __init__(self) -> None:
        self._entries: dict[CardId, DeploymentOverride] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DeploymentOverride]:
        return iter(self._entries.values())

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._entries

    def get(self, card_id: CardId) -> DeploymentOverride | None:
        return self._entries.get(card_id)

    def get_or_create(self, card_id: CardId) -> DeploymentOverride:
        entry = self._entries.get(card_id)
        if entry is None:
            entry = DeploymentOverride(id=card_id)
            self._entries[card_id] = entry
        return entry

    def set(self, entry: DeploymentOverride) -> None:
        self._entries[entry.id] = entry

    def remove(self, card_id: CardId) -> DeploymentOverride | None:
        return self._entries.pop(card_id, None)

    def clear(self) -> None:
        self._entries.clear()

    # --- policy queries ------------------------------------------------------

    def can_reinforce(self, card_id: CardId) -> bool:
        entry = self._entries.get(card_id)
        return entry is None or entry.can_reinforce

    def can_redeploy(self, card_id: CardId) -> bool:
        entry = self._entries.get(card_id)
        return entry is None or entry.can_redeploy

    def can_be_defeated(self, card_id: CardId) -> bool:
        entry = self._entries.get(card_id)
        return entry is None or entry.can_be_defeated

    def effective_card(self, card: CardInstance) -> CardInstance:
        """Return ``card`` carrying the custom definition its override names.

        The substituted definition keeps the original id so pools and the
        override itself stay keyed the same way.
        """

        entry = self._entries.get(card.id)
        if entry is None or not entry.is_custom or entry.custom_card is None:
            return card
        definition = replace(entry.custom_card.card, id=card.id)
        if card.card == definition:
            return card
        return replace(card, card=definition)
