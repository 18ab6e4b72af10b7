"""Dataclasses describing cards, deployment overrides and session state.

The card catalog is loaded once and never mutated; everything the engine
changes during a session lives on :class:`CardInstance`,
:class:`DeploymentOverride` and :class:`SessionState`.  Persistence adapters
translate these into the pydantic snapshot records in :mod:`deployer.savegame`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from .enums import Expansion, Faction

_CARD_ID_PATTERN = re.compile(r"^([A-Za-z]+)(\d+)$")

COLOR_COUNT = 7


class CardNotFoundError(KeyError):
    """Raised when a card id is absent from the pool it was looked up in."""


# --- Identifiers ---------------------------------------------------------------


@dataclass(frozen=True, slots=True, order=True)
class CardId:
    """Structured card id: a letter prefix plus a numeric ordinal (``DG070``)."""

    prefix: str
    ordinal: int
    width: int = field(default=3, compare=False)

    @classmethod
    def parse(cls, raw: str) -> CardId:
        match = _CARD_ID_PATTERN.match(raw.strip())
        if not match:
            raise ValueError(f"invalid card id: {raw!r}")
        digits = match.group(2)
        return cls(prefix=match.group(1).upper(), ordinal=int(digits), width=len(digits))

    @classmethod
    def coerce(cls, value: CardId | str) -> CardId:
        return value if isinstance(value, CardId) else cls.parse(value)

    def __str__(self) -> str:
        return f"{self.prefix}{self.ordinal:0{self.width}d}"


CUSTOM_GROUP_ID = CardId("DG", 70)


# --- Catalog -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CardDefinition:
    """Immutable catalog entry for a deployment group, villain, ally or hero."""

    id: CardId
    name: str
    tier: int
    cost: int
    rcost: int
    size: int
    faction: Faction
    expansion: Expansion = Expansion.CORE
    is_elite: bool = False
    is_dummy: bool = False
    fame: int = 0
    reimb: int = 0

    def __post_init__(self) -> None:
        if self.tier not in (1, 2, 3):
            raise ValueError(f"{self.id}: tier must be 1, 2 or 3, got {self.tier}")
        for name in ("cost", "rcost", "fame", "reimb"):
            if getattr(self, name) < 0:
                raise ValueError(f"{self.id}: {name} must be non-negative")
        if self.size < 1:
            raise ValueError(f"{self.id}: size must be positive, got {self.size}")


@dataclass(frozen=True, slots=True)
class Catalog:
    """All card definitions, grouped the way the loader supplies them."""

    deployment_cards: tuple[CardDefinition, ...] = ()
    villain_cards: tuple[CardDefinition, ...] = ()
    ally_cards: tuple[CardDefinition, ...] = ()
    hero_cards: tuple[CardDefinition, ...] = ()

    @property
    def all_enemies(self) -> tuple[CardDefinition, ...]:
        """Regular deployment groups followed by villains."""

        return self.deployment_cards + self.villain_cards

    def is_villain(self, card_id: CardId) -> bool:
        return any(card.id == card_id for card in self.villain_cards)

    def get_enemy(self, card_id: CardId) -> CardDefinition | None:
        """Return a villain or regular group with this id, villains first."""

        for card in self.villain_cards:
            if card.id == card_id:
                return card
        for card in self.deployment_cards:
            if card.id == card_id:
                return card
        return None

    def get_hero(self, card_id: CardId) -> CardDefinition | None:
        for card in self.hero_cards + self.ally_cards:
            if card.id == card_id:
                return card
        return None


# --- Session state -------------------------------------------------------------


@dataclass(slots=True)
class CardInstance:
    """A card in play: its definition plus the state a session mutates."""

    card: CardDefinition
    current_size: int = 0
    has_activated: bool = False
    color_index: int = 0
    instruction_option: str | None = None
    bonus_name: str | None = None
    bonus_text: str | None = None
    rebel_name: str | None = None

    @classmethod
    def from_definition(cls, card: CardDefinition) -> CardInstance:
        return cls(card=card, current_size=card.size)

    @property
    def id(self) -> CardId:
        return self.card.id

    @property
    def tier(self) -> int:
        return self.card.tier

    @property
    def cost(self) -> int:
        return self.card.cost

    @property
    def rcost(self) -> int:
        return self.card.rcost

    @property
    def size(self) -> int:
        return self.card.size

    @property
    def name(self) -> str:
        return self.card.name

    def set_size(self, size: int) -> None:
        self.current_size = max(0, min(size, self.card.size))

    def cycle_color(self) -> int:
        self.color_index = (self.color_index + 1) % COLOR_COUNT
        return self.color_index

    def reset_activation(self) -> None:
        """Forget the rolled activation so the next activation rolls fresh."""

        self.has_activated = False
        self.rebel_name = None
        self.instruction_option = None
        self.bonus_name = None
        self.bonus_text = None


class CardPool:
    """Ordered pool of card instances with at most one instance per id."""

    __slots__ = ("_cards",)

    def __init__(self, cards: Iterable[CardInstance] = ()) -> None:
        self._cards: list[CardInstance] = []
        for card in cards:
            self.add(card)

    def __iter__(self) -> Iterator[CardInstance]:
        return iter(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, card_id: object) -> bool:
        return any(card.id == card_id for card in self._cards)

    def __repr__(self) -> str:
        return f"CardPool([{', '.join(str(card.id) for card in self._cards)}])"

    def ids(self) -> list[CardId]:
        return [card.id for card in self._cards]

    def find(self, card_id: CardId) -> CardInstance | None:
        for card in self._cards:
            if card.id == card_id:
                return card
        return None

    def get(self, card_id: CardId) -> CardInstance:
        card = self.find(card_id)
        if card is None:
            raise CardNotFoundError(str(card_id))
        return card

    def add(self, card: CardInstance) -> bool:
        """Append ``card`` unless its id is already present."""

        if card.id in self:
            return False
        self._cards.append(card)
        return True

    def remove(self, card_id: CardId) -> CardInstance | None:
        for index, card in enumerate(self._cards):
            if card.id == card_id:
                return self._cards.pop(index)
        return None

    def clear(self) -> None:
        self._cards.clear()

    def sort_by_ordinal(self) -> None:
        # list.sort is stable, so equal ordinals keep their order
        self._cards.sort(key=lambda card: card.id.ordinal)


@dataclass(slots=True)
class DeploymentOverride:
    """Per-card rule overrides set by mission scripting."""

    id: CardId
    can_reinforce: bool = True
    can_redeploy: bool = True
    can_be_defeated: bool = True
    is_custom: bool = False
    custom_card: CardInstance | None = None
    use_reset_on_redeployment: bool = False
    use_generic_mugshot: bool = False
    name_override: str | None = None
    modification: str = ""
    show_mod: bool = False
    set_trigger: str | None = None
    set_event: str | None = None
    deployment_count: int = 0
    has_deployed: bool = False

    @property
    def has_modification(self) -> bool:
        return self.show_mod and bool(self.modification.strip())

    def reset_dp(self) -> None:
        """Clear per-deployment state, keeping the rule flags."""

        self.deployment_count = 0
        self.has_deployed = False


@dataclass(slots=True)
class SessionState:
    """Threat economy and mission scoping held by the session driver."""

    threat: int = 0
    fame: int = 0
    threat_level: int = 3
    round_number: int = 1
    use_adaptive_difficulty: bool = False
    owned_expansions: set[Expansion] = field(default_factory=lambda: {Expansion.CORE})
    faction_filter: set[Faction] | None = None
    ignored: set[CardId] = field(default_factory=set)
    starting: set[CardId] = field(default_factory=set)
    reserved: set[CardId] = field(default_factory=set)
    earned_villains: list[CardId] = field(default_factory=list)
    cannot_redeploy: list[CardId] = field(default_factory=list)

    def modify_threat(self, amount: int) -> int:
        self.threat = max(0, self.threat + amount)
        return self.threat


@dataclass(slots=True)
class Pools:
    """The mutable card pools of a session."""

    deployment_hand: CardPool = field(default_factory=CardPool)
    manual_deployment_list: CardPool = field(default_factory=CardPool)
    deployed_enemies: CardPool = field(default_factory=CardPool)
    deployed_heroes: CardPool = field(default_factory=CardPool)
    event_queue: list[str] = field(default_factory=list)

    def locate(self, card_id: CardId) -> CardPool | None:
        """Return the enemy pool currently owning ``card_id``."""

        for pool in (self.deployment_hand, self.manual_deployment_list, self.deployed_enemies):
            if card_id in pool:
                return pool
        return None
