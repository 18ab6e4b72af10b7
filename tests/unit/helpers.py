"""Shared builders and fakes for the unit tests."""

from __future__ import annotations

from collections.abc import Iterable

from deployer.domain.enums import Expansion, Faction
from deployer.domain.models import CardDefinition, CardId, CardInstance, Catalog
from deployer.utils.rng import RandomSource


def card(
    raw_id: str,
    tier: int = 1,
    cost: int = 4,
    *,
    name: str | None = None,
    rcost: int = 2,
    size: int = 3,
    faction: Faction = Faction.IMPERIAL,
    expansion: Expansion = Expansion.CORE,
    is_elite: bool = False,
    fame: int = 0,
    reimb: int = 0,
) -> CardDefinition:
    return CardDefinition(
        id=CardId.parse(raw_id),
        name=name or raw_id,
        tier=tier,
        cost=cost,
        rcost=rcost,
        size=size,
        faction=faction,
        expansion=expansion,
        is_elite=is_elite,
        fame=fame,
        reimb=reimb,
    )


def instance(definition: CardDefinition, current_size: int | None = None) -> CardInstance:
    inst = CardInstance.from_definition(definition)
    if current_size is not None:
        inst.set_size(current_size)
    return inst


def catalog(
    enemies: Iterable[CardDefinition] = (),
    villains: Iterable[CardDefinition] = (),
    allies: Iterable[CardDefinition] = (),
    heroes: Iterable[CardDefinition] = (),
) -> Catalog:
    return Catalog(
        deployment_cards=tuple(enemies),
        villain_cards=tuple(villains),
        ally_cards=tuple(allies),
        hero_cards=tuple(heroes),
    )


class ScriptedRandom(RandomSource):
    """Random source replaying scripted coin flips and permutation heads.

    Permutations are identity unless a scripted first index is queued, in
    which case that index is moved to the front.
    """

    def __init__(self, bools: Iterable[bool] = (), heads: Iterable[int] = ()) -> None:
        super().__init__(0)
        self.bools = list(bools)
        self.heads = list(heads)
        self.calls: list[tuple[str, int]] = []

    def random_bool(self) -> bool:
        self.calls.append(("bool", 2))
        return self.bools.pop(0) if self.bools else True

    def random_permutation(self, n: int) -> list[int]:
        self.calls.append(("permutation", n))
        order = list(range(n))
        if self.heads and n > 0:
            head = self.heads.pop(0)
            order.remove(head)
            order.insert(0, head)
        return order
