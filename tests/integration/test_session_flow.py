"""End-to-end mission flow against a catalog loaded from disk."""

from __future__ import annotations

import json

import pytest

from deployer.catalog import load_catalog
from deployer.domain.engine import DeploymentEngine
from deployer.domain.enums import Expansion
from deployer.domain.models import CardId, DeploymentOverride, SessionState
from deployer.savegame import (
    SnapshotMetadata,
    load_snapshot,
    restore_engine,
    save_snapshot,
    snapshot_engine,
)
from deployer.utils.rng import RandomSource


def _write_catalog(path):
    enemies = []
    for number in range(1, 9):
        enemies.append(
            {"id": f"DG{number:03d}", "name": f"Squad {number}", "tier": 1, "cost": 3,
             "rcost": 2, "size": 3, "fame": 1, "reimb": 1}
        )
    for number in range(20, 26):
        enemies.append(
            {"id": f"DG{number:03d}", "name": f"Heavy {number}", "tier": 2, "cost": 6,
             "rcost": 3, "size": 2}
        )
    for number in range(40, 44):
        enemies.append(
            {"id": f"DG{number:03d}", "name": f"Walker {number}", "tier": 3, "cost": 9,
             "rcost": 0, "size": 1, "expansion": "Hoth"}
        )
    villains = [
        {"id": "DG080", "name": "Vader", "tier": 3, "cost": 12, "size": 1, "fame": 6, "reimb": 4},
        {"id": "DG081", "name": "Boba Fett", "tier": 3, "cost": 10, "size": 1,
         "faction": "Mercenary"},
    ]
    path.mkdir()
    (path / "enemies.json").write_text(json.dumps(enemies), encoding="utf-8")
    (path / "villains.json").write_text(json.dumps(villains), encoding="utf-8")
    return load_catalog(path)


@pytest.fixture
def mission_catalog(tmp_path):
    return _write_catalog(tmp_path / "catalog")


def test_full_mission_round_trip(mission_catalog, tmp_path):
    cleared = []
    session = SessionState(
        threat=30,
        use_adaptive_difficulty=True,
        owned_expansions={Expansion.CORE, Expansion.HOTH},
        reserved={CardId("DG", 8)},
    )
    engine = DeploymentEngine(
        mission_catalog,
        session,
        RandomSource("mission:1"),
        on_all_defeated=lambda: cleared.append(True),
    )

    draw = engine.build_deployment_hand(["DG080"], 4)
    assert CardId("DG", 8) not in engine.deployment_hand
    assert len([c for c in draw.hand if c.tier == 1]) == 1

    manual = engine.build_manual_deployment_list()
    assert CardId("DG", 81) in manual
    assert (CardId("DG", 80) in manual) != (CardId("DG", 80) in engine.deployment_hand)

    villain_in_hand = CardId("DG", 80) in engine.deployment_hand
    villain_source = "hand" if villain_in_hand else "manual"
    engine.set_override(DeploymentOverride(id=CardId("DG", 80), can_redeploy=False))

    outcome = engine.deploy("DG080")
    assert outcome.source == villain_source
    assert engine.get_override("DG080").deployment_count == 1

    # save mid-mission and resume from the archive
    archive = save_snapshot(
        snapshot_engine(engine, metadata=SnapshotMetadata(name="Mission 1", seed="mission:1")),
        tmp_path / "mission.zip",
    )
    resumed = restore_engine(
        load_snapshot(archive),
        mission_catalog,
        on_all_defeated=lambda: cleared.append(True),
    )
    assert resumed.session == engine.session
    assert resumed.deployed_enemies.ids() == [CardId("DG", 80)]

    threat_before = resumed.session.threat
    defeat = resumed.resolve_defeat("DG080")

    assert defeat.override_removed
    assert defeat.added_to_manual
    assert not defeat.returned_to_hand
    assert defeat.all_enemies_defeated
    assert cleared == [True]
    assert resumed.session.cannot_redeploy == [CardId("DG", 80)]
    assert resumed.get_override("DG080") is None
    assert CardId("DG", 80) in resumed.manual_deployment_list
    assert CardId("DG", 80) not in resumed.deployment_hand
    assert resumed.session.fame == 6
    assert resumed.session.threat == threat_before + 4

    ordinals = [card_id.ordinal for card_id in resumed.manual_deployment_list.ids()]
    assert ordinals == sorted(ordinals)


def test_hand_is_reproducible_from_seed(mission_catalog):
    def build() -> list[CardId]:
        engine = DeploymentEngine(
            mission_catalog,
            SessionState(owned_expansions={Expansion.CORE, Expansion.HOTH}),
            RandomSource("same-seed"),
        )
        engine.build_deployment_hand(["DG080", "DG081"], 5)
        return engine.deployment_hand.ids()

    assert build() == build()


def test_activation_cycle(mission_catalog):
    engine = DeploymentEngine(mission_catalog, SessionState(threat=6), RandomSource("cycle"))
    engine.build_deployment_hand([], 3)

    picked = engine.pick_fuzzy_deployable()
    assert picked is not None
    assert picked.cost <= 6

    deployed = engine.deploy(picked.id)
    group = engine.deployed_enemies.get(picked.id)
    group.set_size(1)
    engine.session.modify_threat(10)

    assert engine.pick_reinforcement() is group
    reinforce = engine.resolve_reinforce(picked.id)
    assert reinforce.new_size == 2
    assert engine.session.threat == 6 - deployed.threat_spent + 10 - reinforce.threat_spent


def _assert_pools_disjoint(engine):
    hand = set(engine.deployment_hand.ids())
    manual = set(engine.manual_deployment_list.ids())
    deployed = set(engine.deployed_enemies.ids())
    assert not hand & manual
    assert not hand & deployed
    assert not manual & deployed


def test_pools_stay_disjoint_through_a_round(mission_catalog):
    engine = DeploymentEngine(
        mission_catalog,
        SessionState(threat=40, owned_expansions={Expansion.CORE, Expansion.HOTH}),
        RandomSource("disjoint"),
    )
    engine.build_deployment_hand(["DG080"], 5)
    engine.build_manual_deployment_list()
    _assert_pools_disjoint(engine)

    engine.deploy(engine.deployment_hand.ids()[0])
    engine.deploy(engine.manual_deployment_list.ids()[0])
    _assert_pools_disjoint(engine)

    engine.build_manual_deployment_list()
    _assert_pools_disjoint(engine)

    engine.resolve_defeat(engine.deployed_enemies.ids()[0])
    _assert_pools_disjoint(engine)

    engine.build_manual_deployment_list()
    _assert_pools_disjoint(engine)
