"""Tests for defeat, reinforcement and deployment transitions."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from deployer.domain import transitions
from deployer.domain.models import CardId, DeploymentOverride, Pools, SessionState
from deployer.domain.overrides import OverrideTable

from helpers import card, catalog, instance

TROOPER = card("DG001", tier=1, cost=4, fame=2, reimb=1)
OFFICER = card("DG002", tier=1, cost=2)
CUSTOM = card("DG070", tier=2, cost=5)
VILLAIN = card("DG080", tier=3, cost=10, fame=5, reimb=3)

CATALOG = catalog(enemies=[TROOPER, OFFICER, CUSTOM], villains=[VILLAIN])


def _deployed(*definitions) -> Pools:
    pools = Pools()
    for definition in definitions:
        pools.deployed_enemies.add(instance(definition))
    return pools


def _defeat(card_id, *, session=None, overrides=None, pools=None, on_all_defeated=None):
    pools = pools or _deployed(TROOPER, OFFICER, CUSTOM, VILLAIN)
    return (
        transitions.resolve_defeat(
            pools.deployed_enemies.get(card_id),
            catalog=CATALOG,
            session=session or SessionState(),
            overrides=overrides if overrides is not None else OverrideTable(),
            pools=pools,
            on_all_defeated=on_all_defeated,
        ),
        pools,
    )


class TestResolveDefeat:
    def test_regular_group_returns_to_hand(self):
        outcome, pools = _defeat(TROOPER.id)

        assert outcome.defeated
        assert outcome.returned_to_hand
        assert TROOPER.id in pools.deployment_hand
        assert TROOPER.id not in pools.deployed_enemies

    def test_custom_group_never_returns_to_hand(self):
        outcome, pools = _defeat(CUSTOM.id)
        assert not outcome.returned_to_hand
        assert CUSTOM.id not in pools.deployment_hand

    def test_villain_never_returns_to_hand(self):
        outcome, pools = _defeat(VILLAIN.id)
        assert not outcome.returned_to_hand
        assert VILLAIN.id not in pools.deployment_hand

    def test_cannot_be_defeated_changes_nothing(self):
        table = OverrideTable()
        table.set(DeploymentOverride(id=TROOPER.id, can_be_defeated=False, set_trigger="boss"))
        session = SessionState(threat=4)

        outcome, pools = _defeat(TROOPER.id, session=session, overrides=table)

        assert not outcome.defeated
        assert outcome.trigger == "boss"
        assert TROOPER.id in pools.deployed_enemies
        assert TROOPER.id not in pools.deployment_hand
        assert session.threat == 4

    def test_earned_villain_without_redeploy(self):
        table = OverrideTable()
        table.set(DeploymentOverride(id=VILLAIN.id, can_redeploy=False))
        session = SessionState(earned_villains=[VILLAIN.id])

        outcome, pools = _defeat(VILLAIN.id, session=session, overrides=table)

        assert session.cannot_redeploy == [VILLAIN.id]
        assert VILLAIN.id not in table
        assert outcome.override_removed
        assert VILLAIN.id not in pools.deployment_hand
        assert VILLAIN.id in pools.manual_deployment_list
        assert outcome.added_to_manual

    def test_cannot_redeploy_is_not_duplicated(self):
        table = OverrideTable()
        table.set(DeploymentOverride(id=TROOPER.id, can_redeploy=False))
        session = SessionState(cannot_redeploy=[TROOPER.id])

        outcome, pools = _defeat(TROOPER.id, session=session, overrides=table)

        assert session.cannot_redeploy == [TROOPER.id]
        assert not outcome.returned_to_hand

    def test_earned_villain_manual_list_is_sorted(self):
        pools = _deployed(VILLAIN)
        pools.manual_deployment_list.add(instance(card("DG090")))
        pools.manual_deployment_list.add(instance(card("DG005")))
        session = SessionState(earned_villains=[VILLAIN.id])

        _defeat(VILLAIN.id, session=session, pools=pools)

        assert [str(i) for i in pools.manual_deployment_list.ids()] == ["DG005", "DG080", "DG090"]

    def test_redeploy_with_reset_removes_override(self):
        table = OverrideTable()
        table.set(DeploymentOverride(id=TROOPER.id, use_reset_on_redeployment=True))

        outcome, _ = _defeat(TROOPER.id, overrides=table)

        assert outcome.override_removed
        assert TROOPER.id not in table

    def test_redeploy_without_reset_clears_counters(self):
        table = OverrideTable()
        entry = DeploymentOverride(id=TROOPER.id, can_reinforce=False, deployment_count=3)
        entry.has_deployed = True
        table.set(entry)

        outcome, _ = _defeat(TROOPER.id, overrides=table)

        assert outcome.override_reset
        kept = table.get(TROOPER.id)
        assert kept.deployment_count == 0
        assert kept.has_deployed is False
        assert kept.can_reinforce is False

    def test_last_group_fires_callback(self):
        fired = Mock()
        outcome, pools = _defeat(
            TROOPER.id, pools=_deployed(TROOPER), on_all_defeated=fired
        )
        assert outcome.all_enemies_defeated
        fired.assert_called_once_with()
        assert len(pools.deployed_enemies) == 0

    def test_callback_waits_for_last_group(self):
        fired = Mock()
        outcome, _ = _defeat(TROOPER.id, on_all_defeated=fired)
        assert not outcome.all_enemies_defeated
        fired.assert_not_called()

    def test_adaptive_difficulty_awards_fame_and_threat(self):
        session = SessionState(threat=2, fame=1, use_adaptive_difficulty=True)
        outcome, _ = _defeat(VILLAIN.id, session=session)

        assert session.fame == 6
        assert session.threat == 5
        assert outcome.fame_gained == 5
        assert outcome.threat_reimbursed == 3

    def test_no_adaptive_difficulty_no_award(self):
        session = SessionState(threat=2, fame=1)
        _defeat(VILLAIN.id, session=session)
        assert session.fame == 1
        assert session.threat == 2


class TestResolveReinforce:
    def test_adds_one_figure_and_pays(self):
        group = instance(card("DG010", rcost=3, size=3), current_size=1)
        session = SessionState(threat=5)

        outcome = transitions.resolve_reinforce(group, session=session, overrides=OverrideTable())

        assert group.current_size == 2
        assert outcome.new_size == 2
        assert outcome.threat_spent == 3
        assert session.threat == 2

    def test_onslaught_discount_spends_whole_budget(self):
        group = instance(card("DG010", rcost=5, size=3), current_size=1)
        session = SessionState(threat=4)

        outcome = transitions.resolve_reinforce(
            group, session=session, overrides=OverrideTable(), is_onslaught=True
        )

        assert outcome.threat_spent == 4
        assert group.current_size == 2
        assert session.threat == 0

    @pytest.mark.parametrize(
        ("group", "threat", "override"),
        [
            (instance(card("DG011", rcost=2, size=3)), 10, None),
            (instance(card("DG012", rcost=0, size=3), current_size=1), 10, None),
            (instance(card("DG013", rcost=5, size=3), current_size=1), 3, None),
            (
                instance(card("DG014", rcost=2, size=3), current_size=1),
                10,
                DeploymentOverride(id=CardId("DG", 14), can_reinforce=False),
            ),
        ],
        ids=["full", "never-reinforces", "unaffordable", "override-forbids"],
    )
    def test_ineligible_group_is_left_alone(self, group, threat, override):
        table = OverrideTable()
        if override is not None:
            table.set(override)
        session = SessionState(threat=threat)
        size = group.current_size

        outcome = transitions.resolve_reinforce(
            group, session=session, overrides=table, is_onslaught=True
        )

        assert outcome is None
        assert group.current_size == size
        assert session.threat == threat


class TestDeployGroup:
    def test_deploy_from_hand(self):
        pools = Pools()
        group = instance(TROOPER, current_size=1)
        group.has_activated = True
        pools.deployment_hand.add(group)
        session = SessionState(threat=6)

        outcome = transitions.deploy_group(
            group, source="hand", session=session, overrides=OverrideTable(), pools=pools
        )

        assert outcome.threat_spent == 4
        assert session.threat == 2
        assert TROOPER.id not in pools.deployment_hand
        assert TROOPER.id in pools.deployed_enemies
        assert group.current_size == TROOPER.size
        assert group.has_activated is False

    def test_tier3_overspend_floors_threat(self):
        pools = Pools()
        group = instance(VILLAIN)
        pools.manual_deployment_list.add(group)
        session = SessionState(threat=8)

        outcome = transitions.deploy_group(
            group, source="manual", session=session, overrides=OverrideTable(), pools=pools
        )

        assert outcome.threat_spent == 8
        assert session.threat == 0
        assert VILLAIN.id not in pools.manual_deployment_list

    def test_deploy_counts_on_override(self):
        pools = Pools()
        group = instance(TROOPER)
        pools.deployment_hand.add(group)
        table = OverrideTable()
        table.set(DeploymentOverride(id=TROOPER.id))

        transitions.deploy_group(
            group, source="hand", session=SessionState(threat=10), overrides=table, pools=pools
        )

        entry = table.get(CardId("DG", 1))
        assert entry.has_deployed
        assert entry.deployment_count == 1

    def test_custom_override_substitutes_definition(self):
        pools = Pools()
        group = instance(TROOPER)
        pools.deployment_hand.add(group)
        table = OverrideTable()
        substitute = instance(card("DG070", tier=2, cost=1, size=2, name="Custom Squad"))
        table.set(DeploymentOverride(id=TROOPER.id, is_custom=True, custom_card=substitute))
        session = SessionState(threat=6)

        outcome = transitions.deploy_group(
            group, source="hand", session=session, overrides=table, pools=pools
        )

        deployed = pools.deployed_enemies.get(TROOPER.id)
        assert deployed.name == "Custom Squad"
        assert deployed.id == TROOPER.id
        assert deployed.current_size == 2
        assert outcome.threat_spent == 1
        assert session.threat == 5

    def test_defeated_custom_group_returns_as_catalog_card(self):
        pools = Pools()
        pools.deployment_hand.add(instance(TROOPER))
        table = OverrideTable()
        substitute = instance(card("DG070", tier=2, cost=1, size=2, name="Custom Squad"))
        table.set(DeploymentOverride(id=TROOPER.id, is_custom=True, custom_card=substitute))
        transitions.deploy_group(
            pools.deployment_hand.get(TROOPER.id),
            source="hand",
            session=SessionState(threat=6),
            overrides=table,
            pools=pools,
        )

        _defeat(TROOPER.id, overrides=table, pools=pools)

        assert pools.deployment_hand.get(TROOPER.id).card is TROOPER
