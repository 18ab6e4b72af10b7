"""Declarative rule configuration for the deployment engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TierQuota:
    """Number of cards drawn per tier when building a deployment hand."""

    tier1: int
    tier2: int
    tier3: int

    def for_tier(self, tier: int) -> int:
        return (self.tier1, self.tier2, self.tier3)[tier - 1]


@dataclass(frozen=True, slots=True)
class QuotaRules:
    """Tier quotas keyed by threat level."""

    low: TierQuota = TierQuota(2, 2, 0)  # threat level 3 and below
    medium: TierQuota = TierQuota(1, 2, 1)  # threat level 4
    high: TierQuota = TierQuota(1, 2, 2)  # threat level 5 and above

    def for_threat_level(self, threat_level: int) -> TierQuota:
        if threat_level <= 3:
            return self.low
        if threat_level == 4:
            return self.medium
        return self.high


@dataclass(frozen=True, slots=True)
class SelectionRules:
    """Fuzzy deployment and reinforcement constants."""

    tier3_overspend: int = 3
    onslaught_tier2_discount: int = 1
    onslaught_tier3_discount: int = 2
    onslaught_reinforce_discount: int = 1
    min_reinforce_cost: int = 1


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    quotas: QuotaRules = QuotaRules()
    selection: SelectionRules = SelectionRules()


DEFAULT_RULES = RulesConfig()
