"""Domain layer of the deployment engine.

This package hosts every deployment rule and operates purely in-memory.  It
exposes:

* Dataclasses describing cards, pools and overrides (see :mod:`models`).
* Enumerations for expansions, factions and catalog groups.
* Rule configuration objects (see :mod:`rules_config`).
* Pure rule functions for availability, hand drawing, selection and defeat.
* The :class:`~deployer.domain.engine.DeploymentEngine` facade tying them together.
"""

from . import (
    availability,
    engine,
    enums,
    hand,
    models,
    overrides,
    rules_config,
    selection,
    transitions,
)

__all__ = [
    "availability",
    "engine",
    "enums",
    "hand",
    "models",
    "overrides",
    "rules_config",
    "selection",
    "transitions",
]
