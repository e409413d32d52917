"""Reachability checks for the points a sensor group is built from."""

from __future__ import annotations

import logging
from typing import Sequence, Tuple, Union

from environment.runtime import Environment

Targets = Union[str, Sequence[str], None]

logger = logging.getLogger(__name__)


def normalize_targets(targets: Targets) -> Tuple[str, ...]:
    """Accept one address or an ordered list of them; blanks are dropped."""
    if targets is None:
        return ()
    if isinstance(targets, str):
        targets = [targets]
    return tuple(address.strip() for address in targets if address and address.strip())


def point_exists(environment: Environment, address: str) -> bool:
    exists = environment.exists_and_reachable(address)
    if not exists:
        logger.debug("Point does not exist yet", extra={"address": address})
    return exists


def all_points_exist(environment: Environment, targets: Sequence[str]) -> bool:
    """True when every target is reachable. An empty target list is never ready."""
    if not targets:
        return False
    return all(point_exists(environment, address) for address in targets)
