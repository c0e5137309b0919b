from __future__ import annotations
from typing import Dict, List, Optional

import numpy as np
import structlog

from models import BayLocation, PathResult, PathStrategy, PickingPlan

logger = structlog.get_logger()

AISLE_COST = 3
ENTRANCE = BayLocation(0, 0)


def parse_location(aisle, bay) -> Optional[BayLocation]:
    """Both parts must be positive integers, anything else is not a pick location."""
    try:
        a = int(str(aisle).strip())
        b = int(str(bay).strip())
    except (TypeError, ValueError):
        return None
    if a <= 0 or b <= 0:
        return None
    return BayLocation(a, b)


def unique_locations(plan: Optional[PickingPlan]) -> List[BayLocation]:
    if plan is None or not plan.trolleys:
        return []
    found = set()
    skipped = 0
    for trolley in plan.trolleys:
        for a in trolley.assignments:
            loc = parse_location(a.aisle, a.bay)
            if loc is None:
                skipped += 1
                continue
            found.add(loc)
    if skipped:
        logger.warning("routing.invalid_locations", plan_id=plan.plan_id, skipped=skipped)
    return sorted(found)


def distance(p: BayLocation, q: BayLocation) -> int:
    """
    Walking distance on the aisle grid. Changing aisle means walking back to
    the aisle head (bay 0), crossing AISLE_COST per aisle and walking in again.
    """
    a1, b1 = p
    a2, b2 = q
    if a1 == a2:
        return abs(b1 - b2)
    return b1 + AISLE_COST * abs(a1 - a2) + b2


def path_distance(path: List[BayLocation]) -> int:
    return sum(distance(path[i - 1], path[i]) for i in range(1, len(path)))


class RoutingPolicy:
    strategy: PathStrategy

    def order(self, locations: List[BayLocation]) -> List[BayLocation]:
        raise NotImplementedError

    def build_path(self, locations: List[BayLocation]) -> PathResult:
        path = [ENTRANCE] + self.order(sorted(set(locations)))
        return PathResult(strategy=self.strategy, path=path, total_distance=path_distance(path))


class SweepRouting(RoutingPolicy):
    strategy = PathStrategy.SWEEP

    def order(self, locations):
        return list(locations)


class NearestNeighbourRouting(RoutingPolicy):
    strategy = PathStrategy.NEAREST_NEIGHBOUR

    def order(self, locations):
        remaining = list(locations)
        current = ENTRANCE
        visited = []
        while remaining:
            dists = np.array([distance(current, loc) for loc in remaining])
            # remaining stays sorted, so argmin's first hit is the lowest (aisle, bay) on ties
            idx = int(np.argmin(dists))
            current = remaining.pop(idx)
            visited.append(current)
        return visited


ROUTING_POLICIES: Dict[PathStrategy, RoutingPolicy] = {
    PathStrategy.SWEEP: SweepRouting(),
    PathStrategy.NEAREST_NEIGHBOUR: NearestNeighbourRouting(),
}


def plan_paths(plan: Optional[PickingPlan]) -> Dict[PathStrategy, PathResult]:
    locations = unique_locations(plan)
    results = {s: policy.build_path(locations) for s, policy in ROUTING_POLICIES.items()}
    if locations:
        logger.info("routing.paths_planned", locations=len(locations),
                    **{s.name.lower(): r.total_distance for s, r in results.items()})
    else:
        logger.info("routing.nothing_to_route")
    return results
