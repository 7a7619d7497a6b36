"""Stable topological ordering of plan steps with append-on-cycle fallback."""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List

from .plan_models import PlanStep

logger = logging.getLogger(__name__)


def topological_order(steps: List[PlanStep]) -> List[PlanStep]:
    """Order steps so known dependencies come first (Kahn's algorithm).

    Zero in-degree steps are released in their original order. Unknown
    dependency ids do not count towards in-degree. Steps left unreached by a
    cycle are appended at the end in original order, so no step is ever dropped.
    """
    positions: Dict[str, List[int]] = {}
    for index, step in enumerate(steps):
        positions.setdefault(step.id, []).append(index)

    in_degree = [0] * len(steps)
    outgoing: List[List[int]] = [[] for _ in steps]
    for index, step in enumerate(steps):
        for dep in dict.fromkeys(step.depends_on_step_ids):
            for source in positions.get(dep, []):
                in_degree[index] += 1
                outgoing[source].append(index)

    queue = deque(i for i, degree in enumerate(in_degree) if degree == 0)
    emitted = [False] * len(steps)
    ordered: List[PlanStep] = []
    while queue:
        index = queue.popleft()
        emitted[index] = True
        ordered.append(steps[index])
        for target in outgoing[index]:
            in_degree[target] -= 1
            if in_degree[target] == 0:
                queue.append(target)

    if len(ordered) != len(steps):
        leftover = [steps[i] for i in range(len(steps)) if not emitted[i]]
        logger.warning(
            "Dependency cycle among %d step(s); appending in original order: %s",
            len(leftover),
            ", ".join(s.id for s in leftover),
        )
        ordered.extend(leftover)
    return ordered
