"""Bounded breadth-first blast-radius expansion over the dependency graph."""

from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Optional

from .models import DepGraph, ScoredFile, ScoringPolicy
from .scoring import compute_raw_score


class GraphExpander:
    """Walks forward and reverse edges from a seed set up to ``max_depth`` hops.

    Expanded-only files are scored as one term hit decayed by hop distance
    (``W_term * DEPTH_DECAY ** hop``). The decay is a heuristic confidence
    falloff, not a probability.
    """

    def __init__(self, graph: DepGraph, policy: Optional[ScoringPolicy] = None):
        self.graph = graph
        self.policy = policy or ScoringPolicy()

    def hop_distances(self, seeds: Iterable[str], max_depth: Optional[int] = None) -> Dict[str, int]:
        """Return the shortest hop distance of every reachable path, seeds included at 0."""
        limit = self.policy.max_depth if max_depth is None else max_depth
        visited: Dict[str, int] = {}
        queue = deque()
        for seed in seeds:
            if seed not in visited:
                visited[seed] = 0
                queue.append((seed, 0))

        while queue:
            current, depth = queue.popleft()
            if depth >= limit:
                continue
            for neighbour in self.graph.neighbours(current):
                if neighbour not in visited:
                    visited[neighbour] = depth + 1
                    queue.append((neighbour, depth + 1))
        return visited

    def expand(self, seeds: Iterable[str], max_depth: Optional[int] = None) -> List[ScoredFile]:
        seed_list = list(seeds)
        seed_set = set(seed_list)
        expanded = []
        for path, depth in self.hop_distances(seed_list, max_depth).items():
            if path in seed_set or depth == 0:
                continue
            expanded.append(
                ScoredFile(
                    path=path,
                    score=self.base_unit() * (self.policy.depth_decay ** depth),
                    hop_distance=depth,
                )
            )
        return expanded

    def base_unit(self) -> float:
        return compute_raw_score(1, 0, 0, self.policy)
