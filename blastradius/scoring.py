"""Relevance scoring and score-set operations (merge, normalise, filter, sort)."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from .models import ScoredFile, ScoringPolicy, SearchDoc, SymbolEntry

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"\W+")


def compute_raw_score(
    term_hits: int,
    symbol_hits: int,
    hop_distance: int,
    policy: Optional[ScoringPolicy] = None,
) -> float:
    """Weighted hit count decayed by graph distance.

    ``(term_hits * W_term + symbol_hits * W_symbol) * DEPTH_DECAY ** hop_distance``
    """
    policy = policy or ScoringPolicy()
    base = term_hits * policy.term_weight + symbol_hits * policy.symbol_weight
    return base * (policy.depth_decay ** hop_distance)


def _doc_words(doc: SearchDoc) -> set:
    joined = " ".join([doc.file, *doc.tags, doc.text or ""]).lower()
    return {w for w in _NON_WORD.split(joined) if len(w) >= 2}


class RelevanceScorer:
    """Scores files by keyword overlap with search documents and by symbol-name hits."""

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    def score_documents(self, tokens: Iterable[str], docs: Iterable[SearchDoc]) -> List[ScoredFile]:
        token_list = list(tokens)
        scored = []
        for doc in docs:
            words = _doc_words(doc)
            path_lower = doc.file.lower()
            matched = [t for t in token_list if t in words or t in path_lower]
            if not matched:
                continue
            scored.append(
                ScoredFile(
                    path=doc.file,
                    score=compute_raw_score(len(matched), 0, 0, self.policy),
                    matched_terms=set(matched),
                )
            )
        return scored

    def score_symbols(
        self, tokens: Iterable[str], symbol_index: Dict[str, SymbolEntry]
    ) -> List[ScoredFile]:
        token_list = list(tokens)
        scored = []
        for name, entry in symbol_index.items():
            sym_lower = name.lower()
            matched_terms = [t for t in token_list if t in sym_lower or sym_lower in t]
            if not matched_terms:
                continue
            # An exact identifier hit counts twice.
            hits = len(matched_terms) + sum(1 for t in matched_terms if t == sym_lower)
            scored.append(
                ScoredFile(
                    path=entry.file,
                    score=compute_raw_score(0, hits, 0, self.policy),
                    matched_terms=set(matched_terms),
                    matched_symbols={name},
                )
            )
        return scored

    def score(
        self,
        tokens: Iterable[str],
        docs: Iterable[SearchDoc],
        symbol_index: Dict[str, SymbolEntry],
    ) -> List[ScoredFile]:
        """Return raw per-source entries; the same path may appear more than once.

        An empty token set yields an empty list, the "no signal" outcome.
        """
        token_list = list(tokens)
        if not token_list:
            logger.info("No requirement tokens extracted; nothing to score")
            return []
        return self.score_documents(token_list, docs) + self.score_symbols(token_list, symbol_index)


def merge_scored(entries: Iterable[ScoredFile]) -> List[ScoredFile]:
    """Collapse entries by path: max score, union of evidence, min hop distance.

    Output keeps first-seen path order and never aliases the input objects.
    """
    merged: Dict[str, ScoredFile] = {}
    for entry in entries:
        current = merged.get(entry.path)
        if current is None:
            merged[entry.path] = ScoredFile(
                path=entry.path,
                score=entry.score,
                matched_terms=set(entry.matched_terms),
                matched_symbols=set(entry.matched_symbols),
                hop_distance=entry.hop_distance,
            )
            continue
        current.score = max(current.score, entry.score)
        current.matched_terms |= entry.matched_terms
        current.matched_symbols |= entry.matched_symbols
        current.hop_distance = min(current.hop_distance, entry.hop_distance)
    return list(merged.values())


def normalize_scores(entries: List[ScoredFile]) -> List[ScoredFile]:
    """Scale so the top score is exactly 1.0. All-zero sets are returned unscaled."""
    if not entries:
        return []
    top = max(e.score for e in entries)
    if top <= 0:
        return [_copy(e) for e in entries]
    result = []
    for e in entries:
        scaled = _copy(e)
        scaled.score = 1.0 if e.score == top else e.score / top
        result.append(scaled)
    return result


def filter_by_threshold(entries: Iterable[ScoredFile], threshold: float) -> List[ScoredFile]:
    return [e for e in entries if e.score >= threshold and e.score > 0]


def sort_by_score(entries: Iterable[ScoredFile]) -> List[ScoredFile]:
    return sorted(entries, key=lambda e: (-e.score, e.path))


def finalize_scores(entries: Iterable[ScoredFile], policy: Optional[ScoringPolicy] = None) -> List[ScoredFile]:
    """Merge, normalise, threshold, sort and cap a raw score set."""
    policy = policy or ScoringPolicy()
    merged = merge_scored(entries)
    normalized = normalize_scores(merged)
    kept = filter_by_threshold(normalized, policy.score_threshold)
    return sort_by_score(kept)[: policy.max_impact_files]


def _copy(entry: ScoredFile) -> ScoredFile:
    return ScoredFile(
        path=entry.path,
        score=entry.score,
        matched_terms=set(entry.matched_terms),
        matched_symbols=set(entry.matched_symbols),
        hop_distance=entry.hop_distance,
    )
