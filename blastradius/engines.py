"""Analysis engines: the capability interface and the deterministic heuristic engine."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Type

from .classify import compute_area_confidences, infer_role
from .graph import GraphExpander
from .models import AnalyzeOutput, ImpactAnalysis, ImpactFile, PrdMeta, RepoFacts, ScoredFile, ScoringPolicy
from .questions import active_triggers, pick_questions
from .scoring import RelevanceScorer, finalize_scores, merge_scored
from .text import detect_ambiguity_signals, token_set

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AnalysisEngine:
    """Base class for analysis strategies.

    An engine turns requirement text plus a repo-facts snapshot into impacted
    files, area summaries and clarifying questions.
    """

    name = "base"

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    def analyze(
        self,
        prd_text: str,
        prd_meta: PrdMeta,
        facts: RepoFacts,
        generated_at: Optional[str] = None,
    ) -> AnalyzeOutput:
        raise NotImplementedError


class HeuristicAnalysisEngine(AnalysisEngine):
    """Offline engine built on token overlap, symbol hits and graph distance."""

    name = "heuristic"

    def analyze(
        self,
        prd_text: str,
        prd_meta: PrdMeta,
        facts: RepoFacts,
        generated_at: Optional[str] = None,
    ) -> AnalyzeOutput:
        policy = self.policy
        tokens = token_set(prd_text)
        signals = detect_ambiguity_signals(prd_text)
        logger.info("Extracted %d requirement tokens, %d ambiguity signal(s)", len(tokens), len(signals))

        raw = RelevanceScorer(policy).score(tokens, facts.search_docs, facts.symbol_index)
        seeds = merge_scored(raw)
        seed_paths = {s.path for s in seeds}
        logger.info("Seed files: %d", len(seeds))

        expanded = GraphExpander(facts.dep_graph, policy).expand([s.path for s in seeds])
        final = finalize_scores(seeds + expanded, policy)
        logger.info("Impacted files after filtering: %d", len(final))

        files = [self._impact_file(sf, seed_paths) for sf in final]
        areas = compute_area_confidences((sf.path, sf.score) for sf in final)

        analysis = ImpactAnalysis(
            prd=prd_meta,
            generated_at=generated_at or utc_now(),
            files=files,
            areas=areas,
            max_depth=policy.max_depth,
        )

        triggers = active_triggers(signals, areas, analysis.primary_count, policy)
        questions = pick_questions(triggers, policy.max_questions)

        notes = [
            f"Analyzed with the {self.name} engine (offline, no external services).",
            f"Requirement tokens extracted: {len(tokens)}.",
            f"Search index docs scanned: {len(facts.search_docs)}.",
            f"Symbol index entries scanned: {len(facts.symbol_index)}.",
        ]
        if not tokens:
            notes.append("No usable tokens in the requirement text; no files could be scored.")
        if signals:
            notes.append(f"Ambiguity signals detected: {', '.join(signals)}.")
        notes.extend(facts.warnings)
        analysis.notes = notes

        return AnalyzeOutput(questions=questions, impact=analysis, notes=list(notes))

    def _impact_file(self, sf: ScoredFile, seed_paths: set) -> ImpactFile:
        terms = sorted(sf.matched_terms)
        symbols = sorted(sf.matched_symbols)
        reasons = []
        if terms:
            reasons.append(f"Matched requirement terms: {', '.join(terms[:5])}")
        if symbols:
            reasons.append(f"Matched symbols: {', '.join(symbols[:3])}")
        if sf.hop_distance > 0:
            reasons.append(f"Reachable via dependency graph at depth {sf.hop_distance}")
        return ImpactFile(
            path=sf.path,
            score=sf.score,
            role=infer_role(sf.path, seed_paths, sf.score, self.policy),
            reasons=reasons,
            matched_terms=terms,
            matched_symbols=symbols,
            hop_distance=sf.hop_distance,
        )


ENGINES: Dict[str, Type[AnalysisEngine]] = {
    HeuristicAnalysisEngine.name: HeuristicAnalysisEngine,
    "mock": HeuristicAnalysisEngine,
}


def available_engines() -> List[str]:
    return sorted(ENGINES)


def resolve_engine(name: Optional[str], policy: Optional[ScoringPolicy] = None) -> AnalysisEngine:
    """Instantiate an engine by name, falling back to the heuristic engine."""
    key = (name or HeuristicAnalysisEngine.name).strip().lower()
    engine_cls = ENGINES.get(key)
    if engine_cls is None:
        logger.warning("Unknown engine '%s', falling back to '%s'", name, HeuristicAnalysisEngine.name)
        engine_cls = HeuristicAnalysisEngine
    return engine_cls(policy)
