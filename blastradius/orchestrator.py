"""Orchestrator coordinating loading, analysis, planning and validation for one run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .engines import resolve_engine
from .loaders import AnalysisBundle, PrdDocument, load_repo_facts
from .models import AnalyzeOutput, Answer, RepoFacts, ScoringPolicy
from .plan_models import PlanOutput, PlanValidationResult
from .planner import Planner
from .validation import PlanValidator

logger = logging.getLogger(__name__)


@dataclass
class PlanRun:
    output: PlanOutput
    validation: PlanValidationResult


class BlastRadiusOrchestrator:
    """Runs the analysis and planning stages against one repo-facts snapshot."""

    def __init__(
        self,
        facts: RepoFacts,
        policy: Optional[ScoringPolicy] = None,
        engine: Optional[str] = None,
    ):
        self.facts = facts
        self.policy = policy or ScoringPolicy()
        self.engine = resolve_engine(engine, self.policy)
        self.planner = Planner()

    @classmethod
    def from_directory(
        cls, facts_dir: Path, policy: Optional[ScoringPolicy] = None, engine: Optional[str] = None
    ) -> "BlastRadiusOrchestrator":
        return cls(load_repo_facts(facts_dir), policy=policy, engine=engine)

    def analyze(self, prd: PrdDocument) -> AnalyzeOutput:
        return self.engine.analyze(prd.text, prd.meta, self.facts)

    def plan(
        self,
        bundle: AnalysisBundle,
        prd_text: str = "",
        new_files: Sequence[str] = (),
        answers: Sequence[Answer] = (),
    ) -> PlanRun:
        all_answers: List[Answer] = list(bundle.answers)
        seen = {a.question_id for a in all_answers}
        all_answers.extend(a for a in answers if a.question_id not in seen)
        files = list(dict.fromkeys(list(bundle.new_files) + list(new_files)))

        output = self.planner.plan(
            bundle.analysis,
            self.facts,
            questions=bundle.questions,
            answers=all_answers,
            prd_text=prd_text,
            new_files=files,
        )
        validation = PlanValidator(self.facts.all_files).validate(output.roadmap, output.bundles)
        if not validation.valid:
            logger.warning("Generated plan failed validation: %s", "; ".join(validation.errors))
        return PlanRun(output=output, validation=validation)

    def run(
        self,
        prd: PrdDocument,
        new_files: Sequence[str] = (),
        answers: Sequence[Answer] = (),
    ) -> Tuple[AnalyzeOutput, PlanRun]:
        """Analysis followed by planning in one pass."""
        analysis = self.analyze(prd)
        bundle = AnalysisBundle(
            analysis=analysis.impact,
            questions=list(analysis.questions),
            prd_path=prd.meta.source,
        )
        return analysis, self.plan(bundle, prd.raw_text, new_files, answers)
