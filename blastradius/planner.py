"""Plan synthesis: area steps, ordering and Roadmap assembly from an impact analysis."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .bundles import build_bundle_pack
from .classify import area_slug, classify_file, group_by_area
from .engines import utc_now
from .models import Answer, ImpactAnalysis, ImpactFile, Question, RepoFacts
from .ordering import topological_order
from .plan_models import (
    Artifacts,
    FeatureDependency,
    PlanOutput,
    PlanStep,
    QuestionRef,
    RiskItem,
    Roadmap,
    StepFiles,
    VerificationItem,
)
from .templates import (
    AREA_STEP_ORDER,
    CREATE_CHECKLIST,
    CREATE_DONE_WHEN,
    STEP_TEMPLATES,
    TYPE_BEARING_AREAS,
)
from .text import extract_acceptance_criteria, extract_prd_title

logger = logging.getLogger(__name__)

DEFAULT_AREAS = ["UI", "Types"]
MAX_MODIFY_FILES = 6
MAX_TOUCH_FILES = 10


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


class StepIdGenerator:
    """Sequential step ids (``step-<slug>-NNN``) with one counter shared across prefixes."""

    def __init__(self, start: int = 0):
        self._counter = start

    def next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter:03d}"


class PlanSynthesizer:
    """Turns classified impacted files into area steps in causal generation order."""

    def __init__(self, ids: Optional[StepIdGenerator] = None):
        self.ids = ids or StepIdGenerator()

    def impacted_areas(self, analysis: ImpactAnalysis) -> List[str]:
        if not analysis.areas:
            return list(DEFAULT_AREAS)
        return [a.area for a in analysis.areas if a.confidence > 0]

    def synthesize(self, analysis: ImpactAnalysis, new_files: Sequence[str] = ()) -> List[PlanStep]:
        """Emit steps in generation order; each depends on every step before it."""
        areas = self.impacted_areas(analysis)
        by_area = group_by_area(f.path for f in analysis.files)
        blast = [f.path for f in analysis.files if f.role in ("secondary", "dependent")][:MAX_TOUCH_FILES]
        primary = [f.path for f in analysis.files if f.role == "primary"]

        steps: List[PlanStep] = []

        needs_types = any(a in TYPE_BEARING_AREAS for a in areas) or any(
            classify_file(p) == "Types" for p in primary
        )
        if needs_types:
            steps.append(self._area_step("Types", by_area.get("Types", []), blast, steps))

        for area in AREA_STEP_ORDER:
            if area == "UI":
                if "UI" not in areas and "Unknown" not in areas:
                    continue
                files = by_area.get("UI", []) + by_area.get("Unknown", [])
            elif area in areas:
                files = by_area.get(area, [])
            else:
                continue
            steps.append(self._area_step(area, files, blast, steps))

        for path in _unique(new_files):
            steps.append(self._create_step(path, steps))

        steps.append(self._area_step("Tests", by_area.get("Tests", []), blast, steps))
        return steps

    def _area_step(self, area: str, files: List[str], blast: List[str], prior: List[PlanStep]) -> PlanStep:
        template = STEP_TEMPLATES[area]
        return PlanStep(
            id=self.ids.next_id(f"step-{area_slug(area)}"),
            title=template.title,
            description=template.describe(files),
            area=area,
            kind=template.kind,
            files=StepFiles(modify=files[:MAX_MODIFY_FILES], create=[], touch=list(blast)),
            depends_on_step_ids=[s.id for s in prior],
            rationale=list(template.rationale),
            implementation_checklist=template.checklist_for(files),
            done_when=list(template.done_when),
        )

    def _create_step(self, path: str, prior: List[PlanStep]) -> PlanStep:
        area = classify_file(path)
        return PlanStep(
            id=self.ids.next_id("step-create"),
            title=f"Create new file: {path}",
            description=f"Create {path} as suggested by the impact analysis for area: {area}.",
            area=area,
            kind="create",
            files=StepFiles(modify=[], create=[path], touch=[]),
            depends_on_step_ids=[s.id for s in prior],
            rationale=[
                f"The impact analysis identified that {path} needs to be created",
                f"Area: {area}; this file does not exist in the indexed repo",
            ],
            implementation_checklist=[item.format(area=area) for item in CREATE_CHECKLIST],
            done_when=[item.format(path=path) for item in CREATE_DONE_WHEN],
        )


def synthesize_acceptance_criteria(areas: Sequence[str], blocking_questions: int) -> List[str]:
    criteria = [
        "All compilation and type-check errors are resolved",
        "All existing tests continue to pass after the change",
        "No new lint warnings are introduced",
        "The feature works end-to-end in the development environment",
        "Loading, error and empty states are handled",
    ]
    if "Auth" in areas:
        criteria.append("Unauthorised users cannot access the new feature or route")
    if "API/Service" in areas:
        criteria.append("API calls succeed with valid data and return clear errors on failure")
    if "State" in areas:
        criteria.append("State updates are reflected in the UI without a manual refresh")
    if "UI" in areas:
        criteria.append("The feature UI matches the design and is responsive")
    if "Tests" in areas:
        criteria.append("Coverage for new and modified files is at least 80%")
    if blocking_questions:
        criteria.append(
            f"All {blocking_questions} blocking clarifying question(s) are resolved before implementation starts"
        )
    return criteria


def derive_risks(files: Sequence[ImpactFile], areas: Sequence[str]) -> List[RiskItem]:
    risks = []
    blast_size = sum(1 for f in files if f.role in ("secondary", "dependent"))
    if blast_size > 20:
        risks.append(
            RiskItem(
                severity="high",
                risk=f"Large blast radius: {blast_size} secondary/dependent files may be affected",
                mitigation=[
                    "Run the full test suite after each step, not just at the end",
                    "Run the type checker often to catch cascading errors early",
                    "Consider shipping the change behind a feature flag",
                ],
            )
        )
    elif blast_size > 5:
        risks.append(
            RiskItem(
                severity="medium",
                risk=f"Moderate blast radius: {blast_size} files may be indirectly impacted",
                mitigation=[
                    "Run impacted test modules after each logical chunk of changes",
                    "Review the diff carefully before committing",
                ],
            )
        )
    if "Auth" in areas:
        risks.append(
            RiskItem(
                severity="high",
                risk="Auth changes can break access control for all users if misconfigured",
                mitigation=[
                    "Test with multiple user roles explicitly",
                    "Check that logout and token refresh still work",
                    "Do not merge without a security review",
                ],
            )
        )
    if "State" in areas:
        risks.append(
            RiskItem(
                severity="medium",
                risk="State shape changes can leave stale cached state or mismatched selectors",
                mitigation=[
                    "Version or migrate persisted state",
                    "Check every selector that reads from modified state",
                ],
            )
        )
    if "API/Service" in areas:
        risks.append(
            RiskItem(
                severity="medium",
                risk="API contract changes may break consumers if not backward-compatible",
                mitigation=[
                    "Version the endpoint if the contract changes",
                    "Add integration tests for the client/server contract",
                ],
            )
        )
    if not risks:
        risks.append(
            RiskItem(
                severity="low",
                risk="Localised change with a small blast radius; regression risk is low",
                mitigation=["Run tests for the modified files", "Smoke test in the development environment"],
            )
        )
    return risks


def build_verification(areas: Sequence[str]) -> List[VerificationItem]:
    items = [
        VerificationItem(
            type="typecheck",
            instructions=[
                "Run the project's type checker",
                "Expected: 0 errors",
                "Resolve type errors before moving on to lint",
            ],
        ),
        VerificationItem(
            type="lint",
            instructions=[
                "Run the project's linter with warnings treated as errors",
                "Expected: 0 warnings, 0 errors",
            ],
        ),
        VerificationItem(
            type="unit_test",
            instructions=[
                "Run the unit test suite",
                "Expected: all existing and new tests pass",
                "Check coverage for new files: target at least 80%",
            ],
        ),
    ]
    if "Auth" in areas or "API/Service" in areas:
        items.append(
            VerificationItem(
                type="integration_test",
                instructions=[
                    "Start the development API or use recorded fixtures",
                    "Exercise the feature end-to-end: create, read, update, delete flows",
                    "Verify auth flows: login, logout, token refresh, unauthorised access",
                ],
            )
        )
    items.append(
        VerificationItem(
            type="manual",
            instructions=[
                "Run the application locally",
                "Exercise every user story from the requirements",
                "Verify loading, error and empty states",
                "Log in as a user WITHOUT permission and confirm access is denied"
                if "Auth" in areas
                else "Check that the feature is available to all relevant user roles",
                "Check logs and console output for errors",
            ],
        )
    )
    return items


def derive_open_questions(questions: Sequence[Question], answers: Sequence[Answer]) -> List[QuestionRef]:
    """Required questions become open questions; answered ones stop blocking."""
    answered = {a.question_id: a for a in answers}
    refs = []
    for question in questions:
        if not question.required:
            continue
        why = [question.rationale or "Required for a correct implementation"]
        answer = answered.get(question.id)
        if answer is not None:
            why.append(f"Answered: {answer.display_value()}")
        else:
            why.append("Marked required by the impact analysis and not yet answered")
        refs.append(
            QuestionRef(
                id=question.id,
                question=question.question_text,
                blocking=answer is None,
                why_this_matters=why,
            )
        )
    return refs


def derive_dependencies(
    new_files: Sequence[str], all_files: Sequence[str], areas: Sequence[str]
) -> List[FeatureDependency]:
    deps = []
    known = set(all_files)
    for path in _unique(new_files):
        directory = path.rsplit("/", 1)[0] if "/" in path else ""
        if path in known:
            status = "existing"
        elif any(f.startswith(directory + "/") for f in all_files) or (not directory and all_files):
            status = "unknown"
        else:
            status = "missing"
        deps.append(
            FeatureDependency(
                kind="file",
                target=path,
                name=path.rsplit("/", 1)[-1],
                status=status,
                why=["Suggested as a new file by the impact analysis"],
            )
        )
    if "Auth" in areas and not any("auth" in f.lower() for f in all_files):
        deps.append(
            FeatureDependency(
                kind="package",
                name="auth library",
                status="unknown",
                why=[
                    "Auth area is impacted but no auth-related files were found in the repo",
                    "Confirm which authentication solution the project uses",
                ],
            )
        )
    return deps


class Planner:
    """Builds the Roadmap and instruction bundles for one planning run."""

    name = "heuristic"

    def plan(
        self,
        analysis: ImpactAnalysis,
        facts: RepoFacts,
        questions: Sequence[Question] = (),
        answers: Sequence[Answer] = (),
        prd_text: str = "",
        new_files: Sequence[str] = (),
        generated_at: Optional[str] = None,
    ) -> PlanOutput:
        generated_at = generated_at or utc_now()
        synthesizer = PlanSynthesizer(StepIdGenerator())
        areas = synthesizer.impacted_areas(analysis)
        ordered = topological_order(synthesizer.synthesize(analysis, new_files))
        logger.info("Synthesized %d step(s) for %d area(s)", len(ordered), len(areas))

        open_questions = derive_open_questions(questions, answers)
        blocking = sum(1 for q in open_questions if q.blocking)

        criteria = extract_acceptance_criteria(prd_text)
        if not criteria:
            criteria = synthesize_acceptance_criteria(areas, blocking)

        artifacts = Artifacts(
            files_to_modify=_unique(p for s in ordered for p in s.files.modify),
            files_affected=_unique([f.path for f in analysis.files] + [p for s in ordered for p in s.files.touch]),
            files_to_create=_unique([p for s in ordered for p in s.files.create] + list(new_files)),
            dependencies=derive_dependencies(new_files, facts.all_files, [a.area for a in analysis.areas]),
        )

        risks = derive_risks(analysis.files, areas)
        notes = [
            f"Generated by the {self.name} planner (deterministic, no external services)",
            f"Impact analysis identified {len(analysis.files)} impacted file(s) across {len(analysis.areas)} area(s)",
            f"Plan contains {len(ordered)} ordered step(s)",
        ]
        title = extract_prd_title(prd_text)
        if title:
            notes.insert(0, f"Requirement: {title}")
        question_text = {q.id: q.question_text for q in questions}
        for answer in answers:
            label = question_text.get(answer.question_id, answer.question_id)
            notes.append(f"Clarification: {label} -> {answer.display_value()}")
        notes.extend(analysis.notes)

        roadmap = Roadmap(
            prd_hash=analysis.prd.hash,
            prd_source=analysis.prd.source or None,
            generated_at=generated_at,
            plan=ordered,
            artifacts=artifacts,
            acceptance_criteria=criteria,
            verification=build_verification(areas),
            risks=risks,
            open_questions=open_questions,
            notes=notes,
        )
        pack = build_bundle_pack(ordered, analysis, facts, prd_text, questions, answers, generated_at)

        engine_notes = [
            f"{self.name} planner: generated {len(ordered)} step(s) for {len(areas)} area(s)",
            f"Areas: {', '.join(areas)}",
            f"Acceptance criteria: {len(criteria)}",
            f"Risks: {len(risks)}",
            f"Open questions (blocking): {blocking}",
        ]
        return PlanOutput(roadmap=roadmap, bundles=pack, engine_notes=engine_notes)
