"""Per-step instruction bundles: context, instructions, guardrails and deliverables."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from .models import Answer, ImpactAnalysis, Question, RepoConventions, RepoFacts
from .plan_models import BundleContext, InstructionBundle, InstructionBundlePack, PlanStep
from .templates import AREA_GUARDRAILS, COMMON_GUARDRAILS, DEFAULT_CONVENTIONS, SYSTEM_TEMPLATE, TOKEN_GUARDRAIL
from .text import prd_summary

MAX_CONTEXT_FILES = 10
MAX_CONVENTIONS = 8
MAX_TOKEN_LINES = 8
MAX_EVIDENCE = 6
MAX_REPO_RULES = 20


def convention_lines(conventions: RepoConventions) -> List[str]:
    lines = []
    for key, value in conventions.conventions.items():
        if isinstance(value, str):
            lines.append(f"{key}: {value}")
        elif isinstance(value, list):
            lines.append(f"{key}: {', '.join(str(v) for v in value[:3])}")
    return lines or list(DEFAULT_CONVENTIONS)


def token_lines(conventions: RepoConventions) -> List[str]:
    lines = []
    for key, value in conventions.tokens.items():
        if isinstance(value, str):
            lines.append(f"{key}: {value}")
        elif isinstance(value, (dict, list)):
            lines.append(f"{key}: {json.dumps(value)[:80]}")
        elif value is not None:
            lines.append(f"{key}: {value}")
    return lines


def rule_lines(conventions: RepoConventions) -> List[str]:
    """Project rules from ``rules.json`` (a ``rules`` list of strings)."""
    rules = conventions.rules.get("rules")
    if not isinstance(rules, list):
        return []
    return [r.strip() for r in rules if isinstance(r, str) and r.strip()][:MAX_REPO_RULES]


def guardrails_for(area: str, conventions: RepoConventions) -> List[str]:
    rails = list(COMMON_GUARDRAILS) + list(AREA_GUARDRAILS.get(area, []))
    if area == "Styling" and conventions.tokens:
        rails.append(TOKEN_GUARDRAIL)
    rails.extend(r for r in rule_lines(conventions) if r not in rails)
    return rails


def deliverables_for(step: PlanStep) -> List[str]:
    items = []
    if step.files.modify:
        items.append(f"Modified file(s): {', '.join(step.files.modify[:4])}")
    if step.files.create:
        items.append(f"New file(s): {', '.join(step.files.create[:4])}")
    items.append("A unified diff or complete file contents of all changes")
    items.append("A brief explanation of each change")
    if step.area == "Tests" or step.kind == "test":
        items.append("Test module(s) covering the happy path and at least one error path")
    return items


def _evidence(step: PlanStep, analysis: ImpactAnalysis, clarifications: List[str]) -> List[str]:
    in_step = set(step.files.modify) | set(step.files.create)
    reasons: List[str] = []
    for impact in analysis.files:
        if impact.path in in_step:
            reasons.extend(impact.reasons[:2])
    return (reasons + clarifications)[:MAX_EVIDENCE]


def build_bundle(
    step: PlanStep,
    analysis: ImpactAnalysis,
    facts: RepoFacts,
    summary: str,
    clarifications: List[str],
) -> InstructionBundle:
    conventions = facts.conventions
    context = BundleContext(
        prd_summary=summary,
        impacted_files=(list(step.files.modify) + list(step.files.create))[:MAX_CONTEXT_FILES],
        relevant_repo_conventions=convention_lines(conventions)[:MAX_CONVENTIONS],
        tokens_or_constraints=token_lines(conventions)[:MAX_TOKEN_LINES],
        evidence=_evidence(step, analysis, clarifications),
    )
    return InstructionBundle(
        step_id=step.id,
        title=step.title,
        system=SYSTEM_TEMPLATE.format(area=step.area),
        context=context,
        instructions=list(step.implementation_checklist),
        guardrails=guardrails_for(step.area, conventions),
        deliverables=deliverables_for(step),
    )


def clarification_lines(questions: Sequence[Question], answers: Sequence[Answer]) -> List[str]:
    text: Dict[str, Any] = {q.id: q.question_text for q in questions}
    return [f"Q: {text.get(a.question_id, a.question_id)} A: {a.display_value()}" for a in answers]


def build_bundle_pack(
    steps: Sequence[PlanStep],
    analysis: ImpactAnalysis,
    facts: RepoFacts,
    prd_text: str,
    questions: Sequence[Question] = (),
    answers: Sequence[Answer] = (),
    generated_at: str = "",
) -> InstructionBundlePack:
    """One bundle per step, in plan order."""
    summary = prd_summary(prd_text)
    clarifications = clarification_lines(questions, answers)
    prompts = [build_bundle(step, analysis, facts, summary, clarifications) for step in steps]
    return InstructionBundlePack(generated_at=generated_at, prompts=prompts)
