"""Clarifying-question template bank and trigger-based selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .models import AreaSummary, Question, ScoringPolicy

@dataclass(frozen=True)
class QuestionTemplate:
    id: str
    question_text: str
    type: str
    required: bool
    rationale: str
    trigger: str
    options: Optional[Sequence[str]] = None

    def to_question(self) -> Question:
        return Question(
            id=self.id,
            question_text=self.question_text,
            type=self.type,
            required=self.required,
            options=list(self.options) if self.options else None,
            rationale=self.rationale,
        )


QUESTION_TEMPLATES: List[QuestionTemplate] = [
    QuestionTemplate(
        id="q-scope-1",
        question_text="Which user roles or personas are primarily affected by this change?",
        type="multi_select",
        required=True,
        options=("Admin", "End User", "Guest", "API Consumer", "All roles"),
        rationale="Scope of impacted users affects which auth/permission files need changes.",
        trigger="always",
    ),
    QuestionTemplate(
        id="q-scope-2",
        question_text="Should the feature be behind a feature flag or a gradual rollout?",
        type="single_select",
        required=False,
        options=("Yes, feature flag", "Yes, gradual rollout", "No, immediate for all", "TBD"),
        rationale="Affects config, routing and possibly state management files.",
        trigger="ambiguity",
    ),
    QuestionTemplate(
        id="q-data-1",
        question_text="Does this change introduce new data entities or modify existing schemas?",
        type="single_select",
        required=True,
        options=("New entities only", "Modify existing schemas", "Both", "No schema changes"),
        rationale="Schema changes cascade to types, the API layer and state management.",
        trigger="always",
    ),
    QuestionTemplate(
        id="q-api-1",
        question_text="Are new API endpoints required, or are existing endpoints being modified?",
        type="single_select",
        required=True,
        options=("New endpoints", "Modify existing", "Both", "No API changes"),
        rationale="Determines scope in the services/API layer.",
        trigger="always",
    ),
    QuestionTemplate(
        id="q-ui-1",
        question_text="Which UI surfaces (pages/screens) need to be created or modified?",
        type="text",
        required=False,
        rationale="Narrows which page/component files will be impacted.",
        trigger="low_confidence",
    ),
    QuestionTemplate(
        id="q-auth-1",
        question_text="Does this feature require new authentication or authorisation rules?",
        type="single_select",
        required=True,
        options=("New auth rules", "Modify existing rules", "No auth changes", "Unknown"),
        rationale="Auth/session changes have a wide blast radius.",
        trigger="ambiguity",
    ),
    QuestionTemplate(
        id="q-migration-1",
        question_text="Is a data migration or database schema change needed?",
        type="single_select",
        required=False,
        options=("Yes", "No", "TBD"),
        rationale="Migrations can trigger dependency changes across services.",
        trigger="ambiguity",
    ),
    QuestionTemplate(
        id="q-tbd-1",
        question_text=(
            'The requirements contain unresolved items (e.g. "TBD" or "TBA"). '
            "Please clarify these before implementation starts."
        ),
        type="text",
        required=True,
        rationale="Unresolved requirement items lead to rework.",
        trigger="ambiguity",
    ),
    QuestionTemplate(
        id="q-files-1",
        question_text="Which existing modules or files do you expect this change to touch first?",
        type="text",
        required=False,
        rationale="Few files matched the request directly; naming an entry point sharpens the blast radius.",
        trigger="few_primary",
    ),
]


def active_triggers(
    ambiguity_signals: Sequence[str],
    areas: Sequence[AreaSummary],
    primary_count: int,
    policy: Optional[ScoringPolicy] = None,
) -> List[str]:
    """Work out which template triggers fire for an analysis."""
    policy = policy or ScoringPolicy()
    triggers = ["always"]
    if ambiguity_signals:
        triggers.append("ambiguity")
    top_confidence = areas[0].confidence if areas else 0.0
    if top_confidence < policy.low_confidence_threshold:
        triggers.append("low_confidence")
    if primary_count < policy.min_primary_files:
        triggers.append("few_primary")
    return triggers


def pick_questions(triggers: Sequence[str], limit: int = 8) -> List[Question]:
    """Select templates whose trigger is active, in bank order, capped at ``limit``."""
    active = set(triggers) | {"always"}
    picked: List[Question] = []
    for template in QUESTION_TEMPLATES:
        if len(picked) >= limit:
            break
        if template.trigger in active:
            picked.append(template.to_question())
    return picked
