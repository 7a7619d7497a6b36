"""Data models for the implementation plan (Roadmap), instruction bundles and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

STEP_KINDS = ["create", "modify", "refactor", "config", "test", "docs"]
DEPENDENCY_STATUSES = ["existing", "missing", "unknown"]
VERIFICATION_TYPES = ["lint", "typecheck", "unit_test", "integration_test", "manual"]
SEVERITIES = ["low", "medium", "high"]


@dataclass
class StepFiles:
    modify: List[str] = field(default_factory=list)
    create: List[str] = field(default_factory=list)
    touch: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"modify": list(self.modify), "create": list(self.create), "touch": list(self.touch)}


@dataclass
class PlanStep:
    """A single unit of implementation work for one functional area."""

    id: str
    title: str
    description: str
    area: str
    kind: str
    files: StepFiles = field(default_factory=StepFiles)
    depends_on_step_ids: List[str] = field(default_factory=list)
    rationale: List[str] = field(default_factory=list)
    implementation_checklist: List[str] = field(default_factory=list)
    done_when: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "area": self.area,
            "kind": self.kind,
            "files": self.files.to_dict(),
            "dependsOnStepIds": list(self.depends_on_step_ids),
            "rationale": list(self.rationale),
            "implementationChecklist": list(self.implementation_checklist),
            "doneWhen": list(self.done_when),
        }


@dataclass
class FeatureDependency:
    kind: str
    status: str
    why: List[str] = field(default_factory=list)
    target: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind}
        if self.target is not None:
            payload["target"] = self.target
        if self.name is not None:
            payload["name"] = self.name
        payload["status"] = self.status
        payload["why"] = list(self.why)
        return payload


@dataclass
class VerificationItem:
    type: str
    instructions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "instructions": list(self.instructions)}


@dataclass
class RiskItem:
    severity: str
    risk: str
    mitigation: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"severity": self.severity, "risk": self.risk, "mitigation": list(self.mitigation)}


@dataclass
class QuestionRef:
    id: str
    question: str
    blocking: bool
    why_this_matters: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "blocking": self.blocking,
            "whyThisMatters": list(self.why_this_matters),
        }


@dataclass
class Artifacts:
    files_to_modify: List[str] = field(default_factory=list)
    files_affected: List[str] = field(default_factory=list)
    files_to_create: List[str] = field(default_factory=list)
    dependencies: List[FeatureDependency] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filesToModify": list(self.files_to_modify),
            "filesAffected": list(self.files_affected),
            "filesToCreate": list(self.files_to_create),
            "dependencies": [d.to_dict() for d in self.dependencies],
        }


@dataclass
class Roadmap:
    """Terminal plan artifact: ordered steps plus everything needed to review them."""

    prd_hash: str
    generated_at: str
    plan: List[PlanStep] = field(default_factory=list)
    artifacts: Artifacts = field(default_factory=Artifacts)
    acceptance_criteria: List[str] = field(default_factory=list)
    verification: List[VerificationItem] = field(default_factory=list)
    risks: List[RiskItem] = field(default_factory=list)
    open_questions: List[QuestionRef] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    prd_source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        prd: Dict[str, Any] = {"hash": self.prd_hash}
        if self.prd_source:
            prd["source"] = self.prd_source
        return {
            "prd": prd,
            "generatedAt": self.generated_at,
            "plan": [s.to_dict() for s in self.plan],
            "artifacts": self.artifacts.to_dict(),
            "acceptanceCriteria": list(self.acceptance_criteria),
            "verification": [v.to_dict() for v in self.verification],
            "risks": [r.to_dict() for r in self.risks],
            "openQuestions": [q.to_dict() for q in self.open_questions],
            "notes": list(self.notes),
        }


@dataclass
class BundleContext:
    prd_summary: str = ""
    impacted_files: List[str] = field(default_factory=list)
    relevant_repo_conventions: List[str] = field(default_factory=list)
    tokens_or_constraints: List[str] = field(default_factory=list)
    evidence: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prdSummary": self.prd_summary,
            "impactedFiles": list(self.impacted_files),
            "relevantRepoConventions": list(self.relevant_repo_conventions),
            "tokensOrConstraints": list(self.tokens_or_constraints),
            "evidence": list(self.evidence),
        }


@dataclass
class InstructionBundle:
    """Self-contained work order for whoever (or whatever) implements one step."""

    step_id: str
    title: str
    system: str
    context: BundleContext = field(default_factory=BundleContext)
    instructions: List[str] = field(default_factory=list)
    guardrails: List[str] = field(default_factory=list)
    deliverables: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stepId": self.step_id,
            "title": self.title,
            "system": self.system,
            "context": self.context.to_dict(),
            "instructions": list(self.instructions),
            "guardrails": list(self.guardrails),
            "deliverables": list(self.deliverables),
        }


@dataclass
class InstructionBundlePack:
    generated_at: str
    prompts: List[InstructionBundle] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"generatedAt": self.generated_at, "prompts": [p.to_dict() for p in self.prompts]}


@dataclass
class PlanOutput:
    roadmap: Roadmap
    bundles: InstructionBundlePack
    engine_notes: List[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    """Result of validating a generated plan."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.valid:
            return "✅ Validation passed"
        return f"❌ Validation failed: {', '.join(self.errors)}"


@dataclass
class PlanValidationResult(ValidationResult):
    """Validation result split into schema errors and grounding warnings."""
    grounding_warnings: List[str] = field(default_factory=list)

    @property
    def all_warnings(self) -> List[str]:
        return list(self.warnings) + list(self.grounding_warnings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "schemaErrors": list(self.errors),
            "groundingWarnings": list(self.grounding_warnings),
            "allWarnings": self.all_warnings,
        }
