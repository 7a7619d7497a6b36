"""Plan validation: shape checks, file grounding and cross-reference resolution."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from .models import AREAS
from .plan_models import (
    DEPENDENCY_STATUSES,
    SEVERITIES,
    STEP_KINDS,
    VERIFICATION_TYPES,
    InstructionBundlePack,
    PlanValidationResult,
    Roadmap,
)

logger = logging.getLogger(__name__)

STEP_STRING_FIELDS = ("id", "title", "description", "area", "kind")
STEP_ARRAY_FIELDS = ("dependsOnStepIds", "rationale", "implementationChecklist", "doneWhen")
BUNDLE_STRING_FIELDS = ("stepId", "title", "system")
BUNDLE_ARRAY_FIELDS = ("instructions", "guardrails", "deliverables")


def _require_string(obj: Dict[str, Any], key: str, path: str) -> List[str]:
    return [] if isinstance(obj.get(key), str) else [f"{path}.{key} must be a string"]


def _require_array(obj: Dict[str, Any], key: str, path: str) -> List[str]:
    return [] if isinstance(obj.get(key), list) else [f"{path}.{key} must be an array"]


def _require_choice(obj: Dict[str, Any], key: str, path: str, choices: List[str]) -> List[str]:
    value = obj.get(key)
    if not isinstance(value, str) or value in choices:
        return []
    return [f"{path}.{key} must be one of: {', '.join(choices)}"]


def _steps(roadmap: Any) -> List[Dict[str, Any]]:
    if not isinstance(roadmap, dict) or not isinstance(roadmap.get("plan"), list):
        return []
    return [s for s in roadmap["plan"] if isinstance(s, dict)]


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


class PlanValidator:
    """Cross-checks a serialized Roadmap and instruction bundle pack.

    Every check runs to completion so one call reports every problem. Errors
    make the plan invalid; warnings (including grounding warnings) never do.
    Malformed input yields diagnostics, not exceptions.
    """

    def __init__(self, repo_files: Optional[Iterable[str]] = None):
        self.repo_files: Set[str] = set(repo_files or [])

    def validate(self, roadmap: Any, bundles: Any = None) -> PlanValidationResult:
        if isinstance(roadmap, Roadmap):
            roadmap = roadmap.to_dict()
        if isinstance(bundles, InstructionBundlePack):
            bundles = bundles.to_dict()

        errors: List[str] = []
        warnings: List[str] = []

        roadmap_errors, roadmap_warnings = self.check_roadmap_shape(roadmap)
        errors.extend(roadmap_errors)
        warnings.extend(roadmap_warnings)

        if bundles is not None:
            pack_errors, pack_warnings = self.check_bundle_shape(bundles)
            errors.extend(pack_errors)
            warnings.extend(pack_warnings)

        errors.extend(self.check_dependencies(roadmap))
        grounding = self.check_grounding(roadmap)
        if bundles is not None:
            warnings.extend(self.check_bundle_coverage(roadmap, bundles))

        result = PlanValidationResult(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            grounding_warnings=grounding,
        )
        logger.info(
            "Validated plan: %d error(s), %d warning(s), %d grounding warning(s)",
            len(errors),
            len(warnings),
            len(grounding),
        )
        return result

    def check_roadmap_shape(self, roadmap: Any):
        errors: List[str] = []
        warnings: List[str] = []
        if not isinstance(roadmap, dict):
            return ["roadmap must be an object"], warnings

        errors.extend(_require_string(roadmap, "generatedAt", "roadmap"))

        prd = roadmap.get("prd")
        if not isinstance(prd, dict):
            errors.append("roadmap.prd must be an object")
        else:
            errors.extend(_require_string(prd, "hash", "roadmap.prd"))

        plan = roadmap.get("plan")
        if not isinstance(plan, list):
            errors.append("roadmap.plan must be an array")
        else:
            if not plan:
                errors.append("roadmap.plan must contain at least 1 step")
            for index, step in enumerate(plan):
                errors.extend(self._check_step(step, index))

        if not isinstance(roadmap.get("artifacts"), dict):
            errors.append("roadmap.artifacts must be an object")

        criteria = roadmap.get("acceptanceCriteria")
        if not isinstance(criteria, list):
            errors.append("roadmap.acceptanceCriteria must be an array")
        elif not criteria:
            warnings.append("roadmap.acceptanceCriteria is empty; consider adding criteria")

        verification = roadmap.get("verification")
        if not isinstance(verification, list):
            errors.append("roadmap.verification must be an array")
        elif not verification:
            errors.append("roadmap.verification must contain at least 1 item")
        else:
            for index, item in enumerate(verification):
                if isinstance(item, dict):
                    errors.extend(_require_choice(item, "type", f"verification[{index}]", VERIFICATION_TYPES))

        risks = roadmap.get("risks")
        if isinstance(risks, list):
            for index, risk in enumerate(risks):
                if isinstance(risk, dict):
                    errors.extend(_require_choice(risk, "severity", f"risks[{index}]", SEVERITIES))

        artifacts = roadmap.get("artifacts")
        dependencies = artifacts.get("dependencies") if isinstance(artifacts, dict) else None
        if isinstance(dependencies, list):
            for index, dep in enumerate(dependencies):
                if isinstance(dep, dict):
                    errors.extend(
                        _require_choice(dep, "status", f"artifacts.dependencies[{index}]", DEPENDENCY_STATUSES)
                    )

        return errors, warnings

    def _check_step(self, step: Any, index: int) -> List[str]:
        path = f"plan[{index}]"
        if not isinstance(step, dict):
            return [f"{path} must be an object"]
        errors: List[str] = []
        for key in STEP_STRING_FIELDS:
            errors.extend(_require_string(step, key, path))
        for key in STEP_ARRAY_FIELDS:
            errors.extend(_require_array(step, key, path))
        errors.extend(_require_choice(step, "area", path, AREAS))
        errors.extend(_require_choice(step, "kind", path, STEP_KINDS))
        files = step.get("files")
        if not isinstance(files, dict):
            errors.append(f"{path}.files must be an object")
        else:
            for key in ("modify", "create", "touch"):
                errors.extend(_require_array(files, key, f"{path}.files"))
        return errors

    def check_bundle_shape(self, bundles: Any):
        errors: List[str] = []
        warnings: List[str] = []
        if not isinstance(bundles, dict):
            return ["promptPack must be an object"], warnings

        errors.extend(_require_string(bundles, "generatedAt", "promptPack"))
        prompts = bundles.get("prompts")
        if not isinstance(prompts, list):
            errors.append("promptPack.prompts must be an array")
            return errors, warnings
        if not prompts:
            warnings.append("promptPack.prompts is empty")
        for index, prompt in enumerate(prompts):
            path = f"prompts[{index}]"
            if not isinstance(prompt, dict):
                errors.append(f"{path} must be an object")
                continue
            for key in BUNDLE_STRING_FIELDS:
                errors.extend(_require_string(prompt, key, path))
            for key in BUNDLE_ARRAY_FIELDS:
                errors.extend(_require_array(prompt, key, path))
        return errors, warnings

    def check_dependencies(self, roadmap: Any) -> List[str]:
        """Unknown dependency ids are errors; cycles among known ids are not."""
        steps = _steps(roadmap)
        known = {s["id"] for s in steps if isinstance(s.get("id"), str)}
        errors = []
        for step in steps:
            for dep in dict.fromkeys(_strings(step.get("dependsOnStepIds"))):
                if dep not in known:
                    errors.append(f'Step "{step.get("id")}" has unknown dependency "{dep}"')
        return errors

    def check_grounding(self, roadmap: Any) -> List[str]:
        """Warn once per (step, path) for modify targets that neither exist nor get created."""
        if not self.repo_files:
            return []
        steps = _steps(roadmap)
        scheduled: Set[str] = set()
        artifacts = roadmap.get("artifacts") if isinstance(roadmap, dict) else None
        if isinstance(artifacts, dict):
            scheduled.update(_strings(artifacts.get("filesToCreate")))
        for step in steps:
            files = step.get("files")
            if isinstance(files, dict):
                scheduled.update(_strings(files.get("create")))

        warnings = []
        for step in steps:
            files = step.get("files")
            if not isinstance(files, dict):
                continue
            for path in dict.fromkeys(_strings(files.get("modify"))):
                if path not in self.repo_files and path not in scheduled:
                    warnings.append(
                        f'Step "{step.get("id")}" references modify file "{path}" '
                        "which was not found in the indexed repo files"
                    )
        return warnings

    def check_bundle_coverage(self, roadmap: Any, bundles: Any) -> List[str]:
        prompts = bundles.get("prompts") if isinstance(bundles, dict) else None
        covered = set()
        if isinstance(prompts, list):
            covered = {p["stepId"] for p in prompts if isinstance(p, dict) and isinstance(p.get("stepId"), str)}
        return [
            f'Step "{step.get("id")}" has no corresponding instruction bundle'
            for step in _steps(roadmap)
            if not isinstance(step.get("id"), str) or step["id"] not in covered
        ]


def validate_plan(roadmap: Any, bundles: Any = None, repo_files: Optional[Iterable[str]] = None) -> PlanValidationResult:
    return PlanValidator(repo_files).validate(roadmap, bundles)
