"""Artifact writers: JSON outputs and a Markdown rendering of the roadmap."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import AnalyzeOutput
from .plan_models import PlanOutput, PlanValidationResult, Roadmap

IMPACT_FILE = "impact_analysis.json"
QUESTIONS_FILE = "clarifying_questions.json"
RUN_META_FILE = "run.json"
ROADMAP_FILE = "roadmap.json"
BUNDLES_FILE = "agent_prompt_pack.json"
ROADMAP_MD_FILE = "roadmap.md"
VALIDATION_FILE = "validation.json"

_SEVERITY_MARK = {"high": "🔴", "medium": "🟠", "low": "🟢"}


def default_run_id() -> str:
    return datetime.now().strftime("%Y-%m-%d_%H-%M-%S")


def write_json(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def write_analysis(out_dir: Path, output: AnalyzeOutput, prd_path: Optional[str] = None) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written = [
        write_json(out_dir / IMPACT_FILE, output.impact.to_dict()),
        write_json(out_dir / QUESTIONS_FILE, [q.to_dict() for q in output.questions]),
    ]
    meta: Dict[str, Any] = {"generatedAt": output.impact.generated_at, "notes": list(output.notes)}
    if prd_path:
        meta["prdPath"] = prd_path
    written.append(write_json(out_dir / RUN_META_FILE, meta))
    return written


def write_plan(out_dir: Path, output: PlanOutput, validation: PlanValidationResult) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    md_path = out_dir / ROADMAP_MD_FILE
    md_path.write_text(render_roadmap_markdown(output.roadmap, validation), encoding="utf-8")
    return [
        write_json(out_dir / ROADMAP_FILE, output.roadmap.to_dict()),
        write_json(out_dir / BUNDLES_FILE, output.bundles.to_dict()),
        md_path,
        write_json(out_dir / VALIDATION_FILE, validation.to_dict()),
    ]


def _bullets(items: List[str], indent: str = "") -> List[str]:
    return [f"{indent}- {item}" for item in items]


def render_roadmap_markdown(roadmap: Roadmap, validation: Optional[PlanValidationResult] = None) -> str:
    """Render a human-readable roadmap document."""
    lines = ["# Implementation Roadmap", ""]
    source = f" ({roadmap.prd_source})" if roadmap.prd_source else ""
    lines.append(f"PRD hash: `{roadmap.prd_hash[:12]}`{source}  ")
    lines.append(f"Generated: {roadmap.generated_at}")
    lines.append("")

    if validation is not None:
        status = "✅ valid" if validation.valid else "❌ invalid"
        lines.append(f"**Validation:** {status}")
        lines.extend(_bullets([f"Error: {e}" for e in validation.errors]))
        lines.extend(_bullets([f"Warning: {w}" for w in validation.all_warnings]))
        lines.append("")

    lines.append("## Steps")
    lines.append("")
    for number, step in enumerate(roadmap.plan, 1):
        lines.append(f"### {number}. {step.title}")
        lines.append("")
        lines.append(f"`{step.id}` | area: **{step.area}** | kind: {step.kind}")
        lines.append("")
        lines.append(step.description)
        lines.append("")
        if step.depends_on_step_ids:
            lines.append(f"Depends on: {', '.join(step.depends_on_step_ids)}")
            lines.append("")
        for label, paths in (
            ("Modify", step.files.modify),
            ("Create", step.files.create),
            ("Touch", step.files.touch),
        ):
            if paths:
                lines.append(f"**{label}:** {', '.join(f'`{p}`' for p in paths)}")
                lines.append("")
        lines.append("Checklist:")
        lines.extend(f"- [ ] {item}" for item in step.implementation_checklist)
        lines.append("")
        lines.append("Done when:")
        lines.extend(_bullets(step.done_when))
        lines.append("")

    if roadmap.acceptance_criteria:
        lines.append("## Acceptance Criteria")
        lines.append("")
        lines.extend(_bullets(roadmap.acceptance_criteria))
        lines.append("")

    if roadmap.risks:
        lines.append("## Risks")
        lines.append("")
        for risk in roadmap.risks:
            lines.append(f"- {_SEVERITY_MARK.get(risk.severity, '')} **{risk.severity}**: {risk.risk}")
            lines.extend(_bullets(risk.mitigation, indent="  "))
        lines.append("")

    if roadmap.verification:
        lines.append("## Verification")
        lines.append("")
        for item in roadmap.verification:
            lines.append(f"- **{item.type}**")
            lines.extend(_bullets(item.instructions, indent="  "))
        lines.append("")

    if roadmap.open_questions:
        lines.append("## Open Questions")
        lines.append("")
        for question in roadmap.open_questions:
            marker = " (blocking)" if question.blocking else ""
            lines.append(f"- `{question.id}`{marker}: {question.question}")
            lines.extend(_bullets(question.why_this_matters, indent="  "))
        lines.append("")

    if roadmap.artifacts.dependencies:
        lines.append("## Dependencies")
        lines.append("")
        for dep in roadmap.artifacts.dependencies:
            label = dep.target or dep.name or dep.kind
            lines.append(f"- {label} ({dep.kind}, {dep.status})")
        lines.append("")

    if roadmap.notes:
        lines.append("## Notes")
        lines.append("")
        lines.extend(_bullets(roadmap.notes))
        lines.append("")

    return "\n".join(lines)
