"""Tests for artifact writers and roadmap Markdown rendering."""

import json
import re

from blastradius.engines import HeuristicAnalysisEngine
from blastradius.export import (
    BUNDLES_FILE,
    IMPACT_FILE,
    QUESTIONS_FILE,
    ROADMAP_FILE,
    ROADMAP_MD_FILE,
    RUN_META_FILE,
    VALIDATION_FILE,
    default_run_id,
    render_roadmap_markdown,
    write_analysis,
    write_json,
    write_plan,
)
from blastradius.loaders import read_prd
from blastradius.models import Answer, Question
from blastradius.planner import Planner
from blastradius.validation import PlanValidator


class TestWriters:
    """Tests for JSON artifact output."""

    def test_write_json_creates_parents(self, temp_dir):
        """Test nested directories are created and JSON is pretty-printed."""
        path = write_json(temp_dir / "a" / "b.json", {"k": "é"})
        text = path.read_text(encoding="utf-8")
        assert json.loads(text) == {"k": "é"}
        assert text.endswith("\n")
        assert "é" in text

    def test_write_analysis(self, temp_dir, sample_facts, sample_prd_path):
        """Test analysis output writes impact, questions and run metadata."""
        prd = read_prd(sample_prd_path)
        output = HeuristicAnalysisEngine().analyze(prd.text, prd.meta, sample_facts)
        written = write_analysis(temp_dir / "analysis", output, prd_path=str(sample_prd_path))
        assert [p.name for p in written] == [IMPACT_FILE, QUESTIONS_FILE, RUN_META_FILE]

        impact = json.loads((temp_dir / "analysis" / IMPACT_FILE).read_text())
        assert impact["summary"]["primaryCount"] == 3
        assert impact["graphExpansion"] == {"enabled": True, "direction": "both", "maxDepth": 2}
        assert impact["files"][0]["score"] == 1.0

        questions = json.loads((temp_dir / "analysis" / QUESTIONS_FILE).read_text())
        assert questions[0]["id"] == "q-scope-1"

        run_meta = json.loads((temp_dir / "analysis" / RUN_META_FILE).read_text())
        assert run_meta["prdPath"] == str(sample_prd_path)

    def test_write_plan(self, temp_dir, sample_analysis, sample_facts):
        """Test plan output writes roadmap, bundles, markdown and validation."""
        output = Planner().plan(sample_analysis, sample_facts, prd_text="- Upload avatars", generated_at="t")
        validation = PlanValidator(sample_facts.all_files).validate(output.roadmap, output.bundles)
        written = write_plan(temp_dir, output, validation)
        assert sorted(p.name for p in written) == sorted(
            [ROADMAP_FILE, BUNDLES_FILE, ROADMAP_MD_FILE, VALIDATION_FILE]
        )
        roadmap = json.loads((temp_dir / ROADMAP_FILE).read_text())
        assert roadmap["plan"][0]["id"] == "step-types-001"
        pack = json.loads((temp_dir / BUNDLES_FILE).read_text())
        assert len(pack["prompts"]) == len(roadmap["plan"])
        result = json.loads((temp_dir / VALIDATION_FILE).read_text())
        assert result["valid"] is True

    def test_default_run_id_format(self):
        """Test run ids are timestamp shaped."""
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}", default_run_id())


class TestRoadmapMarkdown:
    """Tests for render_roadmap_markdown."""

    def test_sections(self, sample_analysis, sample_facts):
        """Test the document has a heading per step and the review sections."""
        questions = [Question(id="q-tbd-1", question_text="Resolve TBD?", required=True)]
        output = Planner().plan(
            sample_analysis,
            sample_facts,
            questions=questions,
            prd_text="- Upload avatars",
            new_files=["lib/new/Avatar.tsx"],
        )
        markdown = render_roadmap_markdown(output.roadmap)
        assert markdown.startswith("# Implementation Roadmap")
        assert "### 1. Update shared type contracts" in markdown
        assert "`step-types-001` | area: **Types** | kind: modify" in markdown
        assert "## Acceptance Criteria" in markdown
        assert "## Risks" in markdown
        assert "## Verification" in markdown
        assert "- `q-tbd-1` (blocking): Resolve TBD?" in markdown
        assert "- lib/new/Avatar.tsx (file, missing)" in markdown
        assert "**Validation:**" not in markdown

    def test_validation_block(self, sample_analysis, sample_facts):
        """Test validation status and warnings are rendered when given."""
        output = Planner().plan(sample_analysis, sample_facts, prd_text="")
        validation = PlanValidator(["src/other.ts"]).validate(output.roadmap)
        markdown = render_roadmap_markdown(output.roadmap, validation)
        assert "**Validation:** ✅ valid" in markdown
        assert "- Warning: Step \"step-types-001\" references modify file" in markdown

    def test_answered_question_not_blocking(self, sample_analysis, sample_facts):
        """Test answered questions are listed without the blocking marker."""
        questions = [Question(id="q1", question_text="Storage?", required=True)]
        output = Planner().plan(
            sample_analysis, sample_facts, questions=questions, answers=[Answer(question_id="q1", value="S3")]
        )
        markdown = render_roadmap_markdown(output.roadmap)
        assert "- `q1`: Storage?" in markdown
        assert "  - Answered: S3" in markdown
