"""Tests for plan synthesis, roadmap assembly and instruction bundles."""

import pytest

from blastradius.bundles import build_bundle_pack, convention_lines, guardrails_for, token_lines
from blastradius.models import (
    AreaSummary,
    Answer,
    ImpactAnalysis,
    ImpactFile,
    PrdMeta,
    Question,
    RepoConventions,
    RepoFacts,
)
from blastradius.planner import (
    PlanSynthesizer,
    Planner,
    StepIdGenerator,
    build_verification,
    derive_dependencies,
    derive_open_questions,
    derive_risks,
    synthesize_acceptance_criteria,
)
from blastradius.templates import COMMON_GUARDRAILS, DEFAULT_CONVENTIONS, TOKEN_GUARDRAIL


@pytest.fixture
def sample_questions():
    return [
        Question(id="q-scope-1", question_text="Which roles?", type="multi_select", required=True),
        Question(id="q-scope-2", question_text="Feature flag?", type="single_select", required=False),
        Question(id="q-tbd-1", question_text="Resolve TBD items?", required=True, rationale="Rework risk"),
    ]


def _analysis_for(paths_and_roles, areas=None):
    files = [ImpactFile(path=p, score=1.0, role=r) for p, r in paths_and_roles]
    return ImpactAnalysis(prd=PrdMeta(hash="h"), generated_at="t", files=files, areas=areas or [])


class TestStepIdGenerator:
    """Tests for sequential step ids."""

    def test_counter_shared_across_prefixes(self):
        """Test one counter numbers every prefix."""
        ids = StepIdGenerator()
        assert ids.next_id("step-types") == "step-types-001"
        assert ids.next_id("step-ui") == "step-ui-002"


class TestPlanSynthesizer:
    """Tests for area step generation."""

    def test_sample_step_order(self, sample_analysis):
        """Test steps follow the causal area order with Tests last."""
        steps = PlanSynthesizer().synthesize(sample_analysis)
        assert [s.id for s in steps] == [
            "step-types-001",
            "step-api-002",
            "step-state-003",
            "step-hooks-004",
            "step-ui-005",
            "step-tests-006",
        ]
        assert steps[-1].kind == "test"

    def test_each_step_depends_on_all_prior(self, sample_analysis):
        """Test every step lists all earlier step ids as dependencies."""
        steps = PlanSynthesizer().synthesize(sample_analysis)
        for index, step in enumerate(steps):
            assert step.depends_on_step_ids == [s.id for s in steps[:index]]

    def test_step_files(self, sample_analysis):
        """Test modify lists come from classified impacted files and touch from the blast radius."""
        steps = {s.area: s for s in PlanSynthesizer().synthesize(sample_analysis)}
        assert steps["Types"].files.modify == ["src/types/user.ts"]
        assert steps["UI"].files.modify == ["src/components/UserProfile.tsx", "src/pages/Dashboard.tsx"]
        assert steps["Types"].files.touch == [
            "src/store/userSlice.ts",
            "src/hooks/useUser.ts",
            "src/pages/Dashboard.tsx",
        ]
        assert steps["Tests"].files.modify == []

    def test_description_and_checklist(self, sample_analysis):
        """Test descriptions name files and checklists start with the first file."""
        steps = {s.area: s for s in PlanSynthesizer().synthesize(sample_analysis)}
        assert steps["Types"].description.endswith("Files: src/types/user.ts.")
        assert "src/types/user.ts" in steps["Types"].implementation_checklist[0]
        assert steps["Tests"].description.endswith("Files: tests/*.")

    def test_types_step_forced_by_api_area(self):
        """Test a service-only change still starts with a Types step."""
        analysis = _analysis_for(
            [("src/api/a.ts", "primary")], [AreaSummary(area="API/Service", confidence=1.0)]
        )
        steps = PlanSynthesizer().synthesize(analysis)
        assert [s.area for s in steps] == ["Types", "API/Service", "Tests"]
        assert steps[0].files.modify == []

    def test_ui_only_has_no_types_step(self):
        """Test a purely visual change skips the Types step."""
        analysis = _analysis_for(
            [("src/components/A.tsx", "primary")], [AreaSummary(area="UI", confidence=1.0)]
        )
        assert [s.area for s in PlanSynthesizer().synthesize(analysis)] == ["UI", "Tests"]

    def test_unknown_files_folded_into_ui(self):
        """Test Unknown-area files are handled by the UI step."""
        analysis = _analysis_for(
            [("src/utils/format.ts", "primary")], [AreaSummary(area="Unknown", confidence=1.0)]
        )
        steps = PlanSynthesizer().synthesize(analysis)
        assert [s.area for s in steps] == ["UI", "Tests"]
        assert steps[0].files.modify == ["src/utils/format.ts"]

    def test_no_areas_uses_defaults(self):
        """Test an analysis without areas plans Types and UI work."""
        analysis = _analysis_for([])
        steps = PlanSynthesizer().synthesize(analysis)
        assert [s.area for s in steps] == ["Types", "UI", "Tests"]

    def test_create_steps_before_tests(self, sample_analysis):
        """Test new files get create steps between area steps and Tests."""
        steps = PlanSynthesizer().synthesize(
            sample_analysis, new_files=["src/components/AvatarUpload.tsx", "src/components/AvatarUpload.tsx"]
        )
        create = steps[-2]
        assert create.id == "step-create-006"
        assert create.kind == "create"
        assert create.area == "UI"
        assert create.files.create == ["src/components/AvatarUpload.tsx"]
        assert create.done_when[0] == "File exists at src/components/AvatarUpload.tsx"
        assert steps[-1].id == "step-tests-007"

    def test_auth_and_routing_order(self):
        """Test Auth precedes API and Routing precedes UI."""
        analysis = _analysis_for(
            [("src/auth/guard.ts", "primary"), ("src/routes/index.ts", "primary"), ("src/api/a.ts", "primary"),
             ("src/pages/P.tsx", "primary")],
            [
                AreaSummary(area="UI", confidence=0.25),
                AreaSummary(area="API/Service", confidence=0.25),
                AreaSummary(area="Routing", confidence=0.25),
                AreaSummary(area="Auth", confidence=0.25),
            ],
        )
        areas = [s.area for s in PlanSynthesizer().synthesize(analysis)]
        assert areas == ["Types", "Auth", "API/Service", "Routing", "UI", "Tests"]

    def test_modify_list_capped(self):
        """Test a step modifies at most six files."""
        paths = [(f"src/components/C{i}.tsx", "primary") for i in range(9)]
        analysis = _analysis_for(paths, [AreaSummary(area="UI", confidence=1.0)])
        ui = PlanSynthesizer().synthesize(analysis)[0]
        assert len(ui.files.modify) == 6
        assert ui.description.count("src/components/") == 3


class TestPlanHelpers:
    """Tests for criteria, risks, verification, questions and dependencies."""

    def test_synthesized_criteria(self):
        """Test area-specific and blocking criteria are added."""
        criteria = synthesize_acceptance_criteria(["UI", "Auth"], blocking_questions=2)
        assert criteria[0] == "All compilation and type-check errors are resolved"
        assert "Unauthorised users cannot access the new feature or route" in criteria
        assert criteria[-1].startswith("All 2 blocking clarifying question(s)")

    def test_low_risk_default(self):
        """Test a small UI-only change has one low risk."""
        risks = derive_risks([ImpactFile(path="a", score=1.0, role="primary")], ["UI"])
        assert [r.severity for r in risks] == ["low"]
        assert len(risks[0].mitigation) == 2

    def test_blast_radius_risk_levels(self):
        """Test medium and high risks by number of indirectly impacted files."""
        medium = [ImpactFile(path=str(i), score=0.1, role="dependent") for i in range(6)]
        high = [ImpactFile(path=str(i), score=0.1, role="secondary") for i in range(21)]
        assert derive_risks(medium, [])[0].severity == "medium"
        assert derive_risks(high, [])[0].severity == "high"

    def test_area_risks(self, sample_analysis):
        """Test State and API areas each add a risk."""
        risks = derive_risks(sample_analysis.files, ["UI", "API/Service", "State"])
        assert [r.severity for r in risks] == ["medium", "medium"]

    def test_verification_items(self):
        """Test integration tests are added only for API or Auth work."""
        assert [v.type for v in build_verification(["UI"])] == ["typecheck", "lint", "unit_test", "manual"]
        assert "integration_test" in [v.type for v in build_verification(["API/Service"])]

    def test_open_questions(self, sample_questions):
        """Test required questions become open questions and answered ones stop blocking."""
        refs = derive_open_questions(sample_questions, [Answer(question_id="q-tbd-1", value="S3")])
        assert [r.id for r in refs] == ["q-scope-1", "q-tbd-1"]
        assert refs[0].blocking is True
        assert refs[1].blocking is False
        assert refs[1].why_this_matters == ["Rework risk", "Answered: S3"]

    def test_dependencies(self, sample_facts):
        """Test new-file status reflects what the repo already has."""
        deps = derive_dependencies(
            ["src/components/AvatarUpload.tsx", "lib/new/thing.ts", "src/api/userService.ts"],
            sample_facts.all_files,
            ["UI"],
        )
        assert [(d.target, d.status) for d in deps] == [
            ("src/components/AvatarUpload.tsx", "unknown"),
            ("lib/new/thing.ts", "missing"),
            ("src/api/userService.ts", "existing"),
        ]
        assert deps[0].name == "AvatarUpload.tsx"

    def test_auth_package_dependency(self):
        """Test an auth area without auth files flags an unknown auth package."""
        deps = derive_dependencies([], ["src/app.ts"], ["Auth"])
        assert deps[0].kind == "package"
        assert deps[0].status == "unknown"
        assert derive_dependencies([], ["src/auth/session.ts"], ["Auth"]) == []


class TestPlanner:
    """Tests for full roadmap assembly."""

    def test_roadmap(self, sample_analysis, sample_facts, sample_questions, sample_prd_path):
        """Test the roadmap carries ordered steps, criteria, artifacts and notes."""
        prd_text = sample_prd_path.read_text(encoding="utf-8")
        answers = [Answer(question_id="q-tbd-1", value="S3")]
        output = Planner().plan(
            sample_analysis,
            sample_facts,
            questions=sample_questions,
            answers=answers,
            prd_text=prd_text,
            new_files=["src/components/AvatarUpload.tsx"],
            generated_at="2026-01-01T00:00:00+00:00",
        )
        roadmap = output.roadmap
        assert roadmap.prd_hash == "abc123"
        assert roadmap.plan[0].id == "step-types-001"
        assert roadmap.plan[-1].area == "Tests"
        assert roadmap.acceptance_criteria[0] == "Users must be able to upload an avatar image"
        assert roadmap.artifacts.files_to_create == ["src/components/AvatarUpload.tsx"]
        assert roadmap.artifacts.files_to_modify[0] == "src/types/user.ts"
        assert "src/pages/Dashboard.tsx" in roadmap.artifacts.files_affected
        assert roadmap.artifacts.dependencies[0].status == "unknown"
        assert "Clarification: Resolve TBD items? -> S3" in roadmap.notes
        assert roadmap.notes[0] == "Requirement: User profile avatar"
        assert [q.id for q in roadmap.open_questions if q.blocking] == ["q-scope-1"]
        assert roadmap.verification[-1].type == "manual"

    def test_fallback_criteria(self, sample_analysis):
        """Test criteria are synthesized when the PRD has none."""
        output = Planner().plan(sample_analysis, RepoFacts(), prd_text="")
        assert output.roadmap.acceptance_criteria[0] == "All compilation and type-check errors are resolved"

    def test_one_bundle_per_step(self, sample_analysis, sample_facts):
        """Test bundles mirror steps in order."""
        output = Planner().plan(sample_analysis, sample_facts, prd_text="Add avatars")
        assert [b.step_id for b in output.bundles.prompts] == [s.id for s in output.roadmap.plan]
        assert output.engine_notes[0].startswith("heuristic planner")

    def test_roadmap_to_dict(self, sample_analysis, sample_facts):
        """Test the serialised roadmap uses camelCase keys."""
        data = Planner().plan(sample_analysis, sample_facts, generated_at="t").roadmap.to_dict()
        assert data["prd"] == {"hash": "abc123", "source": "sample_prd.md"}
        assert data["plan"][1]["dependsOnStepIds"] == ["step-types-001"]
        assert set(data) >= {"artifacts", "acceptanceCriteria", "verification", "risks", "openQuestions", "notes"}


class TestBundles:
    """Tests for instruction bundle content."""

    def test_bundle_context(self, sample_analysis, sample_facts):
        """Test bundle context uses repo conventions, tokens and step files."""
        steps = PlanSynthesizer().synthesize(sample_analysis)
        pack = build_bundle_pack(
            steps,
            sample_analysis,
            sample_facts,
            "Add avatar upload",
            questions=[Question(id="q1", question_text="Storage?")],
            answers=[Answer(question_id="q1", value="S3")],
            generated_at="t",
        )
        ui = pack.prompts[4]
        assert ui.step_id == "step-ui-005"
        assert ui.context.impacted_files == ["src/components/UserProfile.tsx", "src/pages/Dashboard.tsx"]
        assert ui.context.prd_summary == "Add avatar upload"
        assert "naming: camelCase for functions, PascalCase for components" in ui.context.relevant_repo_conventions
        assert "exports: named exports, barrel index files, no default exports" in ui.context.relevant_repo_conventions
        assert ui.context.tokens_or_constraints == ["color.primary: #1d4ed8", "spacing.md: 16px"]
        assert ui.context.evidence[0] == "Matched symbols: UserProfile"
        assert ui.context.evidence[-1] == "Q: Storage? A: S3"
        assert "Your current focus area is: UI." in ui.system
        assert ui.instructions == steps[4].implementation_checklist

    def test_default_conventions(self):
        """Test built-in conventions are used when the repo has none."""
        assert convention_lines(RepoConventions()) == list(DEFAULT_CONVENTIONS)

    def test_token_lines(self):
        """Test structured token values are serialised as JSON."""
        lines = token_lines(RepoConventions(tokens={"color": {"primary": "#fff"}, "size": 4, "none": None}))
        assert lines == ['color: {"primary": "#fff"}', "size: 4"]

    def test_guardrails(self):
        """Test area guardrails extend the common set."""
        rails = guardrails_for("Auth", RepoConventions())
        assert rails[: len(COMMON_GUARDRAILS)] == COMMON_GUARDRAILS
        assert "DO NOT weaken existing access checks" in rails
        styling = guardrails_for("Styling", RepoConventions(tokens={"c": "#fff"}))
        assert styling[-1] == TOKEN_GUARDRAIL

    def test_repo_rules_become_guardrails(self):
        """Test project rules are appended once, skipping blanks and non-strings."""
        conventions = RepoConventions(rules={"rules": ["Use the shared HTTP client", " ", 4, "Use the shared HTTP client"]})
        rails = guardrails_for("UI", conventions)
        assert rails.count("Use the shared HTTP client") == 1
        assert rails[-1] == "Use the shared HTTP client"
        assert guardrails_for("UI", RepoConventions(rules={"rules": "one"})) == guardrails_for("UI", RepoConventions())

    def test_test_step_deliverables(self, sample_analysis, sample_facts):
        """Test the Tests step asks for test modules."""
        steps = PlanSynthesizer().synthesize(sample_analysis)
        pack = build_bundle_pack(steps, sample_analysis, sample_facts, "")
        tests = pack.prompts[-1]
        assert tests.deliverables[-1].startswith("Test module(s)")
