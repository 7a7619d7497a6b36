"""Pytest configuration and fixtures for BlastRadius tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from blastradius.loaders import load_repo_facts
from blastradius.models import (
    AreaSummary,
    DepGraph,
    ImpactAnalysis,
    ImpactFile,
    PrdMeta,
    RepoFacts,
    ScoringPolicy,
)
from blastradius.plan_models import PlanStep, StepFiles

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_facts_path() -> Path:
    """Path to the sample repo-facts directory (indexes/ + project-dna/)."""
    return FIXTURES / "sample_facts"


@pytest.fixture
def sample_prd_path() -> Path:
    """Path to the sample requirements document."""
    return FIXTURES / "sample_prd.md"


@pytest.fixture
def sample_facts(sample_facts_path: Path) -> RepoFacts:
    """Loaded sample repo facts."""
    return load_repo_facts(sample_facts_path)


@pytest.fixture
def policy() -> ScoringPolicy:
    """Default scoring policy."""
    return ScoringPolicy()


@pytest.fixture
def temp_config(temp_dir: Path, monkeypatch) -> Path:
    """Point config storage at a temporary directory."""
    config_file = temp_dir / "config.toml"
    monkeypatch.setattr("blastradius.config.BASE_DIR", temp_dir)
    monkeypatch.setattr("blastradius.config.CONFIG_FILE", config_file)
    monkeypatch.setattr("blastradius.config.RUNS_DIR", temp_dir / "runs")
    monkeypatch.setattr("blastradius.config_manager.BASE_DIR", temp_dir)
    monkeypatch.setattr("blastradius.config_manager.CONFIG_FILE", config_file)
    return config_file


def make_step(step_id: str, depends_on: List[str] = None, modify: List[str] = None, create: List[str] = None) -> PlanStep:
    """Build a minimal plan step for ordering and validation tests."""
    return PlanStep(
        id=step_id,
        title=f"Step {step_id}",
        description="test step",
        area="UI",
        kind="modify",
        files=StepFiles(modify=list(modify or []), create=list(create or []), touch=[]),
        depends_on_step_ids=list(depends_on or []),
        rationale=["because"],
        implementation_checklist=["do it"],
        done_when=["done"],
    )


@pytest.fixture
def sample_analysis() -> ImpactAnalysis:
    """A hand-built impact analysis spanning several areas."""
    files = [
        ImpactFile(path="src/components/UserProfile.tsx", score=1.0, role="primary", reasons=["Matched symbols: UserProfile"]),
        ImpactFile(path="src/api/userService.ts", score=0.75, role="primary", reasons=["Matched requirement terms: user"]),
        ImpactFile(path="src/types/user.ts", score=0.75, role="primary"),
        ImpactFile(path="src/store/userSlice.ts", score=0.5, role="secondary"),
        ImpactFile(path="src/hooks/useUser.ts", score=0.25, role="secondary"),
        ImpactFile(path="src/pages/Dashboard.tsx", score=0.08, role="dependent", hop_distance=1),
    ]
    areas = [
        AreaSummary(area="UI", confidence=0.4, rationale=["2 file(s) matched in this area"]),
        AreaSummary(area="API/Service", confidence=0.23),
        AreaSummary(area="Types", confidence=0.23),
        AreaSummary(area="State", confidence=0.15),
        AreaSummary(area="Hooks", confidence=0.08),
    ]
    return ImpactAnalysis(
        prd=PrdMeta(hash="abc123", source="sample_prd.md"),
        generated_at="2026-01-01T00:00:00+00:00",
        files=files,
        areas=areas,
    )


@pytest.fixture
def chain_graph() -> DepGraph:
    """a -> b -> c -> d, with reverse edges."""
    adjacency = {"a": ["b"], "b": ["c"], "c": ["d"]}
    reverse = {"b": ["a"], "c": ["b"], "d": ["c"]}
    return DepGraph(adjacency=adjacency, reverse_adjacency=reverse)


@pytest.fixture
def step_factory():
    """Factory for minimal plan steps."""
    return make_step
