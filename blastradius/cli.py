"""Typer-based CLI for BlastRadius impact analysis and planning."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__, config
from .config_manager import load_scoring_policy, reset_scoring, save_scoring_value
from .engines import available_engines
from .export import default_run_id, write_analysis, write_plan
from .loaders import InputError, load_analysis, load_answers, load_repo_facts, read_prd
from .models import AnalyzeOutput, Answer
from .orchestrator import BlastRadiusOrchestrator
from .plan_models import PlanValidationResult
from .validation import PlanValidator

console = Console()

app = typer.Typer(
    help="💥 BlastRadius: impact scoring and dependency-ordered implementation plans.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="⚙️  Scoring policy configuration")
app.add_typer(config_app, name="config")

_ROLE_COLOURS = {"primary": "green", "secondary": "cyan", "dependency": "yellow", "dependent": "dim"}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"BlastRadius CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show progress logging."),
):
    """BlastRadius: find what a change request touches and plan the work in order."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _run_dir(out: Optional[Path], run_id: Optional[str], stage: str) -> Path:
    if out is not None:
        return out
    config.ensure_base_dirs()
    return config.RUNS_DIR / (run_id or default_run_id()) / stage


def _orchestrator(facts: Path, engine: Optional[str] = None, max_depth: Optional[int] = None) -> BlastRadiusOrchestrator:
    policy = load_scoring_policy()
    if max_depth is not None:
        if max_depth < 0:
            raise typer.BadParameter("--max-depth must be zero or greater")
        policy.max_depth = max_depth
    return BlastRadiusOrchestrator.from_directory(facts, policy=policy, engine=engine)


def _print_analysis(output: AnalyzeOutput) -> None:
    impact = output.impact
    table = Table(title="Impacted files", show_header=True)
    table.add_column("Score", justify="right", width=6)
    table.add_column("Role", width=10)
    table.add_column("Path", min_width=30)
    for f in impact.files[:15]:
        colour = _ROLE_COLOURS.get(f.role, "white")
        table.add_row(f"{f.score:.2f}", f"[{colour}]{f.role}[/{colour}]", escape(f.path))
    if impact.files:
        console.print(table)

    if impact.areas:
        areas = Table(title="Areas", show_header=True)
        areas.add_column("Area", style="cyan")
        areas.add_column("Confidence", justify="right")
        for area in impact.areas:
            areas.add_row(area.area, f"{area.confidence:.0%}")
        console.print(areas)

    typer.echo(
        f"Impacted files: {len(impact.files)} | Primary: {impact.primary_count} | "
        f"Secondary: {impact.secondary_count} | Questions: {len(output.questions)}"
    )


def _print_validation(result: PlanValidationResult) -> None:
    for error in result.errors:
        console.print(f"[red]✗[/red] {escape(error)}")
    for warning in result.all_warnings:
        console.print(f"[yellow]![/yellow] {escape(warning)}")
    typer.echo(
        f"Valid: {'yes' if result.valid else 'no'} | Errors: {len(result.errors)} | "
        f"Warnings: {len(result.all_warnings)}"
    )


def _collect_answers(answers: Optional[Path]) -> List[Answer]:
    return load_answers(answers) if answers is not None else []


@app.command("analyze")
def analyze(
    facts: Path = typer.Option(..., "--facts", "-f", file_okay=False, help="Repo-facts directory containing indexes/."),
    prd: Path = typer.Option(..., "--prd", "-p", help="Requirements document (.md or .txt)."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Output directory for analysis artifacts."),
    engine: str = typer.Option(config.DEFAULT_ENGINE, "--engine", "-e", help="Analysis engine name."),
    run_id: Optional[str] = typer.Option(None, "--run-id", help="Run identifier used for the default output path."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", help="Override the graph expansion depth."),
):
    """Score impacted files and raise clarifying questions for a change request."""
    try:
        orchestrator = _orchestrator(facts, engine, max_depth)
        prd_doc = read_prd(prd)
    except InputError as exc:
        _fail(str(exc))

    output = orchestrator.analyze(prd_doc)
    out_dir = _run_dir(out, run_id, "analysis")
    write_analysis(out_dir, output, prd_path=str(prd))

    _print_analysis(output)
    typer.echo(f"Analysis written to {out_dir}")


@app.command("plan")
def plan(
    facts: Path = typer.Option(..., "--facts", "-f", file_okay=False, help="Repo-facts directory containing indexes/."),
    analysis: Path = typer.Option(..., "--analysis", "-a", file_okay=False, help="Directory of a previous analysis."),
    prd: Optional[Path] = typer.Option(None, "--prd", "-p", help="Requirements document; defaults to the analysed one."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Output directory for plan artifacts."),
    run_id: Optional[str] = typer.Option(None, "--run-id", help="Run identifier used for the default output path."),
    new_file: Optional[List[str]] = typer.Option(None, "--new-file", help="Path of a file to create (repeatable)."),
    answers: Optional[Path] = typer.Option(None, "--answers", help="JSON file with clarifying answers."),
):
    """Build a dependency-ordered roadmap from a previous analysis."""
    try:
        orchestrator = _orchestrator(facts)
        bundle = load_analysis(analysis)
        prd_path = prd or (Path(bundle.prd_path) if bundle.prd_path else None)
        prd_text = read_prd(prd_path).raw_text if prd_path is not None else ""
        extra_answers = _collect_answers(answers)
    except InputError as exc:
        _fail(str(exc))

    result = orchestrator.plan(bundle, prd_text=prd_text, new_files=new_file or [], answers=extra_answers)
    out_dir = _run_dir(out, run_id, "plan")
    write_plan(out_dir, result.output, result.validation)

    roadmap = result.output.roadmap
    typer.echo(f"Steps: {len(roadmap.plan)} | Risks: {len(roadmap.risks)} | Open questions: {len(roadmap.open_questions)}")
    _print_validation(result.validation)
    typer.echo(f"Plan written to {out_dir}")


@app.command("run")
def run(
    facts: Path = typer.Option(..., "--facts", "-f", file_okay=False, help="Repo-facts directory containing indexes/."),
    prd: Path = typer.Option(..., "--prd", "-p", help="Requirements document (.md or .txt)."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Output directory for all artifacts."),
    engine: str = typer.Option(config.DEFAULT_ENGINE, "--engine", "-e", help="Analysis engine name."),
    run_id: Optional[str] = typer.Option(None, "--run-id", help="Run identifier used for the default output path."),
    new_file: Optional[List[str]] = typer.Option(None, "--new-file", help="Path of a file to create (repeatable)."),
    answers: Optional[Path] = typer.Option(None, "--answers", help="JSON file with clarifying answers."),
):
    """Analyse and plan in one pass."""
    try:
        orchestrator = _orchestrator(facts, engine)
        prd_doc = read_prd(prd)
        extra_answers = _collect_answers(answers)
    except InputError as exc:
        _fail(str(exc))

    analysis, result = orchestrator.run(prd_doc, new_files=new_file or [], answers=extra_answers)
    out_dir = _run_dir(out, run_id, "")
    write_analysis(out_dir, analysis, prd_path=str(prd))
    write_plan(out_dir, result.output, result.validation)

    _print_analysis(analysis)
    typer.echo(f"Steps: {len(result.output.roadmap.plan)}")
    _print_validation(result.validation)
    typer.echo(f"Artifacts written to {out_dir}")


@app.command("validate")
def validate(
    roadmap_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="roadmap.json to validate."),
    bundles: Optional[Path] = typer.Option(None, "--bundles", "-b", exists=True, dir_okay=False, help="Instruction bundle pack JSON."),
    facts: Optional[Path] = typer.Option(None, "--facts", "-f", file_okay=False, help="Repo-facts directory for file grounding."),
):
    """Validate a roadmap (and optionally its instruction bundles)."""
    try:
        roadmap = json.loads(roadmap_file.read_text(encoding="utf-8"))
        pack = json.loads(bundles.read_text(encoding="utf-8")) if bundles is not None else None
    except ValueError as exc:
        _fail(f"Could not parse JSON: {exc}")

    repo_files: List[str] = []
    if facts is not None:
        try:
            repo_files = load_repo_facts(facts).all_files
        except InputError as exc:
            _fail(str(exc))

    result = PlanValidator(repo_files).validate(roadmap, pack)
    _print_validation(result)
    if not result.valid:
        raise typer.Exit(code=1)


@app.command("engines")
def engines():
    """List available analysis engines."""
    for name in available_engines():
        typer.echo(name)


@config_app.command("show")
def config_show():
    """Show the effective scoring policy."""
    policy = load_scoring_policy()
    table = Table(show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in policy.to_dict().items():
        table.add_row(key, str(value))
    console.print(Panel(table, title="Scoring policy", expand=False))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Scoring setting name."),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist one scoring setting to config.toml."""
    try:
        saved = save_scoring_value(key, value)
    except KeyError:
        raise typer.BadParameter(f"Unknown setting '{key}'.")
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid value for '{key}': {exc}")
    if not saved:
        _fail("Could not write config file.")
    typer.echo(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset():
    """Restore default scoring settings."""
    if not reset_scoring():
        _fail("Could not write config file.")
    typer.echo("Scoring policy reset to defaults.")

