"""Boundary readers: repo facts, PRD text, prior analysis output and clarifying answers.

Optional inputs degrade to warnings; only missing mandatory inputs raise.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import config
from .models import (
    Answer,
    DepGraph,
    ImpactAnalysis,
    PrdMeta,
    Question,
    RepoConventions,
    RepoFacts,
    SearchDoc,
    SymbolEntry,
)
from .text import hash_text, normalize_whitespace, strip_markdown

logger = logging.getLogger(__name__)

SUGGESTED_FILE_PATTERN = re.compile(r"suggested new file[:\s]+([^\s,]+)", re.IGNORECASE)
MIN_SEARCH_DOCS = 10
MAX_TOKENS = 30


class BlastRadiusError(Exception):
    """Base error for BlastRadius."""


class InputError(BlastRadiusError):
    """A mandatory input is missing or unreadable."""


def _read_json(path: Path) -> Optional[Any]:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not parse %s: %s", path, exc)
        return None


def _read_jsonl(path: Path) -> List[Any]:
    if not path.exists():
        return []
    rows = []
    with open(path, "r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                rows.append(json.loads(line))
            except ValueError:
                logger.debug("Skipping malformed line in %s", path)
    return rows


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value if isinstance(v, (str, int, float))]
    if isinstance(value, str):
        return [value]
    return []


def _doc_from_dict(doc_id: str, raw: Dict[str, Any]) -> Optional[SearchDoc]:
    path = raw.get("file") or raw.get("path") or doc_id
    if not isinstance(path, str) or not path:
        return None
    text = raw.get("text")
    return SearchDoc(
        id=str(raw.get("id", doc_id)),
        file=path,
        tags=_as_str_list(raw.get("tags")),
        text=text if isinstance(text, str) else "",
    )


def parse_search_docs(raw: Any) -> List[SearchDoc]:
    """Accept ``docs``/``documents`` arrays or a ``storedFields`` id map."""
    if isinstance(raw, list):
        candidates = raw
    elif isinstance(raw, dict):
        candidates = raw.get("docs") or raw.get("documents")
        if not candidates and isinstance(raw.get("storedFields"), dict):
            docs = []
            for doc_id, fields in raw["storedFields"].items():
                if isinstance(fields, dict):
                    doc = _doc_from_dict(str(doc_id), fields)
                    if doc:
                        docs.append(doc)
            return docs
    else:
        return []

    docs = []
    for index, item in enumerate(candidates or []):
        if isinstance(item, dict):
            doc = _doc_from_dict(str(index), item)
            if doc:
                docs.append(doc)
    return docs


def parse_symbol_index(raw: Any) -> Dict[str, SymbolEntry]:
    if not isinstance(raw, dict):
        return {}
    symbols = {}
    for name, meta in raw.items():
        if isinstance(meta, dict) and isinstance(meta.get("file"), str):
            symbols[str(name)] = SymbolEntry(
                file=meta["file"],
                kind=str(meta.get("kind", "")),
                tags=_as_str_list(meta.get("tags")),
            )
    return symbols


def _clean_adjacency(raw: Any) -> Dict[str, List[str]]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): [str(v) for v in vs if isinstance(v, str)] for k, vs in raw.items() if isinstance(vs, list)}


def parse_dep_graph(raw: Any) -> DepGraph:
    """Build a DepGraph, deriving reverse edges when the input omits them."""
    if not isinstance(raw, dict):
        return DepGraph()
    adjacency = _clean_adjacency(raw.get("adjacency"))
    reverse = _clean_adjacency(raw.get("reverseAdjacency"))
    if adjacency and not reverse:
        for source, targets in adjacency.items():
            for target in targets:
                reverse.setdefault(target, []).append(source)
    return DepGraph(adjacency=adjacency, reverse_adjacency=reverse)


def _file_rows(rows: List[Any]) -> List[str]:
    files = []
    for row in rows:
        if isinstance(row, str):
            files.append(row)
        elif isinstance(row, dict):
            path = row.get("path") or row.get("file")
            if isinstance(path, str):
                files.append(path)
    return list(dict.fromkeys(files))


def load_conventions(root: Path) -> RepoConventions:
    """Read optional project conventions from ``<root>/project-dna``."""
    dna_dir = root / config.CONVENTIONS_DIRNAME
    if not dna_dir.is_dir():
        return RepoConventions()
    conventions = _read_json(dna_dir / "conventions.json")
    rules = _read_json(dna_dir / "rules.json")
    raw_tokens = _read_json(dna_dir / "tokens.json")

    tokens: Dict[str, Any] = {}
    if isinstance(raw_tokens, dict) and isinstance(raw_tokens.get("tokens"), list):
        for entry in raw_tokens["tokens"][:MAX_TOKENS]:
            if isinstance(entry, dict) and "name" in entry:
                tokens[str(entry["name"])] = entry.get("value")
    elif isinstance(raw_tokens, dict):
        tokens = dict(list(raw_tokens.items())[:MAX_TOKENS])

    return RepoConventions(
        conventions=conventions if isinstance(conventions, dict) else {},
        rules=rules if isinstance(rules, dict) else {},
        tokens=tokens,
    )


def load_repo_facts(root: Path) -> RepoFacts:
    """Load the indexer output rooted at ``root`` (expects an ``indexes/`` folder).

    Raises:
        InputError: when the indexes directory does not exist
    """
    indexes = Path(root) / config.INDEXES_DIRNAME
    if not indexes.is_dir():
        raise InputError(
            f"Indexes directory not found: {indexes}. "
            "Pass the repo-facts directory that contains an 'indexes/' folder."
        )

    warnings: List[str] = []

    docs = parse_search_docs(_read_json(indexes / "search_index.json"))
    if not docs:
        warnings.append("search_index.json absent or empty; search-based seeding disabled.")

    symbols = parse_symbol_index(_read_json(indexes / "symbol_index.json"))
    if not symbols:
        warnings.append("symbol_index.json absent or empty; symbol-based seeding disabled.")

    graph = parse_dep_graph(_read_json(indexes / "depgraph.json"))
    if not any(graph.adjacency.values()):
        warnings.append("depgraph.json absent or empty; graph expansion disabled.")

    all_files = _file_rows(_read_jsonl(indexes / "files.jsonl"))
    if not all_files:
        derived = [s.file for s in symbols.values()] + [d.file for d in docs]
        derived += list(graph.adjacency) + list(graph.reverse_adjacency)
        all_files = list(dict.fromkeys(derived))
        if all_files:
            warnings.append(f"files.jsonl not found; {len(all_files)} file paths derived from other indexes.")

    if len(docs) < MIN_SEARCH_DOCS:
        for chunk in _read_jsonl(indexes / "chunks.jsonl"):
            if isinstance(chunk, dict) and isinstance(chunk.get("file"), str) and "chunk_id" in chunk:
                docs.append(
                    SearchDoc(
                        id=str(chunk["chunk_id"]),
                        file=chunk["file"],
                        tags=_as_str_list(chunk.get("tags")),
                        text=chunk.get("text") if isinstance(chunk.get("text"), str) else "",
                    )
                )

    for warning in warnings:
        logger.warning(warning)
    logger.info(
        "Loaded repo facts: %d docs, %d symbols, %d files", len(docs), len(symbols), len(all_files)
    )
    return RepoFacts(
        search_docs=docs,
        symbol_index=symbols,
        dep_graph=graph,
        all_files=all_files,
        conventions=load_conventions(Path(root)),
        warnings=warnings,
    )


@dataclass
class PrdDocument:
    raw_text: str
    text: str
    meta: PrdMeta


def read_prd(path: Path) -> PrdDocument:
    """Read a Markdown or plain-text PRD; the hash covers the raw bytes as text."""
    path = Path(path)
    if not path.is_file():
        raise InputError(f"PRD file not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputError(f"Could not read PRD file {path}: {exc}") from exc
    meta = PrdMeta(hash=hash_text(raw), source=str(path))
    logger.info("Read PRD %s (%d chars, hash %s)", path.name, len(raw), meta.hash[:8])
    return PrdDocument(raw_text=raw, text=normalize_whitespace(strip_markdown(raw)), meta=meta)


def parse_answers(raw: Any) -> List[Answer]:
    """Accept a list of ``{questionId, value}`` records or a ``{questionId: value}`` map."""
    items: List[Tuple[Any, Any]] = []
    if isinstance(raw, dict) and isinstance(raw.get("answers"), list):
        raw = raw["answers"]
    if isinstance(raw, list):
        items = [(r.get("questionId"), r.get("value")) for r in raw if isinstance(r, dict)]
    elif isinstance(raw, dict):
        items = list(raw.items())

    answers = []
    for question_id, value in items:
        if not isinstance(question_id, str):
            continue
        if isinstance(value, list):
            answers.append(Answer(question_id=question_id, value=[str(v) for v in value]))
        elif value is not None:
            answers.append(Answer(question_id=question_id, value=str(value)))
    return answers


def load_answers(path: Path) -> List[Answer]:
    path = Path(path)
    if not path.is_file():
        raise InputError(f"Answers file not found: {path}")
    raw = _read_json(path)
    if raw is None:
        raise InputError(f"Answers file is not valid JSON: {path}")
    return parse_answers(raw)


def suggested_new_files(notes: List[str]) -> List[str]:
    found = []
    for note in notes:
        found.extend(SUGGESTED_FILE_PATTERN.findall(note))
    return list(dict.fromkeys(found))


@dataclass
class AnalysisBundle:
    """Everything a planning run needs from a previous analysis run."""

    analysis: ImpactAnalysis
    questions: List[Question] = field(default_factory=list)
    answers: List[Answer] = field(default_factory=list)
    new_files: List[str] = field(default_factory=list)
    prd_path: Optional[str] = None


def load_analysis(directory: Path) -> AnalysisBundle:
    """Read ``impact_analysis.json`` plus optional questions, answers and run metadata.

    Raises:
        InputError: when ``impact_analysis.json`` is missing or not an object
    """
    directory = Path(directory)
    raw = _read_json(directory / "impact_analysis.json")
    if not isinstance(raw, dict):
        raise InputError(f"impact_analysis.json missing or invalid in {directory}")
    analysis = ImpactAnalysis.from_dict(raw)

    raw_questions = _read_json(directory / "clarifying_questions.json")
    if isinstance(raw_questions, dict):
        raw_questions = raw_questions.get("questions")
    if not isinstance(raw_questions, list):
        raw_questions = []
    questions = [Question.from_dict(q) for q in raw_questions if isinstance(q, dict)]

    answers = parse_answers(_read_json(directory / "clarifying_answers.json") or [])

    run_meta = _read_json(directory / "run.json")
    prd_path = run_meta.get("prdPath") if isinstance(run_meta, dict) else None

    return AnalysisBundle(
        analysis=analysis,
        questions=questions,
        answers=answers,
        new_files=suggested_new_files(analysis.notes),
        prd_path=prd_path if isinstance(prd_path, str) else None,
    )
