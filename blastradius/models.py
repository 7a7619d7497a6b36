"""Core data models for impact analysis: repo facts, scored files, areas and questions."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union

from . import config

AREAS = [
    "UI",
    "Hooks",
    "State",
    "API/Service",
    "Auth",
    "Routing",
    "Styling",
    "Types",
    "Tests",
    "Build/Config",
    "Unknown",
]

ROLES = ["primary", "secondary", "dependency", "dependent"]

QUESTION_TYPES = ["text", "single_select", "multi_select"]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_float(value: Any, default: float = 0.0) -> float:
    """Numeric JSON values only; anything else (null, strings, bools, NaN) gives ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    return float(value)


def _as_int(value: Any, default: int = 0) -> int:
    return int(_as_float(value, default))


def _as_str_list(value: Any) -> List[str]:
    return [str(v) for v in _as_list(value) if isinstance(v, (str, int, float))]


@dataclass
class ScoringPolicy:
    """Weights, decay and thresholds used by the analysis engine."""

    term_weight: float = config.TERM_WEIGHT
    symbol_weight: float = config.SYMBOL_WEIGHT
    depth_decay: float = config.DEPTH_DECAY
    max_depth: int = config.GRAPH_MAX_DEPTH
    score_threshold: float = config.SCORE_THRESHOLD
    max_impact_files: int = config.MAX_IMPACT_FILES
    primary_threshold: float = config.PRIMARY_THRESHOLD
    secondary_threshold: float = config.SECONDARY_THRESHOLD
    low_confidence_threshold: float = config.LOW_CONFIDENCE_THRESHOLD
    min_primary_files: int = config.MIN_PRIMARY_FILES
    max_questions: int = config.MAX_QUESTIONS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term_weight": self.term_weight,
            "symbol_weight": self.symbol_weight,
            "depth_decay": self.depth_decay,
            "max_depth": self.max_depth,
            "score_threshold": self.score_threshold,
            "max_impact_files": self.max_impact_files,
            "primary_threshold": self.primary_threshold,
            "secondary_threshold": self.secondary_threshold,
            "low_confidence_threshold": self.low_confidence_threshold,
            "min_primary_files": self.min_primary_files,
            "max_questions": self.max_questions,
        }


@dataclass
class SearchDoc:
    id: str
    file: str
    tags: List[str] = field(default_factory=list)
    text: str = ""


@dataclass
class SymbolEntry:
    file: str
    kind: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass
class DepGraph:
    """Forward (imports) and reverse (imported-by) adjacency keyed by file path."""

    adjacency: Dict[str, List[str]] = field(default_factory=dict)
    reverse_adjacency: Dict[str, List[str]] = field(default_factory=dict)

    def neighbours(self, path: str) -> List[str]:
        forward = self.adjacency.get(path)
        reverse = self.reverse_adjacency.get(path)
        result: List[str] = []
        if isinstance(forward, list):
            result.extend(forward)
        if isinstance(reverse, list):
            result.extend(reverse)
        return result


@dataclass
class RepoConventions:
    conventions: Dict[str, Any] = field(default_factory=dict)
    rules: Dict[str, Any] = field(default_factory=dict)
    tokens: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RepoFacts:
    """Structural snapshot of a codebase produced by the upstream indexer."""

    search_docs: List[SearchDoc] = field(default_factory=list)
    symbol_index: Dict[str, SymbolEntry] = field(default_factory=dict)
    dep_graph: DepGraph = field(default_factory=DepGraph)
    all_files: List[str] = field(default_factory=list)
    conventions: RepoConventions = field(default_factory=RepoConventions)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ScoredFile:
    path: str
    score: float
    matched_terms: Set[str] = field(default_factory=set)
    matched_symbols: Set[str] = field(default_factory=set)
    hop_distance: int = 0


@dataclass
class ImpactFile:
    path: str
    score: float
    role: str
    reasons: List[str] = field(default_factory=list)
    matched_terms: List[str] = field(default_factory=list)
    matched_symbols: List[str] = field(default_factory=list)
    hop_distance: int = 0

    def to_dict(self) -> Dict[str, Any]:
        evidence: Dict[str, Any] = {}
        if self.matched_terms:
            evidence["matchedTerms"] = list(self.matched_terms)
        if self.matched_symbols:
            evidence["matchedSymbols"] = list(self.matched_symbols)
        evidence["hopDistance"] = self.hop_distance
        return {
            "path": self.path,
            "score": round(self.score, 3),
            "role": self.role,
            "reasons": list(self.reasons),
            "evidence": evidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImpactFile":
        evidence = _as_dict(data.get("evidence"))
        role = data.get("role")
        return cls(
            path=str(data.get("path", "")),
            score=_as_float(data.get("score")),
            role=role if role in ROLES else "dependent",
            reasons=_as_str_list(data.get("reasons")),
            matched_terms=_as_str_list(evidence.get("matchedTerms")),
            matched_symbols=_as_str_list(evidence.get("matchedSymbols")),
            hop_distance=_as_int(evidence.get("hopDistance", evidence.get("depDistance"))),
        )


@dataclass
class AreaSummary:
    area: str
    confidence: float
    rationale: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "area": self.area,
            "confidence": round(self.confidence, 3),
            "rationale": list(self.rationale),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AreaSummary":
        area = data.get("area")
        return cls(
            area=area if area in AREAS else "Unknown",
            confidence=_as_float(data.get("confidence")),
            rationale=_as_str_list(data.get("rationale")),
        )


@dataclass
class Question:
    id: str
    question_text: str
    type: str = "text"
    required: bool = False
    options: Optional[List[str]] = None
    rationale: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "questionText": self.question_text,
            "type": self.type,
            "required": self.required,
        }
        if self.options:
            payload["options"] = list(self.options)
        if self.rationale:
            payload["rationale"] = self.rationale
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        question_type = data.get("type")
        rationale = data.get("rationale")
        return cls(
            id=str(data.get("id", "")),
            question_text=str(data.get("questionText", "")),
            type=question_type if question_type in QUESTION_TYPES else "text",
            required=data.get("required") is True,
            options=_as_str_list(data.get("options")) or None,
            rationale=rationale if isinstance(rationale, str) else None,
        )


@dataclass
class Answer:
    question_id: str
    value: Union[str, List[str]]

    def display_value(self) -> str:
        if isinstance(self.value, list):
            return ", ".join(str(v) for v in self.value)
        return str(self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {"questionId": self.question_id, "value": self.value}


@dataclass
class PrdMeta:
    hash: str
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"hash": self.hash, "source": self.source}


@dataclass
class ImpactAnalysis:
    prd: PrdMeta
    generated_at: str
    files: List[ImpactFile] = field(default_factory=list)
    areas: List[AreaSummary] = field(default_factory=list)
    max_depth: int = config.GRAPH_MAX_DEPTH
    notes: List[str] = field(default_factory=list)

    @property
    def primary_count(self) -> int:
        return sum(1 for f in self.files if f.role == "primary")

    @property
    def secondary_count(self) -> int:
        return sum(1 for f in self.files if f.role == "secondary")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prd": self.prd.to_dict(),
            "generatedAt": self.generated_at,
            "summary": {
                "primaryCount": self.primary_count,
                "secondaryCount": self.secondary_count,
                "areas": [a.to_dict() for a in self.areas],
            },
            "files": [f.to_dict() for f in self.files],
            "graphExpansion": {
                "enabled": True,
                "direction": "both",
                "maxDepth": self.max_depth,
            },
            "notes": list(self.notes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImpactAnalysis":
        prd = _as_dict(data.get("prd"))
        summary = _as_dict(data.get("summary"))
        expansion = _as_dict(data.get("graphExpansion"))
        max_depth = _as_int(expansion.get("maxDepth"), config.GRAPH_MAX_DEPTH)
        return cls(
            prd=PrdMeta(hash=str(prd.get("hash", "")), source=str(prd.get("source", ""))),
            generated_at=str(data.get("generatedAt", "")),
            files=[ImpactFile.from_dict(f) for f in _as_list(data.get("files")) if isinstance(f, dict)],
            areas=[AreaSummary.from_dict(a) for a in _as_list(summary.get("areas")) if isinstance(a, dict)],
            max_depth=max_depth if max_depth >= 0 else config.GRAPH_MAX_DEPTH,
            notes=_as_str_list(data.get("notes")),
        )


@dataclass
class AnalyzeOutput:
    questions: List[Question]
    impact: ImpactAnalysis
    notes: List[str] = field(default_factory=list)
