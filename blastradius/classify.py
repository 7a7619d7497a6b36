"""Path-based functional-area classification, role assignment and area confidence."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Tuple

from .models import AreaSummary, ScoringPolicy

# Ordered; the first rule with a matching fragment wins.
AREA_RULES: List[Tuple[str, List[str]]] = [
    ("Tests", ["/test/", "/tests/", "/spec/", "/__tests__/", ".test.", ".spec."]),
    (
        "Build/Config",
        [
            "tsconfig",
            "vite.config",
            "webpack.config",
            ".eslintrc",
            "eslint.config",
            ".prettierrc",
            "prettier.config",
            "babel.config",
            "jest.config",
            "rollup.config",
            ".env",
            "dockerfile",
            "docker-compose",
            ".github/",
            "ci/",
        ],
    ),
    (
        "Auth",
        ["/auth/", "/login/", "/logout/", "/session/", "/token/", "auth.", "login.", "session.", "token."],
    ),
    ("Routing", ["/routes/", "/router/", "/navigation/", "routes.", "router.", "navigation.", "routing."]),
    (
        "State",
        ["/redux/", "/store/", "/slice/", "/slices/", "store.", "slice.", "reducer.", ".store.", ".slice."],
    ),
    ("Hooks", ["/hooks/", "hook.", "usehook", "/usehooks/"]),
    (
        "API/Service",
        ["/services/", "/service/", "/api/", "/client/", "/clients/", "service.", "api.", "client."],
    ),
    (
        "Styling",
        [
            "/styles/",
            "/style/",
            "/tailwind/",
            "/tokens/",
            "/theme/",
            ".css",
            ".scss",
            ".less",
            "tailwind.config",
            "theme.",
            "tokens.",
        ],
    ),
    ("Types", ["/types/", "/interfaces/", "/schema/", "/schemas/", "types.", "interface.", ".d.ts"]),
    (
        "UI",
        ["/components/", "/component/", "/pages/", "/page/", "/screens/", "/screen/", "/ui/", "/views/", "/view/"],
    ),
]

AREA_SLUGS: Dict[str, str] = {
    "UI": "ui",
    "Hooks": "hooks",
    "State": "state",
    "API/Service": "api",
    "Auth": "auth",
    "Routing": "routing",
    "Styling": "styling",
    "Types": "types",
    "Tests": "tests",
    "Build/Config": "config",
    "Unknown": "misc",
}


def _normalise_path(path: str) -> str:
    lower = path.lower().replace("\\", "/")
    # Leading slash lets top-level directories match "/dir/" fragments.
    return lower if lower.startswith("/") else "/" + lower


def classify_file(path: str) -> str:
    """Map a file path to one of the functional areas; ``Unknown`` when nothing matches."""
    lower = _normalise_path(path)
    for area, patterns in AREA_RULES:
        for pattern in patterns:
            if pattern in lower:
                return area

    basename = lower.rsplit("/", 1)[-1]
    if basename.startswith("use"):
        return "Hooks"
    if ".config." in basename:
        return "Build/Config"
    return "Unknown"


def area_slug(area: str) -> str:
    return AREA_SLUGS.get(area, "misc")


def infer_role(path: str, seeds: Set[str], score: float, policy: Optional[ScoringPolicy] = None) -> str:
    policy = policy or ScoringPolicy()
    if path in seeds:
        return "primary" if score >= policy.primary_threshold else "secondary"
    return "dependency" if score >= policy.secondary_threshold else "dependent"


def compute_area_confidences(files: Iterable[Tuple[str, float]]) -> List[AreaSummary]:
    """Aggregate per-area score mass as a share of the grand total.

    Args:
        files: (path, normalised score) pairs

    Returns:
        Area summaries sorted by confidence descending, ties in first-seen
        order. Empty when the total score mass is zero.
    """
    totals: Dict[str, float] = {}
    members: Dict[str, List[str]] = {}
    grand_total = 0.0
    for path, score in files:
        area = classify_file(path)
        totals[area] = totals.get(area, 0.0) + score
        members.setdefault(area, []).append(path)
        grand_total += score

    if grand_total <= 0:
        return []

    summaries = []
    for area, total in totals.items():
        paths = members[area]
        rationale = [f"{len(paths)} file(s) matched in this area"]
        rationale.extend(f"e.g. {p}" for p in paths[:3])
        summaries.append(AreaSummary(area=area, confidence=min(1.0, total / grand_total), rationale=rationale))

    return sorted(summaries, key=lambda s: -s.confidence)


def group_by_area(paths: Iterable[str]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for path in paths:
        grouped.setdefault(classify_file(path), []).append(path)
    return grouped
