"""Per-area step templates, guardrails and default conventions for plan synthesis."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple


@dataclass(frozen=True)
class StepTemplate:
    area: str
    kind: str
    title: str
    summary: str
    placeholder_files: str
    first_item: str
    checklist: Tuple[str, ...]
    done_when: Tuple[str, ...]
    rationale: Tuple[str, ...]

    def describe(self, files: Sequence[str]) -> str:
        shown = ", ".join(files[:3]) or self.placeholder_files
        return f"{self.summary} Files: {shown}."

    def checklist_for(self, files: Sequence[str]) -> List[str]:
        target = files[0] if files else self.placeholder_files
        return [self.first_item.format(target=target), *self.checklist]


STEP_TEMPLATES: Dict[str, StepTemplate] = {
    "Types": StepTemplate(
        area="Types",
        kind="modify",
        title="Update shared type contracts",
        summary="Add or extend the shared types, interfaces and schemas the feature needs.",
        placeholder_files="types/*",
        first_item="Open {target} and locate the relevant type definitions",
        checklist=(
            "Add new fields or types required by the change request",
            "Export every new type from the package entry point or barrel module",
            "Document new public types",
            "Check that existing consumers of changed types still type-check",
        ),
        done_when=(
            "The type checker reports no errors for the type modules",
            "All new public types are documented",
            "Entry-point re-exports are updated",
        ),
        rationale=(
            "Type contracts must exist before services or UI can use them",
            "Changing types without updating consumers causes cascading type errors",
        ),
    ),
    "Build/Config": StepTemplate(
        area="Build/Config",
        kind="config",
        title="Update build configuration",
        summary="Modify build, toolchain or environment configuration as required.",
        placeholder_files="build and environment config files",
        first_item="Open config file ({target})",
        checklist=(
            "Add new path aliases, environment variables or plugin settings",
            "Make sure the build still completes without warnings",
            "Update the example environment file with any new required variables",
            "Document the purpose of every new config key",
        ),
        done_when=(
            "The build completes successfully",
            "No new strict-mode or compiler errors are introduced",
            "The example environment file is up to date",
        ),
        rationale=(
            "Config changes must land before compilation checks can pass",
            "Missing environment variables cause silent runtime failures",
        ),
    ),
    "Auth": StepTemplate(
        area="Auth",
        kind="modify",
        title="Add or update authentication and authorisation rules",
        summary="Extend permission checks, route guards and auth state for the feature.",
        placeholder_files="auth/*",
        first_item="Review {target} and the related auth state",
        checklist=(
            "Add any new role or permission constants to the shared auth types",
            "Update guards to enforce the new permissions",
            "Handle the unauthorised state gracefully (redirect or 403 response)",
            "Document the new permission requirements",
        ),
        done_when=(
            "Unauthorised users cannot access the protected resource",
            "Auth tests cover the new permission path",
            "Existing auth flows show no regressions",
        ),
        rationale=(
            "Auth changes must precede UI integration to avoid exposing unguarded routes",
            "Role and permission models drive which UI elements are rendered",
        ),
    ),
    "API/Service": StepTemplate(
        area="API/Service",
        kind="modify",
        title="Implement service and API layer changes",
        summary="Add or modify service functions and API request/response contracts.",
        placeholder_files="services/*",
        first_item="Locate or create the service module ({target})",
        checklist=(
            "Define request and response types, or import them from the types step",
            "Implement the call using the HTTP client already used in the repo",
            "Handle network errors and 4xx/5xx responses",
            "Export the new function(s) from the service entry point",
        ),
        done_when=(
            "The service module compiles without type errors",
            "Happy-path and error-path tests pass",
            "The function is exported and importable",
        ),
        rationale=(
            "Service layer changes feed state management and UI components",
            "Centralising API logic prevents duplicated request code across components",
        ),
    ),
    "State": StepTemplate(
        area="State",
        kind="modify",
        title="Extend state management",
        summary="Add or modify stores, slices, actions, selectors or context providers.",
        placeholder_files="store/*",
        first_item="Open the relevant store module ({target})",
        checklist=(
            "Define the new state shape with explicit types",
            "Add actions or reducers for the feature lifecycle (pending, fulfilled, rejected)",
            "Add memoised selectors for derived data",
            "Register new stores or slices with the root store",
            "Wire async actions to the service functions from the API step",
        ),
        done_when=(
            "The new state is visible in the store",
            "Selectors return correct values in tests",
            "No circular imports between the store and the service layer",
        ),
        rationale=(
            "State must be available before UI components can subscribe to it",
            "Centralised state prevents prop drilling and stale data",
        ),
    ),
    "Hooks": StepTemplate(
        area="Hooks",
        kind="modify",
        title="Create or update hooks",
        summary="Implement hooks that encapsulate the feature logic.",
        placeholder_files="hooks/*",
        first_item="Create or locate the hook module ({target})",
        checklist=(
            "Declare the hook return type explicitly",
            "Connect to state selectors and actions from the state step",
            "Handle loading, error and empty states",
            "Add a minimal test that renders the hook in isolation",
        ),
        done_when=(
            "The hook is importable and returns typed data",
            "The hook test passes for the happy path",
            "No console errors during the hook lifecycle",
        ),
        rationale=(
            "Hooks keep complexity out of UI components",
            "Testing hooks in isolation shrinks component tests",
        ),
    ),
    "Routing": StepTemplate(
        area="Routing",
        kind="modify",
        title="Update routing configuration",
        summary="Add new routes or update navigation for the feature.",
        placeholder_files="routes/*",
        first_item="Open the router configuration ({target})",
        checklist=(
            "Add the route definition with its path, handler and auth guard",
            "Update navigation menus or breadcrumbs",
            "Make sure deep links render the correct page on refresh",
            "Add route constants instead of repeating literal paths",
        ),
        done_when=(
            "Navigating to the new URL renders the correct page",
            "Unauthenticated users are redirected",
            "Back navigation and history behave correctly",
        ),
        rationale=(
            "Routing changes reference UI components that must already exist",
            "Auth guards must be in place before the route is reachable",
        ),
    ),
    "UI": StepTemplate(
        area="UI",
        kind="modify",
        title="Integrate the feature into UI components and pages",
        summary="Update pages and components to surface the new feature.",
        placeholder_files="components/*, pages/*",
        first_item="Open the target page or component ({target})",
        checklist=(
            "Call the hook or service from the earlier steps",
            "Render a loading state while data is fetching",
            "Render an error state with a retry action",
            "Render an empty state when there is no data",
            "Add test ids to key interactive elements",
            "Keep user-facing strings ready for translation",
        ),
        done_when=(
            "The feature renders correctly for loading, data, error and empty states",
            "No type errors in component modules",
            "Interactive elements have accessible labels",
        ),
        rationale=(
            "UI integrates last; every lower layer must be stable first",
            "Handling loading, error and empty states prevents blank screens",
        ),
    ),
    "Styling": StepTemplate(
        area="Styling",
        kind="modify",
        title="Apply design tokens and styling",
        summary="Apply design tokens, theme values and style utilities consistently.",
        placeholder_files="styles/*, theme config",
        first_item="Review the styles used by {target}",
        checklist=(
            "Use only design-system tokens, no hard-coded colours",
            "Check that the style build covers every new file path",
            "Verify dark-mode variants if the app supports them",
            "Replace inline style overrides with shared utilities",
        ),
        done_when=(
            "No hard-coded colours or spacing outside the token system",
            "The style build completes without unknown-utility warnings",
            "The visual result matches the design",
        ),
        rationale=(
            "Styling must follow the design system to stay visually consistent",
            "Hard-coded values break theming",
        ),
    ),
    "Tests": StepTemplate(
        area="Tests",
        kind="test",
        title="Write unit and integration tests",
        summary="Add test coverage for all new and modified code.",
        placeholder_files="tests/*",
        first_item="Create test modules alongside the changed code ({target})",
        checklist=(
            "Cover the happy path of every public function or component",
            "Cover at least one error or edge case per function",
            "Mock external services so tests stay deterministic",
            "Assert on observable output, not implementation details",
            "Make sure the suite runs in CI without network access",
        ),
        done_when=(
            "All new tests pass",
            "Coverage for new files is at least 80%",
            "No test performs real network calls",
        ),
        rationale=(
            "Tests prevent regressions as the codebase evolves",
            "Tests document expected behaviour",
        ),
    ),
}

# Areas that carry shared contracts and therefore force a Types step.
TYPE_BEARING_AREAS = ("Types", "API/Service", "State", "Auth")

# Generation order after the forced Types step; the Tests step is always appended last.
AREA_STEP_ORDER = ("Build/Config", "Auth", "API/Service", "State", "Hooks", "Routing", "UI", "Styling")

CREATE_CHECKLIST = (
    "Create the directory structure if it does not exist",
    "Add the file with boilerplate appropriate for its area ({area})",
    "Export the main symbol from the file",
    "Update the package entry point or barrel module if applicable",
)

CREATE_DONE_WHEN = (
    "File exists at {path}",
    "File compiles or imports without errors",
    "File is importable from its expected consumer",
)

COMMON_GUARDRAILS = [
    "DO NOT modify files outside the scope of this step",
    "DO NOT remove existing exported symbols without verifying there are no other consumers",
    "DO NOT introduce new third-party dependencies without explicit approval",
    "ALWAYS keep changes minimal and prefer additive changes over rewrites",
    "ALWAYS follow the existing code style (indentation, naming, module exports)",
]

AREA_GUARDRAILS: Dict[str, List[str]] = {
    "Styling": [
        "DO NOT use hard-coded colours, spacing or font sizes",
        "USE only design tokens from the theme or CSS custom properties",
    ],
    "Auth": [
        "DO NOT weaken existing access checks",
        "ALWAYS validate permissions server-side, never rely on client-only guards",
        "DO NOT log sensitive user data",
    ],
    "State": [
        "DO NOT mutate state directly, use actions or immutable updates",
        "DO NOT re-select the same data in multiple components, add selectors",
    ],
    "API/Service": [
        "DO NOT expose raw HTTP responses, map them to typed objects",
        "ALWAYS handle 401/403 responses and trigger auth refresh or redirect",
    ],
}

TOKEN_GUARDRAIL = "REFER to the token constraints provided in context.tokensOrConstraints"

DEFAULT_CONVENTIONS = [
    "Prefer named exports over default exports",
    "Co-locate tests with their implementation",
    "Use strict typing, no implicit any",
    "Prefer async/await over raw promise or callback chains",
    "Use relative imports within a feature folder and aliases across features",
]

SYSTEM_TEMPLATE = (
    "You are a senior software engineer working in an existing codebase. "
    "You follow repo conventions strictly and make minimal, focused changes. "
    "You do NOT refactor code that is out of scope for the current task. "
    "You always handle loading, error and empty states in user-facing code. "
    "You add types to every new function, parameter and return value. "
    "Your current focus area is: {area}. "
    "Output only the code changes required and explain each change briefly."
)
