"""
Team Diagnostics Report Service
Report Module Registry.

Fixed, ordered catalog of report modules (sections) a team report can be
built from. Registry order is the canonical default order: an omitted
selection means "every module, in this order".

The catalog is static configuration loaded once at startup:
    - Built-in defaults (DEFAULT_MODULES), or
    - A YAML catalog file (REPORT_MODULES_PATH) replacing the defaults

Usage:
    from team_reports.ai.module_registry import ModuleRegistry
    registry = ModuleRegistry()
    selected = registry.resolve(["stressTest", "executiveDashboard"])
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from team_reports.core.exceptions import InvalidRequestError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleDefinition:
    """One selectable report section."""

    id: str
    title: str
    prompt_template: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "prompt": self.prompt_template,
        }


class ModuleRegistry:
    """
    Read-only, ordered catalog of ModuleDefinitions.

    Pass ``modules`` to inject a catalog (tests use small synthetic ones);
    otherwise the YAML file at ``catalog_path`` is loaded, falling back to
    the built-in defaults when no path is given.
    """

    def __init__(self, modules=None, catalog_path: str | None = None):
        if modules is None:
            modules = load_catalog(catalog_path) if catalog_path else DEFAULT_MODULES
        self._modules: tuple[ModuleDefinition, ...] = tuple(modules)
        self._by_id: dict[str, ModuleDefinition] = {}
        for module in self._modules:
            if module.id in self._by_id:
                raise ValueError(f"Duplicate report module id: {module.id}")
            self._by_id[module.id] = module

    def __iter__(self):
        return iter(self._modules)

    def __len__(self):
        return len(self._modules)

    def __contains__(self, module_id):
        return module_id in self._by_id

    def all(self) -> tuple[ModuleDefinition, ...]:
        """Every module in canonical order."""
        return self._modules

    def ids(self) -> list[str]:
        return [m.id for m in self._modules]

    def get(self, module_id: str) -> ModuleDefinition | None:
        return self._by_id.get(module_id)

    def resolve(self, module_ids) -> list[ModuleDefinition]:
        """
        Turn an ordered id selection into definitions.

        Duplicates collapse onto their first occurrence; order is otherwise
        kept exactly as given. An empty input yields an empty list; callers
        decide whether that is an error.

        Raises:
            InvalidRequestError: If any id is not in the catalog.
        """
        seen = set()
        resolved = []
        unknown = []
        for module_id in module_ids:
            if module_id in seen:
                continue
            seen.add(module_id)
            module = self._by_id.get(module_id)
            if module is None:
                unknown.append(str(module_id))
                continue
            resolved.append(module)
        if unknown:
            raise InvalidRequestError(
                f"Unknown report module(s): {', '.join(unknown)}",
                details={"unknown": unknown, "available": self.ids()},
            )
        return resolved

    def excluded(self, selected) -> list[ModuleDefinition]:
        """Catalog modules absent from ``selected``, in catalog order."""
        chosen = {m.id for m in selected}
        return [m for m in self._modules if m.id not in chosen]

    def to_dict(self) -> list[dict]:
        return [m.to_dict() for m in self._modules]


def load_catalog(path: str) -> list[ModuleDefinition]:
    """
    Load a module catalog from YAML.

    Expected shape::

        modules:
          - id: executiveDashboard
            title: Executive Dashboard
            prompt: |
              ### MODULE 1: EXECUTIVE DASHBOARD
              ...

    Raises:
        FileNotFoundError: Catalog file missing.
        ValueError: Malformed catalog (no modules, entry without id/title).
    """
    catalog_file = Path(path)
    with open(catalog_file, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("modules") if isinstance(data, dict) else data
    if not entries or not isinstance(entries, list):
        raise ValueError(f"Report module catalog {catalog_file.name} defines no modules")

    modules = []
    for idx, entry in enumerate(entries, 1):
        if not isinstance(entry, dict) or not entry.get("id") or not entry.get("title"):
            raise ValueError(f"Catalog entry #{idx} in {catalog_file.name} needs 'id' and 'title'")
        modules.append(ModuleDefinition(
            id=str(entry["id"]),
            title=str(entry["title"]),
            prompt_template=entry.get("prompt") or "",
        ))
    logger.info("Loaded %d report modules from %s", len(modules), catalog_file.name)
    return modules


# ── Built-in Default Catalog ──────────────────────────────────────────────────

DEFAULT_MODULES = (
    ModuleDefinition(
        id="executiveDashboard",
        title="Executive Dashboard",
        prompt_template=(
            "### MODULE 1: EXECUTIVE DASHBOARD\n"
            "(This section MUST be 500–600 words. It must be concise, detailed, and synthesised.)\n"
            "\n"
            "This section must reference the vector file, detailing the core values of the business "
            "and ensure clear links are made about areas of alignment and areas of friction.\n"
            "\n"
            "Without needing to follow this exact structure, include:\n"
            "1. Team Archetype — Name, tagline, and short description.\n"
            "2. The Top-Level SWOT — Strengths vs. Risks in particular (two concise lists, no individual data).\n"
            "3. The Primary Tension — Details around the core tension areas that the business should "
            "think seriously about resolving, evolving & loosening.\n"
            "4. Impact Analysis — Describe aggregated effects on:\n"
            "   - Culture\n"
            "   - Performance\n"
            "   - Connection\n"
            "5. Strategic Directive —\n"
            "   The single (or short number of) steps that unlocks the most value.\n"
            "   Add detail around the psychology behind why this is important and what the expected "
            "outcome for the business would be if successful.\n"
            "   What will observed behaviour change look & feel like for the team and for the clients "
            "they work with?"
        ),
    ),
    ModuleDefinition(
        id="hiddenDynamics",
        title="Hidden Dynamics",
        prompt_template=(
            "### MODULE 2: HIDDEN DYNAMICS\n"
            "(2–4 deep psychological patterns)\n"
            "\n"
            "Format:\n"
            "DYNAMIC [Name]\n"
            "The Signal (Aggregated pattern only)\n"
            "The Impact (Effect on execution/culture)\n"
            "The Shift Required"
        ),
    ),
    ModuleDefinition(
        id="stressTest",
        title="The Stress Test",
        prompt_template=(
            "### MODULE 3: THE STRESS TEST\n"
            "Table format recommended:\n"
            "\n"
            "| | Normal Conditions | Under Pressure |\n"
            "|--|--|--|\n"
            "| Behaviour |  |  |\n"
            "| Emotional Tone |  |  |\n"
            "| Execution Rhythm |  |  |\n"
            "\n"
            "No individual behaviours — only themes."
        ),
    ),
    ModuleDefinition(
        id="mindsetDeepDive",
        title="Mindset Deep Dive",
        prompt_template=(
            "### MODULE 4: MINDSET DEEP DIVE (Optional Per-Mindset Pages)\n"
            "For each mindset:\n"
            "- Mindset & Status\n"
            "- The Snapshot (team-level expression)\n"
            "- Brake Behaviour (aggregate limiting pattern — do not reference specific question wording)\n"
            "- The Implication (business + psychological cost)\n"
            "- Coaching Corner: 3 Ways to Shift"
        ),
    ),
    ModuleDefinition(
        id="culturalDNA",
        title="Cultural DNA & Employer Brand",
        prompt_template=(
            "### MODULE 5: CULTURAL DNA & EMPLOYER BRAND\n"
            "Directly review the vector file and diagnose how the teams' mindset correlates or "
            "differs from the values of the business.\n"
            "\n"
            "Consider the following areas:\n"
            "- **Lived Values** (with Benefits + Shadows)\n"
            "- **The Employee Experience (Internal Edge)** — How it feels to work here.\n"
            "- **The Market Promise (External Edge)** — How clients experience the team.\n"
            "\n"
            "Behaviour-based (no reference to specific individual responses)."
        ),
    ),
    ModuleDefinition(
        id="evolutionaryRoadmap",
        title="Evolutionary Roadmap",
        prompt_template=(
            "### MODULE 6: EVOLUTIONARY ROADMAP (From ➡️ To)\n"
            "3 transformation themes.\n"
            "\n"
            "Format for each:\n"
            "THEME\n"
            "FROM (Current Friction)\n"
            "TO (Target State)\n"
            "THE SHIFT (behaviour/structure)"
        ),
    ),
    ModuleDefinition(
        id="teamPlaybook",
        title="Team Playbook",
        prompt_template=(
            "### MODULE 7: TEAM PLAYBOOK (Interventions)\n"
            "Provide 3–5 interventions using the structure:\n"
            "- The Desired Shift\n"
            "- Why It Matters\n"
            "- Try This Ritual / Practice"
        ),
    ),
    ModuleDefinition(
        id="organisationalActionPlan",
        title="Organisational Action Plan",
        prompt_template=(
            "### MODULE 8: ORGANIZATIONAL ACTION PLAN\n"
            "Amplify (Strengths)\n"
            "- 2 strengths to leverage.\n"
            "\n"
            "Address (Friction)\n"
            "- 2 friction points to resolve. Use the format:\n"
            "  Issue:\n"
            "  Action:\n"
            "  (No individual data.)"
        ),
    ),
)
