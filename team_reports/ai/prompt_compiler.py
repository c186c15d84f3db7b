"""
Team Diagnostics Report Service
Team report prompt compiler.

Turns (team aggregate, ordered module selection) into the single instruction
document sent to the LLM. Pure: no I/O, no clock, no randomness; identical
inputs always give an identical string.

Layout of the compiled prompt:
    1. Base preamble (role, privacy rule, framework, analysis stack)
    2. REPORT OUTPUT REQUIREMENTS: one block per selected module, in
       selection order, markers renumbered to the block's position
    3. DO NOT GENERATE directive (only when the selection is a strict subset)
    4. Tone & style guidelines
    5. TEAM CONTEXT (name, organization, values vector, narrative)
    6. MODULE ORDER AND SELECTION manifest + strict instructions
"""

from team_reports.ai.module_registry import ModuleDefinition, ModuleRegistry
from team_reports.ai.preamble import DEFAULT_BASE_PROMPT, OUTPUT_REQUIREMENTS_HEADING
from team_reports.ai.renumber import renumber_module_markers
from team_reports.core.exceptions import EmptySelectionError
from team_reports.models.team import TeamAggregate

SECTION_DELIMITER = "---"
TONE_HEADING = "🗣️ TONE & STYLE GUIDELINES"
TEAM_CONTEXT_HEADING = "=== TEAM CONTEXT ==="
EXCLUSION_HEADING = "=== DO NOT GENERATE ==="
EXCLUSION_PREFIX = "DO NOT include or generate any content for these modules: "
ORDER_HEADING = "=== CRITICAL: MODULE ORDER AND SELECTION ==="
STRICT_HEADING = "=== STRICT INSTRUCTIONS ==="

TONE_GUIDELINES = (
    "- 400–600 word executive summary: concise, detailed, synthesised",
    "- Total report should be 1,500–2,000 words",
    "- Deep psychological insight without jargon",
    "- Business clarity always explicit",
    "- No individual data, items, or question wording",
    "- High authority, consulting-grade tone",
    "- Use MindsetOS language naturally",
)


def module_template(module: ModuleDefinition) -> str:
    """Template text for a module; modules without one get a titled stub."""
    if module.prompt_template and module.prompt_template.strip():
        return module.prompt_template.strip()
    return (
        f"### MODULE 1: {module.title.upper()}\n\n"
        f"Generate content for {module.title} based on the team context."
    )


def build_module_sections(modules) -> list[str]:
    """Render each module block with markers renumbered to its 1-based position."""
    return [
        renumber_module_markers(module_template(module), position)
        for position, module in enumerate(modules, 1)
    ]


def build_manifest(modules) -> str:
    """Human-checkable order list: ``"1. Title (id: x)"`` per line."""
    return "\n".join(f"{n}. {m.title} (id: {m.id})" for n, m in enumerate(modules, 1))


def build_exclusion_line(excluded) -> str:
    """Directive naming excluded module titles; empty string when none."""
    if not excluded:
        return ""
    return EXCLUSION_PREFIX + ", ".join(m.title for m in excluded)


def compile_report_prompt(
    team: TeamAggregate,
    modules,
    *,
    registry: ModuleRegistry | None = None,
    base_prompt: str | None = None,
) -> str:
    """
    Compile the report prompt.

    Args:
        team: Team aggregate (overrides already merged in by the caller).
        modules: Ordered, resolved ModuleDefinitions. Resolution and
            defaulting are the caller's job.
        registry: Catalog used to work out excluded modules. Defaults to the
            built-in catalog.
        base_prompt: Preamble text. Defaults to the built-in preamble.

    Returns:
        The full prompt string.

    Raises:
        EmptySelectionError: If ``modules`` is empty.
    """
    modules = list(modules)
    if not modules:
        raise EmptySelectionError()

    registry = registry if registry is not None else ModuleRegistry()
    base = base_prompt if base_prompt is not None else DEFAULT_BASE_PROMPT
    excluded = registry.excluded(modules)
    exclusion_line = build_exclusion_line(excluded)

    lines: list[str] = []
    _a = lines.append

    # ── 1. Preamble ───────────────────────────────────────────────────
    _a(base.rstrip())
    _a("")

    # ── 2. Selected module blocks ─────────────────────────────────────
    _a(OUTPUT_REQUIREMENTS_HEADING)
    _a("Produce a fully formatted, professional Markdown report using the following structure.")
    _a("")
    _a(SECTION_DELIMITER)
    _a("")
    for section in build_module_sections(modules):
        _a(section)
        _a("")
        _a(SECTION_DELIMITER)
        _a("")

    # ── 3. Exclusions ─────────────────────────────────────────────────
    if exclusion_line:
        _a(EXCLUSION_HEADING)
        _a(exclusion_line)
        _a("Their titles may appear in the framework description above; that is not a request to write them.")
        _a("")

    # ── 4. Tone ───────────────────────────────────────────────────────
    _a(TONE_HEADING)
    lines.extend(TONE_GUIDELINES)
    _a("")

    # ── 5. Team context ───────────────────────────────────────────────
    _a(TEAM_CONTEXT_HEADING)
    _a(f"Team name: {team.team_name}")
    if team.org_name:
        _a(f"Organization: {team.org_name}")
    _a("")
    _a("Values vector (company values or semantic vector text):")
    _a(team.values_vector or "")
    _a("")
    _a("Aggregated narrative (team-level only, privacy respected):")
    _a(team.narrative_text)
    _a("")

    # ── 6. Order & selection directive ────────────────────────────────
    _a(ORDER_HEADING)
    _a("🚨 ABSOLUTE REQUIREMENT: You MUST generate modules in EXACTLY this order:")
    _a(build_manifest(modules))
    _a("")
    _a("⚠️ ORDER IS MANDATORY:")
    _a("- Number the sections starting at 1, following the list above. Ignore any "
       "other module numbers you may have seen in the prompt text.")
    _a('- The first module in the list above MUST be the first section in your report, '
       'labeled as "MODULE 1: [First Module Title]".')
    if len(modules) > 1:
        _a('- The second module in the list above MUST be the second section, '
           'labeled as "MODULE 2: [Second Module Title]".')
        _a("- Continue this pattern for all modules in the exact order shown above.")
    _a("")
    _a("EXAMPLE: If the list shows:")
    _a("  1. Hidden Dynamics")
    _a("  2. Executive Dashboard")
    _a("Then your report MUST start with:")
    _a("  ### MODULE 1: HIDDEN DYNAMICS")
    _a("  [content for Hidden Dynamics]")
    _a("  ---")
    _a("  ### MODULE 2: EXECUTIVE DASHBOARD")
    _a("  [content for Executive Dashboard]")
    _a("even if Executive Dashboard is normally the first section.")
    _a("")
    _a(STRICT_HEADING)
    _a(f"- Generate ONLY the {len(modules)} module(s) listed above, in the EXACT order shown.")
    if exclusion_line:
        _a(f"- Excluded (must NOT appear in your response at all): "
           f"{', '.join(m.title for m in excluded)}")
    _a("- Use only aggregated, team-level insights—no individual or item-level references.")
    _a("- Apply 7 Mindsets framework with Capacity vs Friction.")
    _a("- Tone: consulting-grade, 1500–2000 words total; executive dashboard 400–600 words; minimal jargon.")
    _a("- Return clean Markdown only (no HTML).")
    _a("- Follow the structure and format given for each module above, using the numbering from the list.")

    return "\n".join(lines)
