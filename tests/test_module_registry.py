"""
Team Diagnostics Report Service
Tests — Report Module Registry.

Covers:
    - Built-in catalog order and contents
    - resolve(): order preservation, de-duplication, unknown ids
    - excluded()
    - YAML catalog loading
"""

import pytest

from team_reports.ai.module_registry import (
    DEFAULT_MODULES,
    ModuleDefinition,
    ModuleRegistry,
    load_catalog,
)
from team_reports.ai.renumber import find_module_markers
from team_reports.core.exceptions import InvalidRequestError


class TestDefaultCatalog:

    def test_default_order(self):
        assert ModuleRegistry().ids() == [
            "executiveDashboard",
            "hiddenDynamics",
            "stressTest",
            "mindsetDeepDive",
            "culturalDNA",
            "evolutionaryRoadmap",
            "teamPlaybook",
            "organisationalActionPlan",
        ]

    def test_templates_authored_with_reference_numbering(self):
        for position, module in enumerate(DEFAULT_MODULES, 1):
            assert find_module_markers(module.prompt_template)[0] == position

    def test_lookup_by_id(self):
        registry = ModuleRegistry()
        assert registry.get("stressTest").title == "The Stress Test"
        assert registry.get("missing") is None
        assert "culturalDNA" in registry
        assert len(registry) == 8

    def test_to_dict_shape(self):
        first = ModuleRegistry().to_dict()[0]
        assert set(first) == {"id", "title", "prompt"}
        assert first["id"] == "executiveDashboard"


class TestResolve:

    def test_keeps_caller_order(self, registry):
        assert [m.id for m in registry.resolve(["c", "a"])] == ["c", "a"]

    def test_duplicates_collapse_to_first_occurrence(self, registry):
        assert [m.id for m in registry.resolve(["b", "a", "b", "a"])] == ["b", "a"]

    def test_empty_input_returns_empty(self, registry):
        assert registry.resolve([]) == []

    def test_unknown_ids_rejected(self, registry):
        with pytest.raises(InvalidRequestError) as exc_info:
            registry.resolve(["a", "zzz", "yyy"])
        assert exc_info.value.details["unknown"] == ["zzz", "yyy"]
        assert exc_info.value.details["available"] == ["a", "b", "c"]

    def test_excluded_in_registry_order(self, registry):
        selected = registry.resolve(["c"])
        assert [m.id for m in registry.excluded(selected)] == ["a", "b"]

    def test_excluded_empty_for_full_selection(self, registry):
        assert registry.excluded(registry.all()) == []


class TestRegistryConstruction:

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            ModuleRegistry(modules=[
                ModuleDefinition(id="x", title="X"),
                ModuleDefinition(id="x", title="X again"),
            ])

    def test_yaml_catalog(self, tmp_path):
        path = tmp_path / "modules.yaml"
        path.write_text(
            "modules:\n"
            "  - id: one\n"
            "    title: One\n"
            "    prompt: |\n"
            "      ### MODULE 1: ONE\n"
            "  - id: two\n"
            "    title: Two\n",
            encoding="utf-8",
        )
        registry = ModuleRegistry(catalog_path=str(path))
        assert registry.ids() == ["one", "two"]
        assert registry.get("one").prompt_template.startswith("### MODULE 1: ONE")
        assert registry.get("two").prompt_template == ""

    def test_yaml_catalog_without_modules(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("modules: []\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_catalog(str(path))

    def test_yaml_entry_missing_title(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("modules:\n  - id: one\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_catalog(str(path))
