"""Tests for ModePromptRegistry — YAML loading, validation, Jinja2 rendering."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from sharkmind.models import Mode
from sharkmind.prompt_registry import ModePromptRegistry, PromptNotFoundError, PromptRenderError


@pytest.fixture
def sample_prompts_yaml(tmp_path: Path) -> Path:
    """Create a temporary prompts file covering every mode."""
    data = {
        "prompts": {
            "consulta": {"system": "Analista financeiro.", "fallback": "Tente novamente."},
            "daytrade": {
                "system": "Especialista em {{ instruments | join(', ') }}.",
                "fallback": "Use stop loss.",
                "fallback_tokens": 40,
            },
            "portfolio": {"system": "Consultor de portfólio.", "fallback": "Em manutenção."},
            "robot": {
                "system": "Programador NTFL.{% if platform %} Plataforma: {{ platform }}.{% endif %}",
                "fallback": "NTFL offline.",
            },
            "astrologia": {"system": "Ignorado.", "fallback": "Ignorado."},
        }
    }
    path = tmp_path / "advisor.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, allow_unicode=True)
    return path


@pytest.fixture
def registry(sample_prompts_yaml: Path) -> ModePromptRegistry:
    return ModePromptRegistry(prompts_path=sample_prompts_yaml)


class TestModePromptRegistry:
    def test_lists_known_modes_only(self, registry: ModePromptRegistry):
        assert registry.list_modes() == ["consulta", "daytrade", "portfolio", "robot"]

    def test_render_variables(self, registry: ModePromptRegistry):
        assert registry.get(Mode.DAYTRADE, instruments=["WINFUT", "DOLFUT"]) == "Especialista em WINFUT, DOLFUT."

    def test_optional_block(self, registry: ModePromptRegistry):
        assert registry.get("robot") == "Programador NTFL."
        assert registry.get("robot", platform="Profit") == "Programador NTFL. Plataforma: Profit."

    def test_fallback_and_tokens(self, registry: ModePromptRegistry):
        assert registry.get_fallback(Mode.DAYTRADE) == "Use stop loss."
        assert registry.get_entry(Mode.DAYTRADE).fallback_tokens == 40
        assert registry.get_entry(Mode.CONSULTA).fallback_tokens == 50

    def test_validate_ok(self, registry: ModePromptRegistry):
        assert registry.validate() == []

    def test_validate_reports_missing_mode(self, tmp_path: Path):
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"prompts": {"consulta": {"system": "a", "fallback": "b"}}}))
        errors = ModePromptRegistry(path).validate()
        assert any("Missing prompts" in e and "robot" in e for e in errors)

    def test_validate_reports_empty_fallback(self, registry: ModePromptRegistry):
        registry.register(Mode.PORTFOLIO, "Consultor.", fallback_template="")
        assert any("empty fallback" in e for e in registry.validate())

    def test_validate_reports_bad_syntax(self, registry: ModePromptRegistry):
        registry.register(Mode.CONSULTA, "{% if %}", fallback_template="ok")
        assert any("invalid Jinja2" in e for e in registry.validate())

    def test_missing_entry(self, tmp_path: Path):
        registry = ModePromptRegistry(tmp_path / "nope.yaml")
        assert registry.list_modes() == []
        with pytest.raises(PromptNotFoundError):
            registry.get(Mode.CONSULTA)

    def test_render_error(self, registry: ModePromptRegistry):
        registry.register(Mode.CONSULTA, "{% for x in %}", fallback_template="ok")
        with pytest.raises(PromptRenderError):
            registry.get(Mode.CONSULTA)

    def test_packaged_prompts_are_valid(self):
        registry = ModePromptRegistry()
        assert registry.validate() == []
        assert "NTFL" in registry.get(Mode.ROBOT)
