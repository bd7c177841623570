"""Tests for provider selection."""

from __future__ import annotations

import pytest

from sharkmind.models import Mode, RoutingPolicy
from sharkmind.router import select_provider


class TestSelectProvider:
    @pytest.mark.parametrize("mode", list(Mode))
    def test_always_returns_configured_id(self, mode: Mode):
        policy = RoutingPolicy()
        assert select_provider("qualquer coisa", mode) in policy.provider_ids()

    def test_robot_mode_goes_to_code_provider(self):
        assert select_provider("Crie uma estratégia de breakout", Mode.ROBOT) == "openai"

    def test_code_term_beats_daytrade_mode(self):
        assert select_provider("Gere o código do setup", Mode.DAYTRADE) == "openai"

    def test_ntfl_term(self):
        assert select_provider("Como escrever em NTFL?", Mode.CONSULTA) == "openai"

    def test_daytrade_mode_goes_to_analysis_provider(self):
        assert select_provider("Qual a tendência do WINFUT hoje", Mode.DAYTRADE) == "claude"

    def test_technical_analysis_phrase(self):
        assert select_provider("Faça uma Análise Técnica do DOLFUT", Mode.CONSULTA) == "claude"

    def test_trend_goes_to_reasoning_provider(self):
        assert select_provider("Qual a tendência do dólar?", Mode.CONSULTA) == "deepseek"
        assert select_provider("Previsão para o ibovespa", Mode.PORTFOLIO) == "deepseek"

    def test_default_provider(self):
        assert select_provider("Como diversificar minha carteira?", Mode.PORTFOLIO) == "openai"

    def test_accepts_mode_string(self):
        assert select_provider("oi", "robot") == "openai"

    def test_invalid_mode_raises(self):
        with pytest.raises(ValueError):
            select_provider("oi", "scalper")

    def test_custom_policy(self):
        policy = RoutingPolicy(
            code_provider="c", analysis_provider="a", reasoning_provider="r", default_provider="d"
        )
        assert select_provider("código", Mode.CONSULTA, policy) == "c"
        assert select_provider("oi", Mode.DAYTRADE, policy) == "a"
        assert select_provider("tendência", Mode.CONSULTA, policy) == "r"
        assert select_provider("oi", Mode.CONSULTA, policy) == "d"

    def test_deterministic(self):
        results = {select_provider("Previsão do WINFUT", Mode.CONSULTA) for _ in range(20)}
        assert results == {"deepseek"}
