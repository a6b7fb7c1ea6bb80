"""AI Agents package."""

from smartwealth.agents.ai_agents import (
    ADVICE_EMPTY,
    ADVICE_NOT_CONFIGURED,
    ADVICE_UNAVAILABLE,
    FinancialAdvice,
    FinancialAdvisorAgent,
    PriceQuote,
    PriceSimulationAgent,
)

__all__ = [
    "ADVICE_EMPTY",
    "ADVICE_NOT_CONFIGURED",
    "ADVICE_UNAVAILABLE",
    "FinancialAdvice",
    "FinancialAdvisorAgent",
    "PriceQuote",
    "PriceSimulationAgent",
]
