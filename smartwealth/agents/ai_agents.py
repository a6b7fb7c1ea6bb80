"""
AI Agents for SmartWealth

Two Gemini-backed collaborators:

1. FINANCIAL ADVISOR:
   - CAN: Comment on spending habits and the portfolio
   - CANNOT: Change any ledger data
   - ALWAYS returns text; a fixed message replaces any failure

2. PRICE SIMULATOR:
   - CAN: Estimate plausible current prices for held symbols
   - CANNOT: Write prices itself; the service reconciles them
   - ALWAYS returns prices; local random moves replace any failure

Neither agent ever raises to its caller. The app must stay usable
without network access or an API key.
"""

import json
import random
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from smartwealth.config import get_settings
from smartwealth.config.settings import GeminiSettings
from smartwealth.models.ledger import StockPosition, Transaction

logger = structlog.get_logger(__name__)

ADVICE_NOT_CONFIGURED = "請配置 API Key 以啟用 AI 財務顧問功能。"
ADVICE_EMPTY = "目前無法生成建議。"
ADVICE_UNAVAILABLE = "AI 服務暫時無法使用，請稍後再試。"

PRICE_QUANTUM = Decimal("0.01")


class FinancialAdvice(BaseModel):
    """Advisor output and where it came from."""

    text: str
    source: str = Field(
        description="gemini, not_configured, empty or unavailable"
    )
    error: Optional[str] = None

    @property
    def from_model(self) -> bool:
        return self.source == "gemini"


class PriceQuote(BaseModel):
    """Prices keyed by symbol, plus how they were obtained."""

    prices: dict[str, Decimal] = Field(default_factory=dict)
    source: str = Field(
        description="gemini, local (no API key) or local_retry (API failed)"
    )
    error: Optional[str] = None


def _build_model(settings: GeminiSettings, json_output: bool = False) -> Optional[genai.GenerativeModel]:
    """Configure Google Generative AI; None when no key is set."""
    if not settings.is_configured:
        return None
    genai.configure(api_key=settings.api_key)
    generation_config = {
        "temperature": settings.temperature,
        "max_output_tokens": settings.max_tokens,
    }
    if json_output:
        generation_config["response_mime_type"] = "application/json"
    return genai.GenerativeModel(
        model_name=settings.model_name,
        generation_config=generation_config,
    )


class FinancialAdvisorAgent:
    """
    Short advisory text about the user's finances.

    Only a compact summary is sent: the most recent transactions
    (newest first, as the ledger lists them) and each position's
    shares and average cost.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[genai.GenerativeModel] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model or _build_model(self._settings)

    def build_prompt(
        self,
        transactions: Sequence[Transaction],
        stocks: Sequence[StockPosition],
    ) -> str:
        limit = self._settings.advice_transaction_limit
        recent = [
            f"{t.date.isoformat()}: {t.type.value} ${t.amount} ({t.category})"
            for t in transactions[:limit]
        ]
        portfolio = [
            f"{s.symbol}: {s.shares}股, 成本 {s.average_cost}"
            for s in stocks
        ]

        return f"""作為一位專業的財務顧問，請根據以下使用者的財務數據提供簡短的建議和洞察（約 150 字）。
使用繁體中文回答。

近期交易紀錄 (最近 {limit} 筆):
{json.dumps(recent, ensure_ascii=False)}

股票投資組合:
{json.dumps(portfolio, ensure_ascii=False)}

請分析消費習慣與投資狀況，並給出建議。"""

    async def get_advice(
        self,
        transactions: Sequence[Transaction],
        stocks: Sequence[StockPosition],
    ) -> FinancialAdvice:
        """
        Ask Gemini for advice.

        Returns a fixed message when no key is configured, when the model
        answers with nothing, or when the call fails.
        """
        if self._model is None:
            return FinancialAdvice(text=ADVICE_NOT_CONFIGURED, source="not_configured")

        prompt = self.build_prompt(transactions, stocks)
        try:
            response = await self._model.generate_content_async(prompt)
            text = (response.text or "").strip()
        except Exception as e:
            logger.error("advice_generation_failed", error=str(e))
            return FinancialAdvice(text=ADVICE_UNAVAILABLE, source="unavailable", error=str(e))

        if not text:
            return FinancialAdvice(text=ADVICE_EMPTY, source="empty")
        return FinancialAdvice(text=text, source="gemini")


class PriceSimulationAgent:
    """
    Simulated market prices for held positions.

    With Gemini configured, asks for a plausible price per symbol.
    Without a key, every price moves randomly within the fallback
    spread (5% by default). If the Gemini call or its JSON fails,
    every price moves within the narrower retry spread (3%).
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[genai.GenerativeModel] = None,
        rng: Optional[random.Random] = None,
        fallback_spread: Optional[float] = None,
        retry_spread: Optional[float] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model or _build_model(self._settings, json_output=True)
        self._rng = rng or random.Random()
        if fallback_spread is None or retry_spread is None:
            app = get_settings().app
            fallback_spread = app.price_fallback_spread if fallback_spread is None else fallback_spread
            retry_spread = app.price_retry_spread if retry_spread is None else retry_spread
        self._fallback_spread = fallback_spread
        self._retry_spread = retry_spread

    def perturb_prices(
        self,
        stocks: Sequence[StockPosition],
        spread: float,
    ) -> dict[str, Decimal]:
        """Move each current price by a uniform random factor in [-spread, +spread]."""
        prices = {}
        for stock in stocks:
            factor = Decimal(str(1 + self._rng.uniform(-spread, spread)))
            prices[stock.symbol] = (stock.current_price * factor).quantize(PRICE_QUANTUM)
        return prices

    def build_prompt(self, stocks: Sequence[StockPosition]) -> str:
        symbols = ", ".join(s.symbol for s in stocks)
        return f"""為以下股票代碼生成模擬的"當前市場價格"。
這是一個模擬演示，請根據真實世界的大致股價範圍給出一個合理的數值。

股票: {symbols}

請嚴格返回 JSON 格式，不要包含 Markdown 標記。
格式如下:
[
  {{ "symbol": "2330.TW", "price": 580 }},
  {{ "symbol": "AAPL", "price": 175 }}
]"""

    def parse_prices(self, text: str) -> dict[str, Decimal]:
        """
        Parse the model's JSON list into {symbol: price}.

        Entries without a symbol or with a non-positive or unparseable
        price are dropped. A body that is not a JSON list raises ValueError.
        """
        data = json.loads(text or "[]")
        if not isinstance(data, list):
            raise ValueError("Expected a JSON list of {symbol, price}")

        prices = {}
        for item in data:
            if not isinstance(item, dict) or not item.get("symbol"):
                continue
            try:
                price = Decimal(str(item.get("price")))
            except (InvalidOperation, ValueError):
                continue
            if not price.is_finite() or price <= 0:
                continue
            prices[str(item["symbol"])] = price.quantize(PRICE_QUANTUM)
        return prices

    async def simulate_prices(self, stocks: Sequence[StockPosition]) -> PriceQuote:
        """Prices for the given positions. Never raises."""
        if not stocks:
            return PriceQuote(source="local" if self._model is None else "gemini")

        if self._model is None:
            return PriceQuote(
                prices=self.perturb_prices(stocks, self._fallback_spread),
                source="local",
            )

        try:
            response = await self._model.generate_content_async(self.build_prompt(stocks))
            prices = self.parse_prices(response.text)
        except Exception as e:
            logger.error("price_simulation_failed", error=str(e))
            return PriceQuote(
                prices=self.perturb_prices(stocks, self._retry_spread),
                source="local_retry",
                error=str(e),
            )

        return PriceQuote(prices=prices, source="gemini")
