"""
Financial Analysis Service (Gemini)

DESIGN DECISION: The model only ever sees aggregate figures computed by
the aggregator. It writes advice about those numbers; it never reads raw
records and never computes totals itself.

Two tiers:
- BASIC (free): totals and net balance, short summary with one recommendation
- ADVANCED (premium): adds the expense breakdown and investments, asks for a
  detailed seven-part plan

Failures are mapped to distinct exceptions so the caller can show
specific guidance for rate limiting (429) and exhausted credits (402).
"""

import json
from decimal import Decimal
from typing import Optional, Sequence

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from finance_tracker.aggregation import category_breakdown, net_balance, total
from finance_tracker.config import GeminiSettings, get_settings
from finance_tracker.errors import ErrorKind, FinanceTrackerError
from finance_tracker.models.records import Expense, Income, Investment


logger = structlog.get_logger(__name__)


SYSTEM_INSTRUCTION = (
    "You are a professional financial advisor providing clear, actionable "
    "advice to help individuals and small businesses optimize their finances."
)


class AIServiceError(FinanceTrackerError):
    """AI completion service failed."""
    kind = ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE

    def __init__(self, message: str, user_message: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            user_message=user_message or "Failed to generate analysis. Please try again.",
            **kwargs,
        )


class AIRateLimitError(AIServiceError):
    """AI service rejected the request with HTTP 429."""
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str):
        super().__init__(
            message,
            user_message="Rate limit exceeded. Please try again in a few moments.",
        )


class AIQuotaExceededError(AIServiceError):
    """AI service rejected the request with HTTP 402 (credits exhausted)."""
    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(self, message: str):
        super().__init__(
            message,
            user_message="Credits needed. Please add credits to continue using AI features.",
        )


def _money(amount: Decimal, symbol: str) -> str:
    return f"{symbol}{amount:.2f}"


def build_basic_prompt(
    expenses: Sequence[Expense],
    income: Sequence[Income],
    investments: Sequence[Investment],
    currency_symbol: str = "₹",
) -> str:
    """Short free-tier prompt: totals and net balance only."""
    balance = net_balance(income, expenses, investments)
    return f"""As a financial advisor, provide a brief analysis of this financial data:

Income: {_money(total(income), currency_symbol)}
Expenses: {_money(total(expenses), currency_symbol)}
Net Balance: {_money(balance, currency_symbol)}

Provide a short summary (3-4 sentences) with one key recommendation."""


def build_advanced_prompt(
    expenses: Sequence[Expense],
    income: Sequence[Income],
    investments: Sequence[Investment],
    currency_symbol: str = "₹",
) -> str:
    """Premium prompt with expense breakdown, investments and a seven-part brief."""
    breakdown = {
        label: float(amount)
        for label, amount in category_breakdown(expenses).items()
    }
    balance = net_balance(income, expenses, investments)
    return f"""As a financial advisor, analyze the following financial data and provide comprehensive actionable recommendations:

Income: {_money(total(income), currency_symbol)}
Expenses: {_money(total(expenses), currency_symbol)} (breakdown: {json.dumps(breakdown)})
Investments: {_money(total(investments), currency_symbol)}
Net Balance: {_money(balance, currency_symbol)}

Please provide:
1. Detailed assessment of the current financial situation
2. Specific recommendations to reduce expenses
3. Investment optimization suggestions
4. Budget allocation recommendations
5. Tax optimization strategies
6. Long-term financial planning advice
7. Key action items to improve financial health

Provide a comprehensive, detailed analysis."""


def _status_code(error: Exception) -> Optional[int]:
    """HTTP status of a Google API error, if it carries one."""
    code = getattr(error, "code", None)
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None


class FinancialAnalysisService:
    """
    Generates free-text financial advice from aggregate figures.

    BOUNDARIES:
    - Receives only the user's own records, already loaded by the caller
    - Returns text; never writes anything
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        currency_symbol: Optional[str] = None,
        model_factory=None,
    ):
        self._settings = settings or get_settings().gemini
        self._currency_symbol = currency_symbol or get_settings().app.currency_symbol
        self._model_factory = model_factory or self._create_model
        self._models: dict[bool, object] = {}
        genai.configure(api_key=self._settings.api_key)

    def _create_model(self, max_output_tokens: int):
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_INSTRUCTION,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": max_output_tokens,
            },
        )

    def _model_for(self, advanced: bool):
        if advanced not in self._models:
            max_tokens = (
                self._settings.advanced_max_tokens if advanced
                else self._settings.basic_max_tokens
            )
            self._models[advanced] = self._model_factory(max_tokens)
        return self._models[advanced]

    def build_prompt(
        self,
        expenses: Sequence[Expense],
        income: Sequence[Income],
        investments: Sequence[Investment],
        advanced: bool,
    ) -> str:
        builder = build_advanced_prompt if advanced else build_basic_prompt
        return builder(expenses, income, investments, self._currency_symbol)

    async def analyze(
        self,
        expenses: Sequence[Expense],
        income: Sequence[Income],
        investments: Sequence[Investment],
        advanced: bool = False,
    ) -> str:
        """
        Request an analysis of the given records.

        Raises:
            AIRateLimitError: On HTTP 429
            AIQuotaExceededError: On HTTP 402
            AIServiceError: On any other failure or an empty response
        """
        prompt = self.build_prompt(expenses, income, investments, advanced)
        model = self._model_for(advanced)

        logger.info("ai_analysis_requested", advanced=advanced, prompt_chars=len(prompt))

        try:
            response = await model.generate_content_async(prompt)
        except google_exceptions.GoogleAPICallError as e:
            status = _status_code(e)
            logger.error("ai_gateway_error", status=status, error=str(e))
            if status == 429:
                raise AIRateLimitError(f"AI rate limit exceeded: {e}")
            if status == 402:
                raise AIQuotaExceededError(f"AI credits exhausted: {e}")
            raise AIServiceError(f"AI gateway error: {status} {e}")
        except Exception as e:
            logger.error("ai_request_failed", error=str(e))
            raise AIServiceError(f"AI request failed: {e}")

        try:
            text = response.text.strip()
        except ValueError as e:
            # Raised by the SDK when the candidate was blocked
            raise AIServiceError(f"AI response had no text: {e}")

        if not text:
            raise AIServiceError("AI response was empty")

        logger.info("ai_analysis_received", advanced=advanced, response_chars=len(text))
        return text
