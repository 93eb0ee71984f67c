"""AI financial analysis service."""

from finance_tracker.services.ai.gemini_service import (
    SYSTEM_INSTRUCTION,
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    FinancialAnalysisService,
    build_advanced_prompt,
    build_basic_prompt,
)

__all__ = [
    "SYSTEM_INSTRUCTION",
    "AIQuotaExceededError",
    "AIRateLimitError",
    "AIServiceError",
    "FinancialAnalysisService",
    "build_advanced_prompt",
    "build_basic_prompt",
]
