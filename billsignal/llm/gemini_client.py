"""
Gemini client for batched bill analysis.

Sends one prompt per batch to the Gemini generateContent REST endpoint,
retrying transient failures per model and falling back through a priority
list of models before giving up on the batch.

Responsibility: Batch prompt -> validated BillAnalysis list
"""

from datetime import date
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
import asyncio
import logging

import httpx

from .parsing import parse_model_output, validate_analyses
from .prompts import PromptBill, build_batch_prompt
from ..config import GeminiConfig
from ..exceptions import ModelOutputParseError, ModelUnavailableError
from ..models.analysis import MAX_PREDICTIONS_PER_BILL, BillAnalysis
from ..utils.retry import RetryError, retry_async

logger = logging.getLogger(__name__)


def extract_text(payload: Dict[str, Any]) -> Optional[str]:
    """Text of the first part of the first candidate, if any"""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class GeminiPredictionClient:
    """
    Prediction model client backed by Gemini.

    Example:
        client = GeminiPredictionClient(settings.gemini)
        analyses = await client.analyze_batch(bills, run_date=date.today())
        await client.close()
    """

    def __init__(
        self,
        config: GeminiConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_predictions_per_bill: int = MAX_PREDICTIONS_PER_BILL,
        description_max_chars: int = 500
    ):
        """
        Initialize Gemini client.

        Args:
            config: Gemini settings (key, models, retry budget)
            transport: Optional httpx transport (used by tests)
            sleep: Awaitable sleep used between retries
            max_predictions_per_bill: Stocks kept per bill after validation
            description_max_chars: Description truncation for the prompt
        """
        self.config = config
        self.models = list(config.models)
        self.max_predictions_per_bill = max_predictions_per_bill
        self.description_max_chars = description_max_chars
        self._sleep = sleep
        self._api_key = config.api_key or ""
        self.base_url = config.base_url.rstrip("/")

        self.client = httpx.AsyncClient(
            timeout=config.timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport
        )

    async def _generate_with_model(self, model: str, prompt: str) -> str:
        """One generateContent call against one model"""
        response = await self.client.post(
            f"{self.base_url}/models/{model}:generateContent",
            params={"key": self._api_key},
            json={
                "contents": [
                    {
                        "role": "user",
                        "parts": [{"text": prompt}],
                    }
                ],
                "generationConfig": {
                    "temperature": self.config.temperature,
                    "maxOutputTokens": self.config.max_output_tokens,
                },
            },
        )
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as e:
            raise ModelOutputParseError(
                f"{model} returned a non-JSON envelope: {e}",
                raw_text=response.text
            ) from e

        text = extract_text(payload)
        if text is None:
            logger.error(f"{model} returned no candidate text: {payload!r}")
            raise ModelOutputParseError(f"{model} returned no candidate text", raw_text=response.text)

        logger.debug(f"{model} returned {len(text)} characters")
        return text

    async def generate(self, prompt: str) -> str:
        """
        Run the prompt against each model in priority order.

        Transient failures are retried per model with exponential backoff;
        any other HTTP error moves straight to the next model.

        Raises:
            ModelUnavailableError: Every model failed
            ModelOutputParseError: A model answered without usable text
        """
        failures: Dict[str, str] = {}

        for model in self.models:
            try:
                return await retry_async(
                    partial(self._generate_with_model, model, prompt),
                    max_attempts=self.config.max_attempts,
                    base_delay=self.config.base_delay_seconds,
                    logger_instance=logger,
                    sleep=self._sleep,
                    label=f"gemini {model}"
                )
            except RetryError as e:
                failures[model] = str(e.last_exception)
                logger.warning(f"Model {model} exhausted its retries, falling back")
            except httpx.HTTPError as e:
                failures[model] = str(e)
                logger.warning(f"Model {model} failed with a non-transient error: {e}")

        raise ModelUnavailableError(
            f"All models failed: {', '.join(self.models) or '(none configured)'}",
            attempts=failures
        )

    async def analyze_batch(
        self,
        bills: Sequence[PromptBill],
        run_date: Optional[date] = None
    ) -> List[BillAnalysis]:
        """
        Analyze one batch of bills.

        Args:
            bills: Bills with external_id, title and description
            run_date: Date decision dates are bounded against (default: today)

        Returns:
            Validated analyses; bills the model skipped or got wrong are absent

        Raises:
            ModelUnavailableError: No model produced a response
            ModelOutputParseError: The response text was not a JSON array/object
        """
        run_date = run_date or date.today()
        prompt = build_batch_prompt(
            bills,
            run_date=run_date,
            description_max_chars=self.description_max_chars,
            max_stocks=self.max_predictions_per_bill
        )

        logger.info(f"Analyzing batch of {len(bills)} bills")

        text = await self.generate(prompt)
        records = parse_model_output(text)
        analyses = validate_analyses(records, run_date, max_stocks=self.max_predictions_per_bill)

        logger.info(f"Batch returned {len(analyses)} valid analyses for {len(bills)} bills")
        return analyses

    async def close(self):
        """Close HTTP client connection"""
        await self.client.aclose()
