"""
Drug-interaction advisory for checkout.

The ledger never decides whether a combination is safe. This module asks an
external LLM (Groq) for a one-sentence warning and hands the text back; the
transaction service treats any text as a hold that the cashier must override.

FAIL-OPEN: a missing key, timeout, rate limit or any other error yields
"no hold" so checkout stays available. This trades clinical safety for
availability and is logged every time it happens.
"""

import logging
import time
from typing import Callable, List, Optional

from groq import Groq, APIError, APITimeoutError, RateLimitError

from trustmeds.core.config import settings

logger = logging.getLogger(__name__)

NO_INTERACTION_MARKER = "no significant interactions"

PROMPT_TEMPLATE = (
    "Check if there are any dangerous drug-drug interactions between these medicines: {names}. "
    "If there are, provide a 1-sentence warning for a pharmacist. "
    'If safe, respond "No significant interactions detected."'
)


class GroqClient:
    """
    Minimal wrapper for the Groq chat API.

    - Temperature 0, small max_tokens, short timeout
    - Retries transient timeouts / rate limits with exponential backoff
    - Returns None on any failure
    """

    MODEL = "llama-3.3-70b-versatile"
    TEMPERATURE = 0
    MAX_TOKENS = 128
    TIMEOUT_SECONDS = 3

    def __init__(self, api_key: Optional[str] = None):
        api_key = settings.GROQ_API_KEY if api_key is None else api_key

        if not api_key:
            logger.warning("GROQ_API_KEY not set; interaction advisory disabled")
            self.client = None
        else:
            try:
                self.client = Groq(api_key=api_key, timeout=self.TIMEOUT_SECONDS)
                logger.info("Groq client initialized")
            except Exception as e:
                logger.error(f"Failed to initialize Groq client: {e}")
                self.client = None

    def is_available(self) -> bool:
        return self.client is not None

    def complete(self, prompt: str, max_retries: int = 2) -> Optional[str]:
        if not self.is_available():
            return None

        for attempt in range(max_retries + 1):
            try:
                response = self.client.chat.completions.create(
                    model=self.MODEL,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.TEMPERATURE,
                    max_tokens=self.MAX_TOKENS,
                    stream=False,
                )
                if response.choices:
                    return response.choices[0].message.content
                logger.warning("Groq returned empty response")
                return None

            except (APITimeoutError, RateLimitError) as e:
                if attempt < max_retries:
                    wait_time = 0.5 * (2 ** attempt)
                    logger.warning(f"Groq {type(e).__name__}, retry {attempt+1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning(f"Groq {type(e).__name__} after {max_retries} retries")
                    return None

            except APIError as e:
                logger.error(f"Groq API error (permanent): {e}")
                return None

        return None


class InteractionAdvisor:
    """Turns a cart's medicine names into an optional hold message."""

    def __init__(self, complete: Optional[Callable[[str], Optional[str]]] = None):
        # `complete` maps a prompt to model text; GroqClient.complete by default
        if complete is None:
            complete = GroqClient().complete
        self._complete = complete

    def check(self, medicine_names: List[str]) -> Optional[str]:
        names = sorted({n.strip() for n in medicine_names if n and n.strip()})
        if len(names) < 2:
            return None
        try:
            text = self._complete(PROMPT_TEMPLATE.format(names=", ".join(names)))
        except Exception as e:
            logger.warning(f"Interaction advisory failed, proceeding without hold: {e}", exc_info=True)
            return None
        if not text or not text.strip():
            return None
        text = text.strip()
        if NO_INTERACTION_MARKER in text.lower():
            return None
        return text
