"""
Hearing preparation advice from an LLM.

Optional and non-authoritative: the HTTP layer asks for a few preparation
bullet points for a case's next step and shows whatever comes back. Any
failure degrades to a fixed fallback message. Nothing here reads or writes the
ledger.
"""

from typing import Callable, Optional

from openai import OpenAI

from case_ledger.models.errors import AdvisoryUnavailable
from case_ledger.utils.logging_config import get_logger

FALLBACK_MESSAGE = "Could not load AI insights at this time."

SYSTEM_PROMPT = "You are a legal assistant helping an advocate prepare for court hearings."

USER_PROMPT = """The current case type is '{case_type}' and the next procedural step is '{step}'.
Here are the advocate's notes: '{notes}'.
Provide 3 concise, actionable bullet points for preparation for this specific court hearing."""

# (case_type, step, notes) -> advice text
Generator = Callable[[str, str, str], str]


class AdvisoryService:
    """Preparation suggestions with a static fallback"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 20.0,
        generator: Optional[Generator] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._generator = generator
        self._client: Optional[OpenAI] = None
        self.logger = get_logger("advisory")

    @property
    def enabled(self) -> bool:
        return self._generator is not None or bool(self.api_key)

    def _openai_generate(self, case_type: str, step: str, notes: str) -> str:
        if not self.api_key:
            raise AdvisoryUnavailable("No advisory API key configured")
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)

        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": USER_PROMPT.format(case_type=case_type, step=step, notes=notes)},
            ],
            temperature=0.3,
            max_tokens=300,
        )
        text = (response.choices[0].message.content or "").strip()
        if not text:
            raise AdvisoryUnavailable("Empty advisory response")
        return text

    def generate(self, case_type: str, step: str, notes: str) -> str:
        """Raw generation; raises on any failure"""
        generator = self._generator or self._openai_generate
        return generator(case_type or "", step or "", notes or "")

    def suggest(self, case_type: str, step: str, notes: str) -> str:
        """Advice text, or FALLBACK_MESSAGE if the generator is unavailable"""
        try:
            return self.generate(case_type, step, notes)
        except Exception as e:
            self.logger.warning(
                "Advisory generation failed, using fallback",
                extra={"event": "advisory_unavailable", "error": str(e), "error_type": type(e).__name__},
            )
            return FALLBACK_MESSAGE
