"""AI-powered invoice text analyzer."""

import json
from pathlib import Path

from invoice_pipeline.analysis.client_base import BaseAnalysisClient
from invoice_pipeline.analysis.exceptions import AnalysisError
from invoice_pipeline.analysis.models import AnalysisResult
from invoice_pipeline.analysis.prompt_loader import (
    load_json_schema,
    load_prompt_template,
    load_system_prompt,
)
from invoice_pipeline.analysis.validator import validate_and_build
from invoice_pipeline.logging.logger import Log

FALLBACK_CONTENT = (
    "The provided text does not contain enough detail to produce a "
    "structured summary of the invoice."
)


class FallbackAnalysisPolicy:
    """Any analysis failure yields the canned sentence with amount 0.

    The fallback is reported downstream exactly like a real result, so the
    invoice still reaches COMPLETED.
    """

    content: str = FALLBACK_CONTENT
    amount: float = 0.0

    def result(self) -> AnalysisResult:
        return AnalysisResult(content=self.content, amount=self.amount, fallback=True)


class InvoiceAnalyzer:
    """Turns raw extracted text into a {content, amount} pair."""

    def __init__(
        self,
        *,
        client: BaseAnalysisClient,
        model: str,
        temperature: float = 0.0,
        fallback: FallbackAnalysisPolicy | None = None,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt_path: Path | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._fallback = fallback or FallbackAnalysisPolicy()
        self._prompt_template = load_prompt_template(prompt_template_path)
        self._system_prompt = load_system_prompt(system_prompt_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    def analyze(self, invoice_id: int, content: str) -> AnalysisResult:
        """Analyze invoice text. Never raises."""
        try:
            result = self._analyze(content)
        except Exception as exc:
            Log.warning(f"Analysis of invoice {invoice_id} fell back to default: {exc}")
            return self._fallback.result()
        Log.info(f"Analysis of invoice {invoice_id} complete: amount={result.amount}")
        return result

    def _analyze(self, content: str) -> AnalysisResult:
        prompt = self._build_prompt(content)
        Log.debug(f"Analysis prompt:\n{prompt}")

        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
        )
        Log.debug(f"AI raw response:\n{raw_response}")

        return validate_and_build(self._parse_json(raw_response))

    def _build_prompt(self, content: str) -> str:
        return self._prompt_template.format(
            invoice_text=content,
            json_schema=self._json_schema,
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise AnalysisError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise AnalysisError("JSON response must be an object")
        return parsed
