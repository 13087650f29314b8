"""Offline analysis client.

Returns a fixed, schema-valid answer without any network call. Selected with
``ANALYSIS_PROVIDER=example`` for local runs and end-to-end tests.
"""

import json
from typing import ClassVar

from invoice_pipeline.analysis.client_base import BaseAnalysisClient


class ExampleClientAdapter(BaseAnalysisClient):
    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "content": "Example invoice summary.",
        "amount": 0.0,
    }

    def __init__(self, response: dict[str, object] | None = None) -> None:
        self._response = response if response is not None else self.DEFAULT_RESPONSE

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        return json.dumps(self._response)
