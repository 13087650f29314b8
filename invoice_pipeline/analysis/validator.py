"""Validates parsed model output against the {content, amount} contract."""

import math
from typing import Any

from invoice_pipeline.analysis.exceptions import AnalysisValidationError
from invoice_pipeline.analysis.models import AnalysisResult

_FIELDS = frozenset({"content", "amount"})


def validate_and_build(data: dict[str, Any]) -> AnalysisResult:
    """Validate raw parsed JSON and build an AnalysisResult.

    Raises:
        AnalysisValidationError: on any validation failure.
    """
    missing = _FIELDS - data.keys()
    if missing:
        raise AnalysisValidationError(f"Missing required field(s): {sorted(missing)}")
    extra = data.keys() - _FIELDS
    if extra:
        raise AnalysisValidationError(f"Unexpected field(s): {sorted(extra)}")

    content = data["content"]
    if not isinstance(content, str):
        raise AnalysisValidationError("'content' must be a string")

    amount = data["amount"]
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise AnalysisValidationError("'amount' must be a number")
    if not math.isfinite(amount):
        raise AnalysisValidationError("'amount' must be finite")

    return AnalysisResult(content=content, amount=float(amount))
