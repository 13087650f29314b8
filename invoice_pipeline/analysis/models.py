from dataclasses import dataclass


@dataclass(frozen=True)
class AnalysisResult:
    """Structured output of the text analysis step."""

    content: str
    amount: float
    fallback: bool = False
