from typing import ClassVar

from invoice_pipeline.analysis.analyzer import InvoiceAnalyzer
from invoice_pipeline.analysis.example_client_adapter import ExampleClientAdapter
from invoice_pipeline.analysis.openai_client_adapter import OpenAIClientAdapter
from invoice_pipeline.config.settings import Settings


class AnalyzerFactory:
    """Creates the invoice analyzer for the configured provider."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> InvoiceAnalyzer:
        provider = settings.analysis_provider.lower()
        if provider == "example":
            return InvoiceAnalyzer(client=ExampleClientAdapter(), model="example")
        client = OpenAIClientAdapter(
            api_key=settings.analysis_api_key,
            timeout_seconds=settings.analysis_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return InvoiceAnalyzer(
            client=client,
            model=settings.analysis_model_name,
            temperature=settings.analysis_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        override = (settings.analysis_base_url or "").strip()
        if provider == "openai":
            return override or None
        if provider == "openai_compatible":
            if not override:
                raise ValueError(
                    "analysis_base_url is required for analysis_provider=openai_compatible"
                )
            return override
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return override or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(f"Unknown analysis provider '{provider}'. Choose from: {supported}")
