from pathlib import Path

from invoice_pipeline.analysis.exceptions import AnalysisError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def _read(path: Path, what: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AnalysisError(f"Failed to load {what}: {exc}") from exc


def load_prompt_template(path: Path | None = None) -> str:
    """Load the user prompt template.

    The template carries ``{invoice_text}`` and ``{json_schema}`` placeholders.

    Raises:
        AnalysisError: if the file cannot be read.
    """
    return _read(path or _DEFAULT_PROMPT_DIR / "analysis_prompt.txt", "prompt template")


def load_system_prompt(path: Path | None = None) -> str:
    return _read(path or _DEFAULT_PROMPT_DIR / "system_prompt.txt", "system prompt").strip()


def load_json_schema(path: Path | None = None) -> str:
    """Load the response JSON schema as raw text.

    Raises:
        AnalysisError: if the file cannot be read.
    """
    return _read(path or _DEFAULT_PROMPT_DIR / "analysis_schema.json", "JSON schema")
