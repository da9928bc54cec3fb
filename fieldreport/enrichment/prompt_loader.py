from pathlib import Path

from fieldreport.enrichment.exceptions import EnrichmentError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"

SOLUTION_SUMMARY_PROMPT = "solution_summary.txt"
NAMEPLATE_FIELDS_PROMPT = "nameplate_fields.txt"


def load_prompt(name: str, prompt_dir: Path | None = None) -> str:
    """Load a bundled prompt template by file name.

    Raises:
        EnrichmentError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EnrichmentError(f"Failed to load prompt template {name}: {exc}") from exc
