from pathlib import Path

from vigilance.analysis.exceptions import AnalysisError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"

ANALYSIS_SYSTEM_PROMPT = "analysis_system.txt"
ANALYSIS_USER_PROMPT = "analysis_user.txt"
NARRATIVE_SYSTEM_PROMPT = "narrative_system.txt"


def load_prompt(name: str, prompt_dir: Path | None = None) -> str:
    """Load a bundled prompt template by file name.

    Args:
        name: File name inside the prompt directory.
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Returns:
        The template text with trailing whitespace removed.

    Raises:
        AnalysisError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8").rstrip()
    except OSError as exc:
        raise AnalysisError(f"Failed to load prompt template {name}: {exc}") from exc
