from pathlib import Path

from snapsight.errors import ConfigurationError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"

INSTRUCTIONS_DELIMITER = "\n\n--- Additional instructions ---\n"
PROBLEM_DELIMITER = "\n\n--- Problem ---\n"


def load_base_prompt(path: Path | None = None) -> str:
    """Load the base instruction template.

    Args:
        path: Path to the template file.
              Defaults to the bundled base_prompt.txt.

    Raises:
        ConfigurationError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "base_prompt.txt"
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigurationError(f"Failed to load prompt template: {exc}") from exc


def build_image_prompt(base_prompt: str, instructions: str = "") -> str:
    """Base template first, then the caller's instructions after a delimiter."""
    if not instructions.strip():
        return base_prompt
    return f"{base_prompt}{INSTRUCTIONS_DELIMITER}{instructions.strip()}"


def build_text_prompt(base_prompt: str, problem: str) -> str:
    return f"{base_prompt}{PROBLEM_DELIMITER}{problem.strip()}"
