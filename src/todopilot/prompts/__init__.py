"""Prompt texts of the assistant.

Three prompts ship with the package:

- system: assistant persona, used when the settings carry no system prompt
- response_contract: JSON reply shapes appended to every system message
- diagnostic: user message sent by the function-call diagnostic

A file ./prompts/<name>.txt in the working directory replaces the packaged one.
"""

from functools import lru_cache
from pathlib import Path

_PACKAGE_DIR = Path(__file__).parent

PROMPT_NAMES = frozenset({"system", "response_contract", "diagnostic"})


def prompt_paths(name: str) -> list[Path]:
    """Candidate files for a prompt, highest precedence first."""
    filename = f"{name}.txt"
    return [Path.cwd() / "prompts" / filename, _PACKAGE_DIR / filename]


@lru_cache(maxsize=len(PROMPT_NAMES))
def load_prompt(name: str) -> str:
    """Read a prompt, stripped of surrounding whitespace.

    Raises:
        KeyError: If name is not one of PROMPT_NAMES
        FileNotFoundError: If no candidate file exists
    """
    if name not in PROMPT_NAMES:
        raise KeyError(f"Unknown prompt '{name}' (known: {', '.join(sorted(PROMPT_NAMES))})")

    candidates = prompt_paths(name)
    for path in candidates:
        if path.is_file():
            return path.read_text(encoding="utf-8").strip()

    searched = "\n".join(f"  - {path}" for path in candidates)
    raise FileNotFoundError(f"Prompt '{name}' not found. Searched:\n{searched}")


def get_system_prompt() -> str:
    return load_prompt("system")


def get_response_contract() -> str:
    return load_prompt("response_contract")


def get_diagnostic_prompt() -> str:
    return load_prompt("diagnostic")


def clear_cache() -> None:
    """Forget loaded prompts so edited override files are picked up."""
    load_prompt.cache_clear()


__all__ = [
    "PROMPT_NAMES",
    "prompt_paths",
    "load_prompt",
    "get_system_prompt",
    "get_response_contract",
    "get_diagnostic_prompt",
    "clear_cache",
]
