"""
Recovery of a JSON object from free-text model output.

Models are asked for JSON but may wrap it in a markdown fence or in prose.
Strategies are tried in priority order and the first one that yields a JSON
object wins; each strategy returns a tagged result instead of raising.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Union
from loguru import logger

from ..core.errors import ExtractionParseError

FENCED_BLOCK = re.compile(r"```(?:[\w-]+)?\s*([\s\S]*?)\s*```")
BRACED_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass
class Parsed:
    value: dict
    strategy: str = ""


@dataclass
class Failed:
    reason: str
    attempts: list[str] = field(default_factory=list)


ParseResult = Union[Parsed, Failed]


def _load_object(candidate: str) -> ParseResult:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return Failed(f"invalid JSON: {e.msg} at position {e.pos}")
    if not isinstance(value, dict):
        return Failed(f"expected a JSON object, got {type(value).__name__}")
    return Parsed(value)


def from_fenced_block(text: str) -> ParseResult:
    match = FENCED_BLOCK.search(text)
    if not match:
        return Failed("no fenced code block")
    return _load_object(match.group(1).strip())


def from_whole_text(text: str) -> ParseResult:
    return _load_object(text.strip())


def from_braced_substring(text: str) -> ParseResult:
    match = BRACED_OBJECT.search(text)
    if not match:
        return Failed("no {...} substring")
    return _load_object(match.group(0))


STRATEGIES: list[tuple[str, Callable[[str], ParseResult]]] = [
    ("fenced_block", from_fenced_block),
    ("whole_text", from_whole_text),
    ("braced_substring", from_braced_substring),
]


def parse_extraction(text: str) -> ParseResult:
    """Run the strategies in order and return the first successful parse"""
    attempts = []
    for name, strategy in STRATEGIES:
        result = strategy(text or "")
        if isinstance(result, Parsed):
            result.strategy = name
            logger.debug("Recovered JSON from model output", strategy=name)
            return result
        attempts.append(f"{name}: {result.reason}")
    return Failed("no JSON object could be recovered", attempts=attempts)


def parse(text: str) -> dict[str, Any]:
    """
    Recover the JSON object embedded in model output.

    Raises:
        ExtractionParseError: when every strategy fails
    """
    result = parse_extraction(text)
    if isinstance(result, Parsed):
        return result.value

    logger.error("All JSON recovery strategies failed", raw_length=len(text or ""), attempts=result.attempts)
    raise ExtractionParseError(
        "Failed to parse any valid JSON from AI response",
        raw_text=text or "",
        reasons=result.attempts,
    )
