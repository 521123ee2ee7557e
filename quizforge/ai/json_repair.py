"""Lenient JSON parsing for near-JSON model output."""

from __future__ import annotations

import json
import re
from typing import Any

# Complete string literal, structural character, bare word, whitespace, or any stray character.
_TOKEN_RE = re.compile(r'"(?:\\.|[^"\\])*"|[{}\[\]:,]|[^\s{}\[\]:,"]+|\s+|.', re.DOTALL)
_STRUCTURAL = frozenset("{}[]:,")


def loads_lenient(raw: str) -> Any:
  """Parse JSON strictly, then once more after repairing common model mistakes.

  The repair pass drops trailing and doubled commas, quotes bare object keys
  and inserts commas between values that run together. The original strict
  parse error is raised when the repaired text still does not parse.
  """
  try:
    return json.loads(raw)
  except json.JSONDecodeError as exc:
    strict_error = exc

  repaired = repair_json(raw)
  if repaired == raw:
    raise strict_error
  try:
    return json.loads(repaired)
  except json.JSONDecodeError:
    raise strict_error from None


def _is_string(token: str) -> bool:
  return len(token) >= 2 and token[0] == '"' and token[-1] == '"'


def _is_bare_word(token: str) -> bool:
  return bool(token) and token not in _STRUCTURAL and token[0] != '"' and not token.isspace()


def _ends_value(token: str) -> bool:
  return _is_string(token) or token in {"}", "]"} or _is_bare_word(token)


def _starts_value(token: str) -> bool:
  return _is_string(token) or token in {"{", "["} or _is_bare_word(token)


def repair_json(raw: str) -> str:
  """Return ``raw`` with structural slips repaired; string contents are never touched."""
  tokens = _TOKEN_RE.findall(raw)

  # Next non-whitespace token after each position.
  next_significant: list[str | None] = [None] * len(tokens)
  upcoming: str | None = None
  for index in range(len(tokens) - 1, -1, -1):
    next_significant[index] = upcoming
    if not tokens[index].isspace():
      upcoming = tokens[index]

  output: list[str] = []
  previous = ""
  for index, token in enumerate(tokens):
    if token.isspace():
      output.append(token)
      continue

    following = next_significant[index]
    if token == ",":
      if previous in {"", ",", "[", "{"} or following in {"}", "]"}:
        continue
    elif _ends_value(previous) and _starts_value(token):
      output.append(",")

    if _is_bare_word(token) and following == ":":
      token = f'"{token}"'

    output.append(token)
    previous = token

  return "".join(output)
