"""Recover generated items from possibly malformed model JSON.

Parsing first tries the whole payload. When that fails, a string-aware scanner
walks the raw text for object spans that look like one record of the expected
shape, including an object left open by a truncated response, and parses each
span on its own. Spans that still fail but expose their headline field become
rescue fragments for diagnostics. Nothing in here raises on bad input.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal

from quizforge.ai.json_repair import loads_lenient
from quizforge.ai.normalization import normalize_questions, normalize_units
from quizforge.utils.ids import now_millis

logger = logging.getLogger(__name__)

ItemShape = Literal["questions", "units"]

RAW_PREVIEW_CHARS = 200
PARSE_ERROR_MARKER = "Parse error"

_WRAPPER_KEYS: dict[str, tuple[str, ...]] = {"questions": ("questions", "items", "data"), "units": ("units", "items", "data")}
_HEADLINE_FIELD: dict[str, str] = {"questions": "question", "units": "title"}
_HEADLINE_RE: dict[str, re.Pattern[str]] = {name: re.compile(rf'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)"') for name in ("question", "title")}


@dataclass(frozen=True)
class RescueFragment:
  """Headline text salvaged from a record that could not be parsed."""

  field: str
  text: str
  raw_text: str
  error: str = PARSE_ERROR_MARKER

  def to_dict(self) -> dict[str, str]:
    return {self.field: self.text, "error": self.error, "rawText": self.raw_text}


@dataclass
class ParseOutcome:
  """Normalized items and fragments recovered from one payload."""

  valid_items: list[dict[str, Any]] = field(default_factory=list)
  fragments: list[RescueFragment] = field(default_factory=list)
  spans_found: int = 0
  parse_error: str | None = None

  @property
  def rescued_count(self) -> int:
    return len(self.valid_items)

  @property
  def invalid_count(self) -> int:
    return len(self.fragments)


@dataclass(frozen=True)
class ObjectSpan:
  start: int
  end: int
  keys: frozenset[str]
  closed: bool


def _string_end(text: str, start: int) -> int:
  """Return the index of the quote closing the string opened at ``start``, or len(text)."""
  index = start + 1
  length = len(text)
  while index < length:
    char = text[index]
    if char == "\\":
      index += 2
      continue
    if char == '"':
      return index
    index += 1
  return length


def scan_object_spans(text: str) -> list[ObjectSpan]:
  """Find every ``{...}`` span with the keys it directly owns, ordered by start.

  Braces inside string literals are ignored. Objects still open at the end of
  the text are reported with ``closed=False`` and run to the end.
  """
  spans: list[ObjectSpan] = []
  stack: list[tuple[str, int, set[str]]] = []
  length = len(text)
  index = 0

  while index < length:
    char = text[index]
    if char == '"':
      end = _string_end(text, index)
      if stack and stack[-1][0] == "{" and end < length:
        cursor = end + 1
        while cursor < length and text[cursor].isspace():
          cursor += 1
        if cursor < length and text[cursor] == ":":
          stack[-1][2].add(text[index + 1 : end])
      index = end + 1
      continue

    if char in "{[":
      stack.append((char, index, set()))
    elif char in "}]":
      opener = "{" if char == "}" else "["
      if any(frame[0] == opener for frame in stack):
        # Unwind to the matching opener; anything skipped was never closed.
        while stack:
          frame_opener, start, keys = stack.pop()
          if frame_opener == opener:
            if opener == "{":
              spans.append(ObjectSpan(start, index + 1, frozenset(keys), True))
            break
          if frame_opener == "{":
            spans.append(ObjectSpan(start, index, frozenset(keys), False))
    index += 1

  for frame_opener, start, keys in stack:
    if frame_opener == "{":
      spans.append(ObjectSpan(start, length, frozenset(keys), False))

  spans.sort(key=lambda span: span.start)
  return spans


def _outermost_with_keys(spans: list[ObjectSpan], required: tuple[str, ...]) -> list[ObjectSpan]:
  selected: list[ObjectSpan] = []
  covered_until = -1
  for span in spans:
    if span.start < covered_until:
      continue
    if all(key in span.keys for key in required):
      selected.append(span)
      covered_until = span.end
  return selected


def _candidate_spans(text: str, shape: ItemShape) -> list[ObjectSpan]:
  spans = scan_object_spans(text)
  if shape == "questions":
    return _outermost_with_keys(spans, ("question",))

  units = _outermost_with_keys(spans, ("title", "lessons"))
  if units:
    return units
  # Severely truncated output may have lost every "lessons" key.
  return _outermost_with_keys(spans, ("title",))


def _preview(raw: str) -> str:
  if len(raw) > RAW_PREVIEW_CHARS:
    return raw[:RAW_PREVIEW_CHARS] + "..."
  return raw


def _decode_literal(body: str) -> str:
  try:
    return json.loads(f'"{body}"')
  except ValueError:
    return body


def _has_headline(item: dict[str, Any], shape: ItemShape) -> bool:
  if shape == "questions":
    return bool(item.get("question"))
  return bool(item.get("title") or item.get("id"))


def _items_from_document(document: Any, shape: ItemShape) -> list[dict[str, Any]]:
  if isinstance(document, list):
    return [item for item in document if isinstance(item, dict)]
  if not isinstance(document, dict):
    return []

  for key in _WRAPPER_KEYS[shape]:
    wrapped = document.get(key)
    if isinstance(wrapped, list):
      return [item for item in wrapped if isinstance(item, dict)]

  if _has_headline(document, shape):
    return [document]
  return []


def _recover_fragments(payload: str, shape: ItemShape, outcome: ParseOutcome) -> list[dict[str, Any]]:
  headline = _HEADLINE_FIELD[shape]
  id_prefix = "rescued" if shape == "questions" else "unit-rescued"
  stamp = now_millis()
  candidates: list[dict[str, Any]] = []

  spans = _candidate_spans(payload, shape)
  outcome.spans_found = len(spans)
  for index, span in enumerate(spans):
    chunk = payload[span.start : span.end]
    try:
      item = loads_lenient(chunk)
    except (ValueError, RecursionError):
      item = None

    if isinstance(item, dict):
      if _has_headline(item, shape):
        if not item.get("id"):
          item["id"] = f"{id_prefix}-{stamp}-{index}"
        candidates.append(item)
      continue

    match = _HEADLINE_RE[headline].search(chunk)
    if match:
      outcome.fragments.append(RescueFragment(field=headline, text=_decode_literal(match.group(1)), raw_text=_preview(chunk)))

  return candidates


def parse_generated_items(payload: str | None, shape: ItemShape) -> ParseOutcome:
  """Parse and normalize generated items of ``shape`` from an extracted payload."""
  outcome = ParseOutcome()
  text = payload or ""

  try:
    document = loads_lenient(text)
  except (ValueError, RecursionError) as exc:
    outcome.parse_error = str(exc) or type(exc).__name__
    logger.info("Whole-document parse failed for %s: %s", shape, outcome.parse_error)
    candidates = _recover_fragments(text, shape, outcome)
    logger.info("Fragment recovery for %s: spans=%d valid=%d fragments=%d", shape, outcome.spans_found, len(candidates), len(outcome.fragments))
  else:
    candidates = _items_from_document(document, shape)
    outcome.spans_found = len(candidates)

  if shape == "questions":
    outcome.valid_items = normalize_questions(candidates)
  else:
    outcome.valid_items = normalize_units(candidates)
  return outcome
