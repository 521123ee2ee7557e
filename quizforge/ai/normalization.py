"""Normalize generated questions and curriculum units into canonical records."""

from __future__ import annotations

import re
import string
from collections.abc import Iterable
from typing import Any

from quizforge.utils.ids import now_millis

SINGLE_CHOICE = "SINGLE_CHOICE"
MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
TRUE_FALSE = "TRUE_FALSE"
FILL_BLANK = "FILL_BLANK"
QUESTION_TYPES: tuple[str, ...] = (SINGLE_CHOICE, MULTIPLE_CHOICE, TRUE_FALSE, FILL_BLANK)
CHOICE_TYPES = frozenset({SINGLE_CHOICE, MULTIPLE_CHOICE})

TRUE_FALSE_OPTIONS: tuple[tuple[str, str], ...] = (("A", "Correct"), ("B", "Incorrect"))
PLACEHOLDER_OPTIONS: tuple[tuple[str, str], ...] = (("A", "Option A"), ("B", "Option B"), ("C", "Option C"), ("D", "Option D"))

_CONSECUTIVE_LETTERS_RE = re.compile(r"^[A-Da-d]{2,}$")


def option_letter(index: int) -> str:
  """Return A, B, C... for an option position, falling back to digits past Z."""
  if index < len(string.ascii_uppercase):
    return string.ascii_uppercase[index]
  return str(index + 1)


def reconcile_choice_type(question_type: str, correct_answer: Any) -> tuple[str, Any]:
  """Decide whether a MULTIPLE_CHOICE question really has more than one answer.

  Only MULTIPLE_CHOICE is inspected; other types pass through unchanged.

  * an answer containing a comma stays MULTIPLE_CHOICE, unchanged;
  * two or more letters A-D with no separator ("AB", "acd") stay
    MULTIPLE_CHOICE and are rewritten upper-case and comma-joined ("A,B");
  * anything else, including a missing answer, becomes SINGLE_CHOICE.

  "AB" is read as two selected options, never as a single two-letter id.
  """
  if question_type != MULTIPLE_CHOICE:
    return question_type, correct_answer

  answer = correct_answer if isinstance(correct_answer, str) else ""
  if "," in answer:
    return MULTIPLE_CHOICE, correct_answer

  compact = answer.strip()
  if _CONSECUTIVE_LETTERS_RE.match(compact):
    return MULTIPLE_CHOICE, ",".join(compact.upper())

  return SINGLE_CHOICE, correct_answer


def coerce_options(options: Any) -> list[dict[str, Any]]:
  """Turn a dict, a list of strings or a list of dicts into lettered option entries."""
  if isinstance(options, dict):
    return [{"id": str(key), "text": value} for key, value in options.items()]

  coerced: list[dict[str, Any]] = []
  for index, option in enumerate(options):
    if isinstance(option, dict):
      entry = dict(option)
      entry.setdefault("id", option_letter(index))
      coerced.append(entry)
    else:
      coerced.append({"id": option_letter(index), "text": option if isinstance(option, str) else str(option)})
  return coerced


def _canonical_options(pairs: Iterable[tuple[str, str]]) -> list[dict[str, str]]:
  return [{"id": option_id, "text": text} for option_id, text in pairs]


def normalize_question(item: dict[str, Any], fallback_id: str) -> dict[str, Any]:
  """Return a normalized copy of one question; unknown keys are kept."""
  question = dict(item)

  question_type = question.get("type")
  if question_type not in QUESTION_TYPES:
    question_type = SINGLE_CHOICE

  options = question.get("options")
  if options is not None and not isinstance(options, list | dict):
    options = None

  if question_type == TRUE_FALSE and (not isinstance(options, list) or len(options) != 2):
    options = _canonical_options(TRUE_FALSE_OPTIONS)
  # An empty list counts as missing and gets the placeholder options.
  elif question_type in CHOICE_TYPES and not options:
    options = _canonical_options(PLACEHOLDER_OPTIONS)
  elif options is not None:
    options = coerce_options(options)

  answer = question.get("correctAnswer")
  if isinstance(answer, list):
    answer = ",".join(str(part) for part in answer)
  question_type, answer = reconcile_choice_type(question_type, answer)

  question["type"] = question_type
  if options is not None:
    question["options"] = options
  if answer is not None or "correctAnswer" in question:
    question["correctAnswer"] = answer
  if not question.get("id"):
    question["id"] = fallback_id
  return question


def normalize_questions(items: Iterable[dict[str, Any]], *, id_prefix: str | None = None) -> list[dict[str, Any]]:
  """Normalize a question list, giving id-less entries ``<prefix>-<index>``."""
  prefix = id_prefix or f"gen-{now_millis()}"
  return [normalize_question(item, f"{prefix}-{index}") for index, item in enumerate(items) if isinstance(item, dict)]


def normalize_units(items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
  """Normalize units and their lessons; only the first lesson of a unit is unlocked."""
  stamp = now_millis()
  units: list[dict[str, Any]] = []
  for unit_index, item in enumerate(items):
    if not isinstance(item, dict):
      continue
    unit = dict(item)
    if not unit.get("id"):
      unit["id"] = f"unit-gen-{stamp}-{unit_index}"
    if not unit.get("title"):
      unit["title"] = f"Unit {unit_index + 1}"

    lessons = unit.get("lessons") if isinstance(unit.get("lessons"), list) else []
    normalized_lessons = []
    for lesson_index, raw_lesson in enumerate(lesson for lesson in lessons if isinstance(lesson, dict)):
      lesson = dict(raw_lesson)
      if not lesson.get("id"):
        lesson["id"] = f"lesson-gen-{stamp}-{unit_index}-{lesson_index}"
      if not lesson.get("title"):
        lesson["title"] = f"Lesson {lesson_index + 1}"
      lesson["completed"] = False
      lesson["locked"] = lesson_index > 0
      lesson["stars"] = 0
      challenges = lesson.get("challenges") if isinstance(lesson.get("challenges"), list) else []
      lesson["challenges"] = normalize_questions(challenges, id_prefix=f"gen-{stamp}-{unit_index}-{lesson_index}")
      normalized_lessons.append(lesson)

    unit["lessons"] = normalized_lessons
    units.append(unit)
  return units
