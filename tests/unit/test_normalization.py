from __future__ import annotations

import re

import pytest

from quizforge.ai.normalization import (
  MULTIPLE_CHOICE,
  SINGLE_CHOICE,
  TRUE_FALSE,
  coerce_options,
  normalize_question,
  normalize_questions,
  normalize_units,
  option_letter,
  reconcile_choice_type,
)


@pytest.mark.parametrize(
  ("answer", "expected_type", "expected_answer"),
  [
    ("A,B", MULTIPLE_CHOICE, "A,B"),
    ("A, C", MULTIPLE_CHOICE, "A, C"),
    ("a,b", MULTIPLE_CHOICE, "a,b"),
    ("AB", MULTIPLE_CHOICE, "A,B"),
    ("acd", MULTIPLE_CHOICE, "A,C,D"),
    ("ABCD", MULTIPLE_CHOICE, "A,B,C,D"),
    (" BD ", MULTIPLE_CHOICE, "B,D"),
    ("A", SINGLE_CHOICE, "A"),
    ("b", SINGLE_CHOICE, "b"),
    ("AE", SINGLE_CHOICE, "AE"),
    ("A B", SINGLE_CHOICE, "A B"),
    ("Paris", SINGLE_CHOICE, "Paris"),
    ("", SINGLE_CHOICE, ""),
    (None, SINGLE_CHOICE, None),
  ],
)
def test_multiple_choice_reconciliation(answer: str | None, expected_type: str, expected_answer: str | None) -> None:
  assert reconcile_choice_type(MULTIPLE_CHOICE, answer) == (expected_type, expected_answer)


@pytest.mark.parametrize("question_type", [SINGLE_CHOICE, TRUE_FALSE, "FILL_BLANK"])
def test_reconciliation_leaves_other_types_alone(question_type: str) -> None:
  assert reconcile_choice_type(question_type, "AB") == (question_type, "AB")


def test_option_letters_round_trip_with_positions() -> None:
  options = coerce_options(["w", "x", "y", "z"])
  assert [option["id"] for option in options] == ["A", "B", "C", "D"]
  assert [option["text"] for option in options] == ["w", "x", "y", "z"]
  assert [option_letter(index) for index in range(4)] == ["A", "B", "C", "D"]


def test_coerce_options_accepts_mapping_and_partial_dicts() -> None:
  assert coerce_options({"A": "one", "B": "two"}) == [{"id": "A", "text": "one"}, {"id": "B", "text": "two"}]
  assert coerce_options([{"text": "one"}, {"id": "Z", "text": "two"}]) == [{"text": "one", "id": "A"}, {"id": "Z", "text": "two"}]


def test_missing_type_defaults_to_single_choice_with_placeholders() -> None:
  question = normalize_question({"question": "Q"}, "fallback-1")
  assert question["type"] == SINGLE_CHOICE
  assert [option["text"] for option in question["options"]] == ["Option A", "Option B", "Option C", "Option D"]
  assert question["id"] == "fallback-1"


def test_empty_option_list_counts_as_missing() -> None:
  question = normalize_question({"question": "Q", "type": MULTIPLE_CHOICE, "options": [], "correctAnswer": "A,C"}, "q")
  assert len(question["options"]) == 4
  assert question["type"] == MULTIPLE_CHOICE


@pytest.mark.parametrize("options", [None, [], ["only one"], ["a", "b", "c"]])
def test_true_false_forces_canonical_options(options: list[str] | None) -> None:
  item = {"question": "Q", "type": TRUE_FALSE}
  if options is not None:
    item["options"] = options
  question = normalize_question(item, "q")
  assert question["options"] == [{"id": "A", "text": "Correct"}, {"id": "B", "text": "Incorrect"}]


def test_true_false_with_two_options_keeps_their_text() -> None:
  question = normalize_question({"question": "Q", "type": TRUE_FALSE, "options": ["Yes", "No"]}, "q")
  assert question["options"] == [{"id": "A", "text": "Yes"}, {"id": "B", "text": "No"}]


def test_list_answers_are_joined_before_reconciliation() -> None:
  question = normalize_question({"question": "Q", "type": MULTIPLE_CHOICE, "options": ["a", "b", "c"], "correctAnswer": ["A", "C"]}, "q")
  assert question["correctAnswer"] == "A,C"
  assert question["type"] == MULTIPLE_CHOICE


def test_unknown_keys_survive_and_existing_id_is_kept() -> None:
  question = normalize_question({"id": "keep-me", "question": "Q", "explanation": "because", "difficulty": 2}, "q")
  assert question["id"] == "keep-me"
  assert question["explanation"] == "because"
  assert question["difficulty"] == 2


def test_generated_ids_are_unique_within_a_call() -> None:
  questions = normalize_questions([{"question": "Q1"}, {"question": "Q2"}, {"question": "Q3"}])
  ids = [question["id"] for question in questions]
  assert len(set(ids)) == 3
  assert all(re.fullmatch(r"gen-\d+-\d", question_id) for question_id in ids)


def test_units_get_lesson_defaults_and_normalized_challenges() -> None:
  units = normalize_units(
    [
      {
        "title": "Basics",
        "lessons": [
          {"title": "Intro", "challenges": [{"question": "Q", "type": TRUE_FALSE}]},
          {"completed": True, "stars": 3},
        ],
      },
      {"lessons": "not a list"},
    ]
  )

  first, second = units
  assert first["id"].startswith("unit-gen-")
  intro, untitled = first["lessons"]
  assert intro["locked"] is False and untitled["locked"] is True
  assert untitled["title"] == "Lesson 2"
  assert untitled["completed"] is False and untitled["stars"] == 0
  assert intro["challenges"][0]["options"][1]["text"] == "Incorrect"
  assert intro["challenges"][0]["id"].startswith("gen-")
  assert second["title"] == "Unit 2"
  assert second["lessons"] == []
