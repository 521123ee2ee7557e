from __future__ import annotations

import pytest

from quizforge.ai.extraction import extract_json_payload
from quizforge.ai.parsing import parse_generated_items, scan_object_spans


def test_clean_question_array() -> None:
  payload = '[{"question":"Q1","type":"SINGLE_CHOICE","options":["x","y"],"correctAnswer":"A","explanation":"e"}]'
  outcome = parse_generated_items(payload, "questions")

  assert outcome.rescued_count == 1
  assert outcome.invalid_count == 0
  assert outcome.parse_error is None
  item = outcome.valid_items[0]
  assert item["options"] == [{"id": "A", "text": "x"}, {"id": "B", "text": "y"}]
  assert item["correctAnswer"] == "A"
  assert item["explanation"] == "e"


def test_fenced_block_inside_prose() -> None:
  raw = 'Here are your questions.\n```json\n[{"question":"Q"}]\n```\nLet me know if you need more.'
  payload = extract_json_payload(raw)
  assert payload == '[{"question":"Q"}]'

  outcome = parse_generated_items(payload, "questions")
  assert outcome.rescued_count == 1
  item = outcome.valid_items[0]
  assert item["type"] == "SINGLE_CHOICE"
  assert [option["id"] for option in item["options"]] == ["A", "B", "C", "D"]


def test_truncated_array_recovers_complete_items_and_rescues_the_rest() -> None:
  raw = '[{"question":"Q1","type":"TRUE_FALSE"},{"question":"Q2","type"'
  outcome = parse_generated_items(extract_json_payload(raw), "questions")

  assert outcome.parse_error
  assert outcome.rescued_count == 1
  assert outcome.valid_items[0]["question"] == "Q1"
  assert outcome.valid_items[0]["options"] == [{"id": "A", "text": "Correct"}, {"id": "B", "text": "Incorrect"}]
  assert outcome.invalid_count == 1
  fragment = outcome.fragments[0].to_dict()
  assert fragment["question"] == "Q2"
  assert fragment["error"] == "Parse error"
  assert fragment["rawText"].startswith('{"question":"Q2"')


def test_wrapper_object_is_unwrapped() -> None:
  outcome = parse_generated_items('{"questions": [{"question": "A?"}, {"question": "B?"}, "stray"]}', "questions")
  assert [item["question"] for item in outcome.valid_items] == ["A?", "B?"]
  assert outcome.fragments == []


def test_single_object_of_expected_shape() -> None:
  outcome = parse_generated_items('{"title": "Unit", "lessons": [{"title": "L1"}]}', "units")
  assert outcome.rescued_count == 1
  assert outcome.valid_items[0]["lessons"][0]["locked"] is False


def test_nested_objects_are_not_mistaken_for_items() -> None:
  # The option objects lack "question" and the outer object owns it, so only one span qualifies.
  payload = '[{"question": "Q1", "options": [{"id": "A", "text": "{not a brace}"}], "type": "SINGLE_CHOICE"}, {"question": "Q2", "options": ['
  outcome = parse_generated_items(payload, "questions")
  assert outcome.spans_found == 2
  assert [item["question"] for item in outcome.valid_items] == ["Q1"]
  assert [fragment.text for fragment in outcome.fragments] == ["Q2"]


def test_truncated_units_keep_complete_units() -> None:
  payload = '{"units": [{"title": "U1", "lessons": [{"title": "L1", "challenges": [{"question": "Q"}]}]}, {"title": "U2", "lessons": [{"title": "L'
  outcome = parse_generated_items(payload, "units")
  assert [unit["title"] for unit in outcome.valid_items] == ["U1"]
  assert outcome.valid_items[0]["lessons"][0]["challenges"][0]["options"]
  assert [fragment.to_dict()["title"] for fragment in outcome.fragments] == ["U2"]


def test_recovered_item_without_id_gets_rescued_id() -> None:
  payload = '[{"question": "Q1"}, {"question": "Q2", "type": "SINGLE_CHOICE",, "options": ["a" "b"]} oops'
  outcome = parse_generated_items(payload, "questions")
  assert outcome.rescued_count == 2
  assert all(item["id"].startswith("rescued-") for item in outcome.valid_items)


def test_raw_text_preview_is_capped() -> None:
  long_text = "x" * 500
  payload = '[{"question": "Q", "explanation": "' + long_text
  outcome = parse_generated_items(payload, "questions")
  raw_text = outcome.fragments[0].raw_text
  assert len(raw_text) == 203
  assert raw_text.endswith("...")


@pytest.mark.parametrize(
  "payload",
  [
    None,
    "",
    "garbage",
    "[",
    "{{{{",
    '{"question": "unterminated',
    '[{"question": 1}]',
    '[{"question":"a"},,,{"question":"b"',
    '"just a string"',
    "42",
  ],
)
@pytest.mark.parametrize("shape", ["questions", "units"])
def test_never_raises_and_counts_stay_within_spans(payload: str | None, shape: str) -> None:
  outcome = parse_generated_items(payload, shape)  # type: ignore[arg-type]
  assert outcome.rescued_count + outcome.invalid_count <= outcome.spans_found
  if outcome.parse_error is None:
    assert outcome.invalid_count == 0


def test_scanner_ignores_braces_inside_strings_and_reports_open_objects() -> None:
  spans = scan_object_spans('{"a": "}{", "b": {"c": 1}} {"d": ')
  assert [(span.keys, span.closed) for span in spans] == [
    (frozenset({"a", "b"}), True),
    (frozenset({"c"}), True),
    (frozenset({"d"}), False),
  ]
