from __future__ import annotations

import json

import pytest

from quizforge.ai.json_repair import loads_lenient, repair_json


def test_strict_json_is_returned_unchanged() -> None:
  assert loads_lenient('{"a": [1, 2]}') == {"a": [1, 2]}


def test_trailing_commas_are_dropped() -> None:
  assert loads_lenient('[{"question": "Q",}, ]') == [{"question": "Q"}]


def test_doubled_commas_are_collapsed() -> None:
  assert loads_lenient("[1,, 2]") == [1, 2]


def test_bare_keys_are_quoted() -> None:
  assert loads_lenient('{question: "Q", type: "TRUE_FALSE"}') == {"question": "Q", "type": "TRUE_FALSE"}


def test_missing_commas_between_values_are_inserted() -> None:
  assert loads_lenient('[{"question": "Q1"} {"question": "Q2"}]') == [{"question": "Q1"}, {"question": "Q2"}]
  assert loads_lenient('{"a": 1 "b": "x"}') == {"a": 1, "b": "x"}


def test_string_contents_are_left_alone() -> None:
  raw = '{"text": "a, b,] {c: d}",}'
  assert loads_lenient(raw) == {"text": "a, b,] {c: d}"}
  assert '"a, b,] {c: d}"' in repair_json(raw)


def test_unrepairable_input_raises_original_error() -> None:
  with pytest.raises(json.JSONDecodeError):
    loads_lenient('[{"question": "Q2", "type"')
