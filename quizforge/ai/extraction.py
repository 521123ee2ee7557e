"""Pull the JSON payload out of raw provider text."""

from __future__ import annotations

import re

_JSON_FENCE_RE = re.compile(r"```json\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)
# A language tag is only skipped when it sits alone on the opening line.
_ANY_FENCE_RE = re.compile(r"```(?:[\w+-]*[ \t]*\n)?\s*(.*?)\s*```", re.DOTALL)


def extract_json_payload(raw_text: str | None) -> str:
  """Return the best-effort JSON payload contained in ``raw_text``.

  Tried in order: a ```json fence, any fence, the outermost array, the
  outermost object, then the trimmed text. An array whose closing bracket never
  arrived is returned from its opening bracket to the end so truncated output
  still reaches fragment recovery. Never raises.
  """
  if not raw_text:
    return ""
  text = raw_text.strip()

  match = _JSON_FENCE_RE.search(text)
  if match:
    return match.group(1)

  match = _ANY_FENCE_RE.search(text)
  if match:
    return match.group(1)

  array_start = text.find("[")
  object_start = text.find("{")
  if array_start != -1 and (object_start == -1 or array_start < object_start):
    array_end = text.rfind("]")
    if array_end > array_start:
      return text[array_start : array_end + 1]
    return text[array_start:]

  if object_start != -1:
    object_end = text.rfind("}")
    if object_end > object_start:
      return text[object_start : object_end + 1]

  return text
