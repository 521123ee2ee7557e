from __future__ import annotations

import logging
import logging.handlers
import sys
from dataclasses import replace

from quizforge.config import get_settings
from quizforge.core.logging import TruncatedFormatter, _build_handlers, _rotated_name


def test_rotated_backups_use_dash_suffix() -> None:
  assert _rotated_name("/logs/quizforge_1.log.3") == "/logs/quizforge_1.log-3"
  assert _rotated_name("/logs/quizforge_1.log") == "/logs/quizforge_1.log"


def _deep_error(depth: int) -> None:
  if depth == 0:
    raise ValueError("bottom")
  _deep_error(depth - 1)


def test_truncated_formatter_keeps_head_and_tail() -> None:
  try:
    _deep_error(10)
  except ValueError:
    exc_info = sys.exc_info()

  formatted = TruncatedFormatter().formatException(exc_info)
  assert formatted.startswith("Traceback")
  assert "    ...\n" in formatted
  assert formatted.rstrip().endswith("ValueError: bottom")


def test_handlers_write_to_configured_directory(tmp_path) -> None:
  settings = replace(get_settings(), log_dir=str(tmp_path / "logs"))
  stream, file_handler, log_path = _build_handlers(settings)
  try:
    assert log_path.parent == (tmp_path / "logs").resolve()
    assert log_path.exists()
    assert isinstance(file_handler, logging.handlers.RotatingFileHandler)
  finally:
    file_handler.close()
    stream.close()
