"""
Source detection: decides which dialect a pasted block of movie metadata is written in.
"""

import json
import re
from typing import Any, Optional

from loguru import logger

from .models import SourceDialect
from .japanese import contains_japanese

# Fields every R18-style JSON export carries
JSON_MARKER_FIELDS = ("dvd_id", "title_ja", "actresses", "release_date", "runtime_mins")

# "SNIS-217 ラブ◆キモメン ティア": a code followed by non-ASCII title text
RE_CODE_LINE = re.compile(r"^([A-Z0-9]+(?:-[A-Z0-9]+)*)\s+(.*[^\x00-\x7f].*)$")


def load_json_object(raw: str) -> Optional[Any]:
	"""Parse `raw` as JSON, or return None when it is not JSON at all."""
	try:
		return json.loads(raw.strip())
	except (ValueError, TypeError):
		return None


def detect_source(raw: str) -> SourceDialect:
	"""Classify raw pasted text as the JSON dialect, the text dialect or unknown."""
	if not raw or not raw.strip():
		return SourceDialect.UNKNOWN

	text = raw.strip()
	data = load_json_object(text)
	if data is not None:
		if isinstance(data, dict) and all(key in data for key in JSON_MARKER_FIELDS):
			logger.debug("[Detector] JSON payload with all marker fields")
			return SourceDialect.JSON
		logger.debug("[Detector] JSON payload without the marker fields -> unknown")
		return SourceDialect.UNKNOWN

	lines = [line.strip() for line in text.splitlines() if line.strip()]
	for line in lines:
		m = RE_CODE_LINE.match(line)
		if not m:
			continue
		if contains_japanese(m.group(2)) or len(lines) > 1:
			logger.debug("[Detector] Code line '{}' -> text dialect", line[:40])
			return SourceDialect.TEXT

	logger.debug("[Detector] No dialect recognised -> unknown")
	return SourceDialect.UNKNOWN
