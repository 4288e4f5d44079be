"""
Title translation through a MyMemory-compatible HTTP endpoint.
"""

from typing import Optional

import requests
from loguru import logger

from .config import Settings, get_settings
from .errors import TranslationError


class TranslationClient:
	"""GET {url}?q=<text>&langpair=ja|en -> responseData.translatedText"""

	def __init__(self, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
		self.url = url
		self.timeout = timeout
		self.session = session or requests.Session()

	@classmethod
	def from_settings(cls, settings: Optional[Settings] = None) -> "TranslationClient":
		settings = settings or get_settings()
		return cls(settings.translation_url, settings.request_timeout_s)

	def translate(self, text: str, source: str = "ja", target: str = "en") -> str:
		if not text or not text.strip():
			raise TranslationError("Nothing to translate")
		try:
			response = self.session.get(
				self.url,
				params={"q": text.strip(), "langpair": f"{source}|{target}"},
				timeout=self.timeout,
			)
			response.raise_for_status()
			data = response.json()
		except requests.exceptions.RequestException as e:
			raise TranslationError(f"Translation request failed: {e}") from e
		except ValueError as e:
			raise TranslationError("Translation service returned invalid JSON") from e

		# MyMemory reports quota and input errors with HTTP 200 and its own status
		status = data.get("responseStatus")
		translated = ((data.get("responseData") or {}).get("translatedText") or "").strip()
		if status not in (None, 200, "200") or not translated:
			raise TranslationError(f"Translation failed: {data.get('responseDetails') or status}")

		logger.debug(f"[Translation] '{text[:30]}' -> '{translated[:30]}'")
		return translated
