"""
Exceptions raised by the ingestion engine.
Every error carries a message that can be shown to a person as-is.
"""


class IngestError(Exception):
	"""Base error; `user_message` is safe to surface in the UI."""

	default_message = "Something went wrong while importing the movie."

	def __init__(self, message: str = "", user_message: str = ""):
		super().__init__(message or user_message or self.default_message)
		self.user_message = user_message or self.default_message


class ParseError(IngestError):
	default_message = "Failed to parse movie data. Please check the format."


class RegistryError(IngestError):
	default_message = "The catalog registry could not be reached. Please try again."


class TranslationError(IngestError):
	default_message = "Failed to translate title."


class InvalidTransitionError(IngestError, ValueError):
	default_message = "That choice is not available for this entry."
