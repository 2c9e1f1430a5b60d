"""Exceptions raised across the answer pipeline."""


class OllyError(Exception):
    """Base class for assistant errors."""


class MissingQuestionError(OllyError, ValueError):
    """The caller sent no question text."""


class KnowledgeSourceError(OllyError):
    """The knowledge source could not be reached or returned an error."""


class LanguageModelError(OllyError):
    """The language model call failed."""


class LanguageModelOverloaded(LanguageModelError):
    """The language model reported a rate-limit or overload condition."""
