"""
Active language for QA calculations.

The language is held by an explicit context object handed to the tracker
instead of living in application globals. ``switched()`` changes it for the
duration of a block and restores the previous value on every exit path.
"""

from contextlib import contextmanager


class LanguageContext:
    def __init__(self, language: str = "en"):
        self._language = language

    def current(self) -> str:
        return self._language

    def set(self, language: str) -> None:
        if not language:
            raise ValueError("language must be a non-empty string")
        self._language = language

    @contextmanager
    def switched(self, language: str | None = None):
        """Temporarily use ``language``; a None language keeps the current one."""
        if language is None:
            yield self._language
            return
        previous = self._language
        self.set(language)
        try:
            yield language
        finally:
            self._language = previous
