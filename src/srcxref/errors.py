"""Exceptions raised by srcxref."""

from __future__ import annotations


class SrcxrefError(Exception):
    """Base class for srcxref errors."""


class AdapterInitError(SrcxrefError):
    """A language adapter could not be built (missing grammar, bad query).

    Raised at engine construction; a broken adapter would otherwise silently
    skip every file of its language.
    """

    def __init__(self, lang: str, reason: str):
        super().__init__(f"{lang}: {reason}")
        self.lang = lang
        self.reason = reason


class ResolutionError(SrcxrefError):
    """A definition lookup failed. Carries the candidates that were tried."""

    def __init__(self, message: str, candidates: list[str] | None = None):
        super().__init__(message)
        self.candidates = candidates
