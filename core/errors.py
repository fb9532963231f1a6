"""
Exceptions raised by the tax engine.
Only configuration problems raise; economically valid inputs never do.
"""


class TaxEngineError(ValueError):
    """Base class for tax engine errors."""


class InvalidGrantError(TaxEngineError):
    """Grant data is missing fields or has values the engine cannot use."""


class InvalidBracketTableError(TaxEngineError):
    """Bracket configuration is not contiguous, ordered or progressive."""
