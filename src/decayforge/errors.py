# src/decayforge/errors.py


class InvalidArgument(ValueError):
    """Malformed numeric input: negative quantities, non-positive rates,
    mismatched lengths, out-of-order points or an unreadable snapshot."""


class UnknownSource(KeyError):
    """A dose source name that is not in the profile's source table."""

    def __init__(self, source: str):
        super().__init__(source)
        self.source = source

    def __str__(self) -> str:
        return f"Unknown dose source: {self.source!r}"
