"""Exceptions raised by the rotating writer."""


class ConfigError(ValueError):
    """Raised when a RotationConfig holds an invalid value."""


class ClosedError(ValueError):
    """Raised when writing to (or rotating) a writer that has been closed."""

    def __init__(self, filename: str):
        super().__init__(f"write to closed log writer: {filename}")
        self.filename = filename
