class ParseError(ValueError):
    """Malformed complex number or color text."""


class UnknownFractalError(ValueError):
    """Fractal name is not in the registry."""


class EncodingError(RuntimeError):
    """Animation sink failed to write the file."""
