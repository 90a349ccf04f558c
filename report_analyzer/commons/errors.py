class DecodeFailed(Exception):
    """The text decoder could not turn the uploaded file into text.

    Terminal: there is no partial result and no retry.
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"No se pudo decodificar {path}: {reason}")


class InvalidInput(ValueError):
    """Malformed call-time arguments (caller bug, never retried)."""
