"""Filter design exceptions."""


class ParameterError(ValueError):
    """Missing or unknown filter-design parameter.

    Raised by a single design call; cascades built earlier are unaffected.
    """

    def __init__(self, message: str, *, parameter: str | None = None):
        self.parameter = parameter
        super().__init__(message)
