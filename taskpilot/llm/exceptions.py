class ModelProviderError(Exception):
    """Raised when a model backend call fails or answers with an error body."""

    def __init__(self, message: str, status_code: int = 502, model: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.model = model
