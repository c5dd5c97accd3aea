class ConfigError(Exception):
    """Sites file missing, unreadable, or failing validation."""

    def __init__(self, message: str, path: str | None = None):
        self.message = message
        self.path = path
        super().__init__(message)


class LoaderError(Exception):
    """Seller list could not be read or has an unknown format."""

    def __init__(self, message: str, source: str | None = None):
        self.message = message
        self.source = source
        super().__init__(message)
