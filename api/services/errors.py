class ColorizeError(Exception):
    """Base for every failure the colorize endpoint reports as ``{"error": ...}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ColorizeError):
    status_code = 400


class AuthenticationError(ColorizeError):
    status_code = 401


class ConfigurationError(ColorizeError):
    pass


class UploadError(ColorizeError):
    pass


class AIRequestError(ColorizeError):
    pass


class MissingOutputError(ColorizeError):
    pass


class RecordError(ColorizeError):
    pass
