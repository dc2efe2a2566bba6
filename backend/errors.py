"""Exception types raised by the cipher engine, the history store and the API."""


class CipherLabError(Exception):
    """Base class for all application errors"""


class ValidationError(CipherLabError, ValueError):
    """Missing or empty input, or an option outside its allowed values"""


class UnsupportedAlgorithmError(CipherLabError, ValueError):
    """Algorithm name is not one of the supported ciphers"""


class EncryptionError(CipherLabError, ValueError):
    """The underlying cipher library failed while encrypting"""


class DecryptionError(CipherLabError, ValueError):
    """Decryption failed, or produced output that is not readable text"""


class SchemaValidationError(CipherLabError):
    """API payload does not match the expected schema"""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(CipherLabError):
    """Requested record does not exist"""


class TransientStorageError(CipherLabError):
    """Database stayed unavailable after every retry attempt"""
