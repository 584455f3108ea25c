"""Custom exceptions for the Opian Core application."""

class OpianError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(OpianError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(OpianError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class AuthenticationError(OpianError):
    """Raised when the request carries no valid session or bad credentials."""
    def __init__(self, message="Unauthorized"):
        super().__init__(message, 401)

class UnauthorizedError(OpianError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)


class QuoteNumberError(OpianError):
    """Base class for quote number allocation failures."""

class QuoteNumberReadError(QuoteNumberError):
    """The current highest quote number could not be read."""
    def __init__(self, prefix):
        super().__init__(f"Could not read existing quote numbers for prefix '{prefix}'", 503)
        self.prefix = prefix

class DuplicateQuoteNumberError(QuoteNumberError):
    """The quote number was taken by a concurrent insert on every attempt."""
    def __init__(self, quote_number, attempts):
        super().__init__(
            f"Quote number {quote_number} is already in use (gave up after {attempts} attempts)",
            409,
            {'quoteNumber': quote_number},
        )
        self.quote_number = quote_number
        self.attempts = attempts

class MalformedQuoteNumberError(QuoteNumberError):
    """The highest stored quote number does not end in digits."""
    def __init__(self, quote_number, prefix):
        super().__init__(
            f"Stored quote number '{quote_number}' does not match '{prefix}<digits>'",
            500,
            {'quoteNumber': quote_number},
        )
        self.quote_number = quote_number
        self.prefix = prefix
