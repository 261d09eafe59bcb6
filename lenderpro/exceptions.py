"""Custom exceptions for LenderPro."""


class LenderProError(Exception):
    """Base exception for all LenderPro errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DatabaseError(LenderProError):
    """Raised when a database operation fails."""
    pass


class TransactionError(DatabaseError):
    """Raised when a database transaction fails to complete."""
    pass


class LoanNotFoundError(LenderProError):
    """Raised when a loan cannot be found."""

    def __init__(self, loan_id: str = None):
        details = {}
        message = "Loan not found"
        if loan_id:
            details['loan_id'] = loan_id
            message = f"Loan '{loan_id}' not found"
        super().__init__(message, details)


class ClientNotFoundError(LenderProError):
    """Raised when a client cannot be found."""

    def __init__(self, client_id: str = None, name: str = None):
        details = {}
        if client_id:
            details['client_id'] = client_id
        if name:
            details['name'] = name

        message = "Client not found"
        if name:
            message = f"Client '{name}' not found"
        elif client_id:
            message = f"Client with ID {client_id} not found"

        super().__init__(message, details)


class MalformedRecordError(LenderProError):
    """Raised when a stored or imported record fails schema validation."""

    def __init__(self, kind: str, field: str, reason: str, record_id: str = None):
        details = {
            'kind': kind,
            'field': field,
        }
        if record_id:
            details['record_id'] = record_id

        message = f"Malformed {kind} record: field '{field}' {reason}"
        super().__init__(message, details)
        self.kind = kind
        self.field = field
        self.record_id = record_id
