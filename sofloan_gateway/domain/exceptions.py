"""Domain-specific exceptions

The amortization and categorization cores never raise: they return None or
empty sentinels. These exceptions belong to the provider boundary.
"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class IBVProviderError(DomainException):
    """Bank-verification provider returned an error or is unavailable"""

    pass


class InvalidTransactionDataError(DomainException):
    """Transaction data is malformed or invalid"""

    pass
