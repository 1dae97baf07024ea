from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details,
                },
            },
            headers=headers,
        )

    def __str__(self) -> str:
        return self.message


class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(BaseAPIException):
    """Authorization related errors (Forbidden)"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details,
        )


class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details,
        )


class InvalidAmountError(BaseAPIException):
    """Non-positive or non-integer token amount"""
    def __init__(self, amount: Any = None, message: str = "Amount must be a positive integer"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="AMOUNT_001",
            message=message,
            details={"amount": amount},
        )


class InvalidTransactionTypeError(ValidationError):
    """Unknown token transaction type"""
    def __init__(self, tx_type: Any):
        super().__init__(
            message=f"Unknown token transaction type: {tx_type}",
            details={"type": str(tx_type)},
        )


class InvalidStateError(BaseAPIException):
    """Entity is not in a state that allows the requested transition"""
    def __init__(self, message: str = "Invalid state", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="STATE_001",
            message=message,
            details=details,
        )


class RateLimitError(BaseAPIException):
    """Rate limiting errors"""
    def __init__(
        self,
        message: str = "Rate limit exceeded",
        details: Optional[Dict] = None,
        retry_after: Optional[int] = None,
    ):
        headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="RATE_LIMIT_001",
            message=message,
            details=details,
            headers=headers,
        )


class BusinessLogicError(BaseAPIException):
    """Business logic errors"""
    def __init__(self, error_code: str, message: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            message=message,
            details=details,
        )


class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details,
        )


class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details,
        )


class InsufficientBalanceError(BaseAPIException):
    """Insufficient balance errors"""
    def __init__(self, required: int, balance: int, message: str = "Insufficient token balance"):
        self.required = required
        self.balance = balance
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BALANCE_001",
            message=message,
            details={
                "required": required,
                "balance": balance,
                "shortfall": max(0, required - balance),
            },
        )


class AdSoldOutError(BusinessLogicError):
    """All advertisement slots are occupied"""
    def __init__(self, capacity: int, active: int):
        super().__init__(
            error_code="AD_SOLD_OUT",
            message="All advertisement slots are currently sold out",
            details={"capacity": capacity, "active": active},
        )
