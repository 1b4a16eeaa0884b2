"""
Custom Exceptions for the Library Desk

This module defines custom exception classes raised across the package.
Engine operations report expected failures through ServiceResult; these
exceptions cover the boundaries with external collaborators (import
source, messaging, storage) and configuration.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    OPERATION_FAILED = "OPERATION_FAILED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    IMPORT_SOURCE_ERROR = "IMPORT_SOURCE_ERROR"
    NOTIFICATION_ERROR = "NOTIFICATION_ERROR"

    # Storage errors
    STORAGE_ERROR = "STORAGE_ERROR"

    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the package with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# Domain Exceptions
# ========================================

class ValidationError(BaseAppException):
    """Exception raised when input data fails domain validation"""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None,
    ):
        details = {"field": field}
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a referenced student or seat does not exist"""

    def __init__(self, resource_type: str, resource_id: Optional[Any] = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message += f": {resource_id}"
        super().__init__(
            message,
            ErrorCode.RESOURCE_NOT_FOUND,
            {"resource_type": resource_type, "resource_id": resource_id},
        )


# ========================================
# External Service Exceptions
# ========================================

class ExternalServiceError(BaseAppException):
    """Exception raised when external service calls fail"""

    def __init__(
        self,
        message: str = "External service error",
        service_name: Optional[str] = None,
        endpoint: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
    ):
        details = {
            "service_name": service_name,
            "endpoint": endpoint
        }
        super().__init__(message, error_code, details)


class ImportSourceError(ExternalServiceError):
    """Exception raised when the student import source cannot be fetched or parsed"""

    def __init__(
        self,
        message: str = "Failed to fetch student data",
        endpoint: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(
            message,
            service_name="student_import",
            endpoint=endpoint,
            error_code=ErrorCode.IMPORT_SOURCE_ERROR,
        )
        if status is not None:
            self.details["status"] = status


class NotificationDispatchError(ExternalServiceError):
    """Exception raised when a notification cannot be handed to the messaging app"""

    def __init__(
        self,
        message: str = "Notification dispatch failed",
        mobile: Optional[str] = None,
    ):
        super().__init__(
            message,
            service_name="whatsapp_redirect",
            error_code=ErrorCode.NOTIFICATION_ERROR,
        )
        if mobile:
            self.details["mobile"] = mobile


# ========================================
# Storage Exceptions
# ========================================

class PersistenceError(BaseAppException):
    """Exception raised when a key-value storage operation fails"""

    def __init__(
        self,
        message: str = "Storage operation failed",
        operation: Optional[str] = None,
        key: Optional[str] = None
    ):
        details = {
            "operation": operation,
            "key": key
        }
        super().__init__(message, ErrorCode.STORAGE_ERROR, details)


# ========================================
# Configuration Exceptions
# ========================================

class ConfigurationError(BaseAppException):
    """Exception raised when configuration is invalid"""

    def __init__(
        self,
        message: str = "Configuration error",
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
    ):
        details = {
            "config_key": config_key,
            "config_value": str(config_value) if config_value is not None else None
        }
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


__all__ = [
    "ErrorCode",
    "BaseAppException",
    "ValidationError",
    "ResourceNotFoundError",
    "ExternalServiceError",
    "ImportSourceError",
    "NotificationDispatchError",
    "PersistenceError",
    "ConfigurationError",
]
