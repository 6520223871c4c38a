"""Base exceptions for shelffy.

This module defines the root of the exception hierarchy. All exceptions
carry an error code and structured details so callers can branch on the
kind of failure without string-matching messages.
"""

from typing import Any, Dict, Optional


class ShelffyError(Exception):
    """Base exception for all shelffy errors.
    
    All exceptions raised by shelffy inherit from this base class and
    include structured error information for logging and for the layers
    that translate errors for callers.
    """
    
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
