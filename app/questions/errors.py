"""
Question Tree Errors
====================
Exception taxonomy for the question store. Each error carries the HTTP
status it maps to; the API turns them into ``{"error": message}`` bodies.
"""

from typing import Optional


class QuestionError(Exception):
    """Base exception for question store failures."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class QuestionValidationError(QuestionError):
    """Request rejected before any write (400)."""
    status_code = 400


class QuestionNotFoundError(QuestionError):
    """Question id does not exist (404)."""
    status_code = 404


class AdminAuthError(QuestionError):
    """Missing or invalid admin API key (401)."""
    status_code = 401


class QuestionStoreError(QuestionError):
    """Any failure raised by the relational store (500)."""
    status_code = 500
