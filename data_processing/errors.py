# kmh_project_root/data_processing/errors.py

from typing import Optional


class RecordStoreError(Exception):
    """A read or write against the backend record store failed."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{operation}: {message}")


class AuthError(Exception):
    """Sign-in or sign-up was rejected by the auth backend."""
