"""Service layer modules for the access gate."""

from . import local_code_store, request_service

__all__ = [
    "local_code_store",
    "request_service",
]
