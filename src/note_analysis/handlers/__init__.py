"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .analysis_handler import AnalysisHandler, get_client_id

__all__ = [
    "AnalysisHandler",
    "get_client_id",
]
