"""Middleware package exports."""

from sessionguard.middleware.correlation_id import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]
