"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from savings_gateway.infrastructure.clients.history import HistoryClient
from savings_gateway.infrastructure.clients.payments import PaymentClient
from savings_gateway.services.sessions import SessionRegistry


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_session_registry(request: Request) -> SessionRegistry:
    """PIN sessions live for the lifetime of the application"""
    return request.app.state.sessions


def get_payment_client() -> PaymentClient:
    """Provide Payment API client instance"""
    return PaymentClient()


def get_history_client() -> HistoryClient:
    """Provide transaction history client instance"""
    return HistoryClient()
