"""
Base Service Interface

All services inherit from this base class.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for all services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Input conforming to InputT

        Returns:
            Output conforming to OutputT

        Raises:
            ServiceError: If execution fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class NotFoundError(ServiceError):
    """Referenced record does not exist."""
    pass


class AccountNotFoundError(NotFoundError):
    def __init__(self, service_name: str, account_id: int):
        super().__init__(service_name, f"Account {account_id} not found", {"account_id": account_id})


class TradeNotFoundError(NotFoundError):
    def __init__(self, service_name: str, trade_id: int):
        super().__init__(service_name, f"Trade {trade_id} not found", {"trade_id": trade_id})


class TradeAlreadyClosedError(ServiceError):
    """A closed trade cannot be closed again."""
    pass
