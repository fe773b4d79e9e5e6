"""
🏗️ Service Layer
================

Services wrap the schedule engine and the Spotify client for the HTTP
layer. Every public service method answers with a ``ServiceResult``;
routes translate its ``error_code`` into an HTTP status.
"""

import logging
from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass
class ServiceResult:
    """Outcome of one service call."""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error_code: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


class BaseService(ABC):
    """Lifecycle, health and result helpers shared by all services."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"spoticue.service.{name}")
        self._initialized = False

    def initialize(self) -> ServiceResult:
        self._initialized = True
        self.logger.info(f"🔧 {self.name} service ready")
        return self._success_result(message=f"{self.name} service ready")

    def shutdown(self) -> None:
        self._initialized = False
        self.logger.info(f"🛑 {self.name} service stopped")

    @property
    def initialized(self) -> bool:
        return self._initialized

    def health_check(self) -> ServiceResult:
        """Base health: healthy once initialized. Subclasses add details."""
        if not self._initialized:
            return self._error_result(f"{self.name} service not initialized", error_code="NOT_INITIALIZED")
        return self._success_result(data={"status": "healthy", "service": self.name})

    def _handle_error(self, error: Exception, operation: str) -> ServiceResult:
        """Log an unexpected failure and turn it into an OPERATION_FAILED result."""
        error_msg = f"Error in {self.name}.{operation}: {error}"
        self.logger.error(error_msg, exc_info=True)
        return self._error_result(error_msg, error_code="OPERATION_FAILED")

    def _success_result(self, data: Any = None, message: Optional[str] = None) -> ServiceResult:
        return ServiceResult(success=True, data=data, message=message)

    def _error_result(self, message: str, error_code: str = "ERROR", data: Any = None) -> ServiceResult:
        return ServiceResult(success=False, data=data, message=message, error_code=error_code)
