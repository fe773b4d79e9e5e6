"""
🔧 Service Manager - Central Service Coordination
===============================================

Builds the services around one TrackScheduler and gives the Flask
application a single place to look them up.
"""

import logging
from typing import Any, Dict, Optional

from . import BaseService, ServiceResult
from ..core.cue_scheduler import TrackScheduler, get_cue_scheduler
from .schedule_service import ScheduleService
from .spotify_service import SpotifyService


class ServiceManager:
    """Central manager for all application services."""

    def __init__(self, scheduler: Optional[TrackScheduler] = None, start_clock: bool = True,
                 token_provider=None):
        self.logger = logging.getLogger("spoticue.service_manager")
        self.scheduler = scheduler or get_cue_scheduler()

        self.schedule = ScheduleService(self.scheduler, start_clock=start_clock)
        if token_provider is None:
            self.spotify = SpotifyService(self.scheduler.player)
        else:
            self.spotify = SpotifyService(self.scheduler.player, token_provider=token_provider)

        self.services: Dict[str, BaseService] = {
            "schedule": self.schedule,
            "spotify": self.spotify,
        }

        self._initialize_all()

    def _initialize_all(self) -> None:
        self.logger.info("🚀 Initializing service manager...")

        for name, service in self.services.items():
            result = service.initialize()
            if result.success:
                self.logger.info(f"✅ {name} service initialized")
            else:
                self.logger.error(f"❌ {name} service initialization failed: {result.message}")

        self.logger.info("🎯 Service manager initialization completed")

    def get_service(self, name: str) -> Optional[Any]:
        return self.services.get(name)

    def shutdown(self) -> None:
        for name, service in self.services.items():
            try:
                service.shutdown()
            except Exception as e:
                self.logger.error(f"💥 {name} service failed to shut down: {e}")

    def health_check_all(self) -> ServiceResult:
        """Perform health check on all services."""
        results: Dict[str, Any] = {}
        overall_healthy = True
        degraded_states = {"degraded", "error", "failed", "unhealthy"}

        for name, service in self.services.items():
            health = service.health_check()
            status_payload = health.data if health.success else {"error": health.message}
            status_value = status_payload.get("status") if isinstance(status_payload, dict) else None

            service_healthy = health.success and status_value not in degraded_states
            results[name] = {"healthy": service_healthy, "status": status_payload}
            if not service_healthy:
                overall_healthy = False

        return ServiceResult(
            success=True,
            data={
                "overall_healthy": overall_healthy,
                "services": results,
                "total_services": len(self.services),
                "healthy_services": sum(1 for r in results.values() if r["healthy"]),
            },
            message="Health check completed for all services"
        )


_service_manager: Optional[ServiceManager] = None


def get_service_manager() -> ServiceManager:
    """Get the global service manager instance."""
    global _service_manager
    if _service_manager is None:
        _service_manager = ServiceManager()
    return _service_manager


def set_service_manager(manager: Optional[ServiceManager]) -> None:
    global _service_manager
    _service_manager = manager


def get_service(name: str) -> Optional[Any]:
    return get_service_manager().get_service(name)
