"""
Health check API endpoint.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Response


def create_router(ConnectorGate) -> APIRouter:
    router = APIRouter()

    @router.get("/api/health")
    def api_health(response: Response) -> Dict[str, Any]:
        """
        Report connector health.

        Returns 200 when the root is served, 503 otherwise.
        """
        healthy = ConnectorGate.is_healthy()
        if not healthy:
            response.status_code = 503

        return {
            "healthy": healthy,
            "gates": {"ConnectorGate": ConnectorGate.get_health_status()},
        }

    return router


__all__ = ["create_router"]
