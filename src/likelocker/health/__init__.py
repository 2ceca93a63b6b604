from .api import create_health_app, create_health_router, start_health_server

__all__ = ["create_health_app", "create_health_router", "start_health_server"]
