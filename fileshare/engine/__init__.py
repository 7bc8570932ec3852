from .base import ServingEngine
from .server import HttpServingEngine, create_app

__all__ = ["ServingEngine", "HttpServingEngine", "create_app"]
