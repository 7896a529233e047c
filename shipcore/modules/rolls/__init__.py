from .types import RollRequest, RollService

__all__ = ["RollRequest", "RollService"]
