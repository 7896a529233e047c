"""
Energy Module
=============

- EnergyPool: pure allocation rules over a ship's EP token records
- EnergyService: persisted, permission-checked allocation entry points
"""

from .allocation import AllocationChange, EnergyPool, TokenRecord, TokenState
from .service import EnergyService, EnergySummary

__all__ = [
    "AllocationChange",
    "EnergyPool",
    "EnergyService",
    "EnergySummary",
    "TokenRecord",
    "TokenState",
]
