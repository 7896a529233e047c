"""
Shipcore: starship energy-point allocation for a tabletop RPG virtual tabletop.

Layers
------
- core: configuration, logging, database infrastructure
- database: schema-only ORM models
- modules: allocation engine, permission gate, bar translator, ship and crew services
- features: presentation adapters that turn clicks into service calls
"""

__version__ = "1.0.0"
