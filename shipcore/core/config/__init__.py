"""
Shipcore configuration.

- config.Config: static settings from the environment (.env supported)
- manager.ConfigManager: game tunables from YAML with dot-notation access

ConfigManager is imported from its module directly; it depends on the
logging subsystem, which itself reads Config.
"""

from shipcore.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
