"""
Shipcore infrastructure layer: configuration, logging, and database access.

Nothing in this package knows about ships, crews, or energy points.
"""
