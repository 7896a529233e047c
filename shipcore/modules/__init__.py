"""
Domain modules.

Each subpackage owns one concern (energy, permissions, crew, ship, ...).
Services live in ``service.py``, data access in ``repository.py`` and pure
rules in their own modules so they can be used without a database.
"""
