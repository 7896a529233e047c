"""
Shipcore Test Suite
===================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with mocks and detached ORM objects
- tests/integration/   : Tests against a real PostgreSQL via testcontainers
- tests/factories.py   : Entity factories

Run a subset with markers, e.g. ``pytest -m unit``.
"""
