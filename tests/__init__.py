"""
BodyCount Test Suite
====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests over the in-memory host
- tests/integration/   : Integration tests against a real SQLAlchemy engine

Testing Philosophy
------------------
- Unit tests: fast, isolated, deterministic (seeded random source)
- Integration tests: in-memory SQLite through DatabaseService
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
