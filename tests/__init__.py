"""
Tier Cache Test Suite
=====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests against the in-memory backend (no external dependencies)
- tests/integration/   : Integration tests with testcontainers (real Redis)

Testing Philosophy
------------------
- Unit tests: Fast, isolated, deterministic time via a fake clock
- Integration tests: Slower, test real Redis behaviour (TTL, SCAN, MULTI/EXEC)
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
