"""
wiz_provider test suite.

Test Organization:
    - tests/conftest.py: Shared fixtures (settings, session, request context,
      GraphQL payload builders)
    - tests/unit/test_*.py: Unit tests for individual modules, with HTTP
      traffic mocked through ``responses``
"""
