"""
Test Suite for appmodel

This package contains unit and integration tests for the application
model, its run-mode evaluation and the manifest publisher.

Test Structure:
- unit/test_expressions.py: Template expansion in run and publish mode
- unit/test_environment.py: Environment evaluation and reference injection
- unit/test_manifest.py: Manifest rendering and schema validation
- unit/test_qdrant.py: The Qdrant resource end to end
- unit/test_definitions.py: YAML AppHost definition loading
- integration/: Building, publishing and evaluating whole applications

Running Tests:
    pytest                    # Run all tests
    pytest -v                 # Verbose output
    pytest -m unit            # Unit tests only
    pytest tests/unit/test_qdrant.py  # Run specific test file

Test Configuration:
Tests use pytest with pytest-asyncio and are configured
in pyproject.toml with appropriate markers and options.
"""

__version__ = "0.1.0"
