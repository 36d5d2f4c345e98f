"""Test package for sgfreplay.

This package contains all test modules organized by test type:
- unit/: Unit tests for individual components
- components/: Component tests with real implementations
- integration/: Integration tests
- e2e/: End-to-end tests
- performance/: Performance tests
"""
