"""
Test suite for the menu configurator.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_selection_service.py -v
"""
