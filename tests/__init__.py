"""
Test suite for the index-vault accounting engine

Contains:
- tests/unit/          : Unit tests for individual modules and the settlement service
"""
