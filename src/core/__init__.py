"""
Core domain models, fixed-point math, errors and configuration.

This module contains the foundational building blocks that are independent
of external systems (price oracles, custody, DEX execution).
"""
