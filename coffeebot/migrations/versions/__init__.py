"""
Shipped migration steps. Append new steps; never edit existing ones.
"""
from . import m0001_flat_tables, m0002_normalized_users

ALL_STEPS = [
    m0001_flat_tables.step,
    m0002_normalized_users.step,
]

__all__ = ["ALL_STEPS"]
