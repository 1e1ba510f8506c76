"""
Networking lookups.
"""

from .vpc import get_default_vpc, get_default_vpc_id

__all__ = [
    'get_default_vpc',
    'get_default_vpc_id',
]
