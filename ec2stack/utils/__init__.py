"""
Utility functions for infrastructure management.
"""

from .tags import get_default_tags, merge_tags
from .ami import get_ubuntu_ami, get_amazon_linux_ami, get_windows_ami, resolve_ami
from .ip import get_local_public_ip, format_cidr_from_ip

__all__ = [
    'get_default_tags',
    'merge_tags',
    'get_ubuntu_ami',
    'get_amazon_linux_ami',
    'get_windows_ami',
    'resolve_ami',
    'get_local_public_ip',
    'format_cidr_from_ip',
]
