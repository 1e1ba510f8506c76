"""
EC2 infrastructure components.
"""

from .instances import (
    create_instance,
    get_instance_public_ip,
    get_instance_public_dns,
    get_instance_private_ip,
)
from .security_groups import create_security_group
from .keypairs import get_keypair, require_keypair

__all__ = [
    'create_instance',
    'get_instance_public_ip',
    'get_instance_public_dns',
    'get_instance_private_ip',
    'create_security_group',
    'get_keypair',
    'require_keypair',
]
