"""
ec2stack: a single EC2 instance, its security group and public address outputs,
declared with Pulumi.
"""

from .declaration import (
    Declaration,
    InstanceDeclaration,
    SecurityGroupDeclaration,
    OutputDeclaration,
    RootVolume,
    IngressRule,
    EgressRule,
)
from .exceptions import DeclarationError

__all__ = [
    'Declaration',
    'InstanceDeclaration',
    'SecurityGroupDeclaration',
    'OutputDeclaration',
    'RootVolume',
    'IngressRule',
    'EgressRule',
    'DeclarationError',
]
