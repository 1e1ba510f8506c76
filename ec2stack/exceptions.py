"""
Exception classes for ec2stack.
"""


class DeclarationError(Exception):
    """Raised when a stack declaration is invalid or cannot be resolved."""

    pass
