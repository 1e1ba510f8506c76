import pulumi
import pulumi_aws as aws
from typing import Optional

from ..exceptions import DeclarationError


def get_keypair(
    name: str,
) -> Optional[aws.ec2.GetKeyPairResult]:
    """
    Get an existing key pair by name.

    Args:
        name: Name of the key pair to get

    Returns:
        aws.ec2.GetKeyPairResult: The key pair if it exists, otherwise None
    """
    try:
        return aws.ec2.get_key_pair(key_name=name)
    except Exception:
        # Key doesn't exist
        return None

def require_keypair(name: str) -> aws.ec2.GetKeyPairResult:
    """
    Look up a key pair that must already exist in the region.

    Key pairs are created out of band; this project never creates one, so a
    missing key pair is a declaration error.

    Raises:
        DeclarationError: If no key pair with this name exists
    """
    keypair = get_keypair(name)
    if keypair is None:
        raise DeclarationError(
            f"Key pair '{name}' does not exist in this region. "
            f"Create or import it before deploying."
        )
    pulumi.log.debug(f"Using existing key pair '{name}' ({keypair.key_pair_id})")
    return keypair
