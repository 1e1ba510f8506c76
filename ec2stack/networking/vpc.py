import pulumi_aws as aws
from ..exceptions import DeclarationError

def get_default_vpc() -> aws.ec2.GetVpcResult:
    """
    Look up the account's default VPC in the current region.

    Returns:
        aws.ec2.GetVpcResult: The default VPC

    Raises:
        DeclarationError: If the region has no default VPC
    """
    try:
        return aws.ec2.get_vpc(default=True)
    except Exception as e:
        raise DeclarationError(
            "No default VPC found in this region; set a VPC id on the security group "
            f"or create a default VPC ({e})"
        ) from e

def get_default_vpc_id() -> str:
    """
    Get the ID of the account's default VPC.

    Returns:
        str: The default VPC ID
    """
    return get_default_vpc().id
