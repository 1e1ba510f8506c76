import pulumi
import pulumi_aws as aws
from typing import List, Optional, Dict

from ..declaration import RootVolume
from ..utils.ami import get_ubuntu_ami


def create_instance(
    name: str,
    instance_type: str,
    security_group_ids: List[pulumi.Input[str]],
    key_name: Optional[str] = None,
    ami_id: Optional[str] = None,
    root_volume: Optional[RootVolume] = None,
    user_data: Optional[str] = None,
    tags: Optional[Dict[str, str]] = None,
    subnet_id: Optional[str] = None,
    associate_public_ip_address: bool = True,
    opts: Optional[pulumi.ResourceOptions] = None,
) -> aws.ec2.Instance:
    """
    Create an EC2 instance with the specified configuration.

    Security groups are attached by ID through ``vpc_security_group_ids``.

    Args:
        name: Name of the instance
        instance_type: EC2 instance type (e.g., t2.micro)
        security_group_ids: List of security group IDs to attach
        key_name: Optional key pair name for SSH access
        ami_id: Optional AMI ID (defaults to latest Ubuntu 22.04)
        root_volume: Optional root volume settings (defaults to 20GB gp2)
        user_data: Optional user data script
        tags: Optional dictionary of tags
        subnet_id: Optional subnet ID to launch in (defaults to a default subnet)
        associate_public_ip_address: Whether to assign a public IP
        opts: Optional resource options

    Returns:
        aws.ec2.Instance: The created EC2 instance
    """
    if not ami_id:
        ami_id = get_ubuntu_ami()
        pulumi.log.info(f"No AMI given for {name}, using latest Ubuntu image {ami_id}")

    volume = root_volume or RootVolume()

    instance = aws.ec2.Instance(
        name,
        instance_type=instance_type,
        ami=ami_id,
        vpc_security_group_ids=security_group_ids,
        user_data=user_data,
        tags=tags,
        key_name=key_name,
        subnet_id=subnet_id,
        associate_public_ip_address=associate_public_ip_address,
        root_block_device=aws.ec2.InstanceRootBlockDeviceArgs(
            volume_size=volume.size,
            volume_type=volume.volume_type,
            delete_on_termination=volume.delete_on_termination,
        ),
        opts=opts,
    )

    return instance

def get_instance_public_ip(instance: aws.ec2.Instance) -> pulumi.Output[str]:
    """
    Get the public IP address of an EC2 instance.

    Args:
        instance: The EC2 instance

    Returns:
        pulumi.Output[str]: The public IP address
    """
    return instance.public_ip

def get_instance_public_dns(instance: aws.ec2.Instance) -> pulumi.Output[str]:
    """
    Get the public DNS name of an EC2 instance.

    Args:
        instance: The EC2 instance

    Returns:
        pulumi.Output[str]: The public DNS name
    """
    return instance.public_dns

def get_instance_private_ip(instance: aws.ec2.Instance) -> pulumi.Output[str]:
    """
    Get the private IP address of an EC2 instance.
    """
    return instance.private_ip
