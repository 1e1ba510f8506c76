"""
Turn a Declaration into Pulumi resources.

Resources are registered in dependency order (default VPC lookup, security
groups, instances) and the declared outputs are exported. Pulumi derives the
real ordering from the outputs each resource consumes.
"""

import pulumi
import pulumi_aws as aws
from typing import List, Dict, Optional

from .declaration import Declaration, InstanceDeclaration
from .ec2.instances import create_instance
from .ec2.keypairs import require_keypair
from .ec2.security_groups import create_security_group
from .networking.vpc import get_default_vpc_id
from .utils.ami import resolve_ami
from .validation import check_declaration


class DeployedStack:
    """The resources created for a declaration, keyed by logical name."""

    def __init__(self):
        self.security_groups: Dict[str, aws.ec2.SecurityGroup] = {}
        self.instances: Dict[str, aws.ec2.Instance] = {}
        self.outputs: Dict[str, pulumi.Output] = {}


def resolve_security_group_ids(
    instance: InstanceDeclaration,
    security_groups: Dict[str, aws.ec2.SecurityGroup],
) -> List[pulumi.Input[str]]:
    """
    Map an instance's security group references to group IDs.

    Declared groups resolve to the ID of the created resource; anything else
    is already an ``sg-`` identifier (validation rejects bare names).
    """
    ids = []
    for reference in instance.security_groups:
        sg = security_groups.get(reference)
        ids.append(sg.id if sg is not None else reference)
    return ids


def deploy(
    declaration: Declaration,
    check_keypairs: bool = True,
    opts: Optional[pulumi.ResourceOptions] = None,
) -> DeployedStack:
    """
    Validate a declaration and register its resources.

    Args:
        declaration: The declaration to deploy
        check_keypairs: Whether to verify that every key pair exists before
            registering the instance
        opts: Optional resource options applied to every resource

    Returns:
        DeployedStack: The created resources and exported outputs

    Raises:
        DeclarationError: If the declaration is invalid, a key pair is missing
            or a default VPC is needed but does not exist
    """
    for finding in check_declaration(declaration):
        pulumi.log.warn(str(finding))

    deployed = DeployedStack()

    default_vpc_id = None
    for sg_decl in declaration.security_groups:
        vpc_id = sg_decl.vpc_id
        if vpc_id is None:
            if default_vpc_id is None:
                default_vpc_id = get_default_vpc_id()
            vpc_id = default_vpc_id

        deployed.security_groups[sg_decl.name] = create_security_group(
            name=sg_decl.name,
            vpc_id=vpc_id,
            description=sg_decl.description,
            ingress_rules=sg_decl.ingress,
            egress_rules=sg_decl.egress,
            tags=sg_decl.tags,
            opts=opts,
        )

    for instance_decl in declaration.instances:
        if check_keypairs:
            require_keypair(instance_decl.key_name)

        deployed.instances[instance_decl.name] = create_instance(
            name=instance_decl.name,
            instance_type=instance_decl.instance_type,
            security_group_ids=resolve_security_group_ids(instance_decl, deployed.security_groups),
            key_name=instance_decl.key_name,
            ami_id=instance_decl.ami or resolve_ami(instance_decl.ami_family),
            root_volume=instance_decl.root_volume,
            user_data=instance_decl.user_data,
            tags=instance_decl.tags,
            associate_public_ip_address=instance_decl.associate_public_ip_address,
            opts=opts,
        )

    for output in declaration.outputs:
        value = getattr(deployed.instances[output.resource], output.attribute)
        deployed.outputs[output.name] = value
        pulumi.export(output.name, value)

    return deployed
