"""
Declared desired state for an ec2stack bundle.

These are plain records. Nothing here talks to AWS: a Declaration is handed to
validation and then to ``ec2stack.stack.deploy``, which turns it into Pulumi
resources.
"""

from typing import List, Dict, Optional

DEFAULT_VOLUME_TYPE = "gp2"
ALL_TRAFFIC_CIDR = "0.0.0.0/0"


class RootVolume:
    def __init__(
        self,
        size: int = 20,
        volume_type: str = DEFAULT_VOLUME_TYPE,
        delete_on_termination: bool = True,
    ):
        self.size = size
        self.volume_type = volume_type
        self.delete_on_termination = delete_on_termination


class Rule:
    """A security group rule: port range, protocol and allowed CIDR blocks."""

    direction = ""

    def __init__(
        self,
        protocol: str,
        from_port: int,
        to_port: int,
        cidr_blocks: Optional[List[str]] = None,
        description: Optional[str] = None,
    ):
        self.protocol = protocol
        self.from_port = from_port
        self.to_port = to_port
        self.cidr_blocks = cidr_blocks or []
        self.description = description

    def __eq__(self, other):
        if not isinstance(other, Rule):
            return NotImplemented
        return (
            self.direction == other.direction
            and self.protocol == other.protocol
            and self.from_port == other.from_port
            and self.to_port == other.to_port
            and sorted(self.cidr_blocks) == sorted(other.cidr_blocks)
        )

    def __repr__(self):
        return (
            f"{self.__class__.__name__}({self.protocol!r}, {self.from_port}, "
            f"{self.to_port}, {self.cidr_blocks!r})"
        )


class IngressRule(Rule):
    direction = "ingress"


class EgressRule(Rule):
    direction = "egress"


def allow_all_egress() -> EgressRule:
    return EgressRule(
        protocol="-1",
        from_port=0,
        to_port=0,
        cidr_blocks=[ALL_TRAFFIC_CIDR],
        description="Allow all outbound traffic",
    )


class SecurityGroupDeclaration:
    def __init__(
        self,
        name: str,
        description: str,
        ingress: Optional[List[IngressRule]] = None,
        egress: Optional[List[EgressRule]] = None,
        vpc_id: Optional[str] = None,
        tags: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            name: Logical name, also used as the group name in AWS
            description: Group description
            ingress: Ingress rules
            egress: Egress rules (None means allow all outbound traffic)
            vpc_id: VPC to create the group in (None means the default VPC)
            tags: Optional dictionary of tags
        """
        self.name = name
        self.description = description
        self.ingress = list(ingress or [])
        self.egress = [allow_all_egress()] if egress is None else list(egress)
        self.vpc_id = vpc_id
        self.tags = dict(tags or {})


class InstanceDeclaration:
    def __init__(
        self,
        name: str,
        instance_type: str,
        key_name: str,
        security_groups: List[str],
        ami: Optional[str] = None,
        ami_family: str = "ubuntu",
        root_volume: Optional[RootVolume] = None,
        tags: Optional[Dict[str, str]] = None,
        associate_public_ip_address: bool = True,
        user_data: Optional[str] = None,
    ):
        """
        Args:
            name: Logical name of the instance
            instance_type: EC2 instance type (e.g., t2.micro)
            key_name: Name of a key pair that already exists in the region
            security_groups: Security group references, either the logical name
                of a group declared in the same bundle or an ``sg-`` identifier
            ami: AMI ID (None means look up the latest image of ami_family at deploy time)
            ami_family: Image family used when no AMI ID is given
            root_volume: Root volume settings (defaults to 20GB gp2)
            tags: Optional dictionary of tags
            associate_public_ip_address: Whether to give the instance a public IP
            user_data: Optional user data script
        """
        self.name = name
        self.instance_type = instance_type
        self.key_name = key_name
        self.security_groups = list(security_groups)
        self.ami = ami
        self.ami_family = ami_family
        self.root_volume = root_volume or RootVolume()
        self.tags = dict(tags or {})
        self.associate_public_ip_address = associate_public_ip_address
        self.user_data = user_data


class OutputDeclaration:
    """A named read-only projection of a resource attribute."""

    def __init__(self, name: str, resource: str, attribute: str):
        self.name = name
        self.resource = resource
        self.attribute = attribute


def default_outputs(instance_name: str) -> List[OutputDeclaration]:
    return [
        OutputDeclaration("public_ip", instance_name, "public_ip"),
        OutputDeclaration("public_dns", instance_name, "public_dns"),
    ]


class Declaration:
    def __init__(
        self,
        instances: Optional[List[InstanceDeclaration]] = None,
        security_groups: Optional[List[SecurityGroupDeclaration]] = None,
        outputs: Optional[List[OutputDeclaration]] = None,
        region: Optional[str] = None,
    ):
        self.instances = list(instances or [])
        self.security_groups = list(security_groups or [])
        self.outputs = list(outputs or [])
        self.region = region

    def resource_names(self) -> List[str]:
        """Logical names of every declared resource, in declaration order."""
        names = [sg.name for sg in self.security_groups]
        names.extend(instance.name for instance in self.instances)
        return names

    def get_security_group(self, name: str) -> Optional[SecurityGroupDeclaration]:
        for sg in self.security_groups:
            if sg.name == name:
                return sg
        return None

    def get_instance(self, name: str) -> Optional[InstanceDeclaration]:
        for instance in self.instances:
            if instance.name == name:
                return instance
        return None
