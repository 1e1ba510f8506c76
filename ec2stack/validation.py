"""
Static validation of a Declaration.

Validation runs before any resource is registered so that an inconsistent
declaration fails the preview instead of surfacing as a provider error halfway
through an apply.
"""

import ipaddress
import re
from collections import Counter
from typing import List

from .declaration import Declaration, InstanceDeclaration, Rule, SecurityGroupDeclaration
from .exceptions import DeclarationError
from .utils.ami import AMI_FAMILIES
from .utils.tags import tag_problems

ERROR = "error"
WARNING = "warning"

VOLUME_TYPES = ("standard", "gp2", "gp3", "io1", "io2", "sc1", "st1")
PROTOCOLS = ("tcp", "udp", "icmp", "icmpv6", "-1", "all")
# For these protocols from_port and to_port are the ICMP type and code.
ICMP_PROTOCOLS = ("icmp", "icmpv6")
OUTPUT_ATTRIBUTES = ("public_ip", "public_dns", "private_ip", "private_dns", "id", "arn")

SECURITY_GROUP_ID_PATTERN = re.compile(r"^sg-[0-9a-f]{8}([0-9a-f]{9})?$")
AMI_ID_PATTERN = re.compile(r"^ami-[0-9a-f]{8}([0-9a-f]{9})?$")
INSTANCE_TYPE_PATTERN = re.compile(r"^[a-z][a-z0-9-]*\.[a-z0-9]+$")


class Finding:
    def __init__(self, level: str, resource: str, message: str):
        self.level = level
        self.resource = resource
        self.message = message

    @property
    def is_error(self) -> bool:
        return self.level == ERROR

    def __str__(self):
        return f"{self.level}: {self.resource}: {self.message}"

    def __repr__(self):
        return f"Finding({self.level!r}, {self.resource!r}, {self.message!r})"


def is_security_group_id(reference: str) -> bool:
    return bool(SECURITY_GROUP_ID_PATTERN.match(reference))


def _validate_rule(sg_name: str, rule: Rule) -> List[Finding]:
    findings = []
    label = f"{rule.direction} {rule.protocol} {rule.from_port}-{rule.to_port}"

    if rule.protocol not in PROTOCOLS and not str(rule.protocol).isdigit():
        findings.append(Finding(ERROR, sg_name, f"{label}: unknown protocol '{rule.protocol}'"))

    for port in (rule.from_port, rule.to_port):
        if not isinstance(port, int) or isinstance(port, bool) or port < -1 or port > 65535:
            findings.append(Finding(ERROR, sg_name, f"{label}: port {port!r} is out of range"))
            return findings

    if rule.protocol not in ICMP_PROTOCOLS and rule.from_port > rule.to_port:
        findings.append(Finding(ERROR, sg_name, f"{label}: from_port is greater than to_port"))

    if not rule.cidr_blocks:
        findings.append(Finding(ERROR, sg_name, f"{label}: no CIDR blocks"))
    for cidr in rule.cidr_blocks:
        try:
            ipaddress.ip_network(cidr, strict=False)
        except ValueError:
            findings.append(Finding(ERROR, sg_name, f"{label}: invalid CIDR block '{cidr}'"))

    return findings


def _validate_security_group(sg: SecurityGroupDeclaration) -> List[Finding]:
    findings = []
    if not sg.description:
        findings.append(Finding(ERROR, sg.name, "description is empty"))
    if not sg.ingress:
        findings.append(Finding(WARNING, sg.name, "no ingress rules, the group admits no inbound traffic"))
    for rule in sg.ingress + sg.egress:
        findings.extend(_validate_rule(sg.name, rule))
    for problem in tag_problems(sg.tags):
        findings.append(Finding(ERROR, sg.name, problem))
    return findings


def _validate_instance(instance: InstanceDeclaration, declaration: Declaration) -> List[Finding]:
    findings = []
    volume = instance.root_volume

    size = volume.size
    if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
        findings.append(Finding(ERROR, instance.name, f"root volume size must be a positive integer, got {size!r}"))

    if volume.volume_type not in VOLUME_TYPES:
        findings.append(Finding(
            ERROR,
            instance.name,
            f"root volume type '{volume.volume_type}' is not one of {', '.join(VOLUME_TYPES)}",
        ))

    if not INSTANCE_TYPE_PATTERN.match(instance.instance_type or ""):
        findings.append(Finding(ERROR, instance.name, f"malformed instance type '{instance.instance_type}'"))

    if instance.ami and not AMI_ID_PATTERN.match(instance.ami):
        findings.append(Finding(ERROR, instance.name, f"malformed AMI id '{instance.ami}'"))
    if not instance.ami and instance.ami_family not in AMI_FAMILIES:
        findings.append(Finding(ERROR, instance.name, f"unknown AMI family '{instance.ami_family}'"))

    if not instance.key_name:
        findings.append(Finding(ERROR, instance.name, "key pair name is empty"))

    for problem in tag_problems(instance.tags):
        findings.append(Finding(ERROR, instance.name, problem))

    if not instance.security_groups:
        findings.append(Finding(WARNING, instance.name, "no security groups attached, the VPC default group applies"))

    for reference in instance.security_groups:
        if declaration.get_security_group(reference) is not None or is_security_group_id(reference):
            continue
        # A bare group name is the EC2-classic form; VPC instances need ids.
        findings.append(Finding(
            ERROR,
            instance.name,
            f"security group reference '{reference}' is neither a declared group nor an sg- identifier",
        ))

    return findings


def validate_declaration(declaration: Declaration) -> List[Finding]:
    """
    Validate a declaration without touching AWS.

    Args:
        declaration: The declaration to validate

    Returns:
        List[Finding]: Errors and warnings, in declaration order
    """
    findings = []

    for name, count in Counter(declaration.resource_names()).items():
        if count > 1:
            findings.append(Finding(ERROR, name, f"resource name declared {count} times"))
    for name, count in Counter(output.name for output in declaration.outputs).items():
        if count > 1:
            findings.append(Finding(ERROR, name, f"output declared {count} times"))

    for sg in declaration.security_groups:
        findings.extend(_validate_security_group(sg))

    for instance in declaration.instances:
        findings.extend(_validate_instance(instance, declaration))

    for output in declaration.outputs:
        if declaration.get_instance(output.resource) is None:
            findings.append(Finding(ERROR, output.name, f"references undeclared instance '{output.resource}'"))
        if output.attribute not in OUTPUT_ATTRIBUTES:
            findings.append(Finding(ERROR, output.name, f"unsupported attribute '{output.attribute}'"))

    return findings


def check_declaration(declaration: Declaration) -> List[Finding]:
    """
    Validate a declaration and raise on errors.

    Returns:
        List[Finding]: The warnings, when there are no errors

    Raises:
        DeclarationError: If any finding is an error
    """
    findings = validate_declaration(declaration)
    errors = [f for f in findings if f.is_error]
    if errors:
        raise DeclarationError("; ".join(str(f) for f in errors))
    return findings
