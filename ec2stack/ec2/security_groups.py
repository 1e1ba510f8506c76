import pulumi
import pulumi_aws as aws
from typing import List, Dict, Optional, Union, Any

from ..declaration import Rule, IngressRule, EgressRule, allow_all_egress


def _as_rule(rule: Union[Dict[str, Any], Rule], rule_class: type) -> Rule:
    if isinstance(rule, Rule):
        return rule
    return rule_class(
        protocol=rule["protocol"],
        from_port=rule["from_port"],
        to_port=rule["to_port"],
        cidr_blocks=rule.get("cidr_blocks", []),
        description=rule.get("description"),
    )


def rule_resource_name(sg_name: str, rule: Rule, taken: Dict[str, int]) -> str:
    """
    Build a stable resource name for a rule.

    Names depend on the rule itself rather than its position, so reordering the
    rule list does not replace rules. Repeated port ranges get a numeric suffix.
    """
    base = f"{sg_name}-{rule.direction}-{rule.protocol}-{rule.from_port}"
    if rule.to_port != rule.from_port:
        base = f"{base}-{rule.to_port}"
    count = taken.get(base, 0)
    taken[base] = count + 1
    return base if count == 0 else f"{base}-{count + 1}"


def create_security_group(
    name: str,
    vpc_id: str,
    description: str,
    ingress_rules: List[Union[Dict[str, Any], IngressRule]],
    egress_rules: Optional[List[Union[Dict[str, Any], EgressRule]]] = None,
    tags: Optional[Dict[str, str]] = None,
    opts: Optional[pulumi.ResourceOptions] = None,
) -> aws.ec2.SecurityGroup:
    """
    Create a security group with the specified rules.

    Args:
        name: Name of the security group
        vpc_id: ID of the VPC
        description: Description of the security group
        ingress_rules: List of ingress rules
        egress_rules: Optional list of egress rules (default: allow all outbound)
        tags: Optional dictionary of tags
        opts: Optional resource options applied to the group

    Returns:
        aws.ec2.SecurityGroup: The created security group
    """
    sg = aws.ec2.SecurityGroup(
        name,
        name=name,
        vpc_id=vpc_id,
        description=description,
        tags=tags,
        opts=opts,
    )

    rules = [_as_rule(rule, IngressRule) for rule in ingress_rules]
    if egress_rules is None:
        rules.append(allow_all_egress())
    else:
        rules.extend(_as_rule(rule, EgressRule) for rule in egress_rules)

    create_security_group_rules(name, sg, rules)

    return sg


def create_security_group_rules(
    name: str,
    sg: aws.ec2.SecurityGroup,
    rules: List[Rule],
) -> List[aws.ec2.SecurityGroupRule]:
    """
    Create one SecurityGroupRule resource per rule, parented to the group.

    Args:
        name: Name of the security group, used as the rule name prefix
        sg: The security group the rules belong to
        rules: Ingress and egress rules

    Returns:
        List[aws.ec2.SecurityGroupRule]: The created rules, in the order given
    """
    taken: Dict[str, int] = {}
    resources = []
    for rule in rules:
        resources.append(aws.ec2.SecurityGroupRule(
            rule_resource_name(name, rule, taken),
            security_group_id=sg.id,
            type=rule.direction,
            protocol=rule.protocol,
            from_port=rule.from_port,
            to_port=rule.to_port,
            cidr_blocks=rule.cidr_blocks,
            description=rule.description,
            opts=pulumi.ResourceOptions(parent=sg),
        ))
    return resources
