"""
Describe what actually exists in AWS for a stack.

Used after ``destroy`` to confirm that nothing carrying the stack's tags is left
behind, and after ``up`` to list what was created.
"""

import boto3
from typing import Dict, List, Any, Optional

# Instances in these states no longer count as existing resources.
GONE_INSTANCE_STATES = ("shutting-down", "terminated")


def _tag_filters(tags: Dict[str, str]) -> List[Dict[str, Any]]:
    return [{"Name": f"tag:{key}", "Values": [value]} for key, value in sorted(tags.items())]


def describe_instances(
    tags: Dict[str, str],
    region: Optional[str] = None,
    session: Optional[boto3.Session] = None,
) -> List[Dict[str, Any]]:
    """
    List live EC2 instances carrying all of the given tags.

    Args:
        tags: Tags every returned instance must carry
        region: AWS region (defaults to the session's region)
        session: Optional boto3 session

    Returns:
        List[Dict[str, Any]]: Instances as returned by DescribeInstances
    """
    session = session or boto3.Session()
    client = session.client("ec2", region_name=region)
    paginator = client.get_paginator("describe_instances")

    instances = []
    for page in paginator.paginate(Filters=_tag_filters(tags)):
        for reservation in page["Reservations"]:
            for instance in reservation["Instances"]:
                if instance["State"]["Name"] not in GONE_INSTANCE_STATES:
                    instances.append(instance)
    return instances


def describe_security_groups(
    tags: Dict[str, str],
    region: Optional[str] = None,
    session: Optional[boto3.Session] = None,
) -> List[Dict[str, Any]]:
    """
    List security groups carrying all of the given tags.
    """
    session = session or boto3.Session()
    client = session.client("ec2", region_name=region)
    paginator = client.get_paginator("describe_security_groups")

    groups = []
    for page in paginator.paginate(Filters=_tag_filters(tags)):
        groups.extend(page["SecurityGroups"])
    return groups


def describe_stack_resources(
    tags: Dict[str, str],
    region: Optional[str] = None,
    session: Optional[boto3.Session] = None,
) -> Dict[str, List[str]]:
    """
    Describe the instances and security groups that belong to a stack.

    Args:
        tags: The stack's identifying tags (e.g. Project and Environment)
        region: AWS region
        session: Optional boto3 session

    Returns:
        Dict[str, List[str]]: Instance IDs under "instances" and security group
        IDs under "security_groups"; both lists are empty once the stack is destroyed

    Raises:
        botocore.exceptions.ClientError: If AWS rejects the describe calls
    """
    if not tags:
        raise ValueError("At least one tag is required to identify stack resources")

    session = session or boto3.Session()
    return {
        "instances": [i["InstanceId"] for i in describe_instances(tags, region, session)],
        "security_groups": [g["GroupId"] for g in describe_security_groups(tags, region, session)],
    }
