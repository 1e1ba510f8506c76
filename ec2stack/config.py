"""
Build a Declaration from Pulumi stack configuration.

All settings live under the ``ec2stack`` namespace of the stack's
``Pulumi.<stack>.yaml``; only ``keyName`` is required.
"""

import json
import pulumi
from typing import List, Dict, Optional, Any

from .declaration import (
    Declaration,
    InstanceDeclaration,
    SecurityGroupDeclaration,
    RootVolume,
    IngressRule,
    EgressRule,
    Rule,
    ALL_TRAFFIC_CIDR,
    DEFAULT_VOLUME_TYPE,
    default_outputs,
)
from .exceptions import DeclarationError
from .utils.tags import get_default_tags, merge_tags
from .utils.ip import get_local_public_ip, format_cidr_from_ip

CONFIG_NAMESPACE = "ec2stack"

DEFAULTS = {
    "name": "ec2stack",
    "environment": "dev",
    "amiFamily": "ubuntu",
    "instanceType": "t2.micro",
    "rootVolumeSize": 20,
    "rootVolumeType": DEFAULT_VOLUME_TYPE,
    "deleteOnTermination": True,
}

SSH_PORT = 22
ALL_PROTOCOLS = ("-1", "all")


def default_ingress_rules() -> List[IngressRule]:
    return [
        IngressRule(
            protocol="tcp",
            from_port=SSH_PORT,
            to_port=SSH_PORT,
            cidr_blocks=[ALL_TRAFFIC_CIDR],
            description="SSH access",
        )
    ]


def parse_rules(raw: Any, rule_class: type, key: str) -> List[Rule]:
    """
    Parse a list of rules from a config object.

    Each entry is a mapping with ``protocol``, ``fromPort``, ``toPort`` and
    optionally ``cidrBlocks`` and ``description``. A single ``port`` may be
    given instead of the port range.

    Raises:
        DeclarationError: If the value is not a list of well-formed rules
    """
    if not isinstance(raw, list):
        raise DeclarationError(f"{CONFIG_NAMESPACE}:{key} must be a list of rules")

    rules = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise DeclarationError(f"{CONFIG_NAMESPACE}:{key}[{index}] must be a mapping")
        try:
            from_port = entry.get("fromPort", entry.get("port"))
            to_port = entry.get("toPort", from_port)
            rules.append(rule_class(
                protocol=str(entry.get("protocol", "tcp")),
                from_port=int(from_port),
                to_port=int(to_port),
                cidr_blocks=_cidr_list(entry.get("cidrBlocks", [ALL_TRAFFIC_CIDR]), key, index),
                description=entry.get("description"),
            ))
        except (TypeError, ValueError) as e:
            raise DeclarationError(f"{CONFIG_NAMESPACE}:{key}[{index}] has an invalid port: {e}") from e
    return rules


def restrict_ssh_to(rules: List[IngressRule], cidr: str) -> List[IngressRule]:
    """
    Replace the CIDR blocks of every rule that opens the SSH port with a single block.

    All-traffic rules open every port whatever their port fields say.
    """
    restricted = []
    for rule in rules:
        opens_ssh = rule.protocol in ALL_PROTOCOLS or (
            rule.protocol == "tcp" and rule.from_port <= SSH_PORT <= rule.to_port
        )
        if opens_ssh:
            rule = IngressRule(
                protocol=rule.protocol,
                from_port=rule.from_port,
                to_port=rule.to_port,
                cidr_blocks=[cidr],
                description=rule.description,
            )
        restricted.append(rule)
    return restricted


def _cidr_list(raw: Any, key: str, index: int) -> List[str]:
    if isinstance(raw, str):
        return [raw]
    if not isinstance(raw, list):
        raise DeclarationError(f"{CONFIG_NAMESPACE}:{key}[{index}].cidrBlocks must be a CIDR block or a list of them")
    return [str(cidr) for cidr in raw]


class StaticConfig:
    """
    Read-only configuration backed by a dictionary, with the accessors of
    ``pulumi.Config``. Used outside a running Pulumi program, e.g. to validate a
    stack's configuration from the command line.
    """

    def __init__(self, values: Dict[str, Any], namespace: str = CONFIG_NAMESPACE):
        self.namespace = namespace
        self.values = values

    @classmethod
    def from_pulumi_json(cls, data: Dict[str, Dict[str, Any]], namespace: str = CONFIG_NAMESPACE) -> "StaticConfig":
        """
        Build a config from the output of ``pulumi config --json``.
        """
        values = {}
        for full_key, entry in data.items():
            values[full_key] = entry.get("objectValue", entry.get("value"))
        return cls(values, namespace)

    def _raw(self, key: str) -> Any:
        return self.values.get(f"{self.namespace}:{key}")

    def get(self, key: str) -> Optional[str]:
        value = self._raw(key)
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)

    def get_int(self, key: str) -> Optional[int]:
        value = self.get(key)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError as e:
            raise DeclarationError(f"{self.namespace}:{key} must be an integer, got '{value}'") from e

    def get_bool(self, key: str) -> Optional[bool]:
        value = self.get(key)
        if value is None:
            return None
        if value not in ("true", "false"):
            raise DeclarationError(f"{self.namespace}:{key} must be true or false, got '{value}'")
        return value == "true"

    def get_object(self, key: str) -> Any:
        value = self._raw(key)
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                raise DeclarationError(f"{self.namespace}:{key} is not valid JSON") from e
        return value

    def require(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise DeclarationError(f"Missing required configuration value {self.namespace}:{key}")
        return value


def stack_tags(config: Optional[pulumi.Config] = None) -> Dict[str, str]:
    """
    Get the tags every resource of the stack carries.

    The default tags for the configured name and environment, overridden by
    ``ec2stack:tags``. Resources also get their own ``Name`` tag.
    """
    config = config or pulumi.Config(CONFIG_NAMESPACE)
    name = config.get("name") or DEFAULTS["name"]
    environment = config.get("environment") or DEFAULTS["environment"]
    return merge_tags(get_default_tags(name, environment), _get_object(config, "tags"))


def load_declaration(config: Optional[pulumi.Config] = None, region: Optional[str] = None) -> Declaration:
    """
    Build the stack declaration from configuration.

    Args:
        config: Config to read (defaults to the ec2stack namespace)
        region: AWS region (defaults to aws:region)

    Returns:
        Declaration: One security group, one instance and the public_ip/public_dns outputs
    """
    config = config or pulumi.Config(CONFIG_NAMESPACE)
    if region is None:
        region = pulumi.Config("aws").get("region")

    name = config.get("name") or DEFAULTS["name"]
    tags = stack_tags(config)

    raw_ingress = _get_object(config, "ingress")
    ingress = default_ingress_rules() if raw_ingress is None else parse_rules(raw_ingress, IngressRule, "ingress")
    raw_egress = _get_object(config, "egress")
    egress = None if raw_egress is None else parse_rules(raw_egress, EgressRule, "egress")

    if _typed(config.get_bool, "allowLocalIp"):
        local_ip = get_local_public_ip()
        if not local_ip:
            raise DeclarationError("allowLocalIp is set but the local public IP could not be determined")
        local_cidr = format_cidr_from_ip(local_ip)
        pulumi.log.info(f"Restricting SSH access to {local_cidr}")
        ingress = restrict_ssh_to(ingress, local_cidr)

    security_group = SecurityGroupDeclaration(
        name=f"{name}-sg",
        description=f"Security group for {name}",
        ingress=ingress,
        egress=egress,
        vpc_id=config.get("vpcId"),
        tags=merge_tags(tags, {"Name": f"{name}-sg"}),
    )

    root_volume = RootVolume(
        size=_get_int(config, "rootVolumeSize"),
        volume_type=config.get("rootVolumeType") or DEFAULTS["rootVolumeType"],
        delete_on_termination=_get_bool(config, "deleteOnTermination"),
    )

    instance = InstanceDeclaration(
        name=f"{name}-instance",
        instance_type=config.get("instanceType") or DEFAULTS["instanceType"],
        key_name=config.require("keyName"),
        security_groups=[security_group.name] + list(_get_object(config, "securityGroupIds") or []),
        ami=config.get("ami"),
        ami_family=config.get("amiFamily") or DEFAULTS["amiFamily"],
        root_volume=root_volume,
        tags=merge_tags(tags, {"Name": f"{name}-instance"}),
        user_data=config.get("userData"),
    )

    return Declaration(
        instances=[instance],
        security_groups=[security_group],
        outputs=default_outputs(instance.name),
        region=region,
    )


def _typed(getter, key: str) -> Any:
    try:
        return getter(key)
    except (pulumi.ConfigTypeError, ValueError) as e:
        raise DeclarationError(f"{CONFIG_NAMESPACE}:{key}: {e}") from e


def _get_object(config: pulumi.Config, key: str) -> Any:
    return _typed(config.get_object, key)


def _get_bool(config: pulumi.Config, key: str) -> bool:
    value = _typed(config.get_bool, key)
    return DEFAULTS[key] if value is None else value


def _get_int(config: pulumi.Config, key: str) -> int:
    value = _typed(config.get_int, key)
    return DEFAULTS[key] if value is None else value
