import pytest
import pulumi
from unittest.mock import patch
from ec2stack.config import (
    load_declaration,
    parse_rules,
    restrict_ssh_to,
    StaticConfig,
    stack_tags,
)
from ec2stack.declaration import IngressRule, EgressRule
from ec2stack.exceptions import DeclarationError

from conftest import FakeConfig

def test_load_declaration_defaults(make_config):
    """Test the declaration built from a minimal configuration."""
    declaration = load_declaration(make_config(), region="us-east-1")

    assert declaration.region == "us-east-1"
    assert len(declaration.instances) == 1
    assert len(declaration.security_groups) == 1

    instance = declaration.instances[0]
    sg = declaration.security_groups[0]

    assert instance.name == "ec2stack-instance"
    assert instance.instance_type == "t2.micro"
    assert instance.key_name == "windows"
    assert instance.ami is None
    assert instance.ami_family == "ubuntu"
    assert instance.security_groups == ["ec2stack-sg"]
    assert instance.root_volume.size == 20
    assert instance.root_volume.volume_type == "gp2"
    assert instance.root_volume.delete_on_termination is True
    assert instance.tags == {
        "Project": "ec2stack",
        "Environment": "dev",
        "ManagedBy": "ec2stack",
        "Name": "ec2stack-instance",
    }

    assert sg.name == "ec2stack-sg"
    assert sg.vpc_id is None
    assert sg.ingress == [IngressRule("tcp", 22, 22, ["0.0.0.0/0"])]
    assert sg.egress == [EgressRule("-1", 0, 0, ["0.0.0.0/0"])]

    assert [(o.name, o.resource, o.attribute) for o in declaration.outputs] == [
        ("public_ip", "ec2stack-instance", "public_ip"),
        ("public_dns", "ec2stack-instance", "public_dns"),
    ]

def test_load_declaration_overrides(make_config):
    """Test that configuration values override the defaults."""
    config = make_config(
        name="web",
        environment="prod",
        ami="ami-0c55b159cbfafe1f0",
        instanceType="t3.medium",
        rootVolumeSize=40,
        rootVolumeType="gp3",
        deleteOnTermination=False,
        vpcId="vpc-0123456789abcdef0",
        securityGroupIds=["sg-0123456789abcdef0"],
        tags={"Owner": "platform"},
        ingress=[{"protocol": "tcp", "port": 3389, "cidrBlocks": ["10.0.0.0/8"]}],
    )

    declaration = load_declaration(config, region="eu-west-1")
    instance = declaration.instances[0]
    sg = declaration.security_groups[0]

    assert instance.name == "web-instance"
    assert instance.ami == "ami-0c55b159cbfafe1f0"
    assert instance.instance_type == "t3.medium"
    assert instance.security_groups == ["web-sg", "sg-0123456789abcdef0"]
    assert instance.root_volume.size == 40
    assert instance.root_volume.volume_type == "gp3"
    assert instance.root_volume.delete_on_termination is False
    assert instance.tags["Environment"] == "prod"
    assert instance.tags["Owner"] == "platform"
    assert sg.vpc_id == "vpc-0123456789abcdef0"
    assert sg.ingress == [IngressRule("tcp", 3389, 3389, ["10.0.0.0/8"])]

def test_load_declaration_keeps_zero_volume_size(make_config):
    """An explicit zero size is passed through for validation to reject."""
    declaration = load_declaration(make_config(rootVolumeSize=0), region="us-east-1")
    assert declaration.instances[0].root_volume.size == 0

def test_load_declaration_requires_key_name():
    """Test that the key pair name is required."""

    with pytest.raises(pulumi.ConfigMissingError):
        load_declaration(FakeConfig({}), region="us-east-1")

@patch('ec2stack.config.get_local_public_ip')
def test_load_declaration_allow_local_ip(mock_ip, make_config):
    """Test restricting SSH to the local machine."""
    mock_ip.return_value = "198.51.100.7"

    declaration = load_declaration(make_config(allowLocalIp=True), region="us-east-1")

    assert declaration.security_groups[0].ingress[0].cidr_blocks == ["198.51.100.7/32"]

@patch('ec2stack.config.get_local_public_ip')
def test_load_declaration_allow_local_ip_unknown(mock_ip, make_config):
    """Test that an undeterminable local IP is an error."""
    mock_ip.return_value = None

    with pytest.raises(DeclarationError, match="local public IP"):
        load_declaration(make_config(allowLocalIp=True), region="us-east-1")

def test_parse_rules():
    """Test parsing rules from a config object."""
    rules = parse_rules(
        [
            {"protocol": "tcp", "fromPort": 8000, "toPort": 8080, "description": "App"},
            {"protocol": "udp", "port": "53", "cidrBlocks": ["10.0.0.0/8"]},
        ],
        IngressRule,
        "ingress",
    )

    assert rules == [
        IngressRule("tcp", 8000, 8080, ["0.0.0.0/0"]),
        IngressRule("udp", 53, 53, ["10.0.0.0/8"]),
    ]
    assert rules[0].description == "App"

@pytest.mark.parametrize("raw", [
    {"protocol": "tcp"},
    [{"protocol": "tcp"}],
    [{"protocol": "tcp", "fromPort": "ssh"}],
    ["tcp/22"],
])
def test_parse_rules_invalid(raw):
    """Test that malformed rule lists are rejected."""
    with pytest.raises(DeclarationError):
        parse_rules(raw, IngressRule, "ingress")

def test_restrict_ssh_to():
    """Only rules covering the SSH port are restricted."""
    rules = [
        IngressRule("tcp", 22, 22, ["0.0.0.0/0"]),
        IngressRule("tcp", 80, 80, ["0.0.0.0/0"]),
        IngressRule("tcp", 0, 1024, ["0.0.0.0/0"]),
    ]

    restricted = restrict_ssh_to(rules, "198.51.100.7/32")

    assert restricted[0].cidr_blocks == ["198.51.100.7/32"]
    assert restricted[1].cidr_blocks == ["0.0.0.0/0"]
    assert restricted[2].cidr_blocks == ["198.51.100.7/32"]
    assert rules[0].cidr_blocks == ["0.0.0.0/0"]

def test_restrict_ssh_to_all_traffic_rule():
    """An all-traffic rule opens SSH whatever its port fields say."""
    rules = [
        IngressRule("-1", 0, 0, ["0.0.0.0/0"]),
        IngressRule("all", 0, 0, ["0.0.0.0/0"]),
        IngressRule("udp", 0, 65535, ["0.0.0.0/0"]),
    ]

    restricted = restrict_ssh_to(rules, "198.51.100.7/32")

    assert restricted[0].cidr_blocks == ["198.51.100.7/32"]
    assert restricted[1].cidr_blocks == ["198.51.100.7/32"]
    assert restricted[2].cidr_blocks == ["0.0.0.0/0"]

def test_parse_rules_single_cidr_block():
    """A single CIDR block may be given as a string."""
    rules = parse_rules([{"port": 22, "cidrBlocks": "10.0.0.0/8"}], IngressRule, "ingress")
    assert rules[0].cidr_blocks == ["10.0.0.0/8"]

def test_parse_rules_invalid_cidr_blocks():
    """CIDR blocks must be a string or a list."""
    with pytest.raises(DeclarationError, match=r"ingress\[0\]\.cidrBlocks"):
        parse_rules([{"port": 22, "cidrBlocks": 10}], IngressRule, "ingress")

class MalformedConfig(FakeConfig):
    """Config whose typed getters fail the way pulumi.Config does on bad values."""

    def get_int(self, key):
        if key in self.values:
            raise pulumi.ConfigTypeError(f"ec2stack:{key}", self.values[key], "int")
        return None

    def get_bool(self, key):
        if key in self.values:
            raise pulumi.ConfigTypeError(f"ec2stack:{key}", self.values[key], "bool")
        return None

@pytest.mark.parametrize("key", ["rootVolumeSize", "deleteOnTermination", "allowLocalIp"])
def test_load_declaration_malformed_typed_value(key):
    """Malformed typed values are reported as declaration errors."""
    config = MalformedConfig({"keyName": "windows", key: "lots"})

    with pytest.raises(DeclarationError, match=key):
        load_declaration(config, region="us-east-1")

def test_static_config_from_pulumi_json():
    """Test reading the output of `pulumi config --json`."""
    data = {
        "aws:region": {"value": "us-east-1", "secret": False},
        "ec2stack:keyName": {"value": "windows", "secret": False},
        "ec2stack:rootVolumeSize": {"value": "30", "secret": False},
        "ec2stack:deleteOnTermination": {"value": "false", "secret": False},
        "ec2stack:tags": {
            "value": "{\"Owner\":\"platform\"}",
            "objectValue": {"Owner": "platform"},
            "secret": False,
        },
    }

    config = StaticConfig.from_pulumi_json(data)

    assert config.require("keyName") == "windows"
    assert config.get_int("rootVolumeSize") == 30
    assert config.get_bool("deleteOnTermination") is False
    assert config.get_object("tags") == {"Owner": "platform"}
    assert config.get("missing") is None
    assert StaticConfig.from_pulumi_json(data, namespace="aws").get("region") == "us-east-1"

def test_static_config_errors():
    """Test type errors and missing required values."""
    config = StaticConfig({"ec2stack:rootVolumeSize": "big", "ec2stack:allowLocalIp": "yes"})

    with pytest.raises(DeclarationError):
        config.get_int("rootVolumeSize")
    with pytest.raises(DeclarationError):
        config.get_bool("allowLocalIp")
    with pytest.raises(DeclarationError, match="keyName"):
        config.require("keyName")

def test_static_config_drives_load_declaration():
    """Test building a declaration from a StaticConfig."""
    config = StaticConfig({
        "ec2stack:keyName": "windows",
        "ec2stack:ingress": "[{\"protocol\": \"tcp\", \"port\": 443}]",
    })

    declaration = load_declaration(config, region="us-east-1")

    assert declaration.instances[0].key_name == "windows"
    assert declaration.security_groups[0].ingress == [IngressRule("tcp", 443, 443, ["0.0.0.0/0"])]

def test_stack_tags_apply_configured_overrides(make_config):
    """Configured tags override the defaults and match the resources' tags."""
    config = make_config(name="web", tags={"Environment": "staging", "Owner": "ops"})

    tags = stack_tags(config)

    assert tags == {"Project": "web", "Environment": "staging", "ManagedBy": "ec2stack", "Owner": "ops"}
    instance_tags = load_declaration(config, region="us-east-1").instances[0].tags
    assert {k: v for k, v in instance_tags.items() if k != "Name"} == tags
