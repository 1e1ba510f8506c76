"""
Shared test fixtures and configuration.

Resources created in tests are registered against Pulumi mocks, so no Pulumi
engine or AWS credentials are needed.
"""

import pytest
import pulumi
import os
import sys

# Add the parent directory to the path so we can import the ec2stack package
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

DEFAULT_VPC_ID = "vpc-0a1b2c3d4e5f60718"
MOCK_AMI_ID = "ami-0123456789abcdef0"
MOCK_PUBLIC_IP = "203.0.113.10"
MOCK_PUBLIC_DNS = "ec2-203-0-113-10.compute-1.amazonaws.com"
EXISTING_KEY_PAIRS = ("windows", "demo-key")


class Ec2StackMocks(pulumi.runtime.Mocks):
    """Mock Pulumi engine for testing."""

    def __init__(self):
        self.invocations = []

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        if args.typ == "aws:ec2/instance:Instance":
            outputs.update({
                "publicIp": MOCK_PUBLIC_IP,
                "publicDns": MOCK_PUBLIC_DNS,
                "privateIp": "172.31.16.10",
            })
        elif args.typ == "aws:ec2/securityGroup:SecurityGroup":
            outputs.update({"arn": f"arn:aws:ec2:us-east-1:123456789012:security-group/{args.name}"})
        return [f"{args.name}-id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        self.invocations.append(args.token)
        if args.token == "aws:ec2/getVpc:getVpc":
            return {"id": DEFAULT_VPC_ID, "cidrBlock": "172.31.0.0/16", "default": True}
        if args.token == "aws:ec2/getAmi:getAmi":
            return {"id": MOCK_AMI_ID, "imageId": MOCK_AMI_ID, "architecture": "x86_64"}
        if args.token == "aws:ec2/getKeyPair:getKeyPair":
            key_name = args.args.get("keyName")
            if key_name not in EXISTING_KEY_PAIRS:
                return {}, [("keyName", f"no matching EC2 Key Pair found for {key_name}")]
            return {"id": f"key-{key_name}", "keyName": key_name, "keyPairId": f"key-{key_name}"}
        return {}


MOCKS = Ec2StackMocks()
pulumi.runtime.set_mocks(MOCKS, preview=False)


@pytest.fixture
def mocks():
    """Fixture exposing the installed Pulumi mocks."""
    MOCKS.invocations.clear()
    return MOCKS


class FakeConfig:
    """Stand-in for pulumi.Config backed by a dictionary of unprefixed keys."""

    def __init__(self, values=None):
        self.values = values or {}

    def get(self, key):
        value = self.values.get(key)
        return None if value is None else str(value)

    def get_int(self, key):
        value = self.values.get(key)
        return None if value is None else int(value)

    def get_bool(self, key):
        return self.values.get(key)

    def get_object(self, key):
        return self.values.get(key)

    def require(self, key):
        if key not in self.values:
            raise pulumi.ConfigMissingError(f"ec2stack:{key}", False)
        return str(self.values[key])


@pytest.fixture
def make_config():
    """Fixture building a FakeConfig with a key pair already set."""
    def _make(**values):
        values.setdefault("keyName", "windows")
        return FakeConfig(values)
    return _make


def nested_value(value, name):
    """Read a field of a nested output that may resolve to an object or a plain dict."""
    if not isinstance(value, dict):
        return getattr(value, name)
    if name in value:
        return value[name]
    first, *rest = name.split("_")
    return value[first + "".join(part.title() for part in rest)]
