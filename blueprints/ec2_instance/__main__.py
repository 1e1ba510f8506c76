"""
Single EC2 Instance Blueprint

Declares one EC2 instance in the account's default VPC, a security group
attached to it by ID, and two outputs:

- public_ip: the instance's public IP address
- public_dns: the instance's public DNS name

All values come from stack configuration (see Pulumi.dev.yaml). The key pair
named by ec2stack:keyName must already exist in the target region.
"""

import os
import sys

# Add the project root to the Python path so the blueprint runs from a checkout
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from ec2stack.config import load_declaration
from ec2stack.stack import deploy

declaration = load_declaration()
deploy(declaration)
