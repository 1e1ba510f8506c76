#!/usr/bin/env python3
"""
Manage Stack Script

This script provides a command-line interface for the ec2stack Pulumi program:
validating the stack configuration, initializing the stack, previewing (plan),
applying, destroying, reading outputs and verifying what exists in AWS.
"""

import argparse
import sys
import os
import json
from typing import List, Dict, Any

from botocore.exceptions import BotoCoreError, ClientError

# Add the parent directory to the path so we can import the ec2stack package
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ec2stack.config import StaticConfig, load_declaration, stack_tags
from ec2stack.exceptions import DeclarationError
from ec2stack.utils.inventory import describe_stack_resources
from ec2stack.utils.stack_manager import StackManager, get_stack_outputs
from ec2stack.validation import validate_declaration

EXPECTED_OUTPUTS = ("public_ip", "public_dns")

def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Manage the ec2stack Pulumi stack"
    )
    parser.add_argument("--stack", default="dev", help="Pulumi stack name (default: dev)")
    parser.add_argument("--cwd", help="Directory containing Pulumi.yaml (default: blueprints/ec2_instance)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("validate", help="Validate the stack configuration without touching AWS")
    subparsers.add_parser("init", help="Select or create the stack and install plugins")
    subparsers.add_parser("plan", help="Preview the changes an apply would make")

    apply_parser = subparsers.add_parser("apply", help="Create or update the declared resources")
    apply_parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    destroy_parser = subparsers.add_parser("destroy", help="Destroy all declared resources")
    destroy_parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    outputs_parser = subparsers.add_parser("outputs", help="Show the stack outputs")
    outputs_parser.add_argument("--json", action="store_true", help="Output in JSON format")

    verify_parser = subparsers.add_parser("verify", help="Check the stack against AWS")
    verify_parser.add_argument(
        "--destroyed",
        action="store_true",
        help="Check that no resource of the stack is left in AWS",
    )

    return parser.parse_args(argv)

def display_findings(findings) -> None:
    """Display validation findings."""
    if not findings:
        print("Declaration is valid.")
        return
    for finding in findings:
        print(f"  {finding}")

def display_outputs(outputs: Dict[str, Any], json_output: bool = False) -> None:
    """Display stack outputs."""
    if json_output:
        print(json.dumps(outputs, indent=2))
        return

    if not outputs:
        print("No outputs. The stack has not been applied yet.")
        return

    for name, value in outputs.items():
        print(f"{name}: {value}")

def display_change_summary(summary: Dict[str, int]) -> None:
    """Display a preview change summary."""
    pending = StackManager.pending_changes(summary)
    for op, count in sorted(summary.items()):
        print(f"  {op}: {count}")
    if pending == 0:
        print("No changes. The stack is up to date.")
    else:
        print(f"{pending} resource(s) would change.")

def validate(manager: StackManager) -> int:
    data = manager.get_config()
    values = StaticConfig.from_pulumi_json(data)
    region = StaticConfig.from_pulumi_json(data, namespace="aws").get("region")
    try:
        declaration = load_declaration(values, region=region)
    except DeclarationError as e:
        print(f"Invalid configuration: {e}")
        return 1

    findings = validate_declaration(declaration)
    display_findings(findings)
    return 1 if any(f.is_error for f in findings) else 0

def verify(manager: StackManager, destroyed: bool) -> int:
    data = manager.get_config()
    config = StaticConfig.from_pulumi_json(data)
    region = StaticConfig.from_pulumi_json(data, namespace="aws").get("region")
    try:
        tags = stack_tags(config)
    except DeclarationError as e:
        print(f"Invalid configuration: {e}")
        return 1

    try:
        resources = describe_stack_resources(tags, region=region)
    except (BotoCoreError, ClientError) as e:
        print(f"Error describing stack resources: {e}")
        return 1

    if destroyed:
        leftover: List[str] = resources["instances"] + resources["security_groups"]
        if leftover:
            print(f"Resources still exist: {', '.join(leftover)}")
            return 1
        print("No stack resources exist in AWS.")
        return 0

    problems = []
    outputs = manager.outputs()
    for name in EXPECTED_OUTPUTS:
        if not outputs.get(name):
            problems.append(f"output {name} is empty")
    if len(resources["instances"]) != 1:
        problems.append(f"expected 1 instance, found {len(resources['instances'])}")
    if manager.is_idempotent() is not True:
        problems.append("a new apply would change resources")

    if problems:
        for problem in problems:
            print(f"  {problem}")
        return 1
    print("Stack is applied, up to date and exports its outputs.")
    return 0

def main(argv=None) -> int:
    """Main function."""
    args = parse_args(argv)
    manager = StackManager(args.stack, args.cwd)

    if args.command == "validate":
        return validate(manager)

    elif args.command == "init":
        return 0 if manager.init() else 1

    elif args.command == "plan":
        summary = manager.preview()
        if summary is None:
            return 1
        display_change_summary(summary)
        return 0

    elif args.command == "apply":
        if not manager.up(yes=args.yes):
            return 1
        display_outputs(manager.outputs())
        return 0

    elif args.command == "destroy":
        return 0 if manager.destroy(yes=args.yes) else 1

    elif args.command == "outputs":
        display_outputs(get_stack_outputs(args.stack, args.cwd), args.json)
        return 0

    elif args.command == "verify":
        return verify(manager, args.destroyed)

    print("Please specify a command. Use --help for more information.")
    return 1

if __name__ == "__main__":
    sys.exit(main())
