"""
Stack Manager Utility

This module drives the Pulumi CLI for an ec2stack program: selecting or creating
a stack, setting configuration, previewing (plan), updating (apply), destroying
and reading stack outputs. Pulumi owns the state and the diff; this module only
runs the commands and interprets their JSON output.
"""

import os
import json
import subprocess
import shutil
from typing import List, Dict, Optional, Any

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_PROGRAM_DIR = os.path.join(PROJECT_ROOT, "blueprints", "ec2_instance")

# Operations in a preview change summary that leave the resource untouched.
NO_CHANGE_OPS = ("same", "read")

class StackManager:
    """
    Runs Pulumi CLI commands against one stack of one program directory.
    """

    def __init__(self, stack: str = "dev", program_dir: Optional[str] = None):
        """
        Initialize the stack manager.

        Args:
            stack: Name of the Pulumi stack
            program_dir: Directory containing Pulumi.yaml (defaults to the ec2_instance blueprint)
        """
        self.stack = stack
        self.program_dir = program_dir or DEFAULT_PROGRAM_DIR

    def _check_pulumi_installed(self) -> bool:
        """
        Check if Pulumi CLI is installed and available.

        Returns:
            bool: True if Pulumi is installed, False otherwise
        """
        return shutil.which("pulumi") is not None

    def _command(self, *args: str, with_stack: bool = True) -> List[str]:
        cmd = ["pulumi", *args, "--cwd", self.program_dir]
        if with_stack:
            cmd.extend(["--stack", self.stack])
        return cmd

    def _env(self) -> Dict[str, str]:
        # Set PULUMI_SKIP_UPDATE_CHECK to avoid update checks that might cause errors
        env = os.environ.copy()
        env["PULUMI_SKIP_UPDATE_CHECK"] = "true"
        return env

    def _run(self, cmd: List[str], interactive: bool = False) -> Optional[subprocess.CompletedProcess]:
        """
        Run a Pulumi command.

        Interactive commands inherit the terminal so that Pulumi can prompt for
        confirmation; other commands have their output captured.

        Returns:
            Optional[subprocess.CompletedProcess]: The result, or None if Pulumi is missing
        """
        if not self._check_pulumi_installed():
            print("Error: Pulumi CLI is not installed or not in PATH")
            print("Please install Pulumi CLI: https://www.pulumi.com/docs/install/")
            return None

        if interactive:
            return subprocess.run(cmd, env=self._env())
        return subprocess.run(cmd, capture_output=True, text=True, env=self._env())

    def init(self) -> bool:
        """
        Select the stack, creating it if needed, and install the program's plugins.

        Returns:
            bool: True if successful, False otherwise
        """
        result = self._run(self._command("stack", "select", "--create", self.stack, with_stack=False))
        if result is None:
            return False
        if result.returncode != 0:
            print(f"Failed to select stack {self.stack}: {result.stderr}")
            print("Make sure you're logged in to Pulumi: run 'pulumi login'")
            return False

        result = self._run(self._command("install", with_stack=False))
        if result is None or result.returncode != 0:
            print(f"Failed to install plugins: {result.stderr if result else ''}")
            return False

        print(f"Stack {self.stack} is ready in {self.program_dir}")
        return True

    def set_config(self, key: str, value: str, secret: bool = False, path: bool = False) -> bool:
        """
        Set a stack configuration value.

        Args:
            key: Configuration key (e.g. ec2stack:keyName)
            value: Value to set
            secret: Whether to store the value encrypted
            path: Whether the key is a property path (e.g. ec2stack:tags.Owner)

        Returns:
            bool: True if successful, False otherwise
        """
        args = ["config", "set", key, value]
        if secret:
            args.append("--secret")
        if path:
            args.append("--path")

        result = self._run(self._command(*args))
        if result is None:
            return False
        if result.returncode != 0:
            print(f"Failed to set {key}: {result.stderr}")
            return False
        return True

    def get_config(self) -> Dict[str, Any]:
        """
        Get the stack configuration as reported by ``pulumi config --json``.

        Returns:
            Dict[str, Any]: Entries keyed by namespaced key (e.g. ec2stack:keyName),
            each with a "value" and, for structured values, an "objectValue"
        """
        result = self._run(self._command("config", "--json"))
        if result is None:
            return {}
        if result.returncode != 0:
            print(f"Error reading configuration of stack {self.stack}: {result.stderr}")
            return {}

        try:
            return json.loads(result.stdout) if result.stdout.strip() else {}
        except json.JSONDecodeError:
            print("Error: Could not parse Pulumi config output")
            return {}

    def preview(self) -> Optional[Dict[str, int]]:
        """
        Preview the stack (plan) and return its change summary.

        Returns:
            Optional[Dict[str, int]]: Number of resources per operation
            (e.g. {"create": 4} or {"same": 4}), None if the preview failed
        """
        result = self._run(self._command("preview", "--json"))
        if result is None:
            return None

        try:
            data = json.loads(result.stdout) if result.stdout else {}
        except json.JSONDecodeError:
            print(f"Error: Could not parse Pulumi preview output: {result.stderr}")
            return None

        if result.returncode != 0:
            for diagnostic in data.get("diagnostics", []):
                if diagnostic.get("severity") == "error":
                    print(diagnostic.get("message", "").strip())
            print(f"Preview of stack {self.stack} failed")
            return None

        return data.get("changeSummary", {})

    @staticmethod
    def pending_changes(change_summary: Dict[str, int]) -> int:
        """
        Count the resources a change summary would create, update, replace or delete.
        """
        return sum(count for op, count in change_summary.items() if op not in NO_CHANGE_OPS)

    def is_idempotent(self) -> Optional[bool]:
        """
        Check that applying the stack again would change nothing.

        Returns:
            Optional[bool]: True if the preview reports zero changes, None if it failed
        """
        summary = self.preview()
        if summary is None:
            return None
        return self.pending_changes(summary) == 0

    def up(self, yes: bool = False) -> bool:
        """
        Apply the stack. Without yes, Pulumi shows the plan and asks for confirmation.

        Returns:
            bool: True if successful, False otherwise
        """
        args = ["up", "--yes"] if yes else ["up"]
        result = self._run(self._command(*args), interactive=True)
        if result is None:
            return False
        if result.returncode != 0:
            print(f"Update of stack {self.stack} failed or was cancelled")
            return False
        return True

    def destroy(self, yes: bool = False) -> bool:
        """
        Destroy every resource in the stack. Without yes, Pulumi asks for confirmation.

        Returns:
            bool: True if successful, False otherwise
        """
        args = ["destroy", "--yes"] if yes else ["destroy"]
        result = self._run(self._command(*args), interactive=True)
        if result is None:
            return False
        if result.returncode != 0:
            print(f"Destroy of stack {self.stack} failed or was cancelled")
            return False
        return True

    def outputs(self) -> Dict[str, Any]:
        """
        Get the stack outputs.

        Outputs only exist after a successful update, so a stack that was never
        applied (or was destroyed) returns an empty dictionary.

        Returns:
            Dict[str, Any]: Stack outputs
        """
        result = self._run(self._command("stack", "output", "--json"))
        if result is None:
            return {}
        if result.returncode != 0:
            print(f"Error getting outputs of stack {self.stack}: {result.stderr}")
            return {}

        try:
            outputs = json.loads(result.stdout) if result.stdout.strip() else {}
        except json.JSONDecodeError:
            return {}
        # Drop unresolved or empty values
        return {name: value for name, value in outputs.items() if value not in (None, "")}


def get_stack_outputs(stack: str = "dev", program_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Get the outputs of a stack.

    Args:
        stack: Name of the stack
        program_dir: Directory containing Pulumi.yaml

    Returns:
        Dict[str, Any]: Stack outputs
    """
    return StackManager(stack, program_dir).outputs()
