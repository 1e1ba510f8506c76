from typing import Dict, List, Optional

MANAGED_BY = "ec2stack"

# EC2 tagging limits
MAX_TAGS = 50
MAX_KEY_LENGTH = 128
MAX_VALUE_LENGTH = 256
RESERVED_PREFIX = "aws:"

def get_default_tags(project: str, environment: str = "dev") -> Dict[str, str]:
    """
    Get default tags for AWS resources.

    Project and Environment together identify a stack's resources in AWS.

    Args:
        project: Name of the project
        environment: Environment name (dev, prod, etc.)

    Returns:
        Dict[str, str]: Dictionary of default tags
    """
    return {
        "Project": project,
        "Environment": environment,
        "ManagedBy": MANAGED_BY,
    }

def merge_tags(default_tags: Dict[str, str], custom_tags: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Merge default tags with custom tags. Custom values win on conflicting keys.

    Args:
        default_tags: Default tags dictionary
        custom_tags: Optional custom tags dictionary

    Returns:
        Dict[str, str]: Merged tags dictionary
    """
    if custom_tags is None:
        return dict(default_tags)

    return {**default_tags, **custom_tags}

def tag_problems(tags: Dict[str, str]) -> List[str]:
    """
    Check a tag mapping against the EC2 tagging limits.

    Returns:
        List[str]: One message per problem, empty if the tags are acceptable
    """
    problems = []
    if len(tags) > MAX_TAGS:
        problems.append(f"{len(tags)} tags exceed the limit of {MAX_TAGS}")
    for key, value in tags.items():
        if not isinstance(key, str) or not key:
            problems.append(f"tag key {key!r} must be a non-empty string")
            continue
        if key.lower().startswith(RESERVED_PREFIX):
            problems.append(f"tag key '{key}' uses the reserved prefix '{RESERVED_PREFIX}'")
        if len(key) > MAX_KEY_LENGTH:
            problems.append(f"tag key '{key[:20]}...' is longer than {MAX_KEY_LENGTH} characters")
        if not isinstance(value, str):
            problems.append(f"tag '{key}' has a non-string value {value!r}")
        elif len(value) > MAX_VALUE_LENGTH:
            problems.append(f"tag '{key}' value is longer than {MAX_VALUE_LENGTH} characters")
    return problems
