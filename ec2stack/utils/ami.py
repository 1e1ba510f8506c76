import pulumi_aws as aws

from ..exceptions import DeclarationError

CANONICAL_OWNER = "099720109477"
AMAZON_OWNER = "amazon"

UBUNTU_CODENAMES = {
    "20.04": "focal",
    "22.04": "jammy",
    "24.04": "noble",
}

def get_ubuntu_ami(
    version: str = "22.04",
    architecture: str = "amd64",
    virtualization_type: str = "hvm",
) -> str:
    """
    Get the latest Ubuntu AMI ID.

    Args:
        version: Ubuntu version (e.g., "22.04")
        architecture: CPU architecture (amd64, arm64)
        virtualization_type: Virtualization type (hvm, paravirtual)

    Returns:
        str: AMI ID
    """
    codename = UBUNTU_CODENAMES.get(version)
    if codename is None:
        raise DeclarationError(f"Unsupported Ubuntu version '{version}'")
    volume_prefix = "hvm-ssd-gp3" if version == "24.04" else "hvm-ssd"

    ami = aws.ec2.get_ami(
        most_recent=True,
        owners=[CANONICAL_OWNER],
        filters=[
            {
                "name": "name",
                "values": [f"ubuntu/images/{volume_prefix}/ubuntu-{codename}-{version}-{architecture}-server-*"]
            },
            {
                "name": "virtualization-type",
                "values": [virtualization_type]
            },
            {
                "name": "root-device-type",
                "values": ["ebs"]
            }
        ]
    )
    return ami.id

def get_amazon_linux_ami(
    version: int = 2023,
    architecture: str = "x86_64",
) -> str:
    """
    Get the latest Amazon Linux AMI ID.

    Args:
        version: Amazon Linux version (2 or 2023)
        architecture: CPU architecture (x86_64, arm64)

    Returns:
        str: AMI ID
    """
    if version == 2:
        name_filter = f"amzn2-ami-hvm-*-{architecture}-gp2"
    else:
        name_filter = f"al2023-ami-2023.*-{architecture}"

    ami = aws.ec2.get_ami(
        most_recent=True,
        owners=[AMAZON_OWNER],
        filters=[
            {
                "name": "name",
                "values": [name_filter]
            },
            {
                "name": "virtualization-type",
                "values": ["hvm"]
            }
        ]
    )
    return ami.id

def get_windows_ami(version: str = "2022") -> str:
    """
    Get the latest Windows Server (English, full base) AMI ID.

    Args:
        version: Windows Server version (2019, 2022, ...)

    Returns:
        str: AMI ID
    """
    ami = aws.ec2.get_ami(
        most_recent=True,
        owners=[AMAZON_OWNER],
        filters=[
            {
                "name": "name",
                "values": [f"Windows_Server-{version}-English-Full-Base-*"]
            },
            {
                "name": "platform",
                "values": ["windows"]
            }
        ]
    )
    return ami.id

AMI_FAMILIES = {
    "ubuntu": get_ubuntu_ami,
    "amazon-linux": get_amazon_linux_ami,
    "windows": get_windows_ami,
}

def resolve_ami(family: str) -> str:
    """
    Get the latest AMI ID of an image family.

    Args:
        family: One of the keys of AMI_FAMILIES

    Returns:
        str: AMI ID
    """
    lookup = AMI_FAMILIES.get(family)
    if lookup is None:
        raise DeclarationError(
            f"Unknown AMI family '{family}', expected one of {', '.join(sorted(AMI_FAMILIES))}"
        )
    return lookup()
