"""
CLI command for validating a template with the provider.
"""

import asyncio

from stackwright.cli.ux import info, success
from stackwright.config import get_settings
from stackwright.core.errors import ConfigurationError, main_with_error_handling
from stackwright.loader import load_file
from stackwright.remote import CloudFormationStackClient


@main_with_error_handling()
def validate_command(template: str) -> int:
    """Send a template to the provider's validation call."""
    content = load_file(template)
    if not isinstance(content, dict):
        raise ConfigurationError(f"Expected {template} to contain a mapping")

    client = CloudFormationStackClient(get_settings())
    result = asyncio.run(client.validate_template(content))

    declared = [p.get("ParameterKey") for p in result.get("Parameters") or []]
    success(f"{template} is valid ({len(declared)} parameters)")
    for name in declared:
        info(f"Parameter: {name}")
    return 0
