"""Credential factory for the aztk command line.

Library callers pass their own azure-identity credential to the services;
the CLI builds one from the configured auth_method:

- cli:     AzureCliCredential (delegate to an `az login` session)
- default: DefaultAzureCredential (environment, managed identity, CLI, ...)

No tokens are stored; acquisition is left to azure-identity.
"""

import logging
from typing import Any

from azure.identity import AzureCliCredential, DefaultAzureCredential

from aztoolkit.config import ToolkitConfig
from aztoolkit.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class CredentialFactory:
    """Create azure-identity credentials from configuration."""

    @staticmethod
    def create_credential(config: ToolkitConfig) -> Any:
        """Create a TokenCredential for the configured auth method.

        Raises:
            ConfigurationError: If the credential cannot be created
        """
        try:
            if config.auth_method == "cli":
                logger.debug("Using Azure CLI credential")
                return AzureCliCredential(process_timeout=config.request_timeout)
            if config.auth_method == "default":
                logger.debug("Using default Azure credential chain")
                return DefaultAzureCredential()
        except Exception as e:
            raise ConfigurationError(
                f"Failed to create '{config.auth_method}' credential: {e}. "
                "Is Azure CLI installed and authenticated?"
            ) from e
        raise ConfigurationError(f"Unsupported authentication method: {config.auth_method}")


__all__ = ["CredentialFactory"]
