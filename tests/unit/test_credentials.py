"""Unit tests for credentials module."""

from unittest.mock import patch

import pytest

from aztoolkit.config import ToolkitConfig
from aztoolkit.credentials import CredentialFactory
from aztoolkit.exceptions import ConfigurationError


class TestCredentialFactory:
    def test_cli_credential(self):
        with patch("aztoolkit.credentials.AzureCliCredential") as cli_credential:
            credential = CredentialFactory.create_credential(ToolkitConfig(request_timeout=30))

        assert credential is cli_credential.return_value
        cli_credential.assert_called_once_with(process_timeout=30)

    def test_default_credential(self):
        with patch("aztoolkit.credentials.DefaultAzureCredential") as default_credential:
            credential = CredentialFactory.create_credential(ToolkitConfig(auth_method="default"))

        assert credential is default_credential.return_value

    def test_creation_failure(self):
        with patch("aztoolkit.credentials.AzureCliCredential", side_effect=RuntimeError("az missing")):
            with pytest.raises(ConfigurationError, match="az missing"):
                CredentialFactory.create_credential(ToolkitConfig())

    def test_unsupported_method(self):
        config = ToolkitConfig()
        config.auth_method = "certificate"
        with pytest.raises(ConfigurationError, match="Unsupported"):
            CredentialFactory.create_credential(config)
