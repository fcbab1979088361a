"""Azure Database for PostgreSQL flexible servers.

Uses azure-mgmt-postgresqlflexibleservers. Draft fields understood on create:
location (required), version, sku_name, sku_tier, admin_login,
admin_password, storage_size_gb, tags. On update: sku_name, sku_tier,
admin_password, storage_size_gb, tags.
"""

import logging
from typing import Any

from azure.mgmt.postgresqlflexibleservers import PostgreSQLManagementClient
from azure.mgmt.postgresqlflexibleservers.models import (
    Server,
    ServerForUpdate,
    ServerVersion,
    Sku,
    Storage,
)

from aztoolkit.adapter import ResourceParent
from aztoolkit.config import ToolkitConfig
from aztoolkit.draft import Draft
from aztoolkit.models.capabilities import Capability
from aztoolkit.module import ResourceModule
from aztoolkit.resource import Resource
from aztoolkit.resource_id import ResourceId
from aztoolkit.service import AzureService
from aztoolkit.services.sdk import drop_none, get_or_none, resource_group_of

logger = logging.getLogger(__name__)

NAMESPACE = "Microsoft.DBforPostgreSQL"
MODULE_NAME = "flexibleServers"


def create_client(credential: Any, subscription_id: str, config: ToolkitConfig) -> PostgreSQLManagementClient:
    return PostgreSQLManagementClient(
        credential,
        subscription_id,
        user_agent=config.user_agent,
        logging_enable=config.sdk_logging_enabled,
    )


def _sku(draft: Draft) -> Sku | None:
    if draft.get("sku_name") is None:
        return None
    return Sku(name=draft.get("sku_name"), tier=draft.get("sku_tier", "GeneralPurpose"))


def _storage(draft: Draft) -> Storage | None:
    if draft.get("storage_size_gb") is None:
        return None
    return Storage(storage_size_gb=draft.get("storage_size_gb"))


class PostgreSqlServerAdapter:
    """ResourceAdapter for flexible servers."""

    module_segment = f"providers/{NAMESPACE}/{MODULE_NAME}"
    resource_type_name = "PostgreSQL flexible server"
    requires_resource_group = True
    capabilities = frozenset({Capability.DELETABLE, Capability.UPDATABLE})

    def get_client(self, parent: ResourceParent) -> Any:
        manager = parent.remote
        return manager.servers if manager is not None else None

    def load_resource_pages_from_azure(self, client: Any, resource_group: str | None) -> Any:
        if resource_group:
            return client.list_by_resource_group(resource_group)
        return client.list()

    def load_resource_from_azure(self, client: Any, name: str, resource_group: str | None) -> Any:
        return get_or_none(client.get, resource_group, name)

    def delete_resource_from_azure(self, client: Any, resource_id: ResourceId) -> None:
        client.begin_delete(resource_id.resource_group, resource_id.name).result()

    def create_resource_in_azure(self, client: Any, draft: Draft) -> Any:
        parameters = Server(
            **drop_none(
                location=draft.require("location"),
                version=draft.get("version"),
                sku=_sku(draft),
                storage=_storage(draft),
                administrator_login=draft.get("admin_login"),
                administrator_login_password=draft.get("admin_password"),
                tags=draft.get("tags"),
            )
        )
        return client.begin_create(draft.resource_group, draft.name, parameters).result()

    def update_resource_in_azure(self, client: Any, draft: Draft) -> Any:
        parameters = ServerForUpdate(
            **drop_none(
                sku=_sku(draft),
                storage=_storage(draft),
                administrator_login_password=draft.get("admin_password"),
                tags=draft.get("tags"),
            )
        )
        return client.begin_update(draft.resource_group, draft.name, parameters).result()

    def new_draft_for_create(self, module: ResourceModule, name: str, resource_group: str | None) -> Draft:
        return Draft.for_create(module, name, resource_group)

    def new_draft_for_update(self, origin: Resource) -> Draft:
        return Draft.for_update(origin)

    def new_resource(self, module: ResourceModule, raw: Any) -> Resource:
        return Resource.from_remote(module, raw, raw.name, resource_group_of(raw))

    def new_placeholder(self, module: ResourceModule, name: str, resource_group: str | None) -> Resource:
        return Resource.placeholder(module, name, resource_group)

    def get_sub_modules(self, resource: Resource) -> list[ResourceModule]:
        return []


class AzurePostgreSql(AzureService):
    """PostgreSQL flexible servers across subscriptions.

    Example:
        >>> postgres = AzurePostgreSql(credential)
        >>> [s.name for s in postgres.servers("sub-id").list()]
        ['pg1']
        >>> postgres.list_supported_versions()[0]
        '16'
    """

    def __init__(self, credential: Any = None, config: ToolkitConfig | None = None):
        super().__init__(
            NAMESPACE,
            create_client,
            [PostgreSqlServerAdapter()],
            credential=credential,
            config=config,
            resource_type_name="Azure Database for PostgreSQL servers",
        )

    def servers(self, subscription_id: str) -> ResourceModule:
        return self.get(subscription_id).module(MODULE_NAME)

    def all_servers(self) -> list[Resource]:
        """Servers of every subscription materialised so far."""
        return [server for sub in self.list() for server in sub.module(MODULE_NAME).list()]

    @staticmethod
    def list_supported_versions() -> list[str]:
        """Server versions offered by the provider, newest first."""

        def version_key(version: str) -> tuple[int, ...]:
            return tuple(int(part) for part in version.split(".") if part.isdigit())

        return sorted((str(v.value) for v in ServerVersion), key=version_key, reverse=True)


__all__ = ["AzurePostgreSql", "PostgreSqlServerAdapter", "create_client"]
