"""Azure Service Bus namespaces.

Uses azure-mgmt-servicebus. Draft fields: location (create only, required),
sku ("Basic", "Standard", "Premium"; default "Standard"), capacity,
zone_redundant, disable_local_auth, tags.
"""

from typing import Any

from azure.mgmt.servicebus import ServiceBusManagementClient
from azure.mgmt.servicebus.models import SBNamespace, SBNamespaceUpdateParameters, SBSku

from aztoolkit.adapter import ResourceParent
from aztoolkit.config import ToolkitConfig
from aztoolkit.draft import Draft
from aztoolkit.models.capabilities import Capability
from aztoolkit.module import ResourceModule
from aztoolkit.resource import Resource
from aztoolkit.resource_id import ResourceId
from aztoolkit.service import AzureService
from aztoolkit.services.sdk import drop_none, get_or_none, resource_group_of

NAMESPACE = "Microsoft.ServiceBus"
MODULE_NAME = "namespaces"


def create_client(credential: Any, subscription_id: str, config: ToolkitConfig) -> ServiceBusManagementClient:
    return ServiceBusManagementClient(
        credential,
        subscription_id,
        user_agent=config.user_agent,
        logging_enable=config.sdk_logging_enabled,
    )


def _sku(draft: Draft, default: str | None) -> SBSku | None:
    name = draft.get("sku", default)
    if name is None:
        return None
    return SBSku(**drop_none(name=name, tier=name, capacity=draft.get("capacity")))


class ServiceBusNamespaceAdapter:
    """ResourceAdapter for Service Bus namespaces."""

    module_segment = f"providers/{NAMESPACE}/{MODULE_NAME}"
    resource_type_name = "Service Bus Namespace"
    requires_resource_group = True
    capabilities = frozenset({Capability.DELETABLE, Capability.UPDATABLE})

    def get_client(self, parent: ResourceParent) -> Any:
        manager = parent.remote
        return manager.namespaces if manager is not None else None

    def load_resource_pages_from_azure(self, client: Any, resource_group: str | None) -> Any:
        if resource_group:
            return client.list_by_resource_group(resource_group)
        return client.list()

    def load_resource_from_azure(self, client: Any, name: str, resource_group: str | None) -> Any:
        return get_or_none(client.get, resource_group, name)

    def delete_resource_from_azure(self, client: Any, resource_id: ResourceId) -> None:
        client.begin_delete(resource_id.resource_group, resource_id.name).result()

    def create_resource_in_azure(self, client: Any, draft: Draft) -> Any:
        parameters = SBNamespace(
            **drop_none(
                location=draft.require("location"),
                sku=_sku(draft, "Standard"),
                zone_redundant=draft.get("zone_redundant"),
                disable_local_auth=draft.get("disable_local_auth"),
                tags=draft.get("tags"),
            )
        )
        return client.begin_create_or_update(draft.resource_group, draft.name, parameters).result()

    def update_resource_in_azure(self, client: Any, draft: Draft) -> Any:
        parameters = SBNamespaceUpdateParameters(
            **drop_none(
                sku=_sku(draft, None),
                disable_local_auth=draft.get("disable_local_auth"),
                tags=draft.get("tags"),
            )
        )
        return client.update(draft.resource_group, draft.name, parameters)

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


class AzureServiceBus(AzureService):
    """Service Bus namespaces across subscriptions."""

    def __init__(self, credential: Any = None, config: ToolkitConfig | None = None):
        super().__init__(
            NAMESPACE,
            create_client,
            [ServiceBusNamespaceAdapter()],
            credential=credential,
            config=config,
            resource_type_name="Service Bus",
        )

    def namespaces(self, subscription_id: str) -> ResourceModule:
        return self.get(subscription_id).module(MODULE_NAME)


__all__ = ["AzureServiceBus", "ServiceBusNamespaceAdapter", "create_client"]
