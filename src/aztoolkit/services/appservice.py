"""Azure App Service: web apps, their deployment slots and service linkers.

Function apps share the Microsoft.Web/sites provider with web apps; they are
filtered out of every listing and lookup here.

Web app draft fields: location (create only, required), app_service_plan_id
(create only, required), linux_fx_version, https_only, tags.
Slot draft fields: location and app_service_plan_id default to the app's,
linux_fx_version, https_only, tags.
Linker draft fields: target_resource_id (required), client_type.
"""

import logging
from collections.abc import Callable
from typing import Any

from azure.mgmt.servicelinker import ServiceLinkerManagementClient
from azure.mgmt.servicelinker.models import (
    AzureResource,
    LinkerResource,
    SystemAssignedIdentityAuthInfo,
)
from azure.mgmt.web import WebSiteManagementClient
from azure.mgmt.web.models import CsmSlotEntity, Site, SiteConfig, SitePatchResource

from aztoolkit.adapter import ResourceParent
from aztoolkit.config import ToolkitConfig
from aztoolkit.draft import Draft
from aztoolkit.exceptions import ConfigurationError, InvariantViolation, remote_call
from aztoolkit.kudu.client import KuduClient
from aztoolkit.models.capabilities import Capability
from aztoolkit.module import ResourceModule
from aztoolkit.resource import Resource, require_capability
from aztoolkit.resource_id import ResourceId
from aztoolkit.service import AzureService, ServiceSubscription
from aztoolkit.services.sdk import FilteredPager, drop_none, get_or_none, resource_group_of

logger = logging.getLogger(__name__)

NAMESPACE = "Microsoft.Web"
MODULE_NAME = "sites"
SLOTS = "slots"
LINKERS = "linkers"


def create_client(credential: Any, subscription_id: str, config: ToolkitConfig) -> WebSiteManagementClient:
    return WebSiteManagementClient(
        credential,
        subscription_id,
        user_agent=config.user_agent,
        logging_enable=config.sdk_logging_enabled,
    )


def is_web_app(site: Any) -> bool:
    """True for web apps, False for function apps (which share the sites provider)."""
    return "functionapp" not in (getattr(site, "kind", None) or "").lower()


def _site_config(draft: Draft) -> SiteConfig | None:
    if draft.get("linux_fx_version") is None:
        return None
    return SiteConfig(linux_fx_version=draft.get("linux_fx_version"))


def _site_patch(draft: Draft) -> SitePatchResource:
    return SitePatchResource(
        **drop_none(
            site_config=_site_config(draft),
            https_only=draft.get("https_only"),
            tags=draft.get("tags"),
        )
    )


class WebAppAdapter:
    """ResourceAdapter for web apps."""

    module_segment = f"providers/{NAMESPACE}/{MODULE_NAME}"
    resource_type_name = "Web App"
    requires_resource_group = True
    capabilities = frozenset(
        {
            Capability.DELETABLE,
            Capability.UPDATABLE,
            Capability.HAS_SUB_MODULES,
            Capability.SERVICE_LINKED,
        }
    )

    def __init__(self, linker_client: Callable[[], Any] | None = None):
        """Initialize the adapter.

        Args:
            linker_client: Returns the service linker client (None while no
                credential is set); without it apps have no linkers module
        """
        self._linker_client = linker_client

    def get_client(self, parent: ResourceParent) -> Any:
        manager = parent.remote
        return manager.web_apps if manager is not None else None

    def load_resource_pages_from_azure(self, client: Any, resource_group: str | None) -> Any:
        if resource_group:
            return FilteredPager(client.list_by_resource_group(resource_group), is_web_app)
        return FilteredPager(client.list(), is_web_app)

    def load_resource_from_azure(self, client: Any, name: str, resource_group: str | None) -> Any:
        site = get_or_none(client.get, resource_group, name)
        if site is not None and not is_web_app(site):
            logger.debug(f"'{name}' is a function app, not a web app")
            return None
        return site

    def delete_resource_from_azure(self, client: Any, resource_id: ResourceId) -> None:
        client.delete(resource_id.resource_group, resource_id.name)

    def create_resource_in_azure(self, client: Any, draft: Draft) -> Any:
        site = Site(
            **drop_none(
                location=draft.require("location"),
                server_farm_id=draft.require("app_service_plan_id"),
                site_config=_site_config(draft),
                https_only=draft.get("https_only"),
                tags=draft.get("tags"),
            )
        )
        return client.begin_create_or_update(draft.resource_group, draft.name, site).result()

    def update_resource_in_azure(self, client: Any, draft: Draft) -> Any:
        return client.update(draft.resource_group, draft.name, _site_patch(draft))

    def new_draft_for_create(self, module: ResourceModule, name: str, resource_group: str | None) -> Draft:
        return Draft.for_create(module, name, resource_group)

    def new_draft_for_update(self, origin: Resource) -> Draft:
        return Draft.for_update(origin)

    def new_resource(self, module: ResourceModule, raw: Any) -> Resource:
        return Resource.from_remote(module, raw, raw.name, resource_group_of(raw))

    def new_placeholder(self, module: ResourceModule, name: str, resource_group: str | None) -> Resource:
        return Resource.placeholder(module, name, resource_group)

    def get_sub_modules(self, resource: Resource) -> list[ResourceModule]:
        page_size = resource.module.page_size
        modules = [ResourceModule(SlotAdapter(), resource, page_size=page_size)]
        if self._linker_client is not None:
            modules.append(ResourceModule(LinkerAdapter(self._linker_client), resource, page_size=page_size))
        return modules


class SlotClient:
    """Slot operations of WebSiteManagementClient.web_apps bound to one app."""

    def __init__(self, web_apps: Any, app: Resource):
        self.web_apps = web_apps
        self.site = app.remote
        self.resource_group = app.resource_group
        self.app_name = app.name

    def list(self) -> Any:
        return self.web_apps.list_slots(self.resource_group, self.app_name)

    def get(self, slot: str) -> Any:
        return get_or_none(self.web_apps.get_slot, self.resource_group, self.app_name, slot)

    def delete(self, slot: str) -> None:
        self.web_apps.delete_slot(self.resource_group, self.app_name, slot)

    def create(self, slot: str, site: Site) -> Any:
        return self.web_apps.begin_create_or_update_slot(
            self.resource_group, self.app_name, slot, site
        ).result()

    def update(self, slot: str, patch: SitePatchResource) -> Any:
        return self.web_apps.update_slot(self.resource_group, self.app_name, slot, patch)


def slot_name(raw: Any) -> str:
    """Slot name of a raw slot model ("my-app/staging" -> "staging")."""
    return raw.name.rsplit("/", 1)[-1]


class SlotAdapter:
    """ResourceAdapter for deployment slots of one web app."""

    module_segment = SLOTS
    resource_type_name = "Deployment Slot"
    requires_resource_group = True
    capabilities = frozenset({Capability.DELETABLE, Capability.UPDATABLE})

    def get_client(self, parent: ResourceParent) -> Any:
        if parent.remote is None:
            return None
        web_apps = parent.module.get_client()
        return SlotClient(web_apps, parent) if web_apps is not None else None

    def load_resource_pages_from_azure(self, client: SlotClient, resource_group: str | None) -> Any:
        return client.list()

    def load_resource_from_azure(self, client: SlotClient, name: str, resource_group: str | None) -> Any:
        return client.get(name)

    def delete_resource_from_azure(self, client: SlotClient, resource_id: ResourceId) -> None:
        client.delete(resource_id.name)

    def create_resource_in_azure(self, client: SlotClient, draft: Draft) -> Any:
        site = Site(
            **drop_none(
                location=draft.get("location", client.site.location),
                server_farm_id=draft.get("app_service_plan_id", client.site.server_farm_id),
                site_config=_site_config(draft),
                https_only=draft.get("https_only"),
                tags=draft.get("tags"),
            )
        )
        return client.create(draft.name, site)

    def update_resource_in_azure(self, client: SlotClient, draft: Draft) -> Any:
        return client.update(draft.name, _site_patch(draft))

    def new_draft_for_create(self, module: ResourceModule, name: str, resource_group: str | None) -> Draft:
        return Draft.for_create(module, name, resource_group)

    def new_draft_for_update(self, origin: Resource) -> Draft:
        return Draft.for_update(origin)

    def new_resource(self, module: ResourceModule, raw: Any) -> Resource:
        return Resource.from_remote(module, raw, slot_name(raw), resource_group_of(raw))

    def new_placeholder(self, module: ResourceModule, name: str, resource_group: str | None) -> Resource:
        return Resource.placeholder(module, name, resource_group)

    def get_sub_modules(self, resource: Resource) -> list[ResourceModule]:
        return []


class LinkerClient:
    """ServiceLinkerManagementClient.linker bound to one consumer resource."""

    def __init__(self, linker: Any, resource_uri: str):
        self.linker = linker
        self.resource_uri = resource_uri

    def list(self) -> Any:
        return self.linker.list(self.resource_uri)

    def get(self, name: str) -> Any:
        return get_or_none(self.linker.get, self.resource_uri, name)

    def delete(self, name: str) -> None:
        self.linker.begin_delete(self.resource_uri, name).result()

    def create(self, name: str, parameters: LinkerResource) -> Any:
        return self.linker.begin_create_or_update(self.resource_uri, name, parameters).result()


class LinkerAdapter:
    """ResourceAdapter for service connections of a service-linked resource."""

    module_segment = f"providers/Microsoft.ServiceLinker/{LINKERS}"
    resource_type_name = "Service Connector"
    requires_resource_group = True
    capabilities = frozenset({Capability.DELETABLE})

    def __init__(self, linker_client: Callable[[], Any]):
        self._linker_client = linker_client

    def get_client(self, parent: ResourceParent) -> Any:
        if parent.remote is None:
            return None
        client = self._linker_client()
        return LinkerClient(client.linker, str(parent.id)) if client is not None else None

    def load_resource_pages_from_azure(self, client: LinkerClient, resource_group: str | None) -> Any:
        return client.list()

    def load_resource_from_azure(self, client: LinkerClient, name: str, resource_group: str | None) -> Any:
        return client.get(name)

    def delete_resource_from_azure(self, client: LinkerClient, resource_id: ResourceId) -> None:
        client.delete(resource_id.name)

    def create_resource_in_azure(self, client: LinkerClient, draft: Draft) -> Any:
        parameters = LinkerResource(
            **drop_none(
                target_service=AzureResource(id=draft.require("target_resource_id")),
                auth_info=SystemAssignedIdentityAuthInfo(),
                client_type=draft.get("client_type"),
            )
        )
        return client.create(draft.name, parameters)

    def update_resource_in_azure(self, client: LinkerClient, draft: Draft) -> Any:
        raise InvariantViolation(f"{self.resource_type_name} '{draft.name}' cannot be updated")

    def new_draft_for_create(self, module: ResourceModule, name: str, resource_group: str | None) -> Draft:
        return Draft.for_create(module, name, resource_group)

    def new_draft_for_update(self, origin: Resource) -> Draft:
        return Draft.for_update(origin)

    def new_resource(self, module: ResourceModule, raw: Any) -> Resource:
        return Resource.from_remote(module, raw, raw.name, None)

    def new_placeholder(self, module: ResourceModule, name: str, resource_group: str | None) -> Resource:
        return Resource.placeholder(module, name, resource_group)

    def get_sub_modules(self, resource: Resource) -> list[ResourceModule]:
        return []


def swap_slot(app: Resource, slot: str) -> None:
    """Swap a deployment slot into production.

    The app is UPDATING while the swap runs and is reloaded afterwards.

    Raises:
        RemoteOperationError: If the swap fails (the app's status becomes ERROR)
    """
    if not slot or not slot.strip():
        raise InvariantViolation("Slot name cannot be blank")
    web_apps = app.module.get_client()
    if web_apps is None:
        raise ConfigurationError(f"Cannot swap slots of '{app.name}' before its subscription is resolved")

    def swap(site: Any) -> None:
        with remote_call(f"swap slot '{slot}' of '{app.name}' into production"):
            web_apps.begin_swap_slot_with_production(
                app.resource_group,
                site.name,
                CsmSlotEntity(target_slot=slot, preserve_vnet=True),
            ).result()

    app.do_modify(swap)
    logger.info(f"Swapped deployment slot '{slot}' into production of '{app.name}'")


def subscription_of(resource: Resource) -> ServiceSubscription:
    """Walk up from a resource (or sub-resource) to its service subscription."""
    node: Any = resource.module.parent
    while isinstance(node, Resource):
        node = node.module.parent
    return node


def kudu_client(app: Resource, credential: Any = None, timeout: int | None = None) -> KuduClient:
    """Kudu (SCM site) client for a web app or deployment slot.

    Args:
        app: Loaded web app or slot
        credential: azure-identity credential, defaults to the service's
        timeout: Request timeout in seconds, defaults to the configured one

    Raises:
        ConfigurationError: If the app is not loaded or no credential is available
    """
    subscription = subscription_of(app)
    credential = credential if credential is not None else subscription.credential
    if credential is None:
        raise ConfigurationError(f"No credential available for the SCM site of '{app.name}'")
    if timeout is None:
        timeout = subscription.service.config.request_timeout
    return KuduClient.for_web_app(
        app, credential, timeout=timeout, base_session=subscription.service.session
    )


class AzureAppService(AzureService):
    """Web apps across subscriptions.

    Example:
        >>> app_service = AzureAppService(credential)
        >>> app = app_service.webapps("sub-id").get("my-app", "my-rg")
        >>> [slot.name for slot in app.sub_module("slots").list()]
        ['staging']
    """

    def __init__(self, credential: Any = None, config: ToolkitConfig | None = None):
        super().__init__(
            NAMESPACE,
            create_client,
            [WebAppAdapter(self._get_linker_client)],
            credential=credential,
            config=config,
            resource_type_name="App Service",
        )
        self._linker: ServiceLinkerManagementClient | None = None

    def webapps(self, subscription_id: str) -> ResourceModule:
        return self.get(subscription_id).module(MODULE_NAME)

    def slots(self, app: Resource) -> ResourceModule:
        return app.sub_module(SLOTS)

    def linkers(self, app: Resource) -> ResourceModule:
        """Service connections of a service-linked resource.

        Raises:
            InvariantViolation: If the resource kind is not service-linked
        """
        require_capability(app, Capability.SERVICE_LINKED)
        return app.sub_module(LINKERS)

    def set_credential(self, credential: Any) -> None:
        with self._lock:
            self._linker = None
        super().set_credential(credential)

    def _get_linker_client(self) -> ServiceLinkerManagementClient | None:
        with self._lock:
            if self._linker is None and self.credential is not None:
                with remote_call("create Service Connector client"):
                    self._linker = ServiceLinkerManagementClient(
                        self.credential,
                        user_agent=self.config.user_agent,
                        logging_enable=self.config.sdk_logging_enabled,
                    )
            return self._linker


__all__ = [
    "AzureAppService",
    "LinkerAdapter",
    "SlotAdapter",
    "WebAppAdapter",
    "is_web_app",
    "kudu_client",
    "subscription_of",
    "swap_slot",
]
