"""Service and subscription roots of the resource tree.

    AzureService (e.g. PostgreSQL)
      -> ServiceSubscription (one per subscription, remote = management client)
           -> ResourceModule (flexibleServers, namespaces, sites, ...)
                -> Resource
                     -> ResourceModule (slots, linkers, ...)

A ServiceSubscription stays Unresolved until a credential is available; its
modules then list nothing and refuse to mutate.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

import requests

from aztoolkit.adapter import ResourceAdapter
from aztoolkit.config import ToolkitConfig
from aztoolkit.exceptions import ConfigurationError, InvariantViolation, remote_call
from aztoolkit.models.remote_state import UNRESOLVED, RemoteState, Resolved, resolved_or_none
from aztoolkit.module import ResourceModule
from aztoolkit.resource_id import ResourceId

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Any, str, ToolkitConfig], Any]


class ServiceSubscription:
    """One subscription of a service; owns the service's root modules."""

    def __init__(self, service: "AzureService", subscription_id: str):
        self._service = service
        self._id = ResourceId.for_subscription(subscription_id)
        self._lock = threading.Lock()
        self._remote: RemoteState = UNRESOLVED
        self._modules = {
            adapter.module_segment: ResourceModule(adapter, self, page_size=service.config.page_size)
            for adapter in service.adapters
        }

    @property
    def id(self) -> ResourceId:
        return self._id

    @property
    def subscription_id(self) -> str:
        return self._id.subscription_id

    @property
    def resource_group(self) -> str | None:
        return None

    @property
    def service(self) -> "AzureService":
        return self._service

    @property
    def remote_state(self) -> RemoteState:
        with self._lock:
            return self._remote

    @property
    def remote(self) -> Any:
        """Management client for this subscription, None while no credential is set."""
        with self._lock:
            if isinstance(self._remote, Resolved):
                return self._remote.handle
            service = self._service
            if service.credential is None:
                return None
            with remote_call(f"create {service.resource_type_name} client"):
                client = service.client_factory(service.credential, self.subscription_id, service.config)
            logger.debug(f"Resolved {service.namespace} client for subscription {self.subscription_id}")
            self._remote = Resolved(client)
            return client

    @property
    def credential(self) -> Any:
        return self.service.credential

    def is_resolved(self) -> bool:
        return resolved_or_none(self.remote_state) is not None

    def get_sub_modules(self) -> list[ResourceModule]:
        return list(self._modules.values())

    def module(self, name: str) -> ResourceModule:
        """Root module by name ("flexibleServers") or full segment.

        Raises:
            ConfigurationError: If the service has no such module
        """
        for segment, module in self._modules.items():
            if name.lower() in (segment.lower(), module.name.lower()):
                return module
        raise ConfigurationError(f"Subscription '{self.subscription_id}' has no module '{name}'")

    def reset(self) -> None:
        """Drop the management client and every cached resource."""
        with self._lock:
            self._remote = UNRESOLVED
        for module in self._modules.values():
            module.invalidate()

    def __repr__(self) -> str:
        return f"ServiceSubscription({self.subscription_id})"


class AzureService:
    """An Azure service (resource provider) across subscriptions.

    Example:
        >>> service = AzureService("Microsoft.ServiceBus", factory, [NamespaceAdapter()], credential)
        >>> service.get("sub-id").module("namespaces").list()
    """

    def __init__(
        self,
        namespace: str,
        client_factory: ClientFactory,
        adapters: Sequence[ResourceAdapter],
        credential: Any = None,
        config: ToolkitConfig | None = None,
        resource_type_name: str | None = None,
    ):
        """Initialize a service.

        Args:
            namespace: Resource provider namespace, e.g. "Microsoft.Web"
            client_factory: Builds the management client from
                (credential, subscription_id, config)
            adapters: Adapters of the service's root modules
            credential: azure-identity credential; None keeps subscriptions unresolved
            config: Toolkit configuration (defaults when omitted)
            resource_type_name: Human-readable service name
        """
        self.namespace = namespace
        self.client_factory = client_factory
        self.adapters = list(adapters)
        self.credential = credential
        self.config = config or ToolkitConfig()
        self.resource_type_name = resource_type_name or namespace
        self._lock = threading.Lock()
        self._subscriptions: dict[str, ServiceSubscription] = {}
        self._session: requests.Session | None = None

    @property
    def session(self) -> requests.Session:
        """Base HTTP session for data-plane clients (Kudu), carrying the user agent."""
        with self._lock:
            if self._session is None:
                self._session = requests.Session()
                self._session.headers["User-Agent"] = self.config.user_agent
            return self._session

    def get(self, subscription_id: str) -> ServiceSubscription:
        """Return the (cached) subscription root for an id.

        Raises:
            InvariantViolation: If the subscription id is blank
        """
        if not subscription_id or not subscription_id.strip():
            raise InvariantViolation("Subscription id cannot be blank")
        key = subscription_id.lower()
        with self._lock:
            subscription = self._subscriptions.get(key)
            if subscription is None:
                subscription = ServiceSubscription(self, subscription_id)
                self._subscriptions[key] = subscription
            return subscription

    def list(self) -> list[ServiceSubscription]:
        """Subscriptions materialised so far, in creation order."""
        with self._lock:
            return list(self._subscriptions.values())

    def module(self, subscription_id: str, name: str) -> ResourceModule:
        return self.get(subscription_id).module(name)

    def set_credential(self, credential: Any) -> None:
        """Switch credential; existing subscriptions re-resolve on next use."""
        self.credential = credential
        for subscription in self.list():
            subscription.reset()


__all__ = ["AzureService", "ClientFactory", "ServiceSubscription"]
