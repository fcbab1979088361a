"""Service adapters: PostgreSQL flexible servers, Service Bus namespaces, App Service.

Each adapter implements aztoolkit.adapter.ResourceAdapter against one Azure
management SDK; the AzureService subclasses wire them into a resource tree.
"""

from aztoolkit.services.appservice import AzureAppService, kudu_client, swap_slot
from aztoolkit.services.postgresql import AzurePostgreSql
from aztoolkit.services.servicebus import AzureServiceBus

__all__ = ["AzureAppService", "AzurePostgreSql", "AzureServiceBus", "kudu_client", "swap_slot"]
