"""
Shared test fixtures for aztoolkit tests.

This module provides common fixtures used across the unit tests:
- A fake "widget" resource kind (adapter + in-memory management client)
- A fake subscription parent for modules
- Mock azure-identity credentials
- Temporary config directories
"""

import threading
from types import SimpleNamespace
from typing import Any
from unittest.mock import Mock

import pytest

from aztoolkit.draft import Draft
from aztoolkit.models.capabilities import Capability
from aztoolkit.module import ResourceModule
from aztoolkit.resource import Resource
from aztoolkit.resource_id import ResourceId
from aztoolkit.services.sdk import resource_group_of

SUBSCRIPTION_ID = "sub-1"
WIDGETS = "providers/Test.Provider/widgets"


def make_widget(name: str, resource_group: str = "rg-1", **fields: Any) -> SimpleNamespace:
    """Raw SDK-like model of a widget."""
    return SimpleNamespace(
        id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{resource_group}/{WIDGETS}/{name}",
        name=name,
        **fields,
    )


class FakeWidgetClient:
    """In-memory stand-in for a management client's operations group.

    Attributes:
        fail_with: Exception raised by every call while set
        list_gate: Event every list call waits on while set, after taking
            its snapshot of the widgets
        listed: Set once a list call has taken its snapshot
    """

    def __init__(self, *widgets: SimpleNamespace):
        self.widgets = {(resource_group_of(w).lower(), w.name.lower()): w for w in widgets}
        self.calls: list[tuple] = []
        self.fail_with: BaseException | None = None
        self.list_gate: threading.Event | None = None
        self.listed = threading.Event()
        self._lock = threading.Lock()

    def _record(self, *call: Any) -> None:
        with self._lock:
            self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def count(self, operation: str) -> int:
        with self._lock:
            return sum(1 for call in self.calls if call[0] == operation)

    def list(self, resource_group: str | None = None) -> list[SimpleNamespace]:
        with self._lock:
            snapshot = [
                w
                for (group, _), w in self.widgets.items()
                if resource_group is None or group == resource_group.lower()
            ]
        self.listed.set()
        if self.list_gate is not None:
            self.list_gate.wait(timeout=5)
        self._record("list", resource_group)
        return snapshot

    def get(self, resource_group: str, name: str) -> SimpleNamespace | None:
        self._record("get", resource_group, name)
        return self.widgets.get((resource_group.lower(), name.lower()))

    def delete(self, resource_group: str, name: str) -> None:
        self._record("delete", resource_group, name)
        self.widgets.pop((resource_group.lower(), name.lower()), None)

    def create(self, resource_group: str, name: str, fields: dict[str, Any]) -> SimpleNamespace:
        self._record("create", resource_group, name, fields)
        widget = make_widget(name, resource_group, **fields)
        self.widgets[(resource_group.lower(), name.lower())] = widget
        return widget

    def update(self, resource_group: str, name: str, fields: dict[str, Any]) -> SimpleNamespace:
        self._record("update", resource_group, name, fields)
        widget = self.widgets[(resource_group.lower(), name.lower())]
        for key, value in fields.items():
            setattr(widget, key, value)
        return widget


class FakeWidgetAdapter:
    """ResourceAdapter for widgets backed by FakeWidgetClient."""

    module_segment = WIDGETS
    resource_type_name = "Widget"
    requires_resource_group = True

    def __init__(self, capabilities: frozenset[Capability] | None = None):
        self.capabilities = (
            capabilities
            if capabilities is not None
            else frozenset({Capability.DELETABLE, Capability.UPDATABLE})
        )

    def get_client(self, parent: Any) -> Any:
        return parent.remote

    def load_resource_pages_from_azure(self, client: FakeWidgetClient, resource_group: str | None) -> Any:
        return client.list(resource_group)

    def load_resource_from_azure(self, client: FakeWidgetClient, name: str, resource_group: str | None) -> Any:
        return client.get(resource_group, name)

    def delete_resource_from_azure(self, client: FakeWidgetClient, resource_id: ResourceId) -> None:
        client.delete(resource_id.resource_group, resource_id.name)

    def create_resource_in_azure(self, client: FakeWidgetClient, draft: Draft) -> Any:
        return client.create(draft.resource_group, draft.name, draft.fields)

    def update_resource_in_azure(self, client: FakeWidgetClient, draft: Draft) -> Any:
        return client.update(draft.resource_group, draft.name, draft.fields)

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


class FakeSubscription:
    """Module parent standing in for a ServiceSubscription."""

    def __init__(self, client: Any = None):
        self.id = ResourceId.for_subscription(SUBSCRIPTION_ID)
        self.resource_group = None
        self.remote = client


# ============================================================================
# RESOURCE FRAMEWORK FIXTURES
# ============================================================================


@pytest.fixture
def widget_client():
    """Fake widget client holding w1 and w2 in rg-1 and w3 in rg-2."""
    return FakeWidgetClient(
        make_widget("w1", "rg-1", color="red"),
        make_widget("w2", "rg-1", color="blue"),
        make_widget("w3", "rg-2", color="green"),
    )


@pytest.fixture
def subscription(widget_client):
    """Resolved fake subscription whose remote handle is the widget client."""
    return FakeSubscription(widget_client)


@pytest.fixture
def widgets(subscription):
    """Widget module of the resolved fake subscription."""
    return ResourceModule(FakeWidgetAdapter(), subscription)


@pytest.fixture
def unresolved_widgets():
    """Widget module whose parent has no client yet."""
    return ResourceModule(FakeWidgetAdapter(), FakeSubscription(None))


@pytest.fixture
def widget_module_factory(subscription):
    """Build widget modules with custom capabilities on the resolved subscription."""

    def factory(capabilities=None):
        return ResourceModule(FakeWidgetAdapter(capabilities), subscription)

    return factory


@pytest.fixture
def make_raw_widget():
    return make_widget


@pytest.fixture
def fake_client_factory():
    return FakeWidgetClient


@pytest.fixture
def widget_adapter_class():
    return FakeWidgetAdapter


# ============================================================================
# AZURE MOCKING FIXTURES
# ============================================================================


@pytest.fixture
def mock_credential():
    """Fake azure-identity credential returning a long-lived token."""
    credential = Mock()
    credential.get_token.return_value = Mock(
        token="fake-azure-token-12345",  # noqa: S106 - test fixture, not a real credential
        expires_on=9999999999,
    )
    return credential


# ============================================================================
# DIRECTORY FIXTURES
# ============================================================================


@pytest.fixture
def temp_config_dir(tmp_path):
    """Temporary .aztoolkit directory for config file tests."""
    config_dir = tmp_path / ".aztoolkit"
    config_dir.mkdir()
    return config_dir
