"""Unit tests for web apps, deployment slots, service linkers and swap."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import requests
from azure.mgmt.servicelinker.models import LinkerResource
from azure.mgmt.web.models import CsmSlotEntity, Site

from aztoolkit.config import ToolkitConfig
from aztoolkit.exceptions import ConfigurationError, InvariantViolation, RemoteOperationError
from aztoolkit.models.capabilities import Capability
from aztoolkit.models.status import Status
from aztoolkit.services.appservice import (
    AzureAppService,
    is_web_app,
    kudu_client,
    slot_name,
    subscription_of,
    swap_slot,
)

SITES = "/subscriptions/sub-1/resourceGroups/rg-1/providers/Microsoft.Web/sites"


def make_site(name, kind="app,linux", **fields):
    fields.setdefault("location", "westeurope")
    fields.setdefault("server_farm_id", "/plans/p1")
    fields.setdefault("default_host_name", f"{name}.azurewebsites.net")
    return SimpleNamespace(id=f"{SITES}/{name}", name=name, kind=kind, **fields)


def make_slot(app, slot):
    return SimpleNamespace(
        id=f"{SITES}/{app}/slots/{slot}",
        name=f"{app}/{slot}",
        kind="app",
        location="westeurope",
        server_farm_id="/plans/p1",
        default_host_name=f"{app}-{slot}.azurewebsites.net",
    )


class PageIterator:
    """Page iterator that reports a continuation token until its last page."""

    def __init__(self, pages):
        self._pages = list(pages)
        self.continuation_token = None

    def __iter__(self):
        return self

    def __next__(self):
        if not self._pages:
            raise StopIteration
        page = self._pages.pop(0)
        self.continuation_token = f"token-{len(self._pages)}" if self._pages else None
        return page


@pytest.fixture
def manager():
    sites = {"app1": make_site("app1"), "func1": make_site("func1", kind="functionapp,linux")}
    manager = MagicMock()
    manager.web_apps.list.return_value = list(sites.values())
    manager.web_apps.list_by_resource_group.return_value = list(sites.values())
    manager.web_apps.get.side_effect = lambda rg, name: sites.get(name)
    manager.web_apps.list_slots.return_value = [make_slot("app1", "staging")]
    manager.web_apps.get_slot.side_effect = lambda rg, name, slot: make_slot(name, slot)
    return manager


@pytest.fixture
def app_service(manager, mock_credential):
    service = AzureAppService(mock_credential)
    service.client_factory = MagicMock(return_value=manager)
    return service


@pytest.fixture
def app(app_service):
    return app_service.webapps("sub-1").get("app1", "rg-1")


class TestWebApps:
    def test_function_apps_are_filtered_from_listing(self, app_service):
        assert [a.name for a in app_service.webapps("sub-1").list()] == ["app1"]
        assert [a.name for a in app_service.webapps("sub-1").list("rg-1")] == ["app1"]

    def test_function_app_lookup_finds_nothing(self, app_service):
        assert app_service.webapps("sub-1").get("func1", "rg-1") is None

    def test_is_web_app(self):
        assert is_web_app(SimpleNamespace(kind="app"))
        assert is_web_app(SimpleNamespace(kind=None))
        assert not is_web_app(SimpleNamespace(kind="FunctionApp"))

    def test_filtered_listing_keeps_sdk_paging(self, app_service, manager):
        pages = [[make_site("a"), make_site("f", kind="functionapp")], [make_site("b")]]
        manager.web_apps.list.return_value = SimpleNamespace(by_page=lambda: PageIterator(pages))

        assert [a.name for a in app_service.webapps("sub-1").list()] == ["a", "b"]

    def test_create_requires_plan(self, app_service, manager):
        draft = app_service.webapps("sub-1").new_draft_for_create("app9", "rg-1").set("location", "westeurope")
        with pytest.raises(ConfigurationError, match="app_service_plan_id"):
            draft.commit()
        manager.web_apps.begin_create_or_update.assert_not_called()

    def test_create(self, app_service, manager):
        manager.web_apps.begin_create_or_update.return_value.result.return_value = make_site("app9")
        app = (
            app_service.webapps("sub-1")
            .new_draft_for_create("app9", "rg-1")
            .update(location="westeurope", app_service_plan_id="/plans/p1", linux_fx_version="PYTHON|3.12")
            .commit()
        )

        _, _, site = manager.web_apps.begin_create_or_update.call_args.args
        assert isinstance(site, Site)
        assert site.server_farm_id == "/plans/p1"
        assert site.site_config.linux_fx_version == "PYTHON|3.12"
        assert app.status == Status.ACTIVE

    def test_delete(self, app, manager):
        app.delete()
        manager.web_apps.delete.assert_called_once_with("rg-1", "app1")


class TestSlots:
    def test_slots_module_lists_slot_names(self, app_service, app, manager):
        slots = app_service.slots(app)
        assert [s.name for s in slots.list()] == ["staging"]
        manager.web_apps.list_slots.assert_called_once_with("rg-1", "app1")

    def test_slot_lookup(self, app_service, app, manager):
        slot = app_service.slots(app).get("qa")
        assert slot.name == "qa"
        assert slot.resource_group == "rg-1"
        manager.web_apps.get_slot.assert_called_once_with("rg-1", "app1", "qa")

    def test_slot_create_defaults_to_app_plan(self, app_service, app, manager):
        manager.web_apps.begin_create_or_update_slot.return_value.result.return_value = make_slot("app1", "qa")

        app_service.slots(app).new_draft_for_create("qa").commit()

        rg, name, slot, site = manager.web_apps.begin_create_or_update_slot.call_args.args
        assert (rg, name, slot) == ("rg-1", "app1", "qa")
        assert site.location == "westeurope"
        assert site.server_farm_id == "/plans/p1"

    def test_slot_delete(self, app_service, app, manager):
        slot = app_service.slots(app).get("staging")
        slot.delete()
        manager.web_apps.delete_slot.assert_called_once_with("rg-1", "app1", "staging")

    def test_slot_name(self):
        assert slot_name(SimpleNamespace(name="app1/staging")) == "staging"
        assert slot_name(SimpleNamespace(name="staging")) == "staging"

    def test_subscription_of_slot(self, app_service, app):
        slot = app_service.slots(app).get("staging")
        assert subscription_of(slot) is app_service.get("sub-1")


class TestLinkers:
    def test_linkers_use_app_id_as_resource_uri(self, app_service, app):
        with patch("aztoolkit.services.appservice.ServiceLinkerManagementClient") as linker_cls:
            linker_cls.return_value.linker.list.return_value = [
                SimpleNamespace(id=f"{SITES}/app1/providers/Microsoft.ServiceLinker/linkers/db", name="db")
            ]
            linkers = app_service.linkers(app)

            assert [link.name for link in linkers.list()] == ["db"]
            linker_cls.return_value.linker.list.assert_called_once_with(str(app.id))

    def test_linker_create(self, app_service, app):
        with patch("aztoolkit.services.appservice.ServiceLinkerManagementClient") as linker_cls:
            linker = linker_cls.return_value.linker
            linker.begin_create_or_update.return_value.result.return_value = SimpleNamespace(id="x", name="db")

            app_service.linkers(app).new_draft_for_create("db").set("target_resource_id", "/servers/pg1").commit()

            uri, name, parameters = linker.begin_create_or_update.call_args.args
            assert (uri, name) == (str(app.id), "db")
            assert isinstance(parameters, LinkerResource)
            assert parameters.target_service.id == "/servers/pg1"

    def test_linkers_require_service_linked(self, app_service, app):
        slot = app_service.slots(app).get("staging")
        assert not slot.has_capability(Capability.SERVICE_LINKED)
        with pytest.raises(InvariantViolation):
            app_service.linkers(slot)


class TestSwapSlot:
    def test_swap(self, app, manager):
        swap_slot(app, "staging")

        rg, name, entity = manager.web_apps.begin_swap_slot_with_production.call_args.args
        assert (rg, name) == ("rg-1", "app1")
        assert isinstance(entity, CsmSlotEntity)
        assert entity.target_slot == "staging"
        assert app.status == Status.ACTIVE
        assert manager.web_apps.get.call_count == 2

    def test_swap_failure_sets_error(self, app, manager):
        manager.web_apps.begin_swap_slot_with_production.side_effect = RuntimeError("slot busy")

        with pytest.raises(RemoteOperationError, match="slot busy"):
            swap_slot(app, "staging")

        assert app.status == Status.ERROR

    def test_blank_slot(self, app):
        with pytest.raises(InvariantViolation):
            swap_slot(app, " ")


class TestKuduClient:
    def test_defaults_from_service(self, app_service, app, mock_credential):
        client = kudu_client(app)
        assert client.host == "https://app1.scm.azurewebsites.net"
        assert client.timeout == app_service.config.request_timeout
        assert client.app is app
        assert client.session.auth.credential is mock_credential

    def test_slot_host(self, app_service, app):
        slot = app_service.slots(app).get("staging")
        assert kudu_client(slot, timeout=5).host == "https://app1-staging.scm.azurewebsites.net"

    def test_no_credential(self, app_service, app):
        app_service.credential = None
        with pytest.raises(ConfigurationError, match="credential"):
            kudu_client(app)

    def test_requests_carry_configured_user_agent(self, manager, mock_credential):
        app_service = AzureAppService(mock_credential, ToolkitConfig(user_agent="aztoolkit-tests/1.0"))
        app_service.client_factory = MagicMock(return_value=manager)
        app = app_service.webapps("sub-1").get("app1", "rg-1")

        client = kudu_client(app)
        prepared = client.session.prepare_request(requests.Request("GET", f"{client.host}/api/processes"))

        assert prepared.headers["User-Agent"] == "aztoolkit-tests/1.0"
        assert prepared.headers["Authorization"] == "Bearer fake-azure-token-12345"
        assert "Authorization" not in app_service.session.headers

    def test_transport_settings_follow_service_session(self, app_service, app):
        app_service.session.verify = "/etc/ssl/corp-ca.pem"
        app_service.session.proxies["https"] = "http://proxy:3128"

        client = kudu_client(app)

        assert client.session.verify == "/etc/ssl/corp-ca.pem"
        assert client.session.proxies["https"] == "http://proxy:3128"
