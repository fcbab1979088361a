"""Unit tests for resource_cache module."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from aztoolkit.cache.resource_cache import ResourceCache
from aztoolkit.exceptions import RemoteOperationError
from aztoolkit.models.status import Status


class TestResourceCacheListing:
    """Listing through the module cache."""

    def test_first_list_loads_then_serves_from_memory(self, widgets, widget_client):
        first = widgets.list()
        second = widgets.list()

        assert sorted(r.name for r in first) == ["w1", "w2", "w3"]
        assert [r.name for r in second] == [r.name for r in first]
        assert widget_client.count("list") == 1

    def test_entities_are_shared_between_calls(self, widgets):
        assert widgets.list()[0] is widgets.list()[0]

    def test_resource_group_scope_loads_separately(self, widgets, widget_client):
        assert [r.name for r in widgets.list("rg-2")] == ["w3"]
        assert [r.name for r in widgets.list("RG-2")] == ["w3"]
        assert widget_client.count("list") == 1

    def test_module_wide_listing_serves_group_scopes(self, widgets, widget_client):
        widgets.list()
        assert sorted(r.name for r in widgets.list("rg-1")) == ["w1", "w2"]
        assert widget_client.count("list") == 1

    def test_invalidate_forces_reload(self, widgets, widget_client, make_raw_widget):
        widgets.list()
        widget_client.widgets[("rg-1", "w4")] = make_raw_widget("w4", "rg-1")

        widgets.invalidate()

        assert "w4" in [r.name for r in widgets.list()]
        assert widget_client.count("list") == 2

    def test_failed_load_caches_nothing(self, widgets, widget_client):
        widget_client.fail_with = ConnectionError("boom")
        with pytest.raises(RemoteOperationError):
            widgets.list()

        widget_client.fail_with = None
        assert len(widgets.list()) == 3
        assert widget_client.count("list") == 2

    def test_unresolved_parent_lists_nothing(self, unresolved_widgets):
        assert unresolved_widgets.list() == []
        assert not unresolved_widgets.cache.is_loaded()

    def test_not_found_markers_hidden_from_listing(self, widgets, widget_client):
        assert widgets.get("ghost", "rg-1") is None
        assert [r.name for r in widgets.list("rg-1")] == ["w1", "w2"]
        assert all(r.status == Status.ACTIVE for r in widgets.list())


class TestSingleFlight:
    """Concurrent callers share one remote load."""

    def test_concurrent_list_loads_once(self, widgets, widget_client):
        widget_client.list_gate = threading.Event()
        callers = 8

        with ThreadPoolExecutor(max_workers=callers) as pool:
            futures = [pool.submit(widgets.list) for _ in range(callers)]
            time.sleep(0.2)
            widget_client.list_gate.set()
            results = [f.result(timeout=5) for f in futures]

        assert widget_client.count("list") == 1
        assert all(len(r) == 3 for r in results)
        first = {id(e) for e in results[0]}
        assert all({id(e) for e in r} == first for r in results)

    def test_waiters_see_the_leaders_error(self):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def loader(resource_group):
            calls.append(resource_group)
            started.set()
            release.wait(timeout=5)
            raise RemoteOperationError("listing failed")

        cache = ResourceCache("things", loader)
        with ThreadPoolExecutor(max_workers=2) as pool:
            leader = pool.submit(cache.list)
            started.wait(timeout=5)
            follower = pool.submit(cache.list)
            time.sleep(0.1)
            release.set()
            with pytest.raises(RemoteOperationError):
                leader.result(timeout=5)
            with pytest.raises(RemoteOperationError):
                follower.result(timeout=5)

        assert calls == [None]

    def test_concurrent_point_lookups_fetch_once(self, widgets, widget_client):
        barrier = threading.Barrier(4)

        def lookup():
            barrier.wait(timeout=5)
            return widgets.get("w1", "rg-1")

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = [f.result(timeout=5) for f in [pool.submit(lookup) for _ in range(4)]]

        assert all(r is results[0] for r in results)
        assert widget_client.count("get") == 1

    def test_invalidate_during_load_discards_stale_result(self, widgets, widget_client):
        widget_client.list_gate = threading.Event()
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(widgets.list)
            time.sleep(0.1)
            widgets.invalidate()
            widget_client.list_gate.set()
            assert len(future.result(timeout=5)) == 3

        assert not widgets.cache.is_loaded()
        assert len(widgets.cache) == 0

    def test_delete_during_listing_does_not_resurrect(self, widgets, widget_client):
        w1 = widgets.get("w1", "rg-1")
        widget_client.list_gate = threading.Event()

        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(widgets.list)
            assert widget_client.listed.wait(timeout=5)
            assert widgets.delete(w1.id)
            widget_client.list_gate.set()
            listed = future.result(timeout=5)

        assert sorted(r.name for r in listed) == ["w2", "w3"]
        assert sorted(r.name for r in widgets.list()) == ["w2", "w3"]
        assert widgets.get("w1", "rg-1") is None
        assert w1.status == Status.DELETED
        assert widget_client.count("list") == 1

    def test_plain_invalidate_during_listing_keeps_loaded_copy(self, widgets, widget_client):
        widgets.get("w2", "rg-1")
        widget_client.list_gate = threading.Event()

        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(widgets.list)
            assert widget_client.listed.wait(timeout=5)
            widgets.invalidate(widgets.resource_id("w2", "rg-1"))
            widget_client.list_gate.set()
            future.result(timeout=5)

        assert widgets.cache.is_loaded()
        assert sorted(r.name for r in widgets.list()) == ["w1", "w2", "w3"]

    def test_evict_fences_only_that_id(self, make_raw_widget, widgets):
        started = threading.Event()
        release = threading.Event()
        gone = widgets.resource_id("w1", "rg-1")

        def loader(resource_group):
            loaded = [
                widgets.adapter.new_resource(widgets, make_raw_widget(name, "rg-1"))
                for name in ("w1", "w2")
            ]
            started.set()
            release.wait(timeout=5)
            return loaded

        cache = ResourceCache("things", loader)
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(cache.list)
            assert started.wait(timeout=5)
            cache.evict(gone)
            release.set()
            assert [r.name for r in future.result(timeout=5)] == ["w2"]

        assert cache.get(gone) is None
        assert [r.name for r in cache.list()] == ["w2"]
