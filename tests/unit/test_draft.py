"""Unit tests for draft module."""

import pytest

from aztoolkit.exceptions import ConfigurationError, InvariantViolation


class TestDraft:
    def test_fields_are_chainable(self, widgets):
        draft = widgets.new_draft_for_create("w9", "rg-1").set("color", "pink").update(size=3)

        assert draft.fields == {"color": "pink", "size": 3}
        assert draft["color"] == "pink"
        assert "size" in draft
        assert draft.get("missing", "default") == "default"
        assert draft.is_create

    def test_fields_returns_a_copy(self, widgets):
        draft = widgets.new_draft_for_create("w9", "rg-1").set("color", "pink")
        draft.fields["color"] = "changed"
        assert draft["color"] == "pink"

    def test_require_missing_field(self, widgets):
        draft = widgets.new_draft_for_create("w9", "rg-1").set("location", None)
        with pytest.raises(ConfigurationError, match="'location' is required"):
            draft.require("location")

    def test_update_draft_targets_origin(self, widgets):
        widget = widgets.get("w1", "rg-1")
        draft = widget.update()

        assert draft.origin is widget
        assert not draft.is_create
        assert draft.id == widget.id

    def test_abandoned_draft_has_no_effect(self, widgets, widget_client):
        widgets.new_draft_for_create("w9", "rg-1").set("color", "pink")
        assert widgets.get("w9", "rg-1") is None
        assert widget_client.count("create") == 0

    def test_committed_draft_is_closed(self, widgets):
        draft = widgets.new_draft_for_create("w9", "rg-1")
        draft.commit()
        with pytest.raises(InvariantViolation):
            draft.set("color", "red")

    def test_repr_masks_secrets(self, widgets):
        draft = widgets.new_draft_for_create("pg1", "rg-1").update(
            admin_login="admin", admin_password="hunter2", client_secret="s3cret"
        )
        text = repr(draft)
        assert "hunter2" not in text
        assert "s3cret" not in text
        assert "admin" in text
