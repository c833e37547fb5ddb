"""Tests for the SQLite catalog store."""

import sqlite3

import pytest

from mod_test_utils import make_artifact
from modsloader.catalog.canary import WriteAction
from modsloader.catalog.store import CatalogStore
from modsloader.exceptions import StorageError

pytestmark = [pytest.mark.unit, pytest.mark.catalog]

T0 = "2024-01-01T00:00:00+00:00"
T1 = "2024-01-02T00:00:00+00:00"
T2 = "2024-01-03T00:00:00+00:00"


def _commit(store, artifact, kind="wotmod", canary=None, now=T0, tag="wotstat.analytics"):
    return store.commit_variant(tag, artifact, kind, f"mods/{tag}/{artifact.content_hash}/f.{kind}", canary, now=now)


class TestCommitVariant:
    """Tests for CatalogStore.commit_variant."""

    def test_insert_then_read_back(self, catalog_store):
        artifact = make_artifact()

        action = _commit(catalog_store, artifact)

        assert action is WriteAction.INSERT
        record = catalog_store.get_record("wotstat.analytics", "wotstat.analytics", "wotmod")
        assert record.content_hash == artifact.content_hash
        assert record.version == "1.0.0"
        assert record.filename == "wotstat.analytics_1.0.0.wotmod"
        assert record.inserted_at == T0
        assert record.canary is None

    def test_same_artifact_is_unchanged(self, catalog_store):
        artifact = make_artifact()
        _commit(catalog_store, artifact)

        assert _commit(catalog_store, artifact, now=T1) is WriteAction.UNCHANGED
        assert catalog_store.get_record("wotstat.analytics", "wotstat.analytics", "wotmod").inserted_at == T0

    def test_new_content_replaces_the_row(self, catalog_store):
        _commit(catalog_store, make_artifact(b"v1"))
        first_id = catalog_store.list_records()[0].row_id

        action = _commit(catalog_store, make_artifact(b"v2", version="2.0"), now=T1)

        records = catalog_store.list_records()
        assert action is WriteAction.REPLACE
        assert len(records) == 1
        assert records[0].version == "2.0"
        assert records[0].inserted_at == T1
        assert records[0].row_id > first_id

    def test_canary_percent_change_keeps_row_and_publish_time(self, catalog_store):
        artifact = make_artifact()
        _commit(catalog_store, artifact, canary=30, now=T0)
        row_id = catalog_store.list_records()[0].row_id

        action = _commit(catalog_store, artifact, canary=50, now=T1)

        record = catalog_store.list_records()[0]
        assert action is WriteAction.UPDATE_CANARY
        assert record.row_id == row_id
        assert record.canary_published_at == T0
        assert record.canary_percent == 50.0

    def test_leaving_and_reentering_canary_restarts_clock(self, catalog_store):
        artifact = make_artifact()
        _commit(catalog_store, artifact, canary=30, now=T0)
        _commit(catalog_store, artifact, canary=None, now=T1)
        assert catalog_store.list_records()[0].canary is None

        _commit(catalog_store, artifact, canary=30, now=T2)

        assert catalog_store.list_records()[0].canary_published_at == T2

    def test_keys_are_independent(self, catalog_store):
        artifact = make_artifact()
        _commit(catalog_store, artifact, kind="wotmod")
        _commit(catalog_store, artifact, kind="mtmod")
        _commit(catalog_store, make_artifact(logical_id="other.id"), kind="wotmod")

        assert len(catalog_store.list_records()) == 3
        assert [r.row_id for r in catalog_store.list_records()] == sorted(
            r.row_id for r in catalog_store.list_records()
        )

    def test_renamed_manifest_id_keeps_both_rows_in_views(self, catalog_store):
        _commit(catalog_store, make_artifact(blob=b"old", logical_id="old.id"), now=T0)
        _commit(catalog_store, make_artifact(blob=b"new", logical_id="new.id"), now=T1)

        all_versions = catalog_store.cache.get_all_versions()["wotstat.analytics"]["wotmod"]
        latest = catalog_store.cache.get_latest_versions()["wotstat.analytics"]["wotmod"]

        assert [entry["id"] for entry in all_versions] == ["new.id", "old.id"]
        assert latest["id"] == "new.id"

    def test_database_failure_raises_storage_error(self, catalog_store, mocker):
        mocker.patch.object(
            catalog_store, "_apply_plan", side_effect=sqlite3.OperationalError("locked")
        )
        invalidate = mocker.spy(catalog_store.cache, "invalidate")

        with pytest.raises(StorageError):
            _commit(catalog_store, make_artifact())
        invalidate.assert_not_called()


class TestQueriesAndDeletion:
    """Tests for list_tags, delete_tag, stats and persistence."""

    def test_list_tags_and_delete(self, catalog_store):
        _commit(catalog_store, make_artifact(), tag="a")
        _commit(catalog_store, make_artifact(), kind="mtmod", tag="a")
        _commit(catalog_store, make_artifact(), tag="b")

        assert catalog_store.list_tags() == {"a", "b"}
        assert catalog_store.delete_tag("a") == 2
        assert catalog_store.list_tags() == {"b"}
        assert catalog_store.delete_tag("missing") == 0

    def test_list_records_for_tag(self, catalog_store):
        _commit(catalog_store, make_artifact(), tag="a")
        _commit(catalog_store, make_artifact(), tag="b")

        assert [r.tag for r in catalog_store.list_records("b")] == ["b"]

    def test_stats(self, catalog_store):
        artifact = make_artifact()
        _commit(catalog_store, artifact, kind="wotmod", canary=10)
        _commit(catalog_store, artifact, kind="mtmod")

        assert catalog_store.stats() == {
            "total_records": 2,
            "tags": 1,
            "unique_hashes": 1,
            "active_canaries": 1,
        }

    def test_records_survive_reopen(self, store_dir):
        path = str(store_dir / "mods.sqlite")
        store = CatalogStore(path)
        _commit(store, make_artifact())
        store.close()

        reopened = CatalogStore(path)
        try:
            assert len(reopened.list_records()) == 1
        finally:
            reopened.close()

    def test_unopenable_database(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")

        with pytest.raises((StorageError, OSError)):
            CatalogStore(str(blocker / "mods.sqlite"))
