"""
Integration tests for database operations.
"""
import json

import pytest

from pipeline.database import Database


@pytest.mark.integration
class TestDatabase:
    """Integration tests for Database class."""

    def test_missing_snapshot_is_none(self, test_db):
        assert test_db.load_snapshot("nothing-here") is None

    def test_save_and_load_snapshot(self, test_db):
        payload = {"purchaseOrders": [{"po_number": "PO-1"}], "landingRates": []}
        test_db.save_snapshot("erp-data-storage", payload)

        raw = test_db.load_snapshot("erp-data-storage")
        assert json.loads(raw) == payload

    def test_save_replaces_in_full(self, test_db):
        test_db.save_snapshot("s", {"purchaseOrders": [1, 2, 3]})
        test_db.save_snapshot("s", {"landingRates": []})
        assert json.loads(test_db.load_snapshot("s")) == {"landingRates": []}

    def test_snapshots_are_independent_by_name(self, test_db):
        test_db.save_snapshot("a", {"x": 1})
        test_db.save_snapshot("b", {"x": 2})
        assert json.loads(test_db.load_snapshot("a")) == {"x": 1}

    def test_delete_snapshot(self, test_db):
        test_db.save_snapshot("s", {})
        assert test_db.delete_snapshot("s") is True
        assert test_db.delete_snapshot("s") is False
        assert test_db.load_snapshot("s") is None

    def test_snapshot_survives_reopen(self, test_db, test_config):
        test_db.save_snapshot("s", {"ok": True})
        reopened = Database(test_config.db_path)
        assert json.loads(reopened.load_snapshot("s")) == {"ok": True}


@pytest.mark.integration
class TestUploadLog:

    def test_log_and_history(self, test_db):
        test_db.log_upload("a.csv", "purchaseOrders", 10, 2, {"blank_rows": 1})
        test_db.log_upload("b.xlsx", "landingRates", 5, 0)

        history = test_db.get_upload_history()
        assert [h["source_file"] for h in history] == ["b.xlsx", "a.csv"]
        assert history[1]["accepted_count"] == 10
        assert history[1]["rejected_count"] == 2
        assert json.loads(history[1]["detail"]) == {"blank_rows": 1}
        assert history[0]["detail"] is None

    def test_history_pagination(self, test_db):
        for i in range(5):
            test_db.log_upload(f"f{i}.csv", "purchaseOrders", i, 0)
        page = test_db.get_upload_history(limit=2, offset=1)
        assert [h["source_file"] for h in page] == ["f3.csv", "f2.csv"]
