"""
Tests for the document store backends.

The Google Sheets store is exercised against a fake worksheet so no
credentials or network access are needed.
"""

import json

import pytest

from splitledger.services.storage import (
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    matches_filters,
)
from tests.support import run


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the document store."""

    def __init__(self):
        self.rows = [["id", "data_json"]]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def update(self, range_name=None, values=None, value_input_option=None):
        index = int(range_name.split(":")[0][1:]) - 1
        self.rows[index] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:

    def __init__(self):
        self.sheets = {}

    def get_collection_sheet(self, collection):
        return self.sheets.setdefault(collection, FakeWorksheet())


@pytest.fixture(params=["memory", "sheets"])
def doc_store(request):
    if request.param == "memory":
        return InMemoryDocumentStore()
    return GoogleSheetsDocumentStore(FakeSheetsClient())


class TestDocumentStoreContract:
    """Both backends behave the same way."""

    def test_create_and_get(self, doc_store):
        doc_id = run(doc_store.create_doc("groups", {"name": "Flat"}))
        assert run(doc_store.get_doc("groups", doc_id)) == {"name": "Flat", "id": doc_id}

    def test_get_missing(self, doc_store):
        assert run(doc_store.get_doc("groups", "nope")) is None

    def test_set_overwrites(self, doc_store):
        run(doc_store.set_doc("groupMembers", "g_alice", {"name": "Alice", "is_admin": True}))
        run(doc_store.set_doc("groupMembers", "g_alice", {"name": "Alice B"}))
        assert run(doc_store.get_doc("groupMembers", "g_alice")) == {"name": "Alice B", "id": "g_alice"}

    def test_update_merges(self, doc_store):
        run(doc_store.set_doc("groups", "g", {"name": "Flat", "member_count": 1}))
        run(doc_store.update_doc("groups", "g", {"member_count": 2}))
        assert run(doc_store.get_doc("groups", "g"))["member_count"] == 2
        assert run(doc_store.get_doc("groups", "g"))["name"] == "Flat"

    def test_update_missing_raises(self, doc_store):
        with pytest.raises(NotFoundError):
            run(doc_store.update_doc("groups", "nope", {"name": "X"}))

    def test_delete(self, doc_store):
        run(doc_store.set_doc("groupMembers", "g_x", {"name": "X"}))
        assert run(doc_store.delete_doc("groupMembers", "g_x")) is True
        assert run(doc_store.delete_doc("groupMembers", "g_x")) is False
        assert run(doc_store.get_doc("groupMembers", "g_x")) is None

    def test_query_filters(self, doc_store):
        run(doc_store.set_doc("groupMembers", "g1_a", {"group_id": "g1", "user_id": "a"}))
        run(doc_store.set_doc("groupMembers", "g1_b", {"group_id": "g1", "user_id": None}))
        run(doc_store.set_doc("groupMembers", "g2_a", {"group_id": "g2", "user_id": "a"}))

        assert {d["id"] for d in run(doc_store.query_docs("groupMembers", [("group_id", "g1")]))} == {"g1_a", "g1_b"}
        assert {d["id"] for d in run(doc_store.query_docs("groupMembers", [("user_id", "a")]))} == {"g1_a", "g2_a"}
        assert len(run(doc_store.query_docs("groupMembers"))) == 3
        assert run(doc_store.query_docs("empty")) == []


class TestInMemoryStore:

    def test_stored_documents_are_copies(self):
        store = InMemoryDocumentStore()
        data = {"splits": [{"member_id": "a"}]}
        run(store.set_doc("groupExpenses", "e1", data))
        data["splits"].append({"member_id": "b"})

        fetched = run(store.get_doc("groupExpenses", "e1"))
        fetched["splits"].clear()
        assert run(store.get_doc("groupExpenses", "e1"))["splits"] == [{"member_id": "a"}]
        assert store.count("groupExpenses") == 1


class TestGoogleSheetsStore:

    def test_rows_hold_json_bodies(self):
        client = FakeSheetsClient()
        store = GoogleSheetsDocumentStore(client)
        run(store.set_doc("groups", "g", {"name": "Flat", "id": "ignored"}))

        sheet = client.sheets["groups"]
        assert sheet.rows[1][0] == "g"
        assert json.loads(sheet.rows[1][1]) == {"name": "Flat"}

    def test_malformed_rows_skipped(self):
        client = FakeSheetsClient()
        store = GoogleSheetsDocumentStore(client)
        run(store.set_doc("groups", "g", {"name": "Flat"}))
        client.sheets["groups"].rows.append(["broken", "{not json"])
        client.sheets["groups"].rows.append([])

        assert [d["id"] for d in run(store.query_docs("groups"))] == ["g"]


def test_matches_filters():
    doc = {"group_id": "g", "user_id": None}
    assert matches_filters(doc, None)
    assert matches_filters(doc, [("group_id", "g"), ("user_id", None)])
    assert not matches_filters(doc, [("group_id", "h")])
    assert not matches_filters(doc, [("missing", "x")])
