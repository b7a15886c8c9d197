"""Tests for record store implementations."""

import json
from unittest.mock import Mock

import pytest
import requests

from domain.exceptions import InvalidStoreFileError, RecordNotFoundError, StoreRequestError
from infrastructure.persistence.http_record_store import HTTPRecordStore
from infrastructure.persistence.record_store import (
    InMemoryRecordStore,
    JSONFileRecordStore,
    resolve_collection,
)


class TestResolveCollection:
    def test_aliases(self) -> None:
        assert resolve_collection("Productos") == "products"
        assert resolve_collection("ventas") == "sales"
        assert resolve_collection("components") == "components"

    def test_empty_name(self) -> None:
        with pytest.raises(ValueError):
            resolve_collection(" ")


class TestInMemoryRecordStore:
    """Test InMemoryRecordStore."""

    def test_put_assigns_id(self) -> None:
        store = InMemoryRecordStore()

        stored = store.put("sales", {"productId": "1"})

        assert stored["id"]
        assert store.get("sales", stored["id"]) == stored

    def test_put_replaces_by_id(self) -> None:
        store = InMemoryRecordStore({"products": [{"id": 1, "name": "A"}]})

        store.put("productos", {"id": "1", "name": "B"})

        assert store.get("products") == [{"id": "1", "name": "B"}]

    def test_returns_copies(self) -> None:
        store = InMemoryRecordStore({"products": [{"id": "1", "tags": ["x"]}]})

        store.get("products", "1")["tags"].append("y")

        assert store.get("products", "1")["tags"] == ["x"]

    def test_missing_records(self) -> None:
        store = InMemoryRecordStore()

        assert store.get_all("sales") == []
        with pytest.raises(RecordNotFoundError):
            store.get("sales", "nope")
        with pytest.raises(RecordNotFoundError):
            store.delete("sales", "nope")


class TestJSONFileRecordStore:
    """Test JSONFileRecordStore."""

    def test_persists_between_instances(self, tmp_path) -> None:
        JSONFileRecordStore(tmp_path).put("components", {"id": "c1", "name": "Hilo"})

        store = JSONFileRecordStore(tmp_path)

        assert store.get("components", "c1") == {"id": "c1", "name": "Hilo"}
        assert store.list_collections() == ["components"]

    def test_file_is_a_json_array(self, tmp_path) -> None:
        store = JSONFileRecordStore(tmp_path)
        store.put("sales", {"id": "s1", "customerName": "Sofía"})
        store.put("sales", {"id": "s2"})
        store.delete("sales", "s1")

        data = json.loads((tmp_path / "sales.json").read_text(encoding="utf-8"))

        assert data == [{"id": "s2"}]
        assert not (tmp_path / "sales.json.tmp").exists()

    def test_invalid_file(self, tmp_path) -> None:
        (tmp_path / "products.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(InvalidStoreFileError):
            JSONFileRecordStore(tmp_path).get("products")

    def test_file_must_hold_a_list(self, tmp_path) -> None:
        (tmp_path / "products.json").write_text('{"id": 1}', encoding="utf-8")

        with pytest.raises(InvalidStoreFileError, match="must hold a list"):
            JSONFileRecordStore(tmp_path).get("products")

    def test_delete_missing(self, tmp_path) -> None:
        with pytest.raises(RecordNotFoundError):
            JSONFileRecordStore(tmp_path).delete("sales", "s1")


def _response(status: int = 200, payload=None) -> Mock:
    response = Mock()
    response.status_code = status
    response.content = b"" if payload is None else json.dumps(payload).encode()
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


class TestHTTPRecordStore:
    """Test HTTPRecordStore with a mocked session."""

    @pytest.fixture
    def session(self) -> Mock:
        return Mock(spec=requests.Session)

    @pytest.fixture
    def store(self, session: Mock) -> HTTPRecordStore:
        return HTTPRecordStore("https://ledger.example/api/", session=session)

    def test_get_collection(self, store: HTTPRecordStore, session: Mock) -> None:
        session.request.return_value = _response(payload=[{"id": "1"}, "junk"])

        assert store.get("productos") == [{"id": "1"}]
        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["url"] == "https://ledger.example/api/products"

    def test_put_without_id_posts(self, store: HTTPRecordStore, session: Mock) -> None:
        session.request.return_value = _response(payload={"id": "new", "productId": "1"})

        stored = store.put("sales", {"productId": "1"})

        assert stored["id"] == "new"
        assert session.request.call_args.kwargs["method"] == "POST"

    @pytest.mark.parametrize("payload", [None, {"productId": "1"}, {"id": ""}])
    def test_post_without_returned_id(self, store: HTTPRecordStore, session: Mock, payload) -> None:
        session.request.return_value = _response(payload=payload)

        with pytest.raises(StoreRequestError, match="did not return an id"):
            store.put("sales", {"productId": "1"})

    def test_put_with_id_puts(self, store: HTTPRecordStore, session: Mock) -> None:
        session.request.return_value = _response()

        stored = store.put("sales", {"id": "s1", "productId": "1"})

        assert stored == {"id": "s1", "productId": "1"}
        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "PUT"
        assert kwargs["url"] == "https://ledger.example/api/sales/s1"

    def test_not_found(self, store: HTTPRecordStore, session: Mock) -> None:
        session.request.return_value = _response(status=404)

        with pytest.raises(RecordNotFoundError):
            store.get("sales", "s1")

    def test_server_error(self, store: HTTPRecordStore, session: Mock) -> None:
        session.request.return_value = _response(status=500)

        with pytest.raises(StoreRequestError) as exc_info:
            store.delete("sales", "s1")
        assert exc_info.value.status_code == 500

    def test_network_error(self, store: HTTPRecordStore, session: Mock) -> None:
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(StoreRequestError, match="Network error"):
            store.get("sales")

    def test_empty_base_url(self) -> None:
        with pytest.raises(ValueError):
            HTTPRecordStore("")
