"""Tests for MutationService — create, update, delete as atomic units."""

from __future__ import annotations

import threading
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from mantenedor.infrastructure.repositories.records import RecordRepository
from mantenedor.infrastructure.store import EntityStore
from mantenedor.services.contracts import DeleteData, MutationData
from mantenedor.services.mutation import MutationService
from mantenedor.services.query import QueryService
from mantenedor.services.result import (
    INTERNAL_ERROR,
    INVALID_INPUT,
    NOT_FOUND,
    VALIDATION_FAILED,
)
from tests.conftest import create_record


def _version(store: EntityStore) -> int:
    return QueryService(store).get_version().data["version"]


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


class TestCreate:
    def test_create_returns_item_and_version(self, store: EntityStore) -> None:
        result = MutationService(store).create("COST_TYPE", "Fuel", {"code": "FU"})
        assert result.ok
        data = MutationData.model_validate(result.data)
        assert data.message == "Record created successfully"
        assert data.version == 1
        item = result.data["item"]
        assert item["type"] == "COST_TYPE"
        assert item["name"] == "Fuel"
        assert item["code"] == "FU"

    def test_trims_type_and_name(self, store: EntityStore) -> None:
        item = create_record(store, "  COST_TYPE ", "  Fuel  ")
        assert item["type"] == "COST_TYPE"
        assert item["name"] == "Fuel"

    def test_payload_optional(self, store: EntityStore) -> None:
        result = MutationService(store).create("COST_TYPE", "Fuel")
        assert result.ok

    @pytest.mark.parametrize(
        ("record_type", "name", "message"),
        [
            ("", "Fuel", "Type is required"),
            ("   ", "Fuel", "Type is required"),
            (None, "Fuel", "Type is required"),
            ("COST_TYPE", "", "Name is required"),
            ("COST_TYPE", 5, "Name is required"),
        ],
    )
    def test_missing_labels(
        self, store: EntityStore, record_type: object, name: object, message: str
    ) -> None:
        result = MutationService(store).create(record_type, name, {})
        assert not result.ok
        assert result.error.code == INVALID_INPUT
        assert result.error.status == 400
        assert result.error.message == message
        assert _version(store) == 0

    def test_payload_must_be_object(self, store: EntityStore) -> None:
        payload = ["not", "an", "object"]
        result = MutationService(store).create("A", "x", payload)  # type: ignore[arg-type]
        assert result.error.code == INVALID_INPUT

    def test_reserved_keys_dropped_with_warning(self, store: EntityStore) -> None:
        result = MutationService(store).create(
            "COST_TYPE", "Fuel", {"id": 99, "type": "OTHER", "code": "FU"}
        )
        assert result.ok
        item = result.data["item"]
        assert item["id"] != 99
        assert item["type"] == "COST_TYPE"
        assert len(result.warnings) == 2
        assert "id" in result.warnings[0]
        stored = store.get_record(item["id"])
        assert stored.payload == {"code": "FU"}

    def test_unvalidated_type_accepts_anything(self, store: EntityStore) -> None:
        payload = {"anything": [1, {"nested": True}], "n": None}
        item = create_record(store, "FREEFORM", "Misc", payload)
        assert item["anything"] == [1, {"nested": True}]


# ---------------------------------------------------------------------------
# Validation and reference integrity
# ---------------------------------------------------------------------------


class TestValidation:
    def test_invalid_payload_rejected_without_effects(self, validated_store: EntityStore) -> None:
        result = MutationService(validated_store).create("COST_TYPE", "Fuel", {"active": "yes"})
        assert not result.ok
        assert result.error.code == VALIDATION_FAILED
        assert result.error.errors == [
            "Field 'code' is required",
            "Field 'active' must be a boolean",
        ]
        assert result.error.message == "; ".join(result.error.errors)
        assert validated_store.list_records() == []
        assert _version(validated_store) == 0

    def test_reference_to_existing_record(self, validated_store: EntityStore) -> None:
        cost = create_record(validated_store, "COST_TYPE", "Fuel", {"code": "FU"})
        result = MutationService(validated_store).create(
            "INVOICE_CONCEPT", "Diesel", {"costTypeId": cost["id"], "rate": 0.19}
        )
        assert result.ok
        assert result.data["version"] == 2

    def test_dangling_reference_rejected(self, validated_store: EntityStore) -> None:
        result = MutationService(validated_store).create(
            "INVOICE_CONCEPT", "Diesel", {"costTypeId": 999}
        )
        assert result.error.code == VALIDATION_FAILED
        assert result.error.errors == [
            "Field 'costTypeId' references non-existent COST_TYPE with id 999"
        ]
        assert validated_store.list_types() == []

    def test_oversized_reference_rejected(self, validated_store: EntityStore) -> None:
        result = MutationService(validated_store).create(
            "INVOICE_CONCEPT", "Diesel", {"costTypeId": 10**20}
        )
        assert result.error.code == VALIDATION_FAILED
        assert validated_store.list_types() == []

    def test_reference_to_wrong_type_rejected(self, validated_store: EntityStore) -> None:
        other = create_record(validated_store, "FREEFORM", "Other")
        result = MutationService(validated_store).create(
            "INVOICE_CONCEPT", "Diesel", {"costTypeId": other["id"]}
        )
        assert result.error.code == VALIDATION_FAILED

    def test_custom_predicate(self, validated_store: EntityStore) -> None:
        cost = create_record(validated_store, "COST_TYPE", "Fuel", {"code": "FU"})
        result = MutationService(validated_store).create(
            "INVOICE_CONCEPT", "Diesel", {"costTypeId": cost["id"], "rate": 4}
        )
        assert result.error.errors == ["Rate must be between 0 and 1"]

    def test_rule_lookup_uses_trimmed_type(self, validated_store: EntityStore) -> None:
        result = MutationService(validated_store).create(" COST_TYPE ", "Fuel", {})
        assert result.error.code == VALIDATION_FAILED


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_merge_semantics(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel", {"code": "FU", "active": True})
        result = MutationService(store).update(item["id"], patch={"active": False})
        assert result.ok
        data = MutationData.model_validate(result.data)
        assert data.message == "Record updated successfully"
        assert data.version == 2
        assert result.data["item"]["code"] == "FU"
        assert result.data["item"]["active"] is False

    def test_reread_locks_the_row(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel", {"code": "FU"})
        with patch.object(
            RecordRepository, "get", autospec=True, side_effect=RecordRepository.get
        ) as get:
            assert MutationService(store).update(item["id"], patch={"code": "F2"}).ok
        assert any(c.kwargs.get("for_update") for c in get.call_args_list)

    def test_rename_only(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel", {"code": "FU"})
        result = MutationService(store).update(item["id"], name="  Diesel ")
        assert result.data["item"]["name"] == "Diesel"
        assert result.data["item"]["code"] == "FU"

    def test_type_is_immutable(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel")
        result = MutationService(store).update(item["id"], patch={"type": "OTHER"})
        assert result.ok
        assert result.data["item"]["type"] == "COST_TYPE"
        assert result.warnings
        assert store.list_types() == ["COST_TYPE"]

    def test_created_at_preserved(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel")
        result = MutationService(store).update(item["id"], patch={"x": 1})
        assert result.data["item"]["createdAt"] == item["createdAt"]
        assert result.data["item"]["updatedAt"] >= item["updatedAt"]

    def test_accepts_string_id(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel")
        assert MutationService(store).update(str(item["id"]), patch={"x": 1}).ok

    def test_not_found(self, store: EntityStore) -> None:
        result = MutationService(store).update(404, patch={"x": 1})
        assert result.error.code == NOT_FOUND
        assert result.error.status == 404
        assert result.error.message == "No record found with id: 404"
        assert _version(store) == 0

    @pytest.mark.parametrize("bad_id", ["abc", 1.5, True, None, 10**20])
    def test_invalid_id(self, store: EntityStore, bad_id: object) -> None:
        result = MutationService(store).update(bad_id, patch={})
        assert result.error.code == INVALID_INPUT

    def test_blank_name_rejected(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel")
        result = MutationService(store).update(item["id"], name="   ")
        assert result.error.code == VALIDATION_FAILED
        assert store.get_record(item["id"]).name == "Fuel"
        assert _version(store) == 1

    def test_merged_payload_is_validated(self, validated_store: EntityStore) -> None:
        item = create_record(validated_store, "COST_TYPE", "Fuel", {"code": "FU"})
        ok = MutationService(validated_store).update(item["id"], patch={"active": True})
        assert ok.ok

        bad = MutationService(validated_store).update(item["id"], patch={"code": None})
        assert bad.error.code == VALIDATION_FAILED
        assert bad.error.errors == ["Field 'code' is required"]
        assert validated_store.get_record(item["id"]).payload == {"code": "FU", "active": True}
        assert _version(validated_store) == 2

    def test_update_revalidates_reference(self, validated_store: EntityStore) -> None:
        cost = create_record(validated_store, "COST_TYPE", "Fuel", {"code": "FU"})
        concept = create_record(
            validated_store, "INVOICE_CONCEPT", "Diesel", {"costTypeId": cost["id"]}
        )
        result = MutationService(validated_store).update(concept["id"], patch={"costTypeId": 999})
        assert result.error.code == VALIDATION_FAILED


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


class TestDelete:
    def test_delete(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel")
        result = MutationService(store).delete(item["id"])
        assert result.ok
        data = DeleteData.model_validate(result.data)
        assert data.message == "Record deleted successfully"
        assert data.id == item["id"]
        assert data.version == 2
        assert store.get_record(item["id"]) is None

    def test_delete_missing(self, store: EntityStore) -> None:
        result = MutationService(store).delete(404)
        assert result.error.code == NOT_FOUND
        assert _version(store) == 0

    def test_delete_twice(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel")
        svc = MutationService(store)
        assert svc.delete(item["id"]).ok
        assert svc.delete(item["id"]).error.code == NOT_FOUND
        assert _version(store) == 2

    def test_invalid_id(self, store: EntityStore) -> None:
        assert MutationService(store).delete("abc").error.code == INVALID_INPUT

    def test_oversized_id_is_invalid_input(self, store: EntityStore) -> None:
        result = MutationService(store).delete("99999999999999999999")
        assert result.error.code == INVALID_INPUT
        assert _version(store) == 0

    def test_delete_does_not_check_inbound_references(self, validated_store: EntityStore) -> None:
        cost = create_record(validated_store, "COST_TYPE", "Fuel", {"code": "FU"})
        create_record(validated_store, "INVOICE_CONCEPT", "Diesel", {"costTypeId": cost["id"]})
        assert MutationService(validated_store).delete(cost["id"]).ok


# ---------------------------------------------------------------------------
# Version counter
# ---------------------------------------------------------------------------


class TestVersion:
    def test_each_success_bumps_by_one(self, store: EntityStore) -> None:
        svc = MutationService(store)
        versions = [svc.create("A", "x").data["version"]]
        item_id = svc.create("A", "y").data["item"]["id"]
        versions.append(_version(store))
        versions.append(svc.update(item_id, patch={"z": 1}).data["version"])
        versions.append(svc.delete(item_id).data["version"])
        assert versions == [1, 2, 3, 4]

    def test_failures_never_bump(self, validated_store: EntityStore) -> None:
        svc = MutationService(validated_store)
        svc.create("", "x")
        svc.create("COST_TYPE", "Fuel", {})
        svc.update(404, patch={})
        svc.delete("nope")
        assert _version(validated_store) == 0

    def test_database_error_is_internal(self, store: EntityStore) -> None:
        with patch(
            "mantenedor.infrastructure.store.StoreTransaction.bump_version",
            side_effect=OperationalError("UPDATE", {}, Exception("disk I/O error")),
        ):
            result = MutationService(store).create("A", "x")
        assert result.error.code == INTERNAL_ERROR
        assert result.error.status == 500
        assert result.error.message == "Internal server error"
        assert store.list_records() == []
        assert _version(store) == 0


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrentWrites:
    def test_concurrent_creates_yield_distinct_versions(self, store: EntityStore) -> None:
        workers = 6
        per_worker = 5
        versions: list[int] = []
        lock = threading.Lock()
        barrier = threading.Barrier(workers)

        def run(n: int) -> None:
            svc = MutationService(store)
            barrier.wait()
            for i in range(per_worker):
                result = svc.create("LOAD", f"w{n}-{i}")
                assert result.ok, result.error
                with lock:
                    versions.append(result.data["version"])

        threads = [threading.Thread(target=run, args=(n,)) for n in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        total = workers * per_worker
        assert sorted(versions) == list(range(1, total + 1))
        assert _version(store) == total
        assert len(store.list_records_by_type("LOAD")) == total

    def test_concurrent_patches_do_not_lose_fields(self, store: EntityStore) -> None:
        item = create_record(store, "COST_TYPE", "Fuel")
        keys = [f"k{i}" for i in range(8)]
        barrier = threading.Barrier(len(keys))

        def run(key: str) -> None:
            barrier.wait()
            result = MutationService(store).update(item["id"], patch={key: True})
            assert result.ok, result.error

        threads = [threading.Thread(target=run, args=(k,)) for k in keys]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        payload = store.get_record(item["id"]).payload
        assert all(payload.get(k) is True for k in keys)
        assert _version(store) == 1 + len(keys)
