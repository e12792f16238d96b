"""
Unit tests for the catalog services: sectors, production groups, products
and assignments.

Run: pytest tests/unit/test_catalog_services.py -v
"""

import pytest
from unittest.mock import MagicMock

from postgrest.exceptions import APIError

from services.sector_service import ALLOWED_IMAGE_TYPES, get_sector_service
from services.production_group_service import (
    ProductionGroupService,
    get_production_group_service,
)
from services.product_service import get_product_service
from services.assignment_service import LinkOutcome, get_assignment_service
from models.catalog import (
    ProductCreate,
    ProductUpdate,
    ProductionGroupCreate,
    ProductionGroupUpdate,
    SectorCreate,
    SectorUpdate,
)
from exceptions import (
    DeleteBlockedError,
    InvalidIdError,
    InvalidImageKeyError,
    InvalidImageTypeError,
    ProductNameExistsError,
    ProductNotFoundError,
    ProductionGroupExistsError,
    ProductionGroupMoveBlockedError,
    ProductionGroupNotFoundError,
    SectorNameExistsError,
    SectorNotFoundError,
)


class TestSectorService:
    """Tests for SectorService"""

    def test_create_and_get(self, fake_db):
        service = get_sector_service()

        sector = service.create(SectorCreate(name="  Dairy "))

        assert sector.name == "Dairy"
        assert service.get_by_id(sector.id).name == "Dairy"

    def test_create_duplicate_name_raises(self, fake_db):
        service = get_sector_service()
        service.create(SectorCreate(name="Dairy"))

        with pytest.raises(SectorNameExistsError):
            service.create(SectorCreate(name="Dairy"))

    def test_get_all_newest_first(self, fake_db):
        service = get_sector_service()
        service.create(SectorCreate(name="Dairy"))
        service.create(SectorCreate(name="Meat"))

        assert [s.name for s in service.get_all()] == ["Meat", "Dairy"]

    def test_get_missing_raises(self, fake_db):
        with pytest.raises(SectorNotFoundError):
            get_sector_service().get_by_id("missing")

    def test_update_image_keeps_name(self, fake_db):
        service = get_sector_service()
        sector = service.create(SectorCreate(name="Dairy"))

        updated = service.update(sector.id, SectorUpdate(image_url="https://cdn/x.png"))

        assert updated.name == "Dairy"
        assert updated.image_url == "https://cdn/x.png"

    def test_rename_to_taken_name_raises(self, fake_db):
        service = get_sector_service()
        service.create(SectorCreate(name="Dairy"))
        meat = service.create(SectorCreate(name="Meat"))

        with pytest.raises(SectorNameExistsError):
            service.update(meat.id, SectorUpdate(name="Dairy"))

    def test_find_or_create_is_idempotent(self, fake_db):
        service = get_sector_service()

        first, created_first = service.find_or_create("Dairy")
        second, created_second = service.find_or_create("Dairy")

        assert created_first is True
        assert created_second is False
        assert first.id == second.id

    def test_find_or_create_returns_row_of_concurrent_writer(self, fake_db):
        winner = {}
        fake_db.before_insert["sectors"] = lambda: winner.update(
            fake_db.seed("sectors", [{"name": "Dairy"}])[0]
        )

        sector, created = get_sector_service().find_or_create("Dairy")

        assert created is False
        assert sector.id == winner["id"]
        assert fake_db.count("sectors") == 1

    def test_malformed_id_is_not_found(self, fake_db):
        with pytest.raises(SectorNotFoundError) as exc_info:
            get_sector_service().get_by_id("not-a-uuid")

        assert exc_info.value.status_code == 404
        assert fake_db.calls == []

    def test_create_losing_race_raises_conflict(self, fake_db):
        fake_db.before_insert["sectors"] = lambda: fake_db.seed("sectors", [{"name": "Dairy"}])

        with pytest.raises(SectorNameExistsError) as exc_info:
            get_sector_service().create(SectorCreate(name="Dairy"))

        assert exc_info.value.status_code == 409
        assert fake_db.count("sectors") == 1

    def test_rename_losing_race_raises_conflict(self, fake_db):
        service = get_sector_service()
        meat = service.create(SectorCreate(name="Meat"))
        fake_db.fail_on[("sectors", "update")] = APIError({
            "message": "duplicate key value violates unique constraint",
            "code": "23505",
            "hint": None,
            "details": None,
        })

        with pytest.raises(SectorNameExistsError):
            service.update(meat.id, SectorUpdate(name="Dairy"))


class TestSectorImages:
    """Tests for SectorService.upload_image() / delete_image()"""

    @pytest.fixture
    def sector(self, fake_db):
        return get_sector_service().create(SectorCreate(name="Dairy"))

    def test_upload_stores_under_sector_key(self, sector):
        store = MagicMock()
        store.put.return_value = "https://bucket.s3.amazonaws.com/key"

        image = get_sector_service().upload_image(
            sector.id, b"\x89PNG", "image/png", "my photo.png", blob_store=store
        )

        assert image.url == "https://bucket.s3.amazonaws.com/key"
        assert image.key.startswith(f"sectors/{sector.id}/")
        assert image.key.endswith("-my-photo.png")
        store.put.assert_called_once_with(b"\x89PNG", "image/png", image.key)

    def test_rejects_other_content_types(self, sector):
        store = MagicMock()

        with pytest.raises(InvalidImageTypeError) as exc_info:
            get_sector_service().upload_image(
                sector.id, b"GIF89a", "image/gif", "x.gif", blob_store=store
            )

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["valid"] == ALLOWED_IMAGE_TYPES
        store.put.assert_not_called()

    def test_upload_for_missing_sector_stores_nothing(self, fake_db):
        store = MagicMock()

        with pytest.raises(SectorNotFoundError):
            get_sector_service().upload_image(
                "3f2c1d9e-7a4b-4c2d-9e8f-1a2b3c4d5e6f", b"\x89PNG", "image/png", "x.png",
                blob_store=store
            )

        store.put.assert_not_called()

    def test_delete_image_by_url(self, sector):
        key = f"sectors/{sector.id}/1-x.png"
        store = MagicMock()
        store.key_from_url.return_value = key

        removed = get_sector_service().delete_image(
            sector.id, f"https://bucket/{key}", blob_store=store
        )

        assert removed == f"https://bucket/{key}"
        store.delete.assert_called_once_with(key)

    def test_delete_defaults_to_current_image(self, sector):
        key = f"sectors/{sector.id}/1-x.png"
        get_sector_service().update(sector.id, SectorUpdate(image_url=f"https://bucket/{key}"))
        store = MagicMock()
        store.key_from_url.return_value = key

        removed = get_sector_service().delete_image(sector.id, blob_store=store)

        assert removed == f"https://bucket/{key}"
        store.key_from_url.assert_called_once_with(f"https://bucket/{key}")
        store.delete.assert_called_once_with(key)

    def test_delete_without_image_is_noop(self, sector):
        store = MagicMock()

        assert get_sector_service().delete_image(sector.id, blob_store=store) is None
        store.delete.assert_not_called()

    @pytest.mark.parametrize("key", [
        "sectors/other-sector/1-x.png",
        "catalog/1-x.png",
        "sectors/{id}/../other-sector/1-x.png",
    ])
    def test_delete_outside_sector_namespace_rejected(self, sector, key):
        key = key.format(id=sector.id)
        store = MagicMock()
        store.key_from_url.return_value = key

        with pytest.raises(InvalidImageKeyError) as exc_info:
            get_sector_service().delete_image(sector.id, f"https://bucket/{key}", blob_store=store)

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["key"] == key
        store.delete.assert_not_called()

    def test_delete_for_missing_sector_raises(self, fake_db):
        store = MagicMock()

        with pytest.raises(SectorNotFoundError):
            get_sector_service().delete_image("missing", "https://bucket/sectors/missing/x.png", blob_store=store)

        store.delete.assert_not_called()


class TestProductionGroupService:
    """Tests for ProductionGroupService"""

    def test_create_requires_existing_sector(self, fake_db):
        with pytest.raises(SectorNotFoundError):
            get_production_group_service().create(
                ProductionGroupCreate(name="Cheese", sector_id="missing")
            )

    def test_same_name_allowed_in_other_sector(self, fake_db):
        dairy = get_sector_service().create(SectorCreate(name="Dairy"))
        meat = get_sector_service().create(SectorCreate(name="Meat"))
        service = get_production_group_service()

        service.create(ProductionGroupCreate(name="Cheese", sector_id=dairy.id))
        service.create(ProductionGroupCreate(name="Cheese", sector_id=meat.id))

        with pytest.raises(ProductionGroupExistsError):
            service.create(ProductionGroupCreate(name="Cheese", sector_id=dairy.id))

    def test_get_all_includes_sector_name(self, fake_db, seeded_catalog):
        dairy = seeded_catalog["sectors"]["Dairy"]

        groups = get_production_group_service().get_all(sector_id=dairy["id"])

        assert [g.name for g in groups] == ["Cheese", "Milk"]
        assert {g.sector_name for g in groups} == {"Dairy"}

    def test_move_to_sector_with_same_name_raises(self, fake_db, seeded_catalog):
        meat_cheese = seeded_catalog["groups"]["Meat::Cheese"]
        dairy = seeded_catalog["sectors"]["Dairy"]

        with pytest.raises(ProductionGroupExistsError):
            get_production_group_service().update(
                meat_cheese["id"], ProductionGroupUpdate(sector_id=dairy["id"])
            )

    def test_find_or_create_returns_row_of_concurrent_writer(self, fake_db):
        dairy = get_sector_service().create(SectorCreate(name="Dairy"))
        winner = {}
        fake_db.before_insert["production_groups"] = lambda: winner.update(
            fake_db.seed("production_groups", [{"name": "Cheese", "sector_id": dairy.id}])[0]
        )

        group, created = get_production_group_service().find_or_create("Cheese", dairy.id)

        assert created is False
        assert group.id == winner["id"]
        assert fake_db.count("production_groups") == 1

    def test_malformed_ids(self, fake_db):
        service = get_production_group_service()

        with pytest.raises(ProductionGroupNotFoundError):
            service.get_by_id("abc")
        with pytest.raises(InvalidIdError) as exc_info:
            service.get_all(sector_id="abc")

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["field"] == "sector_id"
        assert service.get_by_ids(["abc"]) == {}
        assert fake_db.calls == []


class TestProductionGroupMove:
    """Moving a group to another sector"""

    def test_move_with_assignments_blocked(self, fake_db, seeded_catalog):
        milk = seeded_catalog["groups"]["Dairy::Milk"]
        meat = seeded_catalog["sectors"]["Meat"]

        with pytest.raises(ProductionGroupMoveBlockedError) as exc_info:
            get_production_group_service().update(
                milk["id"], ProductionGroupUpdate(sector_id=meat["id"])
            )

        error = exc_info.value
        assert error.status_code == 409
        assert error.code == "PRODUCTION_GROUP_HAS_ASSIGNMENTS"
        assert error.details["dependent_count"] == 1
        assert [d["name"] for d in error.details["dependents"]] == ["Whole Milk"]
        assert get_production_group_service().get_by_id(milk["id"]).sector_id == milk["sector_id"]

    def test_rename_with_assignments_allowed(self, fake_db, seeded_catalog):
        milk = seeded_catalog["groups"]["Dairy::Milk"]

        group = get_production_group_service().update(
            milk["id"], ProductionGroupUpdate(name="Fresh Milk")
        )

        assert group.name == "Fresh Milk"
        assert group.sector_id == milk["sector_id"]

    def test_empty_group_moves(self, fake_db, seeded_catalog):
        dairy = seeded_catalog["sectors"]["Dairy"]
        meat = seeded_catalog["sectors"]["Meat"]
        service = get_production_group_service()
        yogurt = service.create(ProductionGroupCreate(name="Yogurt", sector_id=dairy["id"]))

        moved = service.update(yogurt.id, ProductionGroupUpdate(sector_id=meat["id"]))

        assert moved.sector_id == meat["id"]

    def test_assignment_added_after_check_still_blocks(self, fake_db, seeded_catalog, monkeypatch):
        dairy = seeded_catalog["sectors"]["Dairy"]
        meat = seeded_catalog["sectors"]["Meat"]
        brie = seeded_catalog["products"]["Brie"]
        service = get_production_group_service()
        yogurt = service.create(ProductionGroupCreate(name="Yogurt", sector_id=dairy["id"]))

        original = ProductionGroupService._ensure_can_move
        checks = []

        def check_then_assign(self, group_id):
            checks.append(group_id)
            if len(checks) == 1:
                original(self, group_id)
                fake_db.seed("product_assignments", [{
                    "sector_id": dairy["id"],
                    "production_group_id": group_id,
                    "product_id": brie["id"],
                }])
                return
            original(self, group_id)

        monkeypatch.setattr(ProductionGroupService, "_ensure_can_move", check_then_assign)

        with pytest.raises(ProductionGroupMoveBlockedError):
            service.update(yogurt.id, ProductionGroupUpdate(sector_id=meat["id"]))

        assert checks == [yogurt.id, yogurt.id]
        assert service.get_by_id(yogurt.id).sector_id == dairy["id"]

    def test_moved_group_cannot_orphan_sector_delete(self, fake_db, seeded_catalog):
        milk = seeded_catalog["groups"]["Dairy::Milk"]
        dairy = seeded_catalog["sectors"]["Dairy"]
        meat = seeded_catalog["sectors"]["Meat"]

        with pytest.raises(ProductionGroupMoveBlockedError):
            get_production_group_service().update(
                milk["id"], ProductionGroupUpdate(sector_id=meat["id"])
            )

        with pytest.raises(DeleteBlockedError):
            get_sector_service().delete(dairy["id"])


class TestProductService:
    """Tests for ProductService"""

    def test_create_duplicate_raises(self, fake_db):
        service = get_product_service()
        service.create(ProductCreate(name="Brie"))

        with pytest.raises(ProductNameExistsError):
            service.create(ProductCreate(name="Brie"))

    def test_get_by_ids_skips_unknown(self, fake_db, seeded_catalog):
        brie = seeded_catalog["products"]["Brie"]

        found = get_product_service().get_by_ids([brie["id"], "missing", brie["id"]])

        assert list(found) == [brie["id"]]

    def test_update_missing_raises(self, fake_db):
        with pytest.raises(ProductNotFoundError):
            get_product_service().update("missing", ProductUpdate(name="X"))

    def test_find_or_create_returns_row_of_concurrent_writer(self, fake_db):
        winner = {}
        fake_db.before_insert["products"] = lambda: winner.update(
            fake_db.seed("products", [{"name": "Brie"}])[0]
        )

        product, created = get_product_service().find_or_create("Brie")

        assert created is False
        assert product.id == winner["id"]
        assert fake_db.count("products") == 1

    def test_create_losing_race_raises_conflict(self, fake_db):
        fake_db.before_insert["products"] = lambda: fake_db.seed("products", [{"name": "Brie"}])

        with pytest.raises(ProductNameExistsError):
            get_product_service().create(ProductCreate(name="Brie"))

        assert fake_db.count("products") == 1


class TestAssignmentService:
    """Tests for AssignmentService"""

    def test_link_twice_reports_duplicate(self, fake_db, seeded_catalog):
        dairy = seeded_catalog["sectors"]["Dairy"]
        milk = seeded_catalog["groups"]["Dairy::Milk"]
        brie = seeded_catalog["products"]["Brie"]
        service = get_assignment_service()

        assert service.link(dairy["id"], milk["id"], brie["id"]) == LinkOutcome.CREATED
        assert service.link(dairy["id"], milk["id"], brie["id"]) == LinkOutcome.DUPLICATE

    def test_find_for_pairs_matches_exact_pairs(self, fake_db, seeded_catalog):
        cheddar = seeded_catalog["products"]["Cheddar"]
        cheese = seeded_catalog["groups"]["Dairy::Cheese"]
        milk = seeded_catalog["groups"]["Dairy::Milk"]

        linked = get_assignment_service().find_for_pairs([
            (cheddar["id"], cheese["id"]),
            (cheddar["id"], milk["id"]),
        ])

        assert linked == {(cheddar["id"], cheese["id"])}

    def test_find_for_pairs_respects_sector(self, fake_db, seeded_catalog):
        brie = seeded_catalog["products"]["Brie"]
        meat_cheese = seeded_catalog["groups"]["Meat::Cheese"]
        dairy = seeded_catalog["sectors"]["Dairy"]

        linked = get_assignment_service().find_for_pairs(
            [(brie["id"], meat_cheese["id"])],
            sector_id=dairy["id"]
        )

        assert linked == set()

    def test_catalog_for_sector(self, fake_db, seeded_catalog):
        dairy = seeded_catalog["sectors"]["Dairy"]

        catalog = get_assignment_service().get_catalog_for_sector(dairy["id"])

        assert [g.name for g in catalog] == ["Cheese", "Milk"]
        assert [p.name for p in catalog[0].products] == ["Brie", "Cheddar"]
        assert [p.name for p in catalog[1].products] == ["Whole Milk"]
