"""
Variant provisioning tests — one creation call, failure classes, ledger.

Tests:
1-3.   Discriminator and mutation variables
4-8.   Creation success and failure classes (no retry)
9-11.  Idempotency key deduplication
12-15. Orphan ledger and cleanup path
16-20. Key reuse across orders, ledger write failures, output rounding
"""

import random
import re

import pytest
from sqlalchemy.exc import IntegrityError

from cutstock import models
from cutstock.errors import LedgerError, TransportError, ValidationError, VariantCreationError
from cutstock.provisioning import (
    CREATE_VARIANT_MUTATION,
    VariantProvisioningService,
    generate_discriminator,
)

from fakes import VARIANT_ID, variant_created, variant_rejected, variants_deleted

PRODUCT_ID = "gid://shopify/Product/42"


def _service(admin, db=None):
    return VariantProvisioningService(admin, db=db, stock_quantity=1000,
                                      location_id="gid://shopify/Location/1")


# ============================================================
# 1-3. Discriminator and variables
# ============================================================

def test_discriminator_format():
    value = generate_discriminator(now_ms=1700000000000, rng=random.Random(7))
    assert re.fullmatch(r"1700000000000-[0-9a-z]{5}", value)


def test_discriminators_are_distinct():
    values = {generate_discriminator(now_ms=1700000000000) for _ in range(200)}
    assert len(values) == 200


def test_variables_carry_price_stock_and_weight(admin):
    variables = _service(admin).build_variables(PRODUCT_ID, 3.6, 2.16, "1700000000000-abc12")
    variant = variables["variants"][0]
    assert variables["productId"] == PRODUCT_ID
    assert variant["price"] == "3.60"
    assert variant["optionValues"] == [{"optionName": "Title", "name": "1700000000000-abc12"}]
    assert variant["inventoryQuantities"] == {
        "availableQuantity": 1000, "locationId": "gid://shopify/Location/1"}
    assert variant["inventoryItem"]["measurement"]["weight"] == {"value": 2.16, "unit": "KILOGRAMS"}


# ============================================================
# 4-8. Creation
# ============================================================

def test_provision_success_records_ledger(admin, db):
    admin.queue(variant_created())
    result = _service(admin, db).provision(PRODUCT_ID, 3.6, 2.16, discriminator="1700000000000-abc12")

    assert result.variant_id == VARIANT_ID
    assert result.created is True
    assert admin.calls[0]["query"] == CREATE_VARIANT_MUTATION
    assert "productVariantsBulkCreate" in result.payload

    record = db.query(models.ProvisionedVariant).one()
    assert record.variant_id == VARIANT_ID
    assert record.status == models.VariantStatus.CREATED.value
    assert record.price == 3.6


def test_provision_without_ledger(admin):
    admin.queue(variant_created())
    result = _service(admin).provision(PRODUCT_ID, 1.0, 0.5)
    assert result.record is None
    assert result.variant_id == VARIANT_ID


def test_user_errors_are_business_rejection(admin, db):
    admin.queue(variant_rejected("Price is invalid"))
    with pytest.raises(VariantCreationError) as exc:
        _service(admin, db).provision(PRODUCT_ID, -1.0, 2.16)

    assert exc.value.failure_kind == VariantCreationError.BUSINESS_REJECTION
    assert exc.value.user_errors[0]["message"] == "Price is invalid"
    assert "Price is invalid" in exc.value.message
    assert db.query(models.ProvisionedVariant).count() == 0


def test_transport_failure_is_not_retried(admin, db):
    admin.queue(TransportError("Shopify admin API request failed: 502", status_code=502))
    with pytest.raises(VariantCreationError) as exc:
        _service(admin, db).provision(PRODUCT_ID, 3.6, 2.16)

    assert exc.value.failure_kind == VariantCreationError.TRANSPORT
    assert len(admin.calls) == 1
    assert isinstance(exc.value.__cause__, TransportError)


def test_empty_variant_list_is_rejection(admin):
    admin.queue({"productVariantsBulkCreate": {"userErrors": [], "productVariants": []}})
    with pytest.raises(VariantCreationError) as exc:
        _service(admin).provision(PRODUCT_ID, 3.6, 2.16)
    assert exc.value.failure_kind == VariantCreationError.BUSINESS_REJECTION


# ============================================================
# 9-11. Idempotency
# ============================================================

def test_same_key_reuses_variant(admin, db):
    admin.queue(variant_created())
    service = _service(admin, db)
    first = service.provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-1")
    second = service.provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-1")

    assert first.variant_id == second.variant_id
    assert second.created is False
    assert len(admin.calls) == 1
    assert second.payload["productVariantsBulkCreate"]["productVariants"][0]["id"] == VARIANT_ID


def test_different_keys_create_separate_variants(admin, db):
    admin.queue(variant_created("gid://shopify/ProductVariant/1"),
                variant_created("gid://shopify/ProductVariant/2"))
    service = _service(admin, db)
    a = service.provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-1")
    b = service.provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-2")
    assert a.variant_id != b.variant_id
    assert db.query(models.ProvisionedVariant).count() == 2


def test_deleted_variant_is_recreated_under_same_key(admin, db):
    admin.queue(variant_created("gid://shopify/ProductVariant/1"),
                variants_deleted(),
                variant_created("gid://shopify/ProductVariant/2"))
    service = _service(admin, db)
    first = service.provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-1")
    service.mark_orphaned(first.record, "cart down")
    service.cleanup_orphans()

    again = service.provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-1")
    assert again.created is True
    assert again.variant_id == "gid://shopify/ProductVariant/2"
    assert db.query(models.ProvisionedVariant).count() == 1


# ============================================================
# 12-15. Orphans
# ============================================================

def test_mark_attached_and_orphaned(admin, db):
    admin.queue(variant_created("gid://shopify/ProductVariant/1"),
                variant_created("gid://shopify/ProductVariant/2"))
    service = _service(admin, db)
    attached = service.provision(PRODUCT_ID, 1.0, 1.0)
    orphan = service.provision(PRODUCT_ID, 1.0, 1.0)

    service.mark_attached(attached.record, "gid://shopify/Cart/c1")
    service.mark_orphaned(orphan.record, "Cart operation failed")

    assert attached.record.status == models.VariantStatus.ATTACHED.value
    assert attached.record.cart_id == "gid://shopify/Cart/c1"
    orphans = service.list_orphans()
    assert [o.variant_id for o in orphans] == ["gid://shopify/ProductVariant/2"]
    assert orphans[0].last_error == "Cart operation failed"


def test_cleanup_deletes_orphans(admin, db):
    admin.queue(variant_created(), variants_deleted())
    service = _service(admin, db)
    orphan = service.provision(PRODUCT_ID, 1.0, 1.0)
    service.mark_orphaned(orphan.record, "Cart operation failed")

    summary = service.cleanup_orphans()

    assert summary == {"deleted": [VARIANT_ID], "failed": []}
    delete_call = admin.calls[1]
    assert "productVariantsBulkDelete" in delete_call["query"]
    assert delete_call["variables"] == {"productId": PRODUCT_ID, "variantsIds": [VARIANT_ID]}
    assert orphan.record.status == models.VariantStatus.DELETED.value
    assert service.list_orphans() == []


def test_cleanup_failure_keeps_orphan(admin, db):
    admin.queue(variant_created(), TransportError("timed out"))
    service = _service(admin, db)
    orphan = service.provision(PRODUCT_ID, 1.0, 1.0)
    service.mark_orphaned(orphan.record, "Cart operation failed")

    summary = service.cleanup_orphans()

    assert summary["deleted"] == []
    assert summary["failed"] == [{"variant_id": VARIANT_ID, "error": "timed out"}]
    assert [o.variant_id for o in service.list_orphans()] == [VARIANT_ID]


def test_ledger_helpers_are_noops_without_db(admin):
    service = _service(admin)
    service.mark_attached(None, "cart")
    service.mark_orphaned(None, "error")
    assert service.list_orphans() == []
    assert service.find_by_key("anything") is None
    assert service.cleanup_orphans() == {"deleted": [], "failed": []}


# ============================================================
# 16-20. Key reuse, ledger failures, rounding
# ============================================================

def test_key_reused_for_another_product_is_rejected(admin, db):
    admin.queue(variant_created())
    service = _service(admin, db)
    service.provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-1")

    with pytest.raises(ValidationError) as exc:
        service.provision("gid://shopify/Product/43", 3.6, 2.16, idempotency_key="order-1")
    assert exc.value.field == "idempotencyKey"
    assert len(admin.calls) == 1


def test_key_reused_for_another_price_is_rejected(admin, db):
    admin.queue(variant_created())
    service = _service(admin, db)
    service.provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-1")

    with pytest.raises(ValidationError):
        service.provision(PRODUCT_ID, 7.2, 4.32, idempotency_key="order-1")
    assert len(admin.calls) == 1


def test_failed_ledger_write_rolls_back_and_names_variant(admin, db, monkeypatch):
    def failing_commit():
        raise IntegrityError("INSERT INTO provisioned_variants", {}, Exception("UNIQUE constraint failed"))

    admin.queue(variant_created())
    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(LedgerError) as exc:
        _service(admin, db).provision(PRODUCT_ID, 3.6, 2.16, idempotency_key="order-1")

    assert exc.value.variant_id == VARIANT_ID
    assert isinstance(exc.value.__cause__, IntegrityError)
    assert db.query(models.ProvisionedVariant).count() == 0


def test_variant_without_id_is_rejection(admin):
    admin.queue({"productVariantsBulkCreate": {"userErrors": [], "productVariants": [{"title": "x"}]}})
    with pytest.raises(VariantCreationError) as exc:
        _service(admin).provision(PRODUCT_ID, 3.6, 2.16)
    assert exc.value.failure_kind == VariantCreationError.BUSINESS_REJECTION


def test_tiny_piece_is_never_priced_at_zero(admin, db):
    admin.queue(variant_created())
    service = _service(admin, db)
    variables = service.build_variables(PRODUCT_ID, 0.0003, 0.0000079, "1700000000000-abc12")
    variant = variables["variants"][0]
    assert variant["price"] == "0.01"
    assert variant["inventoryItem"]["measurement"]["weight"]["value"] == 0.001

    result = service.provision(PRODUCT_ID, 3.6049, 2.16049)
    assert result.record.price == 3.6
    assert result.record.weight_kg == 2.16
