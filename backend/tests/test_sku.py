import pytest

from stockroom.utils.sku import normalize_sku, resolve_item_sku, tracking_from_barcode


@pytest.mark.parametrize("raw", ["nx-1001", "  Nx-1001 ", "NX-1001", "\tnx-1001\n"])
def test_normalize_uppercases_trims_and_is_idempotent(raw):
    once = normalize_sku(raw)
    assert once == "NX-1001"
    assert normalize_sku(once) == once


@pytest.mark.parametrize("raw", ["", "   ", None, 1001])
def test_normalize_rejects_blank_and_non_strings(raw):
    with pytest.raises(ValueError):
        normalize_sku(raw)


def test_resolve_item_sku_prefers_fields_in_order():
    assert resolve_item_sku({"sku": "a-1", "productSku": "b-2", "id": "c", "code": "d"}) == "A-1"
    assert resolve_item_sku({"productSku": "b-2", "id": "c", "code": "d"}) == "B-2"
    assert resolve_item_sku({"id": "c-3", "code": "d"}) == "C-3"
    assert resolve_item_sku({"code": " d-4 "}) == "D-4"


def test_resolve_item_sku_skips_blank_values_and_stringifies_numbers():
    assert resolve_item_sku({"sku": "  ", "productSku": None, "id": 12345}) == "12345"
    assert resolve_item_sku({"name": "no sku here", "qty": 1}) is None


def test_tracking_from_barcode_keeps_digits():
    assert tracking_from_barcode("TRK-6688 1234\n") == "66881234"
    assert tracking_from_barcode("") == ""
