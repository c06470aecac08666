import pytest

from bakery.checkout.sizes import FlavorSize, PRICE_COLUMNS, STOCK_COLUMNS

@pytest.mark.parametrize("raw,expected", [
    ("Large", FlavorSize.LARGE),
    ("large", FlavorSize.LARGE),
    (" MEDIUM ", FlavorSize.MEDIUM),
    ("Mini", FlavorSize.MINI),
    ("", FlavorSize.MINI),
    (None, FlavorSize.MINI),
    ("XL", FlavorSize.MINI),
])
def test_parse_defaults_to_mini(raw, expected):
    assert FlavorSize.parse(raw) is expected

def test_size_ids_are_fixed():
    assert [s.size_id for s in (FlavorSize.MINI, FlavorSize.MEDIUM, FlavorSize.LARGE)] == [1, 2, 3]

def test_columns_follow_size():
    assert FlavorSize.LARGE.price_column == "large_price"
    assert FlavorSize.MEDIUM.stock_column == "stock_quantity_medium"
    assert PRICE_COLUMNS == {"mini_price", "medium_price", "large_price"}
    assert STOCK_COLUMNS == {"stock_quantity_mini", "stock_quantity_medium", "stock_quantity_large"}
