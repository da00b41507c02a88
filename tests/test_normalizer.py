import itertools
from decimal import Decimal

import pytest

from podshop.providers.base import ProviderType
from podshop.providers.normalizer import base_title, merge, normalize
from podshop.providers.printify import MOCK_CATALOG as PRINTIFY_CATALOG
from podshop.providers.printrove import MOCK_CATALOG as PRINTROVE_CATALOG
from podshop.utils.errors import ProviderError


def raw(title, pid="p-1", price=100, cost=None, **extra):
    variant = {"id": f"{pid}-v", "price": price}
    if cost is not None:
        variant["cost"] = cost
    return {"id": pid, "title": title, "variants": [variant], **extra}


def test_normalize_appends_region_suffix():
    product = normalize(raw("Custom T-Shirt"), ProviderType.PRINTROVE)
    assert product.title == "Custom T-Shirt (India)"
    assert product.base_title == "Custom T-Shirt"

    product = normalize(raw("Custom T-Shirt"), "printful")
    assert product.title == "Custom T-Shirt (International)"


def test_normalize_does_not_double_suffix():
    product = normalize(raw("Poster (India)"), ProviderType.PRINTROVE)
    assert product.title == "Poster (India)"
    assert product.base_title == "Poster"


def test_base_title_strips_only_region_suffix():
    assert base_title("Mug (International)") == "Mug"
    assert base_title("Mug (Large)") == "Mug (Large)"
    assert base_title("Mug") == "Mug"


def test_normalize_defaults():
    product = normalize(raw("Mug"), ProviderType.PRINTIFY)
    assert product.category == "Uncategorized"
    assert product.tags == []
    assert product.description == ""
    assert product.images == []


def test_cost_defaults_to_sixty_percent_of_price():
    product = normalize(raw("Mug", price=249), ProviderType.PRINTROVE)
    mapping = product.provider_mappings[0]
    assert mapping.price == Decimal("249.00")
    assert mapping.cost == Decimal("149.40")


def test_provider_cost_kept_even_when_zero():
    product = normalize(raw("Mug", price=100, cost=0), ProviderType.PRINTROVE)
    assert product.provider_mappings[0].cost == Decimal("0.00")


def test_every_variant_becomes_a_mapping():
    product = normalize(
        {
            "id": "x-1",
            "title": "Hoodie",
            "variants": [{"id": "s", "price": 10}, {"id": "m", "price": 12}],
        },
        ProviderType.PRINTFUL,
    )
    assert [m.provider_variant_id for m in product.provider_mappings] == ["s", "m"]
    assert all(m.provider_product_id == "x-1" for m in product.provider_mappings)


def test_missing_price_is_rejected():
    with pytest.raises(ProviderError):
        normalize({"id": "x", "title": "Mug", "variants": [{"id": "v"}]}, ProviderType.PRINTROVE)


def test_missing_title_is_rejected():
    with pytest.raises(ProviderError):
        normalize({"id": "x", "variants": []}, ProviderType.PRINTROVE)


def test_merge_same_base_title_across_providers():
    printrove_mug = next(p for p in PRINTROVE_CATALOG if p["title"] == "Custom Mug")
    printify_mug = next(p for p in PRINTIFY_CATALOG if p["title"] == "Custom Mug")

    merged = merge([(printrove_mug, ProviderType.PRINTROVE), (printify_mug, ProviderType.PRINTIFY)])

    assert len(merged) == 1
    product = merged[0]
    assert product.title == "Custom Mug"
    assert [m.provider for m in product.provider_mappings] == [ProviderType.PRINTROVE, ProviderType.PRINTIFY]
    assert [m.price for m in product.provider_mappings] == [Decimal("249.00"), Decimal("699.00")]


def test_merge_keeps_distinct_base_titles_apart():
    merged = merge([(raw("Mug", "a"), "PRINTROVE"), (raw("mug", "b"), "PRINTIFY")])
    assert len(merged) == 2
    assert [p.title for p in merged] == ["Mug (India)", "mug (International)"]


def test_single_provider_group_keeps_suffixed_title():
    merged = merge([(raw("Mug", "a"), ProviderType.PRINTROVE)])
    assert merged[0].title == "Mug (India)"


def test_merge_suffixed_titles_from_two_regions():
    merged = merge([
        (raw("Custom Mug (India)", "x-1", price=249), ProviderType.PRINTROVE),
        (raw("Custom Mug (International)", "y-1", price=699), ProviderType.PRINTFUL),
    ])

    assert len(merged) == 1
    assert merged[0].title == "Custom Mug"
    assert merged[0].base_title == "Custom Mug"
    assert len(merged[0].provider_mappings) == 2


MUG_PAIRS = [
    (raw("Custom Mug (India)", "pr-mug", price=249), ProviderType.PRINTROVE),
    (raw("Custom Mug", "pfl-mug", price=599), ProviderType.PRINTFUL),
    (raw("Custom Mug (International)", "pfy-mug", price=699), ProviderType.PRINTIFY),
]


@pytest.mark.parametrize("pairs", list(itertools.permutations(MUG_PAIRS)))
def test_merge_follows_input_order_for_any_provider_order(pairs):
    merged = merge(pairs)

    assert len(merged) == 1
    assert merged[0].title == "Custom Mug"
    assert [m.provider for m in merged[0].provider_mappings] == [provider for _, provider in pairs]
    assert [m.provider_product_id for m in merged[0].provider_mappings] == [p["id"] for p, _ in pairs]


@pytest.mark.parametrize("split", [1, 2])
def test_merge_is_associative_over_input_chunks(split):
    whole = merge(MUG_PAIRS)[0]
    head = merge(MUG_PAIRS[:split])[0]
    tail = merge(MUG_PAIRS[split:])[0]

    assert whole.provider_mappings == head.provider_mappings + tail.provider_mappings
