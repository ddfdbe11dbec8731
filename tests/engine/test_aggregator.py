from __future__ import annotations

import random

from catalog_crawler.engine import Aggregator, NormalizedRecord, normalize_record


def test_normalize_record_maps_upstream_fields(type_factory) -> None:
    raw = type_factory(
        42,
        "5 Francs",
        issuer_code="france",
        issuer_name="France",
        min_year=1960,
        max_year=1969,
        obverse_thumbnail="https://img/front.jpg",
        reverse_thumbnail="https://img/back.jpg",
        category="coin",
    )

    record = normalize_record(raw)

    assert record == NormalizedRecord(
        id=42,
        title="5 Francs",
        issuer_code="france",
        issuer_name="France",
        min_year=1960,
        max_year=1969,
        front_thumb_url="https://img/front.jpg",
        back_thumb_url="https://img/back.jpg",
        category="coin",
    )
    assert record.to_dict()["frontThumbUrl"] == "https://img/front.jpg"


def test_normalize_record_leaves_absent_fields_out() -> None:
    record = normalize_record({"id": "t-1", "title": "Token", "min_year": "1900", "issuer": "bad"})

    assert record.min_year is None
    assert record.issuer_code is None
    assert record.to_dict() == {"id": "t-1", "title": "Token"}


def test_normalize_record_drops_records_without_id() -> None:
    assert normalize_record({"title": "Orphan"}) is None


def test_merge_is_first_seen_wins() -> None:
    target: dict = {}
    first = NormalizedRecord(id=1, title="first")
    added = Aggregator.merge(target, [first, NormalizedRecord(id=1, title="second")])

    assert added == 1
    assert target[1] is first
    assert Aggregator.merge_raw(target, [{"id": 1, "title": "third"}, {"id": 2, "title": "two"}]) == 1
    assert target[1].title == "first"


def test_finalize_orders_by_issuer_year_then_title() -> None:
    records = [
        NormalizedRecord(id=1, title="B coin", issuer_name="Belgium", min_year=1900),
        NormalizedRecord(id=2, title="A coin", issuer_name="Belgium", min_year=1900),
        NormalizedRecord(id=3, title="Undated", issuer_name="Belgium"),
        NormalizedRecord(id=4, title="Old", issuer_name="Belgium", min_year=1850),
        NormalizedRecord(id=5, title="Zed", issuer_name="Austria", min_year=2000),
        NormalizedRecord(id=6, title="No issuer"),
    ]

    ordered = Aggregator.finalize(records)

    assert [record.id for record in ordered] == [6, 5, 4, 2, 1, 3]


def test_finalize_is_independent_of_arrival_order() -> None:
    records = [
        NormalizedRecord(id=i, title="Same", issuer_name="Same", min_year=2000)
        for i in range(20)
    ] + [NormalizedRecord(id=f"x{i}", title="Same", issuer_name="Same", min_year=2000) for i in range(5)]
    expected = [record.id for record in Aggregator.finalize(records)]

    rng = random.Random(1234)
    for _ in range(10):
        shuffled = records[:]
        rng.shuffle(shuffled)
        assert [record.id for record in Aggregator.finalize(shuffled)] == expected
