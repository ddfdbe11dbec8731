from __future__ import annotations

import json
from pathlib import Path

import pytest

from catalog_crawler.dataset import MAX_PAGE_SIZE, PAGE_SIZE_FALLBACK, CatalogDataset

RECORDS = [
    {"id": 1, "title": "Sovereign", "issuerCode": "uk", "issuerName": "United Kingdom", "minYear": 1817, "maxYear": 1917, "category": "coin"},
    {"id": 2, "title": "Pound note", "issuerCode": "uk", "issuerName": "United Kingdom", "minYear": 1960, "maxYear": 1977, "category": "banknote"},
    {"id": 3, "title": "Loonie", "issuerCode": "ca", "issuerName": "Canada", "minYear": 1987, "maxYear": 2024, "category": "coin"},
    {"id": 4, "title": None, "issuerCode": "xx"},
]


@pytest.fixture
def dataset() -> CatalogDataset:
    return CatalogDataset(RECORDS)


def test_dataset_sorts_newest_first_and_derives_facets(dataset: CatalogDataset) -> None:
    assert [record["id"] for record in dataset.records] == [3, 2, 1, 4]
    assert dataset.records[-1]["title"] == ""
    assert dataset.issuers == [
        {"code": "ca", "name": "Canada"},
        {"code": "uk", "name": "United Kingdom"},
        {"code": "xx", "name": "xx"},
    ]
    assert dataset.categories == [
        {"code": "coins", "name": "Coins"},
        {"code": "banknotes", "name": "Banknotes"},
    ]


def test_query_filters_combine(dataset: CatalogDataset) -> None:
    assert [item["id"] for item in dataset.query(search="SOV").items] == [1]
    assert [item["id"] for item in dataset.query(issuer="uk").items] == [2, 1]
    assert [item["id"] for item in dataset.query(issuer="ALL", category="COIN").items] == [3, 1]
    assert [item["id"] for item in dataset.query(issued_after="1970").items] == [3, 2, 4]
    assert [item["id"] for item in dataset.query(issued_before=1900).items] == [1, 4]


def test_query_paginates_and_clamps(dataset: CatalogDataset) -> None:
    page = dataset.query(page=5, page_size=3)
    assert (page.page, page.page_size, page.total, page.total_pages) == (2, 3, 4, 2)
    assert [item["id"] for item in page.items] == [4]

    assert dataset.query(page_size="abc").page_size == PAGE_SIZE_FALLBACK
    assert dataset.query(page_size=1000).page_size == MAX_PAGE_SIZE
    assert dataset.query(page=-2).page == 1


def test_query_without_matches_has_zero_pages(dataset: CatalogDataset) -> None:
    page = dataset.query(search="nothing matches")
    assert page.items == []
    assert page.total_pages == 0
    assert page.page == 1


def test_query_to_dict_and_raw(dataset: CatalogDataset) -> None:
    payload = dataset.query(issuer="ca", include_raw=True).to_dict()
    assert payload["pageSize"] == PAGE_SIZE_FALLBACK
    assert payload["totalPages"] == 1
    assert [item["id"] for item in payload["raw"]] == [3]
    assert "raw" not in dataset.query().to_dict()


def test_load_reads_exported_json(tmp_path: Path) -> None:
    path = tmp_path / "types.json"
    path.write_text(json.dumps(RECORDS), encoding="utf-8")
    assert len(CatalogDataset.load(path).records) == 4

    path.write_text(json.dumps({"not": "a list"}), encoding="utf-8")
    assert CatalogDataset.load(path).records == []


def test_dataset_tolerates_non_integer_years() -> None:
    dataset = CatalogDataset(
        [
            {"id": 1, "title": "Odd", "maxYear": "1990"},
            {"id": 2, "title": "Plain", "maxYear": 1980},
            {"id": 3, "title": "Undated"},
        ]
    )
    assert [record["id"] for record in dataset.records] == [2, 1, 3]
