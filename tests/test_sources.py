from tools.web.contracts import EvidenceItem, SearchRecord, SearchResult
from tools.web.sources import build_source_list, deduplicate_results, normalize_url

from fakes import result


def test_normalize_url():
    assert normalize_url("HTTPS://Example.COM/Path/") == "https://example.com/Path"
    assert normalize_url("https://example.com/a#section") == "https://example.com/a"
    assert normalize_url("https://example.com/a?id=1") == "https://example.com/a?id=1"
    assert normalize_url("not a url") == "not a url"


def test_dedup_keeps_first_query_and_rank_order():
    shared = SearchResult(title="Shared", url="https://example.com/shared")
    shared_variant = SearchResult(title="Shared again", url="https://EXAMPLE.com/shared/")
    batches = [
        ("q1", [result(1), shared]),
        ("q2", [shared_variant, result(2)]),
    ]

    kept = deduplicate_results(batches, max_sources=8)

    assert [(q, r.url) for q, r in kept] == [
        ("q1", "https://example.com/1"),
        ("q1", "https://example.com/shared"),
        ("q2", "https://example.com/2"),
    ]


def test_dedup_caps_the_surviving_set():
    batches = [("q1", [result(i) for i in range(5)]), ("q2", [result(i) for i in range(3, 12)])]

    kept = deduplicate_results(batches, max_sources=8)

    assert len(kept) == 8
    assert len({r.url for _, r in kept}) == 8
    assert [r.url for _, r in kept][-1] == "https://example.com/7"


def test_dedup_with_no_results():
    assert deduplicate_results([("q1", []), ("q2", [])], max_sources=8) == []


def _item(n):
    r = result(n)
    return EvidenceItem(
        url=r.url, title=r.title, snippet=r.snippet, date=r.date, extracted_text="t", summary="s"
    )


def test_build_source_list_numbers_unique_sources():
    records = [
        SearchRecord(query="q1", results=[_item(1), _item(2)]),
        SearchRecord(query="q2", results=[_item(2), _item(3)]),
    ]

    sources = build_source_list(records)

    assert [(s.id, s.url) for s in sources] == [
        (1, "https://example.com/1"),
        (2, "https://example.com/2"),
        (3, "https://example.com/3"),
    ]
    assert sources[0].to_dict()["title"] == "Source 1"
