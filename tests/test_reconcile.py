from dataclasses import replace
from datetime import date

from builders import budget, category, item, share, txn
from reconcile import (
    TransactionStatus,
    merchant_item_map,
    newest_first,
    reconcile,
    split_parents,
)


def _split_budget():
    parent = txn(100, "150", on=date(2025, 1, 12))
    return parent, budget(
        [
            category(
                1,
                "food",
                [
                    item(10, "300", transactions=[txn(1, "20", merchant="Target")], splits=[share(1, parent, 10, "100")]),
                    item(11, "100", splits=[share(2, parent, 11, "50")]),
                ],
            ),
            category(2, "household", [item(20, "500", transactions=[txn(2, "60", merchant="Hardware")])]),
        ]
    )


def test_split_parent_in_feed_is_never_uncategorized() -> None:
    parent, b = _split_budget()
    feed = [replace(parent, budget_item_id=None), txn(3, "9")]
    result = reconcile(feed, b)

    uncategorized = {e.id for e in result.uncategorized}
    categorized = {e.id for e in result.categorized}
    assert uncategorized == {3}
    assert parent.id in categorized
    assert result.status_of(parent.id) == TransactionStatus.split_parent
    assert uncategorized.isdisjoint(categorized)


def test_split_parent_rebuilt_once_with_all_shares() -> None:
    parent, b = _split_budget()
    parents = split_parents(b)
    assert [p.id for p in parents] == [parent.id]
    assert sorted(s.budget_item_id for s in parents[0].splits) == [10, 11]
    assert all(s.parent_transaction is None for s in parents[0].splits)


def test_direct_transactions_are_categorized_with_item() -> None:
    _, b = _split_budget()
    result = reconcile([], b)
    direct = {e.id: e.item_id for e in result.categorized if e.status == TransactionStatus.direct}
    assert direct == {1: 10, 2: 20}


def test_feed_filters_deleted_categorized_and_out_of_window() -> None:
    _, b = _split_budget()
    feed = [
        txn(4, "5", deleted=True),
        txn(5, "5", item_id=10),
        txn(6, "5", on=date(2024, 12, 20)),
        txn(7, "5", on=date(2024, 12, 26)),
        txn(8, "5", on=date(2025, 2, 7)),
    ]
    result = reconcile(feed, b)
    assert [e.id for e in result.uncategorized] == [7, 8]


def test_scenario_merchant_suggestion_from_current_month() -> None:
    _, b = _split_budget()
    result = reconcile([txn(30, "12", merchant="Target")], b)
    assert result.uncategorized[0].suggested_item_id == 10


def test_stale_server_suggestion_is_discarded() -> None:
    _, b = _split_budget()
    result = reconcile(
        [txn(31, "12", suggested=999), txn(32, "12", suggested=999, merchant="Hardware")],
        b,
    )
    suggestions = {e.id: e.suggested_item_id for e in result.uncategorized}
    assert suggestions == {31: None, 32: 20}


def test_valid_server_suggestion_wins_over_merchant() -> None:
    _, b = _split_budget()
    result = reconcile([txn(33, "12", suggested=11, merchant="Target")], b)
    assert result.uncategorized[0].suggested_item_id == 11


def test_empty_merchant_is_never_matched() -> None:
    b = budget([category(1, "food", [item(10, "50", transactions=[txn(1, "5", merchant="")])])])
    assert merchant_item_map(b) == {}
    result = reconcile([txn(2, "5", merchant="")], b)
    assert result.uncategorized[0].suggested_item_id is None


def test_merchant_map_last_write_wins() -> None:
    b = budget(
        [
            category(1, "food", [item(10, "50", transactions=[txn(1, "5", merchant="Costco")])]),
            category(2, "household", [item(20, "50", transactions=[txn(2, "5", merchant="Costco")])]),
        ]
    )
    assert merchant_item_map(b) == {"Costco": 20}


def test_deleted_feed_is_newest_first() -> None:
    _, b = _split_budget()
    deleted = [
        txn(40, "1", on=date(2025, 1, 2), deleted=True),
        txn(41, "1", on=date(2025, 1, 9), deleted=True),
    ]
    result = reconcile([], b, deleted=deleted)
    assert [t.id for t in result.deleted] == [41, 40]
    assert newest_first(deleted)[0].id == 41
