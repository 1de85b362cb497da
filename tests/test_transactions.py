import transactions
from resources import RETURN_AUTH

ROWS = [
    {"equipment_transaction_detail_id": 11, "equipment_code": "EQ-1"},
    {"equipment_transaction_detail_id": 12, "equipment_code": "EQ-2"},
]


def test_format_timestamp():
    assert transactions.format_timestamp("2024-03-05T14:07:00") == "05 Mar 2024, 14:07"
    assert transactions.format_timestamp(None) == ""
    assert transactions.format_timestamp("not a date") == ""


def test_history_columns_render_timestamps():
    column = next(c for c in transactions.HISTORY_COLUMNS if c.key == "return_timestamp")
    assert column.value({"return_timestamp": None}) == ""


def test_selection_helpers():
    selected = transactions.select_one([], 11, True)
    selected = transactions.select_one(selected, 11, True)
    assert selected == [11]
    assert transactions.select_one(selected, 11, False) == []
    assert transactions.select_all(ROWS, True) == [11, 12]
    assert transactions.select_all(ROWS, False) == []


def test_return_payload():
    notes = transactions.set_note({}, 11, "scratched")
    payload = transactions.return_payload([11, 12], notes, 4)
    assert payload == {
        "equipment_return_details": [
            {"equipment_transaction_detail_id": 11, "note": "scratched"},
            {"equipment_transaction_detail_id": 12, "note": ""},
        ],
        "return_user_id": 4,
    }


def test_return_needs_items_and_user(client, recorder):
    assert transactions.submit_return(client, [], {}, 4, RETURN_AUTH).error == transactions.RETURN_INCOMPLETE
    assert transactions.submit_return(client, [11], {}, "", RETURN_AUTH).error == transactions.RETURN_INCOMPLETE
    assert recorder.requests == []


def test_submit_return(client, recorder, reply):
    recorder.routes[("PUT", "/equipmenttransaction/return")] = reply(status=True)
    result = transactions.submit_return(client, [12], {12: "ok"}, 4, RETURN_AUTH)
    assert result.ok
    assert recorder.last.headers["Permission"] == "56"
    assert recorder.body()["equipment_return_details"] == [{"equipment_transaction_detail_id": 12, "note": "ok"}]
