# transactions.py
# Equipment borrow/return helpers shared by the status board, the history
# table and the return form.
import logging

import pandas as pd

from forms import SubmitResult, ValidationError, is_blank
from resources import Column

logger = logging.getLogger(__name__)

STATUS_BOARD_PATH = "/equipment"
HISTORY_PATH = "/equipmenttransaction/details-with-transaction"
HISTORY_BY_EQUIPMENT_PATH = "/equipmenttransaction/by-equipment/{id}"
UNRETURNED_PATH = "/equipmenttransaction/unreturned-equipment-by-department"
RETURN_PATH = "/equipmenttransaction/return"

DETAIL_ID = "equipment_transaction_detail_id"

RETURN_INCOMPLETE = ValidationError(
    "Incomplete Data", "Please select at least one equipment and choose a return user!"
)


def format_timestamp(value):
    if is_blank(value):
        return ""
    stamp = pd.to_datetime(value, errors="coerce")
    if pd.isna(stamp):
        return ""
    return stamp.strftime("%d %b %Y, %H:%M")


HISTORY_COLUMNS = (
    Column("equipment_transaction_detail_code", "Txn Code"),
    Column("equipment", "Equipment"),
    Column("borrow_user_name", "Borrower"),
    Column("approve_user_name", "Approver"),
    Column("borrow_timestamp", "Borrowed", render=lambda r: format_timestamp(r.get("borrow_timestamp"))),
    Column("return_user_name", "Returner"),
    Column("operator_return_user_name", "Operator"),
    Column("return_timestamp", "Returned", render=lambda r: format_timestamp(r.get("return_timestamp"))),
)

UNRETURNED_COLUMNS = (
    Column("equipment_code", "Equipment Code"),
    Column("equipment_unique_code", "Equipment Unique Code"),
    Column("equipment", "Equipment"),
)


# --- RETURN SELECTION ---
def select_one(selected, detail_id, checked):
    if checked:
        return selected if detail_id in selected else [*selected, detail_id]
    return [d for d in selected if d != detail_id]


def select_all(rows, checked):
    if not checked:
        return []
    return [row[DETAIL_ID] for row in rows]


def set_note(notes, detail_id, note):
    updated = dict(notes)
    updated[detail_id] = note
    return updated


def return_payload(selected, notes, return_user_id):
    return {
        "equipment_return_details": [
            {DETAIL_ID: int(detail_id), "note": notes.get(detail_id, "")} for detail_id in selected
        ],
        "return_user_id": return_user_id,
    }


def validate_return(selected, return_user_id):
    if not selected or is_blank(return_user_id):
        return RETURN_INCOMPLETE
    return None


def submit_return(api, selected, notes, return_user_id, auth):
    error = validate_return(selected, return_user_id)
    if error is not None:
        return SubmitResult(error=error)
    logger.info("Returning %d equipment item(s) for user %s", len(selected), return_user_id)
    return SubmitResult(outcome=api.send("PUT", RETURN_PATH, body=return_payload(selected, notes, return_user_id), auth=auth))
