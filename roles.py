# roles.py
# Role/permission assignment: the whole permission set of a role is replaced
# in one call, so everything here works on plain lists of permission ids.
import logging

from forms import INCOMPLETE, SubmitResult

logger = logging.getLogger(__name__)

PERMISSIONS_PATH = "/permission"
ROLE_PERMISSIONS_PATH = "/rolepermission/permissions/{role_id}"
ASSIGN_PATH = "/rolepermission"


def group_by_module(permissions):
    grouped = {}
    for p in permissions or []:
        grouped.setdefault(p.get("module") or "General", []).append(p)
    return grouped


def group_ids(group):
    return [p["permission_id"] for p in group]


def all_selected(group, selected):
    ids = group_ids(group)
    chosen = set(selected)
    return bool(ids) and all(pid in chosen for pid in ids)


def toggle_all(group, selected):
    ids = group_ids(group)
    if all_selected(group, selected):
        return [pid for pid in selected if pid not in ids]
    merged = list(selected)
    for pid in ids:
        if pid not in merged: merged.append(pid)
    return merged


def toggle_one(selected, pid, checked):
    if checked:
        return selected if pid in selected else [*selected, pid]
    return [p for p in selected if p != pid]


def assigned_ids(data):
    # The API returns either bare ids or permission records.
    ids = []
    for item in data or []:
        ids.append(int(item["permission_id"]) if isinstance(item, dict) else int(item))
    return ids


def validate_assignment(role_id, selected):
    if not str(role_id or "").strip() or not selected:
        return INCOMPLETE
    return None


def save(api, role_id, selected, auth):
    error = validate_assignment(role_id, selected)
    if error is not None:
        return SubmitResult(error=error)
    body = {"role_id": role_id, "permission_ids": list(selected)}
    logger.info("Replacing permissions of role %s (%d selected)", role_id, len(selected))
    return SubmitResult(outcome=api.send("POST", ASSIGN_PATH, body=body, auth=auth))
