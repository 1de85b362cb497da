import roles
from forms import INCOMPLETE
from resources import ROLES_RESOURCE

PERMISSIONS = [
    {"permission_id": 2, "permission": "List users", "module": "Users"},
    {"permission_id": 3, "permission": "Create user", "module": "Users"},
    {"permission_id": 15, "permission": "List departments", "module": "Departments"},
    {"permission_id": 99, "permission": "Misc"},
]


def test_group_by_module_keeps_order():
    grouped = roles.group_by_module(PERMISSIONS)
    assert list(grouped) == ["Users", "Departments", "General"]
    assert roles.group_ids(grouped["Users"]) == [2, 3]


def test_select_all_is_derived():
    users = roles.group_by_module(PERMISSIONS)["Users"]
    assert not roles.all_selected(users, [2])
    assert roles.all_selected(users, [2, 3, 15])
    assert not roles.all_selected([], [2])


def test_toggle_all_adds_then_removes_only_that_group():
    users = roles.group_by_module(PERMISSIONS)["Users"]
    selected = roles.toggle_all(users, [15, 2])
    assert selected == [15, 2, 3]
    assert roles.toggle_all(users, selected) == [15]


def test_toggle_one():
    assert roles.toggle_one([2], 3, True) == [2, 3]
    assert roles.toggle_one([2, 3], 3, True) == [2, 3]
    assert roles.toggle_one([2, 3], 2, False) == [3]


def test_assigned_ids_accepts_ids_or_records():
    assert roles.assigned_ids([1, "2"]) == [1, 2]
    assert roles.assigned_ids([{"permission_id": 5}]) == [5]
    assert roles.assigned_ids(None) == []


def test_empty_selection_is_rejected(client, recorder):
    result = roles.save(client, 4, [], ROLES_RESOURCE.auth("manage"))
    assert result.error == INCOMPLETE
    assert recorder.requests == []


def test_save_replaces_role_permissions(client, recorder, reply):
    recorder.routes[("POST", "/rolepermission")] = reply(status=True)
    result = roles.save(client, 4, [2, 3], ROLES_RESOURCE.auth("manage"))
    assert result.ok
    assert recorder.body() == {"role_id": 4, "permission_ids": [2, 3]}
    assert recorder.last.headers["Permission"] == "13"
