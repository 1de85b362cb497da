import httpx
import pytest

import forms
from api import ApiClient
from resources import DEPARTMENTS_RESOURCE, USERS_RESOURCE


@pytest.fixture()
def user_values():
    values = forms.initial_values(USERS_RESOURCE.editable("create"))
    values.update(
        rank_id=1, firstname="Ada", lastname="Lovelace", email="ada@example.com",
        user_password="secret1", confirm_user_password="secret1", phone_number="0800",
        birthdate="1990-01-01", gender_id=1, role_id=2, department_id=3, user_status_id=1,
    )
    return values


def test_blank_values():
    assert forms.is_blank(None)
    assert forms.is_blank("   ")
    assert forms.is_blank([])
    assert not forms.is_blank(0)
    assert not forms.is_blank("x")


def test_set_field_replaces_only_that_field():
    values = {"a": "1", "b": "2"}
    updated = forms.set_field(values, "a", "x")
    assert updated == {"a": "x", "b": "2"}
    assert values == {"a": "1", "b": "2"}


def test_from_record_maps_nulls_to_blank():
    fields = DEPARTMENTS_RESOURCE.fields_for("update")
    values = forms.from_record(fields, {"department_code": "D1", "department": "IT", "description": None})
    assert values == {"department_code": "D1", "department": "IT", "description": ""}


def test_seed_first_only_for_flagged_lookups():
    fields = USERS_RESOURCE.editable("create")
    options = {
        "user_status_id": [{"id": 5, "label": "Active"}, {"id": 6, "label": "Inactive"}],
        "gender_id": [{"id": 1, "label": "Male"}],
    }
    seeded = forms.seed_defaults(forms.initial_values(fields), fields, options)
    assert seeded["user_status_id"] == 5
    assert seeded["gender_id"] == ""


def test_seed_keeps_existing_choice():
    fields = USERS_RESOURCE.editable("create")
    values = forms.set_field(forms.initial_values(fields), "user_status_id", 6)
    seeded = forms.seed_defaults(values, fields, {"user_status_id": [{"id": 5, "label": "Active"}]})
    assert seeded["user_status_id"] == 6


def test_required_blank_blocks_submission(user_values):
    user_values["firstname"] = " "
    error = forms.validate(user_values, USERS_RESOURCE.required("create"), password_rules=True)
    assert error == forms.INCOMPLETE


def test_optional_fields_may_be_blank():
    values = {"department": "IT", "description": ""}
    assert forms.validate(values, DEPARTMENTS_RESOURCE.required("create")) is None


def test_password_rules_order(user_values):
    user_values.update(user_password="abc", confirm_user_password="xyz")
    assert forms.validate(user_values, password_rules=True) == forms.PASSWORD_TOO_SHORT
    user_values.update(user_password="abcdef", confirm_user_password="abcdeg")
    assert forms.validate(user_values, password_rules=True) == forms.PASSWORD_MISMATCH
    user_values.update(confirm_user_password="abcdef")
    assert forms.validate(user_values, password_rules=True) is None


def test_invalid_create_sends_nothing(client, recorder, user_values):
    user_values["confirm_user_password"] = "different"
    result = forms.create_record(client, USERS_RESOURCE, user_values)
    assert result.error == forms.PASSWORD_MISMATCH
    assert not result.sent
    assert recorder.requests == []


def test_create_posts_with_create_permission(client, recorder, reply, user_values):
    recorder.routes[("POST", "/user")] = reply(status=True, message="ok")
    result = forms.create_record(client, USERS_RESOURCE, user_values)
    assert result.ok
    assert recorder.last.headers["Permission"] == "3"
    assert recorder.body()["firstname"] == "Ada"


def test_create_with_status_false_is_not_success(client, recorder, reply):
    recorder.routes[("POST", "/department")] = reply(status=False, message="Department already exists")
    result = forms.create_record(client, DEPARTMENTS_RESOURCE, {"department": "IT", "description": ""})
    assert result.sent and not result.ok
    assert result.outcome.message == "Department already exists"


def test_update_puts_to_record_path(client, recorder, reply):
    recorder.routes[("PUT", "/department/4")] = reply(status=True)
    result = forms.update_record(client, DEPARTMENTS_RESOURCE, 4, {"department": "Ops", "description": ""})
    assert result.ok
    assert recorder.last.headers["Permission"] == "18"


def test_custom_password_form(client, recorder, reply):
    form = USERS_RESOURCE.form("update_password")
    recorder.routes[("PUT", "/user/update-password/9")] = reply(status=True)
    short = forms.submit_custom(client, form, 9, {"user_password": "abc", "confirm_user_password": "abc"})
    assert short.error == forms.PASSWORD_TOO_SHORT
    result = forms.submit_custom(client, form, 9, {"user_password": "abcdef", "confirm_user_password": "abcdef"})
    assert result.ok
    assert recorder.last.headers["Permission"] == "7"


def test_delete_failure_keeps_message(client, recorder, reply):
    recorder.routes[("DELETE", "/department/2")] = reply(400, status=False, message="Department in use")
    result = forms.delete_record(client, DEPARTMENTS_RESOURCE, 2)
    assert not result.ok
    assert result.outcome.message == "Department in use"
    assert recorder.last.headers["Permission"] == "19"


def test_unreachable_server_reports_failure():
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    api = ApiClient(base_url="http://api.test", transport=httpx.MockTransport(refuse))
    result = forms.delete_record(api, DEPARTMENTS_RESOURCE, 2)
    assert result.sent and not result.ok
