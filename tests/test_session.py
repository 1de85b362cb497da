import config
from api import Failed, Forbidden, Ok, Unauthorized
from session import (
    NOTICE_KEY, PAGE_PREFIX, ROUTE_KEY, SESSION_KEY, Authorization, Session, clear_pages, current, react,
    sign_in, sign_out,
)


def signed_in_state():
    state = {}
    sign_in(state, Session(id=7, email="admin@example.com", name="Ada Admin", token="tok"))
    state[PAGE_PREFIX + "users:rows"] = Ok([])
    state[PAGE_PREFIX + "users:list"] = "state"
    state["dark_mode"] = True
    return state


def test_sign_in_sets_session_and_root_route():
    state = {PAGE_PREFIX + "stale": 1}
    sign_in(state, Session(id=1, email="a@b.c", name="A", token="t"))
    assert current(state).id == 1
    assert state[ROUTE_KEY] == config.ROOT_ROUTE
    assert PAGE_PREFIX + "stale" not in state


def test_sign_out_clears_session_and_page_state():
    state = signed_in_state()
    sign_out(state, notice="bye")
    assert current(state) is None
    assert state[ROUTE_KEY] == config.SIGNIN_ROUTE
    assert state[NOTICE_KEY] == "bye"
    assert not [k for k in state if k.startswith(PAGE_PREFIX)]
    assert state["dark_mode"] is True


def test_unauthorized_signs_out():
    state = signed_in_state()
    assert react(Unauthorized("Token expired"), state) == "signout"
    assert SESSION_KEY not in state
    assert state[ROUTE_KEY] == config.SIGNIN_ROUTE
    assert NOTICE_KEY in state


def test_forbidden_redirects_to_root_and_keeps_session():
    state = signed_in_state()
    state[ROUTE_KEY] = "Users"
    assert react(Forbidden("No access"), state) == "root"
    assert current(state) is not None
    assert state[ROUTE_KEY] == config.ROOT_ROUTE
    assert state[NOTICE_KEY] == "No access"
    assert PAGE_PREFIX + "users:rows" not in state


def test_forbidden_on_root_only_sets_the_notice():
    state = signed_in_state()
    state[PAGE_PREFIX + "dashboard:equipment:rows"] = Forbidden("No access")
    assert react(Forbidden("No access"), state) == "denied"
    assert state[ROUTE_KEY] == config.ROOT_ROUTE
    assert state[NOTICE_KEY] == "No access"
    assert PAGE_PREFIX + "dashboard:equipment:rows" in state
    assert current(state) is not None


def test_other_outcomes_are_left_to_the_caller():
    state = signed_in_state()
    before = dict(state)
    assert react(Ok([1]), state) is None
    assert react(Failed("boom"), state) is None
    assert state == before


def test_clear_pages_only_touches_page_keys():
    state = {PAGE_PREFIX + "a": 1, "route": "x"}
    clear_pages(state)
    assert state == {"route": "x"}


def test_authorization_membership_and_header():
    auth = Authorization(15)
    assert auth.allows([15, 16])
    assert not auth.allows([16])
    assert not auth.allows(None)
    assert auth.header == "15"


def test_authorization_visibility_rule():
    auth = Authorization(8, visible=lambda row: row is not None and row.get("user_id") != 1)
    assert auth.allows([8], {"user_id": 2})
    assert not auth.allows([8], {"user_id": 1})
    assert not auth.allows([], {"user_id": 2})
