"""Signed-in session, authorization descriptors and the 401/403 policy.

Pages never navigate from inside a data call. They hand every
:class:`api.Outcome` to :func:`react`, which owns the sign-out and the
redirect to the root page.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import config

logger = logging.getLogger(__name__)

SESSION_KEY = "session"
ROUTE_KEY = "route"
NOTICE_KEY = "notice"
PAGE_PREFIX = "page:"


@dataclass(frozen=True)
class Session:
    id: int
    email: str
    name: str
    token: str


@dataclass(frozen=True)
class Authorization:
    """Permission code required by one operation.

    The same code gates the control in the UI and is sent as the
    ``Permission`` header of the request. ``visible`` is an optional extra
    rule evaluated against the row (or ``None`` for page-level actions).
    """
    code: int
    visible: Optional[Callable] = None

    def allows(self, permissions: Iterable[int], row=None) -> bool:
        if self.code not in set(permissions or ()):
            return False
        if self.visible is not None:
            return bool(self.visible(row))
        return True

    @property
    def header(self) -> str:
        return str(self.code)


def current(state) -> Optional[Session]:
    return state.get(SESSION_KEY)


def sign_in(state, session: Session):
    clear_pages(state)
    state[SESSION_KEY] = session
    state[ROUTE_KEY] = config.ROOT_ROUTE
    logger.info("Signed in user %s", session.id)


def sign_out(state, notice=None):
    user = state.get(SESSION_KEY)
    state.pop(SESSION_KEY, None)
    clear_pages(state)
    state[ROUTE_KEY] = config.SIGNIN_ROUTE
    if notice: state[NOTICE_KEY] = notice
    if user is not None:
        logger.info("Signed out user %s", user.id)


def clear_pages(state):
    for key in [k for k in list(state.keys()) if str(k).startswith(PAGE_PREFIX)]:
        del state[key]


def react(outcome, state):
    """Apply the caller-level reaction for an authorization outcome.

    Returns ``"signout"`` for a 401 and ``"root"`` for a 403 on any other
    page; both mean the script must restart. A 403 on the root page itself
    returns ``"denied"``: the route is left alone and nothing is cleared, so
    the caller renders the notice in place. ``None`` for anything else.
    """
    from api import Forbidden, Unauthorized

    if isinstance(outcome, Unauthorized):
        logger.warning("Session rejected by API, signing out")
        sign_out(state, notice="Your session has expired. Please sign in again.")
        return "signout"
    if isinstance(outcome, Forbidden):
        state[NOTICE_KEY] = outcome.message or "You do not have permission to open that page."
        if state.get(ROUTE_KEY) == config.ROOT_ROUTE:
            logger.warning("Access denied by API on %s", config.ROOT_ROUTE)
            return "denied"
        logger.warning("Access denied by API, redirecting to %s", config.ROOT_ROUTE)
        clear_pages(state)
        state[ROUTE_KEY] = config.ROOT_ROUTE
        return "root"
    return None
