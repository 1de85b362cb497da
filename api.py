import itertools
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

import config
from session import Session

logger = logging.getLogger(__name__)

PERMISSIONS_BY_TOKEN = "/rolepermission/permissionbytokenuser"


# --- OUTCOMES ---
class Outcome:
    ok = False
    message = None


@dataclass
class Ok(Outcome):
    data: Any = None
    message: Optional[str] = None
    ok = True


@dataclass
class Unauthorized(Outcome):
    message: Optional[str] = None


@dataclass
class Forbidden(Outcome):
    message: Optional[str] = None


@dataclass
class Failed(Outcome):
    message: Optional[str] = None


def _payload(response):
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def interpret(response):
    """Map an HTTP response onto an Outcome.

    The status code is checked before the body. A 401/403 body is still read
    for its message. Anything that is not a 2xx carrying ``status: true`` is a
    failure with the server message, or the generic one when it has none.
    """
    payload = _payload(response)
    message = payload.get("message")
    if response.status_code == 401: return Unauthorized(message)
    if response.status_code == 403: return Forbidden(message)
    if response.is_success and payload.get("status"):
        return Ok(payload.get("data"), message)
    return Failed(message or config.GENERIC_FAILURE)


# --- STALE RESPONSE GUARD ---
class RequestTracker:
    """Tags each load per key; only the newest tag's response is accepted."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest = {}

    def begin(self, key):
        tag = next(self._counter)
        self._latest[key] = tag
        return tag

    def is_current(self, key, tag):
        return self._latest.get(key) == tag

    def load(self, key, call):
        tag = self.begin(key)
        outcome = call()
        if not self.is_current(key, tag):
            logger.debug("Discarding stale response for %s (tag %s)", key, tag)
            return None
        return outcome


# --- CONTROLLER ---
class ApiClient:
    def __init__(self, base_url=None, token=None, transport=None, timeout=None, tracker=None):
        self.base_url = (base_url or config.api_base_url()).rstrip("/")
        self.token = token
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.transport = transport
        self.tracker = tracker or RequestTracker()

    def headers(self, auth=None):
        headers = {"Content-Type": "application/json"}
        if self.token: headers["Authorization"] = f"Bearer {self.token}"
        if auth is not None: headers["Permission"] = auth.header
        return headers

    def _send(self, method, path, auth=None, body=None):
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                return client.request(method, path, headers=self.headers(auth), json=body)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            return None

    def request(self, method, path, auth=None, body=None):
        response = self._send(method, path, auth=auth, body=body)
        if response is None:
            return Failed(config.UNEXPECTED_FAILURE)
        outcome = interpret(response)
        if not outcome.ok:
            logger.warning("%s %s -> %s %s", method, path, response.status_code, outcome.message)
        return outcome

    # --- AUTH ---
    def login(self, email, password):
        response = self._send("POST", "/login", body={"email": email, "user_password": password})
        if response is None:
            return Failed(config.UNEXPECTED_FAILURE)
        payload = _payload(response)
        if response.is_success and payload.get("status"):
            user = payload.get("user") or {}
            try:
                user_id = int(user.get("user_id"))
            except (TypeError, ValueError):
                logger.error("Login reply without a usable user id: %r", user.get("user_id"))
                return Failed(config.UNEXPECTED_FAILURE)
            session = Session(
                id=user_id,
                email=user.get("email", ""),
                name=f"{user.get('firstname', '')} {user.get('lastname', '')}".strip(),
                token=payload.get("token", ""),
            )
            self.token = session.token
            return Ok(session)
        return Failed(payload.get("message") or "Invalid credentials")

    def my_permissions(self):
        outcome = self.request("GET", PERMISSIONS_BY_TOKEN)
        if outcome.ok:
            return Ok([int(code) for code in (outcome.data or [])], outcome.message)
        return outcome

    # --- RESOURCES ---
    def fetch(self, path, auth=None):
        return self.request("GET", path, auth=auth)

    def send(self, method, path, body=None, auth=None):
        return self.request(method, path, auth=auth, body=body)

    def list(self, path, auth=None):
        return self.request("GET", path, auth=auth)

    def get(self, path, ident, auth=None):
        return self.request("GET", f"{path}/{ident}", auth=auth)

    def create(self, path, body, auth=None):
        return self.request("POST", path, auth=auth, body=body)

    def update(self, path, ident, body, auth=None):
        return self.request("PUT", f"{path}/{ident}", auth=auth, body=body)

    def delete(self, path, ident, auth=None):
        return self.request("DELETE", f"{path}/{ident}", auth=auth)
