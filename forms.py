import logging
from dataclasses import dataclass
from typing import Optional

import config
from api import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationError:
    title: str
    text: str


INCOMPLETE = ValidationError("Incomplete Data", "Please fill out all fields before submitting!")
PASSWORD_TOO_SHORT = ValidationError(
    "Password Too Short", f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters long."
)
PASSWORD_MISMATCH = ValidationError("Passwords Do Not Match", "User password and confirm password must match.")


@dataclass
class SubmitResult:
    outcome: Optional[Outcome] = None
    error: Optional[ValidationError] = None

    @property
    def ok(self):
        return self.error is None and self.outcome is not None and self.outcome.ok

    @property
    def sent(self):
        return self.outcome is not None


# --- FORM STATE ---
def is_blank(value):
    if value is None: return True
    if isinstance(value, str): return not value.strip()
    if isinstance(value, (list, tuple, set, dict)): return len(value) == 0
    return False


def initial_values(fields):
    return {f.name: "" for f in fields}


def from_record(fields, record):
    record = record or {}
    return {f.name: "" if record.get(f.name) is None else record.get(f.name) for f in fields}


def seed_defaults(values, fields, options):
    """Pre-select the first option of every lookup flagged ``seed_first``.

    ``options`` maps a field name to its loaded lookup options. Fields that
    already hold a value are left alone.
    """
    seeded = dict(values)
    for f in fields:
        if f.lookup is None or not f.lookup.seed_first: continue
        choices = options.get(f.name) or []
        if choices and is_blank(seeded.get(f.name)):
            seeded[f.name] = choices[0]["id"]
    return seeded


def set_field(values, name, value):
    updated = dict(values)
    updated[name] = value
    return updated


# --- VALIDATION ---
def validate(values, required=None, password_rules=False):
    names = list(values) if required is None else required
    if any(is_blank(values.get(name)) for name in names):
        return INCOMPLETE
    if password_rules:
        password = values.get("user_password") or ""
        if len(password) < config.PASSWORD_MIN_LENGTH:
            return PASSWORD_TOO_SHORT
        if password != values.get("confirm_user_password"):
            return PASSWORD_MISMATCH
    return None


# --- SUBMISSION ---
def submit(api, method, path, values, auth, required=None, password_rules=False):
    error = validate(values, required, password_rules)
    if error is not None:
        logger.info("Blocked %s %s: %s", method, path, error.title)
        return SubmitResult(error=error)
    return SubmitResult(outcome=api.request(method, path, auth=auth, body=values))


def create_record(api, resource, values):
    return submit(
        api, "POST", resource.path, values, resource.auth("create"),
        required=resource.required("create"), password_rules=resource.password_rules,
    )


def update_record(api, resource, ident, values):
    return submit(
        api, "PUT", f"{resource.path}/{ident}", values, resource.auth("update"),
        required=resource.required("update"),
    )


def submit_custom(api, form, ident, values):
    return submit(
        api, form.method, form.url(ident), values, form.auth,
        required=[f.name for f in form.fields if f.required], password_rules=form.password_rules,
    )


def delete_record(api, resource, ident):
    return SubmitResult(outcome=api.delete(resource.path, ident, auth=resource.auth("delete")))
