# resources.py
# Catalog of every backend resource the console manages. A page is built from
# one Resource: its endpoint, fields, list columns and per-operation codes.
from dataclasses import dataclass
from typing import Callable, Optional

from session import Authorization

USER_MANAGEMENT = "User Management"
EQUIPMENT_MANAGEMENT = "Equipment Management"

CREATE, UPDATE, VIEW = "create", "update", "view"


@dataclass(frozen=True)
class Lookup:
    path: str
    id_key: str
    label_keys: tuple
    seed_first: bool = False

    def label(self, record):
        return " ".join(str(record.get(k) or "") for k in self.label_keys).strip()

    def options(self, records):
        return [{"id": r.get(self.id_key), "label": self.label(r)} for r in records or []]


@dataclass(frozen=True)
class Field:
    name: str
    label: str
    kind: str = "text"
    required: bool = True
    readonly: bool = False
    lookup: Optional[Lookup] = None
    display: Optional[str] = None
    on: tuple = (CREATE, UPDATE, VIEW)


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    render: Optional[Callable] = None

    def value(self, row):
        if self.render is not None: return self.render(row)
        value = row.get(self.key)
        return "" if value is None else value


@dataclass
class CustomForm:
    """A single-purpose form on one record, e.g. changing a user's password."""
    key: str
    label: str
    auth: Authorization
    fields: tuple
    path: str
    method: str = "PUT"
    password_rules: bool = False
    success: str = "Saved successfully!"

    def url(self, ident):
        return self.path.format(id=ident)


@dataclass
class Resource:
    key: str
    title: str
    singular: str
    path: str
    id_key: str
    code_key: str
    group: str
    fields: tuple
    columns: tuple
    ops: dict
    password_rules: bool = False
    forms: tuple = ()

    def fields_for(self, mode):
        return [f for f in self.fields if mode in f.on]

    def editable(self, mode):
        return [f for f in self.fields_for(mode) if not f.readonly]

    def required(self, mode):
        return [f.name for f in self.editable(mode) if f.required]

    def lookups(self, mode):
        return [f for f in self.fields_for(mode) if f.lookup is not None]

    def auth(self, op):
        return self.ops.get(op)

    def can(self, op, permissions, row=None):
        auth = self.ops.get(op)
        return auth is not None and auth.allows(permissions, row)

    def form(self, key):
        for f in self.forms:
            if f.key == key: return f
        return None


def _code(key, label):
    return Field(key, label, readonly=True, required=False, on=(UPDATE, VIEW))


def _ops(list_, create, view, update, delete, **extra):
    ops = {"list": list_, "create": create, "view": view, "update": update, "delete": delete}
    ops.update(extra)
    return {op: Authorization(code) for op, code in ops.items()}


def _full_name(row):
    return " ".join(str(row.get(k) or "") for k in ("short_rank", "firstname", "lastname")).strip()


# --- LOOKUPS ---
RANKS = Lookup("/rank", "rank_id", ("full_rank",))
GENDERS = Lookup("/gender", "gender_id", ("gender",))
ROLES = Lookup("/role", "role_id", ("role",))
DEPARTMENTS = Lookup("/department", "department_id", ("department",))
USER_STATUSES = Lookup("/userstatus", "user_status_id", ("user_status",), seed_first=True)
EQUIPMENT_GROUPS = Lookup("/equipmentgroup", "equipment_group_id", ("equipment_group",))
EQUIPMENT_TYPES = Lookup("/equipmenttype", "equipment_type_id", ("equipment_type",))
EQUIPMENT_STATUSES = Lookup("/equipmentstatus", "equipment_status_id", ("equipment_status",))
USERS = Lookup("/user", "user_id", ("short_rank", "firstname", "lastname"))


def _simple(key, title, singular, path, prefix, group, codes, label):
    """Code + label + description resources (genders, statuses, ...)."""
    return Resource(
        key=key, title=title, singular=singular, path=path,
        id_key=f"{prefix}_id", code_key=f"{prefix}_code", group=group,
        fields=(
            _code(f"{prefix}_code", f"{singular} Code"),
            Field(prefix, label),
            Field("description", "Description", kind="textarea", required=False),
        ),
        columns=(Column(f"{prefix}_code", f"{singular} Code"), Column(prefix, label)),
        ops=_ops(*codes),
    )


USERS_RESOURCE = Resource(
    key="users", title="Users", singular="User", path="/user",
    id_key="user_id", code_key="user_code", group=USER_MANAGEMENT,
    fields=(
        _code("user_code", "User Code"),
        Field("rank_id", "Rank", kind="select", lookup=RANKS, display="full_rank"),
        Field("firstname", "First Name"),
        Field("lastname", "Last Name"),
        Field("email", "E-mail", kind="email", on=(CREATE, VIEW)),
        Field("user_password", "Password", kind="password", on=(CREATE,)),
        Field("confirm_user_password", "Confirm Password", kind="password", on=(CREATE,)),
        Field("phone_number", "Phone Number"),
        Field("birthdate", "Birthdate", kind="date"),
        Field("gender_id", "Gender", kind="select", lookup=GENDERS, display="gender"),
        Field("role_id", "Role", kind="select", lookup=ROLES, display="role"),
        Field("department_id", "Department", kind="select", lookup=DEPARTMENTS, display="department"),
        Field("user_status_id", "Status", kind="select", lookup=USER_STATUSES, display="user_status"),
    ),
    columns=(
        Column("user_code", "User Code"),
        Column("firstname", "Name", render=_full_name),
        Column("role", "Role"),
        Column("department", "Department"),
        Column("email", "Email"),
        Column("user_status", "Status"),
    ),
    ops=_ops(2, 3, 4, 5, 8, update_email=6, update_password=7),
    password_rules=True,
)
USERS_RESOURCE.forms = (
    CustomForm(
        key="update_email", label="Update E-mail", auth=USERS_RESOURCE.ops["update_email"],
        fields=(Field("email", "E-mail", kind="email"),),
        path="/user/update-email/{id}", success="User e-mail has been updated successfully!",
    ),
    CustomForm(
        key="update_password", label="Update Password", auth=USERS_RESOURCE.ops["update_password"],
        fields=(
            Field("user_password", "Password", kind="password"),
            Field("confirm_user_password", "Confirm Password", kind="password"),
        ),
        path="/user/update-password/{id}", password_rules=True,
        success="User has been updated password successfully!",
    ),
)

ROLES_RESOURCE = _simple("roles", "Roles", "Role", "/role", "role", USER_MANAGEMENT, (9, 10, 11, 12, 14), "Role")
ROLES_RESOURCE.ops["manage"] = Authorization(13)

DEPARTMENTS_RESOURCE = _simple(
    "departments", "Departments", "Department", "/department", "department",
    USER_MANAGEMENT, (15, 16, 17, 18, 19), "Department Name",
)
GENDERS_RESOURCE = _simple("genders", "Genders", "Gender", "/gender", "gender", USER_MANAGEMENT, (20, 21, 22, 23, 24), "Gender")

RANKS_RESOURCE = Resource(
    key="ranks", title="Ranks", singular="Rank", path="/rank",
    id_key="rank_id", code_key="rank_code", group=USER_MANAGEMENT,
    fields=(
        _code("rank_code", "Rank Code"),
        Field("full_rank", "Full Rank"),
        Field("short_rank", "Short Rank"),
    ),
    columns=(Column("rank_code", "Rank Code"), Column("full_rank", "Full Rank"), Column("short_rank", "Short Rank")),
    ops=_ops(25, 26, 27, 28, 29),
)

USER_STATUS_RESOURCE = _simple(
    "user_status", "User Status", "User Status", "/userstatus", "user_status",
    USER_MANAGEMENT, (30, 31, 32, 33, 34), "User Status",
)

EQUIPMENT_GROUPS_RESOURCE = Resource(
    key="equipment_groups", title="Equipment Groups", singular="Equipment Group", path="/equipmentgroup",
    id_key="equipment_group_id", code_key="equipment_group_code", group=EQUIPMENT_MANAGEMENT,
    fields=(
        _code("equipment_group_code", "Equipment Group Code"),
        Field("equipment_group", "Equipment Group"),
        Field("department_id", "Department", kind="select", lookup=DEPARTMENTS, display="department"),
    ),
    columns=(
        Column("equipment_group_code", "Equipment Group Code"),
        Column("equipment_group", "Equipment Group"),
        Column("department", "Department"),
    ),
    ops=_ops(40, 41, 42, 43, 44),
)

EQUIPMENT_TYPES_RESOURCE = _simple(
    "equipment_types", "Equipment Types", "Equipment Type", "/equipmenttype", "equipment_type",
    EQUIPMENT_MANAGEMENT, (45, 46, 47, 48, 49), "Equipment Type",
)
EQUIPMENT_STATUS_RESOURCE = _simple(
    "equipment_status", "Equipment Status", "Equipment Status", "/equipmentstatus", "equipment_status",
    EQUIPMENT_MANAGEMENT, (50, 51, 52, 53, 54), "Equipment Status",
)

EQUIPMENTS_RESOURCE = Resource(
    key="equipments", title="Equipments", singular="Equipment", path="/equipment",
    id_key="equipment_id", code_key="equipment_code", group=EQUIPMENT_MANAGEMENT,
    fields=(
        _code("equipment_code", "Equipment Code"),
        Field("equipment_unique_code", "Equipment Unique Code"),
        Field("equipment", "Equipment"),
        Field("description", "Description", kind="textarea", required=False),
        Field("equipment_group_id", "Equipment Group", kind="select", lookup=EQUIPMENT_GROUPS, display="equipment_group"),
        Field("equipment_type_id", "Equipment Type", kind="select", lookup=EQUIPMENT_TYPES, display="equipment_type"),
        Field("equipment_status_id", "Equipment Status", kind="select", lookup=EQUIPMENT_STATUSES, display="equipment_status"),
    ),
    columns=(
        Column("equipment_code", "Equipment Code"),
        Column("equipment_unique_code", "Equipment Unique Code"),
        Column("equipment", "Equipment"),
        Column("equipment_status", "Equipment Status"),
    ),
    ops=_ops(60, 61, 62, 63, 64),
)

CATALOG = {
    r.key: r for r in (
        USERS_RESOURCE, ROLES_RESOURCE, DEPARTMENTS_RESOURCE, GENDERS_RESOURCE, RANKS_RESOURCE,
        USER_STATUS_RESOURCE, EQUIPMENT_GROUPS_RESOURCE, EQUIPMENT_TYPES_RESOURCE,
        EQUIPMENT_STATUS_RESOURCE, EQUIPMENTS_RESOURCE,
    )
}

# Equipment transaction pages
RETURN_AUTH = Authorization(56)
STATUS_BOARD_AUTH = Authorization(57)
HISTORY_BY_EQUIPMENT_AUTH = Authorization(58)
TRANSACTIONS_AUTH = Authorization(59)

STATUS_BOARD_COLUMNS = (
    Column("equipment_code", "Equipment Code"),
    Column("equipment_unique_code", "Equipment Unique Code"),
    Column("equipment", "Equipment"),
    Column("equipment_status", "Equipment Status"),
    Column("firstname", "Name", render=_full_name),
)


def by_group(group):
    return [r for r in CATALOG.values() if r.group == group]
