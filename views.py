import io
import logging
from datetime import date

import pandas as pd
import plotly.express as px
import qrcode
import streamlit as st

import config
import forms
import roles
import transactions
from api import Ok
from pipeline import ListState, derive, filter_rows, page_range, remove_row, with_page, with_search, with_size, with_sort
from resources import (
    CREATE, EQUIPMENTS_RESOURCE, HISTORY_BY_EQUIPMENT_AUTH, RETURN_AUTH, STATUS_BOARD_AUTH, STATUS_BOARD_COLUMNS,
    TRANSACTIONS_AUTH, UPDATE, USERS, VIEW,
)
from session import NOTICE_KEY, PAGE_PREFIX, react

logger = logging.getLogger(__name__)

FLASH_KEY = "flash"


# --- HELPER: PAGE STATE ---
def page_state(name, default):
    key = PAGE_PREFIX + name
    if key not in st.session_state:
        st.session_state[key] = default() if callable(default) else default
    return st.session_state[key]


def set_page_state(name, value):
    st.session_state[PAGE_PREFIX + name] = value


def invalidate(*names):
    for name in names:
        st.session_state.pop(PAGE_PREFIX + name, None)


def bump(name):
    set_page_state(f"{name}:gen", page_state(f"{name}:gen", 0) + 1)


def generation(name):
    return page_state(f"{name}:gen", 0)


# --- HELPER: OUTCOMES & MESSAGES ---
def guard(outcome):
    # 401 signs out, 403 goes back to the dashboard; both restart the script.
    # Already on the dashboard, a 403 only shows its notice.
    action = react(outcome, st.session_state) if outcome is not None else None
    if action == "denied":
        st.warning(st.session_state.pop(NOTICE_KEY))
    elif action:
        st.rerun()


def flash(kind, text):
    st.session_state[FLASH_KEY] = (kind, text)


def show_flash():
    if FLASH_KEY in st.session_state:
        kind, text = st.session_state.pop(FLASH_KEY)
        if kind == "success": st.success(text)
        else: st.error(text)


def show_error(title, text):
    st.error(f"**{title}**\n\n{text}")


def show_result(result, success_text):
    if result.error is not None:
        show_error(result.error.title, result.error.text)
        return False
    guard(result.outcome)
    if result.ok:
        flash("success", success_text)
        return True
    show_error("Error", result.outcome.message or config.GENERIC_FAILURE)
    return False


def load(api, name, call):
    """Fetch once per page mount and keep the outcome until navigation."""
    key = PAGE_PREFIX + name
    if key not in st.session_state:
        outcome = api.tracker.load(name, call)
        if outcome is None:
            return None
        guard(outcome)
        st.session_state[key] = outcome
    return st.session_state[key]


def data_of(outcome, default=None):
    if outcome is not None and outcome.ok and outcome.data is not None:
        return outcome.data
    return default


def collection(api, name, path, auth):
    outcome = load(api, f"{name}:rows", lambda: api.fetch(path, auth=auth))
    if outcome is not None and not outcome.ok:
        st.warning(outcome.message or "Could not load data.")
    return data_of(outcome, [])


def replace_rows(name, rows):
    set_page_state(f"{name}:rows", Ok(rows))


def load_permissions(api):
    return data_of(load(api, "permissions", api.my_permissions), [])


def lookup_options(api, fields, auth):
    options = {}
    for f in fields:
        if f.lookup is None: continue
        outcome = load(api, f"lookup:{f.lookup.path}", lambda f=f: api.fetch(f.lookup.path, auth=auth))
        options[f.name] = f.lookup.options(data_of(outcome, []))
    return options


# --- HELPER: QR LABEL ---
def generate_qr(data):
    qr = qrcode.QRCode(box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# --- COMPONENTS: TABLE ---
def frame(rows, columns):
    return pd.DataFrame([{c.label: c.value(r) for c in columns} for r in rows], columns=[c.label for c in columns])


def table_controls(name, rows, columns):
    state = page_state(f"{name}:list", ListState)
    c_search, c_size = st.columns([3, 1])
    search = c_search.text_input("Search", key=f"{PAGE_PREFIX}{name}:search", placeholder="Search all columns", label_visibility="collapsed")
    size = c_size.selectbox(
        "Rows per page", config.PAGE_SIZE_OPTIONS,
        index=config.PAGE_SIZE_OPTIONS.index(config.DEFAULT_PAGE_SIZE), key=f"{PAGE_PREFIX}{name}:size",
    )
    if search != state.search: state = with_search(state, search)
    if size != state.size: state = with_size(state, size, len(filter_rows(rows, state.search)))

    view = derive(rows, state)
    if state.page > view.total_pages:
        state = with_page(state, state.page, view.total_pages)
        view = derive(rows, state)
    set_page_state(f"{name}:list", state)

    # Sortable headers: same column twice flips the direction.
    header = st.columns(len(columns))
    for col, c in zip(header, columns):
        label = c.label
        if state.sort is not None and state.sort.key == c.key: label = f"{label} {state.sort.indicator}"
        if col.button(label, key=f"{PAGE_PREFIX}{name}:sort:{c.key}", use_container_width=True):
            set_page_state(f"{name}:list", with_sort(state, c.key))
            st.rerun()
    return view, state


def data_table(name, view, columns, selectable=True, tag=""):
    if not view.rows:
        st.info("No results.")
        return None
    df = frame(view.rows, columns)
    if not selectable:
        st.dataframe(df, use_container_width=True, hide_index=True)
        return None
    event = st.dataframe(
        df, on_select="rerun", selection_mode="single-row", use_container_width=True, hide_index=True,
        key=f"{PAGE_PREFIX}{name}:table:{tag}:{len(view.filtered)}",
    )
    picked = event.selection.rows
    if len(picked) == 1 and picked[0] < len(view.rows):
        return view.rows[picked[0]]
    return None


def pagination(name, state, pages):
    numbers = page_range(state.page, pages)
    cols = st.columns([3, 1] + [1] * len(numbers) + [1])
    cols[0].caption(f"Page {state.page} of {pages}")
    target = None
    if cols[1].button("◀", key=f"{PAGE_PREFIX}{name}:prev", disabled=state.page <= 1): target = state.page - 1
    for col, number in zip(cols[2:-1], numbers):
        kind = "primary" if number == state.page else "secondary"
        if col.button(str(number), key=f"{PAGE_PREFIX}{name}:page:{number}", type=kind): target = number
    if cols[-1].button("▶", key=f"{PAGE_PREFIX}{name}:next", disabled=state.page >= pages): target = state.page + 1
    if target is not None:
        set_page_state(f"{name}:list", with_page(state, target, pages))
        st.rerun()


def export_button(name, view, columns):
    if view.filtered:
        csv = frame(view.filtered, columns).to_csv(index=False).encode('utf-8')
        st.download_button("⬇ Export CSV", data=csv, file_name=f"{name}.csv", mime="text/csv", key=f"{PAGE_PREFIX}{name}:csv")


def list_table(name, rows, columns, selectable=True):
    view, state = table_controls(name, rows, columns)
    # A new key per list state drops a selection that no longer points at the same row.
    selected = data_table(name, view, columns, selectable, tag=repr(state))
    pagination(name, state, view.total_pages)
    export_button(name, view, columns)
    return selected


# --- COMPONENTS: FORM FIELDS ---
def _as_date(value):
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def field_input(f, value, choices, key, disabled=False):
    label = f"{f.label} *" if f.required and not f.readonly else f.label
    if f.kind == "select":
        ids = [""] + [c["id"] for c in choices]
        labels = {c["id"]: c["label"] for c in choices}
        current = next((i for i in ids[1:] if str(i) == str(value)), "")
        return st.selectbox(label, ids, index=ids.index(current), format_func=lambda i: labels.get(i, "Select..."), key=key, disabled=disabled)
    if f.kind == "date":
        picked = st.date_input(label, value=_as_date(value), min_value=date(1900, 1, 1), format="YYYY-MM-DD", key=key, disabled=disabled)
        return picked.isoformat() if picked else ""
    if f.kind == "textarea":
        return st.text_area(label, value=str(value or ""), key=key, disabled=disabled)
    if f.kind == "password":
        return st.text_input(label, value=str(value or ""), type="password", key=key, disabled=disabled)
    return st.text_input(label, value=str(value or ""), key=key, disabled=disabled)


def form_fields(name, fields, values, options):
    gen = generation(name)
    updated = values
    cols = st.columns(2)
    for i, f in enumerate(fields):
        with cols[i % 2]:
            value = field_input(f, values.get(f.name, ""), options.get(f.name, []), key=f"{PAGE_PREFIX}{name}:{gen}:{f.name}", disabled=f.readonly)
        if not f.readonly: updated = forms.set_field(updated, f.name, value)
    return updated


# --- VIEW: DASHBOARD ---
def show_dashboard(api, permissions, session):
    st.title("📊 Dashboard")
    st.caption(f"Welcome back, **{session.name}** ({session.email})")

    c1, c2, c3 = st.columns(3)
    c1.metric("Granted Permissions", len(permissions))

    if not EQUIPMENTS_RESOURCE.can("list", permissions):
        st.info("Use the sidebar to open a page.")
        return
    equipment = collection(api, "dashboard:equipment", EQUIPMENTS_RESOURCE.path, EQUIPMENTS_RESOURCE.auth("list"))
    c2.metric("Equipment", len(equipment))
    borrowed = [e for e in equipment if e.get("borrow_user_id")]
    c3.metric("On Loan", len(borrowed))

    if equipment:
        st.divider()
        df = pd.DataFrame(equipment)
        c_chart1, c_chart2 = st.columns([2, 1])
        with c_chart1:
            st.subheader("Equipment by Status")
            if "equipment_status" in df.columns:
                df["equipment_status"] = df["equipment_status"].fillna("Unknown")
                fig_bar = px.bar(df.groupby("equipment_status").size().reset_index(name="Count"), x="equipment_status", y="Count", labels={"equipment_status": "Status"})
                st.plotly_chart(fig_bar, use_container_width=True)
        with c_chart2:
            st.subheader("Availability")
            df["Custody"] = ["On Loan" if e.get("borrow_user_id") else "Available" for e in equipment]
            fig_pie = px.pie(df, names="Custody", hole=0.4)
            st.plotly_chart(fig_pie, use_container_width=True)


# --- VIEW: RESOURCE PAGES ---
def open_mode(resource, mode, ident=None):
    set_page_state(f"{resource.key}:mode", (mode, ident))
    st.rerun()


def back_button(resource):
    if st.button("◀ Back", key=f"{PAGE_PREFIX}{resource.key}:back"):
        open_mode(resource, "list")


def show_resource(api, permissions, resource):
    st.title(resource.title)
    st.caption(f"{resource.group} / {resource.title}")
    mode, ident = page_state(f"{resource.key}:mode", ("list", None))
    if mode == "list": show_list(api, permissions, resource)
    elif mode == CREATE: show_create(api, resource)
    elif mode == VIEW: show_detail(api, resource, ident)
    elif mode == UPDATE: show_update(api, resource, ident)
    elif mode == "manage": show_role_manage(api, resource, ident)
    elif resource.form(mode) is not None: show_custom_form(api, resource, resource.form(mode), ident)


def delete_row(api, resource, ident):
    """Delete on the server, then drop the row from the cached base rows."""
    result = forms.delete_record(api, resource, ident)
    guard(result.outcome)
    if result.ok:
        rows = data_of(st.session_state.get(f"{PAGE_PREFIX}{resource.key}:rows"), [])
        replace_rows(resource.key, remove_row(rows, resource.id_key, ident))
        flash("success", f"The {resource.singular.lower()} has been deleted.")
    return result


@st.dialog("Confirm Delete")
def confirm_delete(api, resource, row):
    ident = row[resource.id_key]
    st.subheader(str(row.get(resource.code_key) or ident))
    st.warning("Are you sure?")
    c1, c2 = st.columns(2)
    if c1.button("Yes, delete it!", type="primary", use_container_width=True):
        result = delete_row(api, resource, ident)
        if result.ok: st.rerun()
        show_error("Error!", result.outcome.message or config.GENERIC_FAILURE)
    if c2.button("Cancel", use_container_width=True): st.rerun()


def show_list(api, permissions, resource):
    if resource.can("create", permissions):
        _, c_btn = st.columns([3, 1])
        if c_btn.button("➕ Create", type="primary", use_container_width=True): open_mode(resource, CREATE)

    rows = collection(api, resource.key, resource.path, resource.auth("list"))
    selected = list_table(resource.key, rows, resource.columns)
    if selected is None:
        return

    ident = selected[resource.id_key]
    st.info(f"Selected: **{selected.get(resource.code_key) or ident}**")
    actions = [(VIEW, "View"), (UPDATE, "Update")]
    actions += [(f.key, f.label) for f in resource.forms]
    if "manage" in resource.ops: actions.append(("manage", "Manage Permissions"))
    actions = [(op, label) for op, label in actions if resource.can(op, permissions, selected)]
    can_delete = resource.can("delete", permissions, selected)

    if not actions and not can_delete:
        st.caption("No actions available.")
        return
    cols = st.columns(len(actions) + (1 if can_delete else 0))
    for col, (op, label) in zip(cols, actions):
        if col.button(label, key=f"{PAGE_PREFIX}{resource.key}:act:{op}:{ident}", use_container_width=True):
            open_mode(resource, op, ident)
    if can_delete and cols[-1].button("🗑️ Delete", key=f"{PAGE_PREFIX}{resource.key}:del:{ident}", use_container_width=True):
        confirm_delete(api, resource, selected)


def show_create(api, resource):
    back_button(resource)
    st.subheader(f"Create {resource.singular}")
    st.caption("Fields marked with * are required.")
    name = f"{resource.key}:create"
    fields = resource.editable(CREATE)
    options = lookup_options(api, fields, resource.auth(CREATE))

    values = page_state(f"{name}:values", lambda: forms.initial_values(fields))
    # Seeded once per mount; a reset after a successful create leaves every field blank.
    if not page_state(f"{name}:seeded", False) and any(options.values()):
        set_page_state(f"{name}:seeded", True)
        seeded = forms.seed_defaults(values, fields, options)
        if seeded != values:
            set_page_state(f"{name}:values", seeded)
            bump(name)
            values = seeded

    with st.form(f"{PAGE_PREFIX}{name}:form"):
        new_values = form_fields(name, fields, values, options)
        submitted = st.form_submit_button("Submit", type="primary", use_container_width=True)
    if submitted:
        result = forms.create_record(api, resource, new_values)
        if show_result(result, f"{resource.singular} has been created successfully!"):
            invalidate(f"{resource.key}:rows", f"{name}:values")
            bump(name)
            st.rerun()


def show_detail(api, resource, ident):
    back_button(resource)
    st.subheader(f"{resource.singular} Detail")
    outcome = load(api, f"{resource.key}:record:{VIEW}:{ident}", lambda: api.get(resource.path, ident, auth=resource.auth(VIEW)))
    record = data_of(outcome)
    if record is None:
        st.warning((outcome.message if outcome is not None else None) or "Record not available.")
        return

    col1, col2 = st.columns(2)
    for i, f in enumerate(resource.fields_for(VIEW)):
        value = record.get(f.display or f.name)
        (col1 if i % 2 == 0 else col2).write(f"**{f.label}:** {'' if value is None else value}")

    code = record.get(resource.code_key)
    if resource.key == "equipments" and code:
        st.divider()
        c_qr, c_dl = st.columns([1, 2])
        png = generate_qr(str(code))
        c_qr.image(png, width=100)
        c_dl.download_button("⬇ QR Label", data=png, file_name=f"QR_{code}.png", mime="image/png")


def show_update(api, resource, ident):
    back_button(resource)
    st.subheader(f"Update {resource.singular}")
    name = f"{resource.key}:update:{ident}"
    auth = resource.auth(UPDATE)
    outcome = load(api, f"{resource.key}:record:{UPDATE}:{ident}", lambda: api.get(resource.path, ident, auth=auth))
    record = data_of(outcome)
    if record is None:
        st.warning((outcome.message if outcome is not None else None) or "Record not available.")
        return

    fields = resource.fields_for(UPDATE)
    options = lookup_options(api, fields, auth)
    values = forms.from_record(fields, record)
    with st.form(f"{PAGE_PREFIX}{name}:form"):
        new_values = form_fields(name, fields, values, options)
        submitted = st.form_submit_button("Save", type="primary", use_container_width=True)
    if submitted:
        body = {f.name: new_values[f.name] for f in resource.editable(UPDATE)}
        result = forms.update_record(api, resource, ident, body)
        if show_result(result, f"{resource.singular} has been updated successfully!"):
            # Reload so server-side normalisation shows up.
            invalidate(f"{resource.key}:record:{UPDATE}:{ident}", f"{resource.key}:record:{VIEW}:{ident}", f"{resource.key}:rows")
            bump(name)
            st.rerun()


def show_custom_form(api, resource, form, ident):
    back_button(resource)
    st.subheader(form.label)
    name = f"{resource.key}:{form.key}:{ident}"
    values = forms.initial_values(form.fields)
    with st.form(f"{PAGE_PREFIX}{name}:form"):
        new_values = form_fields(name, form.fields, values, {})
        submitted = st.form_submit_button("Submit", type="primary", use_container_width=True)
    if submitted:
        result = forms.submit_custom(api, form, ident, new_values)
        if show_result(result, form.success):
            invalidate(f"{resource.key}:rows")
            bump(name)
            st.rerun()


# --- VIEW: ROLE PERMISSIONS ---
def _set_selection(name, selected):
    # Bumping the generation rebuilds the checkboxes from the new selection.
    set_page_state(f"{name}:selected", selected)
    bump(name)


def show_role_manage(api, resource, ident):
    back_button(resource)
    st.subheader("Role Permissions")
    auth = resource.auth("manage")
    name = f"roles:manage:{ident}"

    universe = data_of(load(api, "roles:universe", lambda: api.fetch(roles.PERMISSIONS_PATH, auth=auth)), [])
    assigned = load(api, f"{name}:assigned", lambda: api.fetch(roles.ROLE_PERMISSIONS_PATH.format(role_id=ident), auth=auth))
    selected = page_state(f"{name}:selected", lambda: roles.assigned_ids(data_of(assigned, [])))

    grouped = roles.group_by_module(universe)
    if not grouped:
        st.info("No permissions available.")
        return

    gen = generation(name)
    tabs = st.tabs(list(grouped))
    for tab, (module, group) in zip(tabs, grouped.items()):
        with tab:
            st.checkbox(
                "Select all", value=roles.all_selected(group, selected), key=f"{PAGE_PREFIX}{name}:{gen}:all:{module}",
                on_change=lambda group=group: _set_selection(name, roles.toggle_all(group, page_state(f"{name}:selected", []))),
            )
            for p in group:
                pid = p["permission_id"]
                key = f"{PAGE_PREFIX}{name}:{gen}:{pid}"
                st.checkbox(
                    f"{p.get('permission', pid)}", value=pid in selected, key=key, help=p.get("description") or None,
                    on_change=lambda pid=pid, key=key: _set_selection(
                        name, roles.toggle_one(page_state(f"{name}:selected", []), pid, st.session_state[key])
                    ),
                )

    st.caption(f"{len(selected)} permission(s) selected")
    if st.button("Save Permissions", type="primary", use_container_width=True):
        result = roles.save(api, ident, selected, auth)
        if show_result(result, "Role has been updated successfully!"):
            st.rerun()


# --- VIEW: EQUIPMENT STATUS BOARD ---
def show_equipment_status(api, permissions):
    st.title("Equipment Status")
    st.caption("Equipment Management / Equipment Transactions / Equipment Status")
    mode, ident = page_state("status:mode", ("list", None))

    if mode == "history":
        if st.button("◀ Back", key=f"{PAGE_PREFIX}status:back"):
            set_page_state("status:mode", ("list", None)); st.rerun()
        st.subheader("Transactions by Equipment")
        rows = collection(api, f"status:history:{ident}", transactions.HISTORY_BY_EQUIPMENT_PATH.format(id=ident), HISTORY_BY_EQUIPMENT_AUTH)
        list_table(f"status:history:{ident}", rows, transactions.HISTORY_COLUMNS, selectable=False)
        return

    rows = collection(api, "status", transactions.STATUS_BOARD_PATH, STATUS_BOARD_AUTH)
    selected = list_table("status", rows, STATUS_BOARD_COLUMNS)
    if selected is not None and HISTORY_BY_EQUIPMENT_AUTH.allows(permissions, selected):
        if st.button("📜 View Transactions", type="primary"):
            set_page_state("status:mode", ("history", selected["equipment_id"])); st.rerun()


# --- VIEW: TRANSACTION HISTORY ---
def show_transactions(api):
    st.title("Transactions")
    st.caption("Equipment Management / Equipment Transactions / Transaction")
    rows = collection(api, "history", transactions.HISTORY_PATH, TRANSACTIONS_AUTH)
    list_table("history", rows, transactions.HISTORY_COLUMNS, selectable=False)


# --- VIEW: EQUIPMENT RETURN ---
def show_equipment_return(api):
    st.title("Equipment Return")
    st.caption("Equipment Management / Equipment Transactions / Equipment Return")
    name = "return"
    rows = collection(api, name, transactions.UNRETURNED_PATH, RETURN_AUTH)
    users = data_of(load(api, "lookup:/user", lambda: api.fetch(USERS.path, auth=RETURN_AUTH)), [])
    selected = page_state(f"{name}:selected", list)
    notes = page_state(f"{name}:notes", dict)
    gen = generation(name)

    view, state = table_controls(name, rows, transactions.UNRETURNED_COLUMNS)
    select_box = st.empty()

    if view.rows:
        df = frame(view.rows, transactions.UNRETURNED_COLUMNS)
        df.insert(0, "Select", [r[transactions.DETAIL_ID] in selected for r in view.rows])
        df["Note"] = [notes.get(r[transactions.DETAIL_ID], "") for r in view.rows]
        edited = st.data_editor(
            df, key=f"{PAGE_PREFIX}{name}:editor:{state!r}:{gen}", hide_index=True, use_container_width=True,
            disabled=[c.label for c in transactions.UNRETURNED_COLUMNS], num_rows="fixed",
            column_config={"Select": st.column_config.CheckboxColumn(width="small"), "Note": st.column_config.TextColumn()},
        )
        for row, (_, e) in zip(view.rows, edited.iterrows()):
            detail_id = row[transactions.DETAIL_ID]
            selected = transactions.select_one(selected, detail_id, bool(e["Select"]))
            if (e["Note"] or "") != notes.get(detail_id, ""): notes = transactions.set_note(notes, detail_id, e["Note"] or "")
        set_page_state(f"{name}:selected", selected)
        set_page_state(f"{name}:notes", notes)
    else:
        st.info("No unreturned equipment.")

    all_checked = bool(rows) and len(selected) == len(rows)
    select_box.checkbox(
        "Select all", value=all_checked, key=f"{PAGE_PREFIX}{name}:{gen}:all:{all_checked}",
        on_change=_set_selection, args=(name, transactions.select_all(rows, not all_checked)),
    )
    pagination(name, state, view.total_pages)

    st.divider()
    options = USERS.options(users)
    ids = [""] + [o["id"] for o in options]
    labels = {o["id"]: o["label"] for o in options}
    return_user = st.selectbox("Return User *", ids, format_func=lambda i: labels.get(i, "Select..."), key=f"{PAGE_PREFIX}{name}:user")
    st.caption(f"{len(selected)} item(s) selected")

    if st.button("Return Equipment", type="primary", use_container_width=True):
        result = transactions.submit_return(api, selected, notes, return_user, RETURN_AUTH)
        if show_result(result, "The equipment has been returned successfully!"):
            invalidate(f"{name}:rows", f"{name}:selected", f"{name}:notes", f"{name}:user")
            bump(name)
            st.rerun()
