# ============================================================
# app.py — Security Case Desk Console (Streamlit)
# ============================================================

import streamlit as st
import requests
import os
from datetime import datetime

# ─────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")
IDENTITY_HEADER = os.getenv("IDENTITY_HEADER", "X-Caller-Identity")

SEVERITIES = ["low", "medium", "high", "critical"]
STATUSES = ["open", "inProgress", "resolved", "closed"]
INCIDENT_TYPES = ["phishing", "malware", "ddos", "dataBreach", "unauthorizedAccess", "other"]

st.set_page_config(layout="wide")
st.title("🛡️ Security Case Desk")


# ─────────────────────────────────────────────
# API Helpers
# ─────────────────────────────────────────────

def _headers():
    identity = st.session_state.get("identity")
    return {IDENTITY_HEADER: identity} if identity else {}


def _error(r):
    try:
        return r.json().get("detail", r.text)
    except ValueError:
        return r.text


def api_get(endpoint, params=None):
    try:
        r = requests.get(f"{BACKEND_URL}{endpoint}", headers=_headers(), params=params)
        if r.status_code == 200:
            return r.json()
        return None
    except Exception as e:
        st.error(f"API GET Error: {e}")
        return None


def api_send(method, endpoint, payload=None):
    """POST/PUT/DELETE; returns (ok, body or error text)"""
    try:
        r = requests.request(method, f"{BACKEND_URL}{endpoint}", headers=_headers(), json=payload)
        if r.status_code == 200:
            return True, r.json()
        return False, _error(r)
    except Exception as e:
        return False, str(e)


def fmt_ts(ts):
    if not ts:
        return "N/A"
    return datetime.fromtimestamp(ts / 1_000_000_000).strftime("%Y-%m-%d %H:%M")


# ─────────────────────────────────────────────
# Identity (stand-in for the identity provider)
# ─────────────────────────────────────────────

with st.sidebar:
    st.text_input("Identity", key="identity")

if not st.session_state.get("identity"):
    st.info("Enter your identity in the sidebar to continue.")
    st.stop()

profile = api_get("/operators/me")

if not profile:
    st.subheader("👤 Register")
    name = st.text_input("Display name")
    if st.button("Register"):
        if not name:
            st.warning("Please enter your name.")
        else:
            ok, body = api_send("POST", "/operators/register", {"name": name})
            if ok:
                st.success(f"Registered as {body['role']}.")
                st.rerun()
            else:
                st.error(body)
    st.stop()

is_admin = profile["role"] == "admin"

with st.sidebar:
    st.markdown(f"**{profile['name']}** ({profile['role']})")
    pages = ["Cases", "Report Incident", "Incidents"]
    if is_admin:
        pages.append("Users")
    page = st.radio("Page", pages)


# ─────────────────────────────────────────────
# Cases
# ─────────────────────────────────────────────

def render_case_detail(case):
    st.markdown(f"### #{case['id']} {case['title']}")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Severity", case["severity"])
    with col2:
        st.metric("Status", case["status"])
    with col3:
        st.metric("Notes", len(case["notes"]))

    st.write(case["description"])
    st.caption(
        f"Reporter: {case['reporter']} · Assigned: {case.get('assigned_analyst') or 'unassigned'} · "
        f"Created {fmt_ts(case['created_at'])} · Updated {fmt_ts(case['updated_at'])}"
    )

    new_status = st.selectbox(
        "Status", STATUSES, index=STATUSES.index(case["status"]), key=f"status_{case['id']}"
    )
    if st.button("Update status", key=f"btn_status_{case['id']}"):
        ok, body = api_send("POST", f"/cases/{case['id']}/status", {"status": new_status})
        if ok:
            st.success("Case status updated")
            st.rerun()
        else:
            st.error(body)

    st.markdown("#### 📝 Notes")
    for note in case["notes"]:
        st.markdown(f"**{note['author']}** ({fmt_ts(note['timestamp'])}): {note['content']}")

    note = st.text_area("Add note", key=f"note_{case['id']}")
    if st.button("Add note", key=f"btn_note_{case['id']}"):
        if not note.strip():
            st.warning("Note cannot be empty.")
        else:
            ok, body = api_send("POST", f"/cases/{case['id']}/notes", {"content": note.strip()})
            if ok:
                st.success("Note added")
                st.rerun()
            else:
                st.error(body)

    if is_admin:
        st.markdown("#### Admin")
        analyst = st.text_input("Analyst identity", key=f"assign_{case['id']}")
        if st.button("Assign", key=f"btn_assign_{case['id']}"):
            ok, body = api_send("POST", f"/cases/{case['id']}/assign", {"analyst": analyst.strip()})
            if ok:
                st.success("Case assigned successfully")
                st.rerun()
            else:
                st.error(body)

        if st.button("🗑️ Delete case", key=f"btn_delete_{case['id']}"):
            ok, body = api_send("DELETE", f"/cases/{case['id']}")
            if ok:
                st.success("Case deleted")
                st.rerun()
            else:
                st.error(body)


if page == "Cases":
    with st.expander("➕ New case"):
        title = st.text_input("Title")
        description = st.text_area("Description")
        severity = st.selectbox("Severity", SEVERITIES, index=1)
        if st.button("Create case"):
            ok, body = api_send(
                "POST", "/cases",
                {"title": title, "description": description, "severity": severity}
            )
            if ok:
                st.success(f"Case #{body['id']} created")
                st.rerun()
            else:
                st.error(body)

    col1, col2 = st.columns(2)
    with col1:
        status_filter = st.selectbox("Filter by status", ["all"] + STATUSES)
    with col2:
        severity_filter = st.selectbox("Filter by severity", ["all"] + SEVERITIES)
    params = {}
    if status_filter != "all":
        params["status"] = status_filter
    if severity_filter != "all":
        params["severity"] = severity_filter
    cases = api_get("/cases", params) or []

    if not cases:
        st.info("No cases available.")
        st.stop()

    selected_id = st.selectbox(
        "Select Case",
        [c["id"] for c in cases],
        format_func=lambda cid: next(f"#{c['id']} [{c['severity']}] {c['title']}" for c in cases if c["id"] == cid)
    )

    case = api_get(f"/cases/{selected_id}")
    if not case:
        st.error("Case not found.")
        st.stop()

    st.markdown("---")
    render_case_detail(case)


# ─────────────────────────────────────────────
# Incident reporting
# ─────────────────────────────────────────────

elif page == "Report Incident":
    st.subheader("🚨 Report Incident")

    title = st.text_input("Title")
    incident_type = st.selectbox("Type", INCIDENT_TYPES)
    description = st.text_area("Description")
    affected = st.text_input("Affected systems")
    severity = st.selectbox("Severity", SEVERITIES, index=1)
    reporter_name = st.text_input("Reporter name", value=profile["name"])

    if st.button("Submit"):
        if not all([title, description, affected, reporter_name]):
            st.warning("Please fill in all required fields")
        else:
            ok, body = api_send("POST", "/incidents", {
                "title": title,
                "incident_type": incident_type,
                "description": description,
                "affected_systems": affected,
                "severity": severity,
                "reporter_name": reporter_name
            })
            if ok:
                st.success(
                    f"Incident #{body['incident_id']} reported and case #{body['case_id']} created"
                )
            else:
                st.error(body)

elif page == "Incidents":
    st.subheader("📜 Incident Reports")

    incidents = api_get("/incidents") or []
    if not incidents:
        st.info("No incidents reported yet.")

    for inc in reversed(incidents):
        with st.expander(f"#{inc['id']} [{inc['severity']}] {inc['title']} ({inc['incident_type']})"):
            st.write(inc["description"])
            st.caption(
                f"Affected: {inc['affected_systems']} · Reported by {inc['reporter_name']} "
                f"at {fmt_ts(inc['created_at'])} · Case #{inc['linked_case_id']}"
            )


# ─────────────────────────────────────────────
# User management
# ─────────────────────────────────────────────

elif page == "Users":
    st.subheader("👥 Operators")

    operators = api_get("/operators") or []
    for op in operators:
        col1, col2, col3 = st.columns([3, 2, 2])
        with col1:
            st.markdown(f"**{op['name']}**  \n`{op['identity']}`")
        with col2:
            role = st.selectbox(
                "Role", ["admin", "analyst"],
                index=0 if op["role"] == "admin" else 1,
                key=f"role_{op['identity']}"
            )
        with col3:
            if st.button("Save", key=f"btn_role_{op['identity']}"):
                if role == op["role"]:
                    st.info("Role unchanged.")
                else:
                    st.session_state["pending_role"] = {
                        "identity": op["identity"], "name": op["name"], "role": role
                    }

    pending = st.session_state.get("pending_role")
    if pending:
        st.warning(f"Change the role of **{pending['name']}** to **{pending['role']}**?")
        col1, col2 = st.columns(2)
        with col1:
            if st.button("Confirm", key="btn_role_confirm"):
                ok, body = api_send("PUT", f"/operators/{pending['identity']}/role", {"role": pending["role"]})
                st.session_state.pop("pending_role", None)
                if ok:
                    st.success("User role updated successfully")
                    st.rerun()
                else:
                    st.error(body)
        with col2:
            if st.button("Cancel", key="btn_role_cancel"):
                st.session_state.pop("pending_role", None)
                st.rerun()
