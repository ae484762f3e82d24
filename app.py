import logging
from decimal import Decimal, getcontext

import streamlit as st

from cbledger.config import load_settings
from cbledger.engine_fueleu import target_intensity
from cbledger.errors import LedgerError
from cbledger.factory import build_services

# --- PRÄZISIONSEINSTELLUNG ---
getcontext().prec = 28

settings = load_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# --- KONFIGURATION & STYLING ---
st.set_page_config(page_title="CB Ledger | FuelEU Compliance Cockpit", layout="wide")

st.markdown("""
    <style>
    #MainMenu {visibility: hidden;} footer {visibility: hidden;}
    .stDeployButton {display:none;}
    .id-box {
        background-color: #f8fafc; padding: 6px; border-radius: 4px;
        font-family: monospace; font-size: 0.75rem; border: 1px solid #e2e8f0;
    }
    </style>
""", unsafe_allow_html=True)

# Services einmal pro Session verdrahten
if "ledger_services" not in st.session_state:
    st.session_state.ledger_services = build_services(settings)
services = st.session_state.ledger_services
flash = st.session_state.pop("flash", None)


def fmt(value) -> str:
    return f"{Decimal(value):,.2f}"


def run_guarded(action, success_message, rerun=False):
    """Fuehrt eine Ledger-Operation aus und zeigt Domain-Fehler statt Tracebacks.

    Mit rerun=True wird die Seite neu aufgebaut; die Meldung ueberlebt den Rerun.
    """
    try:
        result = action()
    except LedgerError as e:
        st.error(str(e))
        return None
    if rerun:
        st.session_state.flash = success_message
        st.rerun()
    st.success(success_message)
    return result


# --- SIDEBAR ---
st.sidebar.header("🕹️ Compliance Control")
selected_year = st.sidebar.number_input("Reporting Year", min_value=2020, max_value=2050, value=2024, step=1)
st.sidebar.caption(f"Target intensity: {target_intensity(int(selected_year)):.4f} gCO2e/MJ")
st.sidebar.caption(f"Store: `{settings.store}`")

st.title("🚢 CB Ledger | FuelEU Compliance Cockpit")
if flash:
    st.success(flash)

tab_routes, tab_bank, tab_ships, tab_pool = st.tabs(["Routes & Compare", "Banking", "Ship Compliance", "Pooling"])

# --- ROUTES & COMPARE ---
with tab_routes:
    routes = services.routes.list_routes()
    if not routes:
        st.info("No routes registered.")
    for route in routes:
        c1, c2, c3 = st.columns([3, 2, 1])
        c1.write(f"**{route.route_id}** | {route.vessel_type} | {route.fuel_type} | {route.year}")
        c2.write(f"GHG: `{route.ghg_intensity}` gCO2e/MJ")
        if route.is_baseline:
            c3.write("📌 Baseline")
        elif c3.button("Set Baseline", key=f"b_{route.route_id}"):
            run_guarded(
                lambda r=route: services.routes.set_baseline(r.route_id), f"{route.route_id} is now baseline.", rerun=True
            )

    st.divider()
    try:
        comparisons = services.routes.get_all_comparisons()
    except LedgerError as e:
        st.warning(str(e))
        comparisons = []
    for comp in comparisons:
        marker = "✅" if comp.is_compliant else "⚠️"
        st.write(
            f"{marker} {comp.comparison.route_id}: {comp.percent_difference:+.2f}% vs. baseline "
            f"{comp.baseline.route_id} (target {comp.compliance_target:.4f})"
        )

# --- BANKING ---
with tab_bank:
    balance = services.banking.get_balance(int(selected_year))
    banked = services.banking.get_banked_amount(int(selected_year))

    col_a, col_b = st.columns(2)
    col_a.metric("Compliance Balance", f"{fmt(balance.cb)} gCO2e")
    col_b.metric("Banked Surplus", f"{fmt(banked)} gCO2e")

    amount = st.text_input("Amount (gCO2e)", value="", key="bank_amount")
    c1, c2 = st.columns(2)
    if c1.button("🏦 Bank Surplus", disabled=not services.banking.can_bank(int(selected_year))):
        run_guarded(lambda: services.banking.bank_surplus(int(selected_year), amount), f"Banked {amount} gCO2e.", rerun=True)
    if c2.button("↩️ Apply Banked Surplus", disabled=banked <= 0):
        run_guarded(lambda: services.banking.apply_banked_surplus(int(selected_year), amount), f"Applied {amount} gCO2e.", rerun=True)

# --- SHIP COMPLIANCE ---
with tab_ships:
    with st.form("compute_cb"):
        ship_id = st.text_input("Ship ID")
        route_id = st.text_input("Route ID (optional, defaults to Ship ID)")
        if st.form_submit_button("Compute CB"):
            record = run_guarded(
                lambda: services.ship_compliance.compute_ship_compliance(ship_id, int(selected_year), route_id),
                "Compliance balance computed.",
            )
            if record:
                st.json(record.to_dict())

    for record in services.ship_compliance.list_ship_compliance(int(selected_year)):
        st.write(f"**{record.ship_id}**: {fmt(record.cb_gco2eq)} gCO2e (route `{record.route_id or '-'}`)")

# --- POOLING ---
with tab_pool:
    candidates = [r.ship_id for r in services.ship_compliance.list_ship_compliance(int(selected_year))]
    members = st.multiselect("Pool Members", candidates)
    pool_name = st.text_input("Pool Name (optional)")

    if members:
        draft = services.pooling.preview_pool(int(selected_year), members, pool_name)
        st.metric("Pool Sum", f"{fmt(draft.pool_sum)} gCO2e")
        if draft.is_valid:
            st.success("Pool sum is non-negative.")
        else:
            st.error("Pool sum is negative, pool cannot be created.")

        if st.button("🤝 Create Pool", disabled=not draft.is_valid):
            run_guarded(
                lambda: services.pooling.create_pool(int(selected_year), members, pool_name),
                "Pool created.",
                rerun=True,
            )

    st.divider()
    st.subheader("Registered Pools")
    for pool in reversed(services.pooling.list_pools()):
        with st.expander(f"{pool.name or pool.pool_id} | {pool.year} | Sum {fmt(pool.pool_sum)}"):
            st.markdown(f'<div class="id-box">{pool.pool_id}</div>', unsafe_allow_html=True)
            for m in pool.members:
                st.write(f"{m.ship_id}: before {fmt(m.cb_before)} → after {fmt(m.cb_after)}")
