import logging

import pandas as pd
import plotly.express as px
import streamlit as st

from src.risk.aggregation import stats_frame
from src.risk.classifier import RiskBand, classify_customer, customers_frame
from src.risk.labels import suggested_action
from src.risk.snapshot import (
    DEFAULT_TAB,
    DashboardSnapshot,
    invalidate,
    select_client,
    select_risk_factor,
    select_tab,
)
from src.upstream.client import UpstreamError
from src.upstream.connectivity import ConnectivityMonitor, ConnectivityState
from src.upstream.credentials import CredentialsError, SettingsCredentials, parse_credentials
from src.upstream.refresh import run_prediction, run_refresh
from src.upstream.settings import Settings

SETTINGS = Settings.from_env()
logging.basicConfig(level=SETTINGS.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

TABS = {
    "dashboard": "Dashboard",
    "clients": "Buscar Cliente",
    "prediction": "Predição Individual",
}

STATUS_BADGE = {
    ConnectivityState.ONLINE: ("🟢 API Online", "green"),
    ConnectivityState.OFFLINE: ("🔴 API Offline", "red"),
    ConnectivityState.DEGRADED: ("🟡 API Degradada", "yellow"),
    ConnectivityState.CHECKING: ("⏳ Verificando...", "blue"),
}

# ----------------------------
# Page config + global styling
# ----------------------------
st.set_page_config(
    page_title="ChurnInsight",
    page_icon="📊",
    layout="wide",
)

CSS = """
<style>
.block-container { padding-top: 3.2rem; padding-bottom: 2.2rem; max-width: 1400px; }
h1, h2, h3 { letter-spacing: -0.02em; }

.rs-card {
  border: 1px solid #e5e7eb;
  background: #ffffff;
  border-radius: 14px;
  padding: 14px 16px;
  box-shadow: 0 1px 0 rgba(0,0,0,0.02);
}
.rs-card-title { font-size: 12px; color: rgba(0,0,0,0.55); margin-bottom: 8px; font-weight: 600; }
.rs-card-value { font-size: 26px; font-weight: 800; line-height: 1.1; }
.rs-card-sub { margin-top: 8px; font-size: 12px; color: rgba(0,0,0,0.55); }
.rs-pill {
  display: inline-block;
  padding: 2px 10px;
  border-radius: 999px;
  font-size: 11px;
  font-weight: 700;
  border: 1px solid #e5e7eb;
  background: #f9fafb;
}
.rs-pill-green { border-color: rgba(34,197,94,0.25); background: rgba(34,197,94,0.08); color: #166534; }
.rs-pill-red { border-color: rgba(239,68,68,0.25); background: rgba(239,68,68,0.08); color: #7f1d1d; }
.rs-pill-yellow { border-color: rgba(234,179,8,0.25); background: rgba(234,179,8,0.10); color: #713f12; }
.rs-pill-blue { border-color: rgba(59,130,246,0.25); background: rgba(59,130,246,0.08); color: #1e3a8a; }

.rs-note {
  border: 1px solid #e5e7eb;
  background: #f9fafb;
  border-radius: 12px;
  padding: 12px 14px;
  font-size: 13px;
}
</style>
"""
st.markdown(CSS, unsafe_allow_html=True)

# ----------------------------
# Helpers
# ----------------------------
def fmt_int(x) -> str:
    if x is None:
        return "—"
    return f"{int(x):,}".replace(",", ".")

def fmt_money(x) -> str:
    if x is None:
        return "—"
    # pt-BR formatting: R$ 1.234,56
    s = f"{float(x):,.2f}"
    return "R$ " + s.replace(",", "X").replace(".", ",").replace("X", ".")

def fmt_pct(x, digits: int = 1) -> str:
    if x is None:
        return "—"
    return f"{float(x):.{digits}f}%"

def rs_card(title: str, value: str, sub: str = "", pill_text: str = "", pill_kind: str = "blue"):
    pill_cls = {
        "green": "rs-pill-green",
        "red": "rs-pill-red",
        "yellow": "rs-pill-yellow",
        "blue": "rs-pill-blue",
    }.get(pill_kind, "rs-pill-blue")
    pill_html = f'<span class="rs-pill {pill_cls}">{pill_text}</span>' if pill_text else ""
    st.markdown(
        f"""
        <div class="rs-card">
          <div class="rs-card-title">{title} {pill_html}</div>
          <div class="rs-card-value">{value}</div>
          <div class="rs-card-sub">{sub}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )

def offline_notice(title: str = ""):
    st.warning(
        (f"**{title}** — " if title else "")
        + "API indisponível: nenhum dado será exibido enquanto o status não for ONLINE."
    )

# ----------------------------
# Session state
# ----------------------------
def _drop_snapshot(state: ConnectivityState) -> None:
    # Leaving ONLINE drops the shown data at once.
    st.session_state.snapshot = invalidate(state, error=st.session_state.monitor.last_error)
    st.session_state.connection_lost = True


def _note_transition(old: ConnectivityState, new: ConnectivityState) -> None:
    if new is ConnectivityState.ONLINE:
        st.session_state.connection_lost = False


if "monitor" not in st.session_state:
    monitor = ConnectivityMonitor()
    monitor.on_invalidate(_drop_snapshot)
    monitor.subscribe(_note_transition)
    st.session_state.monitor = monitor
if "connection_lost" not in st.session_state:
    st.session_state.connection_lost = False
if "credentials" not in st.session_state:
    st.session_state.credentials = SettingsCredentials(SETTINGS)
if "snapshot" not in st.session_state:
    st.session_state.snapshot = None

def do_refresh():
    st.session_state.snapshot = run_refresh(
        SETTINGS,
        st.session_state.monitor,
        previous=st.session_state.snapshot,
        credentials=st.session_state.credentials,
    )

# ----------------------------
# Sidebar
# ----------------------------
st.sidebar.title("ChurnInsight")

creds = st.session_state.credentials
if not creds.available:
    with st.sidebar.form("login"):
        raw = st.text_input("Credenciais da API (username:password)", type="password")
        if st.form_submit_button("Conectar"):
            try:
                parsed = parse_credentials(raw)
                creds.set(parsed.username, parsed.password)
                st.session_state.snapshot = None
            except CredentialsError as e:
                st.error(str(e))

if st.sidebar.button("🔄 Atualizar dados") or st.session_state.snapshot is None:
    with st.spinner("Sincronizando inteligência..."):
        do_refresh()

snap: DashboardSnapshot = st.session_state.snapshot
badge_text, badge_kind = STATUS_BADGE[snap.connectivity]
with st.sidebar:
    rs_card("Status da API", badge_text, SETTINGS.api_url, pill_text=snap.connectivity.value.upper(), pill_kind=badge_kind)
    if st.session_state.connection_lost and not snap.can_show_data:
        st.warning("Conexão com a API perdida: os dados exibidos foram descartados.")

tab_keys = list(TABS.keys()) if snap.can_show_data else [DEFAULT_TAB]
current_tab = snap.active_tab if snap.active_tab in tab_keys else DEFAULT_TAB
choice = st.sidebar.radio(
    "Seções",
    tab_keys,
    index=tab_keys.index(current_tab),
    format_func=lambda k: TABS[k],
)
if choice != snap.active_tab:
    snap = select_tab(snap, choice)
    st.session_state.snapshot = snap

# ----------------------------
# Header
# ----------------------------
st.title("ChurnInsight — Painel de Risco de Churn")
st.caption("Predições do serviço de churn, normalizadas em faixas de risco (0–40% baixo · 40–60% moderado · 60–100% alto).")

if not snap.can_show_data:
    offline_notice()
    if snap.error:
        st.caption(f"Detalhe: {snap.error}")
    st.stop()

if snap.error:
    st.error(snap.error)

st.divider()

# ============================
# Tab: Dashboard
# ============================
if snap.active_tab == "dashboard":
    m = snap.metrics

    c1, c2, c3, c4, c5 = st.columns(5)
    with c1:
        rs_card("Total de Clientes", fmt_int(m.total_customers if m else None))
    with c2:
        rs_card("Clientes Prioritários para Ação", fmt_pct(m.global_churn_rate if m else None),
                "Top 25% da base com maior instabilidade")
    with c3:
        rs_card("Clientes em Risco", fmt_int(m.customers_at_risk if m else None), pill_text="Risco", pill_kind="red")
    with c4:
        rs_card("Receita Potencial em Risco (Est.)", fmt_money(m.revenue_at_risk if m else None))
    with c5:
        rs_card("Precisão do Modelo", fmt_pct(m.model_accuracy_pct if m else None), pill_text="Modelo", pill_kind="green")

    left, right = st.columns([2, 2], gap="small")

    with left:
        with st.container(border=True):
            st.subheader("Distribuição da Classificação do Modelo")
            if m is None or m.churn_distribution is None:
                st.info("Sem dados de distribuição disponíveis no momento.")
            else:
                stay, churn = m.churn_distribution
                dist = pd.DataFrame({"classe": ["Permanece", "Cancela"], "clientes": [stay, churn]})
                fig = px.pie(dist, names="classe", values="clientes", title="")
                fig.update_layout(template="plotly_white", margin=dict(l=10, r=10, t=10, b=10), height=340)
                st.plotly_chart(fig, use_container_width=True)

    with right:
        with st.container(border=True):
            st.subheader("Importância das Variáveis (Top 10)")
            st.caption("Variáveis com maior peso na predição do modelo")
            if m is None or not m.feature_importance:
                st.info("O modelo atual não fornece importância de variáveis.")
            else:
                fi = pd.DataFrame(m.feature_importance).sort_values("value", ascending=False).head(10)
                fig = px.bar(fi, x="value", y="name", orientation="h", title="")
                fig.update_layout(template="plotly_white", margin=dict(l=10, r=10, t=10, b=10), height=340,
                                  yaxis=dict(autorange="reversed"))
                st.plotly_chart(fig, use_container_width=True)

    with st.container(border=True):
        st.subheader("Principais Fatores de Risco")
        source = "serviço de predição" if snap.aggregation_source == "upstream" else "cálculo local (probabilidade > 45%)"
        st.caption(f"Fonte: {source}")

        stats = list(snap.risk_factor_stats)
        if not stats:
            st.info("Nenhum fator de risco disponível.")
        else:
            df_stats = stats_frame(stats)
            fig = px.bar(df_stats, x="risk_factor", y="count", title="")
            fig.update_layout(template="plotly_white", margin=dict(l=10, r=10, t=10, b=10), height=320)
            st.plotly_chart(fig, use_container_width=True)

            names = [""] + [s.display_name for s in stats]
            picked = st.selectbox(
                "Selecione um fator de risco",
                names,
                index=names.index(snap.selected_risk_factor) if snap.selected_risk_factor in names else 0,
                format_func=lambda n: n or "—",
            )
            if picked != snap.selected_risk_factor:
                snap = select_risk_factor(snap, picked)
                st.session_state.snapshot = snap

            stat = snap.stat_for(snap.selected_risk_factor)
            if stat is not None:
                a, b = st.columns(2)
                with a:
                    rs_card(stat.display_name, fmt_int(stat.count),
                            f"{stat.share * 100:.1f}% de {fmt_int(stat.total_considered)} clientes considerados")
                with b:
                    action = suggested_action(stat.display_name)
                    st.markdown(f'<div class="rs-note"><b>Ação sugerida:</b> {action or "Monitorar."}</div>',
                                unsafe_allow_html=True)

# ============================
# Tab: Client search / drill-down
# ============================
elif snap.active_tab == "clients":
    customers = list(snap.classified_customers)
    if not customers:
        st.info("Nenhum cliente retornado pelo serviço.")
        st.stop()

    table = customers_frame(customers)

    f1, f2 = st.columns(2)
    with f1:
        bands = [b.value for b in RiskBand]
        band_filter = st.multiselect("Faixa de risco", bands, default=bands)
    with f2:
        min_prob = st.slider("Probabilidade mínima de churn", 0.0, 1.0, 0.0, 0.01)

    view = table[(table["risk_band"].isin(band_filter)) & (table["churn_probability"] >= min_prob)]
    st.dataframe(view.sort_values("churn_probability", ascending=False), use_container_width=True)

    ids = view["client_id"].astype(str).tolist()
    if ids:
        current = str(snap.selected_client_id) if snap.selected_client_id is not None else ids[0]
        picked = st.selectbox("Selecione o cliente", ids, index=ids.index(current) if current in ids else 0)
        if picked != snap.selected_client_id:
            snap = select_client(snap, picked)
            st.session_state.snapshot = snap

        client = snap.selected_client()
        if client is not None:
            meta = client.band.display
            with st.container(border=True):
                st.subheader("Diagnóstico")
                st.caption(f"ID do Cliente: {client.client_id or 'Cliente'}")
                a, b = st.columns(2)
                with a:
                    rs_card("Probabilidade de Churn", fmt_pct(client.probability * 100), meta["range"])
                with b:
                    st.markdown(f"**Status:** {meta['label']}  ·  `{meta['badge']}`")
                    st.markdown(f"**Fator de Risco:** {client.risk_factor_display}")
                    st.markdown(f"**Fator de Retenção:** {client.retention_factor_display}")

    csv_bytes = view.to_csv(index=False).encode("utf-8")
    st.download_button("Baixar resultados (CSV)", data=csv_bytes, file_name="churn_risk_clients.csv", mime="text/csv")

# ============================
# Tab: Individual prediction
# ============================
elif snap.active_tab == "prediction":
    with st.form("predict"):
        a, b, c = st.columns(3)
        with a:
            user_id = st.text_input("ID do Usuário *")
            gender = st.selectbox("Gênero", ["Male", "Female", "Other"])
            age = st.number_input("Idade", min_value=10, max_value=100, value=30)
            country = st.selectbox("País", ["BR", "US", "FR", "IN", "DE", "UK", "CA", "AU", "PK"])
        with b:
            subscription_type = st.selectbox("Tipo de Assinatura", ["Free", "Premium", "Family", "Student", "Duo"])
            listening_time = st.number_input("Tempo de Escuta (min/dia)", min_value=0, value=120)
            songs_played_per_day = st.number_input("Músicas por Dia", min_value=0, value=30)
            skip_rate = st.slider("Taxa de Pulagem", 0.0, 1.0, 0.2, 0.01)
        with c:
            ads_listened_per_week = st.number_input("Anúncios por Semana", min_value=0, value=5)
            device_type = st.selectbox("Dispositivo", ["Mobile", "Desktop", "Web"])
            offline_listening = st.checkbox("Uso Offline", value=False)

        submitted = st.form_submit_button("Prever Risco de Churn", type="primary")

    if submitted:
        if not user_id.strip():
            st.error("Informe o ID do usuário.")
            st.stop()
        profile = {
            "user_id": user_id.strip(),
            "gender": gender,
            "age": int(age),
            "country": country,
            "subscription_type": subscription_type,
            "listening_time": float(listening_time),
            "songs_played_per_day": int(songs_played_per_day),
            "skip_rate": float(skip_rate),
            "ads_listened_per_week": int(ads_listened_per_week),
            "device_type": device_type,
            "offline_listening": bool(offline_listening),
        }
        try:
            result = run_prediction(SETTINGS, profile, credentials=st.session_state.credentials)
        except UpstreamError as e:
            st.error(f"Falha na predição: {e}")
            st.stop()

        record = dict(result) if isinstance(result, dict) else {}
        record.setdefault("user_id", profile["user_id"])
        client = classify_customer(record)
        meta = client.band.display

        with st.container(border=True):
            st.subheader("🔮 Predição Individual de Churn")
            x, y = st.columns(2)
            with x:
                rs_card("Probabilidade de Churn", fmt_pct(min(client.probability * 100, 99.9)), meta["range"],
                        pill_text=meta["badge"])
            with y:
                st.markdown(f"**Status:** {meta['label']}")
                st.markdown(f"**Fator de Risco:** {client.risk_factor_display}")
                st.markdown(f"**Fator de Retenção:** {client.retention_factor_display}")
                if client.suggested_action:
                    st.markdown(f'<div class="rs-note"><b>Ação sugerida:</b> {client.suggested_action}</div>',
                                unsafe_allow_html=True)
