"""Streamlit front-end for the gacha acquisition-probability calculator."""

from __future__ import annotations

import io
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

import altair as alt
import pandas as pd
import streamlit as st

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from gacha_core import (
    CSV_HEADER,
    DEFAULT_COPIES_REQUIRED,
    DEFAULT_MAX_PULLS,
    DEFAULT_SAMPLE_STEP,
    BannerPreset,
    CalculationSettings,
    CurveComputationResult,
    ErrorInfo,
    builtin_presets,
    catalog_to_records,
    compute_probability_curve,
    default_catalog,
    error_info_from_exception,
    load_banner_presets,
    prepare_pool,
    state_space_bound,
    validate_calculation_data,
)

PRESET_CUSTOM_LABEL = "カスタム"
BANNER_PRESET_PATH = Path(__file__).resolve().parent / "banner_presets.json"
LARGE_STATE_SPACE = 200_000
CATALOG_COLUMNS = {"label": CSV_HEADER[0], "probability": CSV_HEADER[1], "count": CSV_HEADER[2]}


def available_presets() -> dict[str, BannerPreset]:
    """Return built-in presets merged with any user-maintained presets."""

    presets = builtin_presets()
    presets.update(load_banner_presets(BANNER_PRESET_PATH))
    return presets


def catalog_frame(records: Sequence[Mapping[str, object]]) -> pd.DataFrame:
    """Return an editable DataFrame with the CSV column headers."""

    frame = pd.DataFrame(list(records), columns=list(CATALOG_COLUMNS))
    return frame.rename(columns=CATALOG_COLUMNS)


def frame_to_records(frame: pd.DataFrame) -> list[dict[str, object]]:
    """Convert the edited DataFrame back into catalog rows."""

    inverse = {header: key for key, header in CATALOG_COLUMNS.items()}
    cleaned = frame.rename(columns=inverse).dropna(subset=["label"])
    cleaned = cleaned.fillna({"probability": "0%", "count": 0})
    return cleaned.to_dict(orient="records")


def read_catalog_csv(payload: bytes) -> pd.DataFrame:
    """Parse an uploaded ``ラベル,確率,個数`` CSV file."""

    frame = pd.read_csv(io.BytesIO(payload), dtype={CSV_HEADER[1]: str}, usecols=[0, 1, 2])
    frame.columns = list(CATALOG_COLUMNS.values())
    frame[CSV_HEADER[2]] = pd.to_numeric(frame[CSV_HEADER[2]], errors="coerce")
    return frame.dropna()


def reset_curve_results() -> None:
    """Clear cached results so the UI reflects new inputs."""

    st.session_state.curve_result = None
    st.session_state.curve_error = None


def ensure_session_state_defaults() -> None:
    """Populate Streamlit session state with expected default entries."""

    if "catalog_frame" not in st.session_state:
        st.session_state.catalog_frame = catalog_frame(catalog_to_records(default_catalog()))
    if "targets_by_label" not in st.session_state:
        st.session_state.targets_by_label = dict(builtin_presets()["Wピックアップ"].targets_by_label)

    st.session_state.setdefault("curve_result", None)
    st.session_state.setdefault("curve_error", None)
    st.session_state.setdefault("selected_preset", PRESET_CUSTOM_LABEL)
    st.session_state.setdefault("last_applied_preset", PRESET_CUSTOM_LABEL)
    st.session_state.setdefault("copies_required_input", DEFAULT_COPIES_REQUIRED)
    st.session_state.setdefault("max_pulls_input", DEFAULT_MAX_PULLS)
    st.session_state.setdefault("sample_step_input", DEFAULT_SAMPLE_STEP)


def apply_preset(selected_preset: str, presets: Mapping[str, BannerPreset]) -> bool:
    """Load the selected preset's catalog and targets, returning change status."""

    if selected_preset == st.session_state.last_applied_preset:
        return False

    if selected_preset != PRESET_CUSTOM_LABEL:
        preset = presets[selected_preset]
        st.session_state.catalog_frame = catalog_frame(catalog_to_records(preset.items))
        st.session_state.pop("catalog_editor", None)
        st.session_state.targets_by_label = dict(preset.targets_by_label)
        for label in list(st.session_state.keys()):
            if str(label).startswith("target_widget_"):
                del st.session_state[label]

    st.session_state.last_applied_preset = selected_preset
    return True


def render_catalog_editor() -> list[dict[str, object]]:
    """Render the catalog table with CSV import/export and return its rows."""

    with st.expander("ガチャの詳細データ設定（確率など）"):
        uploaded = st.file_uploader("CSVを読み込む", type="csv")
        upload_key = None if uploaded is None else (uploaded.name, uploaded.size)
        if upload_key is not None and upload_key != st.session_state.get("last_upload"):
            st.session_state.last_upload = upload_key
            try:
                st.session_state.catalog_frame = read_catalog_csv(uploaded.getvalue())
                st.session_state.pop("catalog_editor", None)
                reset_curve_results()
                st.success("CSVを読み込みました")
            except (ValueError, pd.errors.ParserError) as exc:
                st.error(f"CSVの読み込みに失敗しました：{exc}")

        edited = st.data_editor(
            st.session_state.catalog_frame,
            num_rows="dynamic",
            use_container_width=True,
            key="catalog_editor",
            on_change=reset_curve_results,
        )
        st.download_button(
            "CSVを書き出す",
            data=edited.to_csv(index=False).encode("utf-8"),
            file_name="gacha_data.csv",
            mime="text/csv",
        )
    return frame_to_records(edited)


def render_target_inputs(records: Sequence[Mapping[str, object]]) -> dict[str, int]:
    """Render a count input per catalog label and return the non-zero selection."""

    with st.container(border=True):
        st.markdown('<div class="card-title">ターゲット設定</div>', unsafe_allow_html=True)
        targets: dict[str, int] = {}
        seen: set[str] = set()
        for record in records:
            label = str(record["label"])
            if label in seen:
                continue
            seen.add(label)
            try:
                available = max(int(record.get("count") or 0), 0)
            except (TypeError, ValueError):
                available = 0

            label_col, input_col = st.columns([1.6, 1.0], gap="small")
            label_col.markdown(
                f'<div class="target-label">{label}（最大{available}個）</div>',
                unsafe_allow_html=True,
            )
            widget_key = f"target_widget_{label}"
            if widget_key not in st.session_state:
                st.session_state[widget_key] = int(st.session_state.targets_by_label.get(label, 0))
            value = input_col.number_input(
                label,
                min_value=0,
                step=1,
                key=widget_key,
                label_visibility="collapsed",
                on_change=reset_curve_results,
            )
            if value > 0:
                targets[label] = int(value)
        st.session_state.targets_by_label = targets
        return targets


def render_run_configuration() -> bool:
    """Render run parameters and return whether a computation was requested."""

    with st.container(border=True):
        st.markdown('<div class="card-title">計算設定</div>', unsafe_allow_html=True)
        copies_col, pulls_col, step_col = st.columns(3)
        with copies_col:
            st.caption("必要な重ね数")
            st.number_input(
                "必要な重ね数",
                min_value=1,
                step=1,
                key="copies_required_input",
                label_visibility="collapsed",
                on_change=reset_curve_results,
            )
        with pulls_col:
            st.caption("最大ガチャ回数")
            st.number_input(
                "最大ガチャ回数",
                min_value=1,
                step=10,
                key="max_pulls_input",
                label_visibility="collapsed",
                on_change=reset_curve_results,
            )
        with step_col:
            st.caption("グラフの刻み")
            st.number_input(
                "グラフの刻み",
                min_value=1,
                step=1,
                key="sample_step_input",
                label_visibility="collapsed",
                on_change=reset_curve_results,
            )
        return st.button("計算開始", type="primary", use_container_width=True)


def current_settings(targets: Mapping[str, int]) -> CalculationSettings:
    """Assemble ``CalculationSettings`` from the widgets' session state."""

    return CalculationSettings(
        targets_by_label=dict(targets),
        copies_required=int(st.session_state.copies_required_input),
        max_pulls=int(st.session_state.max_pulls_input),
        sample_step=int(st.session_state.sample_step_input),
    )


def compute_curve(records: Sequence[Mapping[str, object]], settings: CalculationSettings) -> None:
    """Validate the inputs and compute the curve with the current configuration."""

    reset_curve_results()
    problem = validate_calculation_data(records, settings)
    if problem is not None:
        st.session_state.curve_error = problem
        return

    try:
        bound = state_space_bound(prepare_pool(records, settings))
        if bound > LARGE_STATE_SPACE:
            st.warning(f"状態数が最大{bound:,}個になるため、計算に時間がかかる可能性があります。")
        with st.spinner("計算中..."):
            st.session_state.curve_result = compute_probability_curve(records, settings)
    except Exception as exc:  # broad to surface any numerical issues to the user
        st.session_state.curve_error = error_info_from_exception(exc)


def curve_frame(result: CurveComputationResult) -> pd.DataFrame:
    """Return the curve in long format: one row per (pull count, k)."""

    rows = [
        {
            "pull_count": point.pull_count,
            "series": f"{k + 1}体以上",
            "probability": probability,
        }
        for point in result.curve
        for k, probability in enumerate(point.probabilities)
    ]
    return pd.DataFrame(rows, columns=["pull_count", "series", "probability"])


def render_curve(result: CurveComputationResult) -> None:
    """Render the cumulative probability chart and final-pull metrics."""

    with st.container(border=True):
        st.markdown("**計算結果**")
        final = result.curve[-1]
        metric_cols = st.columns(min(len(final.probabilities), 4))
        for k, probability in enumerate(final.probabilities[: len(metric_cols)]):
            metric_cols[k].metric(
                f"{final.pull_count}回で{k + 1}体以上", f"{probability * 100:.2f}%"
            )
        st.caption(
            f"DP 計算時間 {result.compute_seconds:.2f} 秒 / 最大状態数 {result.peak_states:,}"
        )

        chart = (
            alt.Chart(curve_frame(result))
            .mark_line(point=True)
            .encode(
                x=alt.X("pull_count:Q", title="ガチャ回数"),
                y=alt.Y(
                    "probability:Q",
                    title="確率",
                    scale=alt.Scale(domain=(0, 1)),
                    axis=alt.Axis(format=".0%"),
                ),
                color=alt.Color("series:N", title="獲得数"),
                tooltip=[
                    alt.Tooltip("pull_count:Q", title="回数"),
                    alt.Tooltip("series:N", title="獲得数"),
                    alt.Tooltip("probability:Q", title="確率", format=".2%"),
                ],
            )
            .properties(height=320)
        )
        chart = chart.configure_view(strokeOpacity=0).configure_axis(gridColor="#e2e8f0")
        st.altair_chart(chart, use_container_width=True)


def render_error(error: ErrorInfo) -> None:
    st.error(f"計算できませんでした（{error.kind.value}）：{error.message}")


def apply_page_styling() -> None:
    """Inject CSS tweaks that style the Streamlit app."""

    st.set_page_config(page_title="Gacha Probability Calculator", layout="centered")
    st.markdown(
        """
        <style>
        div[data-testid="stVerticalBlockBorderWrapper"] {
            border: 1px solid #e3e6eb;
            border-radius: 12px;
            padding: 1.25rem;
            background-color: #ffffff;
            box-shadow: 0 4px 10px rgba(15, 23, 42, 0.06);
            margin-bottom: 1.25rem;
        }
        .card-title {
            font-size: 1.1rem;
            font-weight: 600;
            margin-bottom: 0.8rem;
        }
        .target-label {
            display: flex;
            align-items: center;
            font-weight: 500;
            font-size: 0.95rem;
        }
        div[data-testid="stNumberInput"] > label {
            display: none;
        }
        div[data-testid="stMetricValue"] {
            font-size: 1.8rem;
            font-weight: 600;
            color: #0f172a;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def main() -> None:
    """Entry point used by Streamlit."""

    apply_page_styling()
    ensure_session_state_defaults()
    presets = available_presets()

    st.title("ガチャ確率計算機")

    with st.container(border=True):
        st.markdown('<div class="card-title">ガチャを選択</div>', unsafe_allow_html=True)
        selected_preset = st.selectbox(
            "ガチャを選択",
            options=[PRESET_CUSTOM_LABEL] + list(presets),
            key="selected_preset",
            label_visibility="collapsed",
        )
        if apply_preset(selected_preset, presets):
            reset_curve_results()
        records = render_catalog_editor()

    targets = render_target_inputs(records)
    compute_button = render_run_configuration()
    if compute_button:
        compute_curve(records, current_settings(targets))

    if isinstance(st.session_state.curve_error, ErrorInfo):
        render_error(st.session_state.curve_error)
    elif isinstance(st.session_state.curve_result, CurveComputationResult):
        render_curve(st.session_state.curve_result)


if __name__ == "__main__":
    main()
