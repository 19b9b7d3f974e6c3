"""Streamlit bridge for the calculator's persisted inputs.

Moves ``PrimaryInputs`` between the state codec and a Streamlit session:
``st.query_params`` is the transport (so the browser URL is a shareable
scenario) and ``st.session_state`` plays the key-value store that may still hold
a legacy blob. Rendering is left to the page; nothing here draws widgets.

Functions take the Streamlit module as an argument so they can be exercised with
a stand-in object outside a running app.
"""

from __future__ import annotations

from typing import Any, Dict

from spc.core.engine import PrimaryInputs
from spc.core.state_codec import load_inputs, reset_inputs, save_inputs


def get_query_params(st_module: Any) -> Dict[str, Any]:
    try:
        # Streamlit >= 1.31
        return dict(st_module.query_params)
    except Exception:
        try:
            return dict(st_module.experimental_get_query_params())
        except Exception:
            return {}


def set_query_params(st_module: Any, params: Dict[str, Any]) -> None:
    try:
        st_module.query_params.clear()
        for k, v in params.items():
            if v is None:
                continue
            st_module.query_params[k] = str(v)
    except Exception:
        try:
            st_module.experimental_set_query_params(**{k: v for k, v in params.items() if v is not None})
        except Exception:
            pass


class StreamlitStateBridge:
    """Load/save/reset the calculator inputs through a Streamlit session.

    Parameters
    ----------
    st_module : Any, optional
        The Streamlit module. Imported lazily when omitted.
    defaults : PrimaryInputs, optional
        Baseline record used for minimal encoding and missing fields.
    """

    def __init__(self, st_module: Any = None, defaults: PrimaryInputs | None = None) -> None:
        if st_module is None:
            import streamlit as st_module  # type: ignore[no-redef]
        self.st = st_module
        self.defaults = defaults or PrimaryInputs.defaults()

    def load(self) -> PrimaryInputs:
        """Inputs for this session; migrates a legacy blob into the URL on first load."""
        params = get_query_params(self.st)
        before = dict(params)
        inputs = load_inputs(params, self.st.session_state, self.defaults)
        if params != before:
            set_query_params(self.st, params)
        return inputs

    def save(self, inputs: PrimaryInputs) -> Dict[str, str]:
        """Write the minimal encoding of ``inputs`` to the URL, keeping unrelated params."""
        params = get_query_params(self.st)
        encoded = save_inputs(inputs, params, self.defaults)
        set_query_params(self.st, params)
        return encoded

    def reset(self) -> PrimaryInputs:
        params = get_query_params(self.st)
        inputs = reset_inputs(params, self.st.session_state, self.defaults)
        set_query_params(self.st, params)
        return inputs
