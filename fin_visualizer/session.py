"""
fin_visualizer/session.py
=========================
Session-state bookkeeping for the dashboard's upload widget.
Works on any mutable mapping, so st.session_state and plain dicts behave alike.
"""
from __future__ import annotations
from typing import Any, MutableMapping, Optional

LAST_UPLOAD_KEY = "last_upload"


def track_upload(state: MutableMapping[str, Any], file_id: Optional[str]) -> bool:
    """
    Record the uploader's current file and say whether it should be imported.

    Streamlit keeps returning the same uploaded file on every rerun; only a
    file_id not seen on the previous run is a new import. Clearing the
    uploader (file_id None) forgets the last file, so uploading it again
    imports it again.
    """
    if file_id is None:
        state.pop(LAST_UPLOAD_KEY, None)
        return False
    if state.get(LAST_UPLOAD_KEY) == file_id:
        return False
    state[LAST_UPLOAD_KEY] = file_id
    return True
