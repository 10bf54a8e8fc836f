"""Finance Visualizer: Streamlit financial statements dashboard and scenario simulator."""
from .types import *
from .formatting import *
from .parser import (
    DataImportError,
    parse_tabular,
    normalize_rows,
    import_file,
    export_json,
    to_tabular,
)
from .metrics import compute_kpis, filter_range, cash_flow_series, capital_structure
from .simulator import project
from .sample import sample_periods
