from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd


def read_first_sheet(path: Path) -> list[dict[str, Any]]:
    """Rows of the first worksheet keyed by header, every cell as text ("" when blank)."""
    if not path.exists():
        raise FileNotFoundError(f"Missing Excel file: {path}")

    df = pd.read_excel(path, sheet_name=0, dtype=str, keep_default_na=False, engine="openpyxl")
    df.columns = [str(column).strip() for column in df.columns]
    return df.to_dict(orient="records")
