from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import pandas as pd

LOGGER = logging.getLogger(__name__)


def prefer_parquet(
    csv_path: str | Path,
    parquet_path: Optional[str | Path] = None,
    *,
    columns: Optional[Iterable[str]] = None,
    dtype: Optional[Dict[str, Any]] = None,
    **csv_kwargs: Any,
) -> pd.DataFrame:
    """Load a table preferring Parquet with CSV fallback.

    Parameters
    ----------
    csv_path:
        Location of the canonical CSV file.
    parquet_path:
        Optional explicit Parquet path. When omitted we look for ``<csv>.parquet``.
    columns:
        Optional list/iterable of columns to read. Forwarded to the Parquet
        reader and mapped to ``usecols`` for CSV reads.
    dtype:
        Optional dtype mapping applied to the CSV fallback.
    csv_kwargs:
        Additional keyword arguments forwarded to :func:`pandas.read_csv`.
    """

    csv_path = Path(csv_path)
    pq_path = Path(parquet_path) if parquet_path is not None else csv_path.with_suffix(".parquet")

    column_list = list(columns) if columns is not None else None

    if pq_path.exists():
        return pd.read_parquet(pq_path, columns=column_list)

    if column_list is not None and "usecols" not in csv_kwargs:
        csv_kwargs["usecols"] = column_list
    if dtype is not None and "dtype" not in csv_kwargs:
        csv_kwargs["dtype"] = dtype

    return pd.read_csv(csv_path, **csv_kwargs)


def read_seed_table(data_root: str | Path, name: str, *, required: Iterable[str]) -> Optional[pd.DataFrame]:
    """Return the ``name`` seed table from ``data_root`` or ``None`` when absent.

    Raises ``ValueError`` when the table exists but lacks one of ``required``.
    """

    csv_path = Path(data_root) / f"{name}.csv"
    if not csv_path.exists() and not csv_path.with_suffix(".parquet").exists():
        LOGGER.debug("Seed table %s not found under %s", name, data_root)
        return None

    frame = prefer_parquet(csv_path)
    missing = [column for column in required if column not in frame.columns]
    if missing:
        raise ValueError(f"Seed table {name} is missing columns: {', '.join(missing)}")
    return frame
