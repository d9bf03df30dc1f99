"""
Tabular export of bulk lookup results.
"""

from typing import Iterable

import pandas as pd

from .models import Address, BulkCepResult

ADDRESS_COLUMNS = ["cep", "state", "city", "neighborhood", "street", "service", "ibge", "ddd"]


def results_to_frame(results: Iterable[BulkCepResult]) -> pd.DataFrame:
    """
    Flatten bulk results into a DataFrame, one row per input CEP.

    Address fields are prefixed with `address_`; failed rows keep them
    empty and carry `error` / `error_type` instead. Mapped (non-Address)
    data ends up in a single `data` column.
    """
    rows = []
    for result in results:
        row = {
            "input_cep": result.cep,
            "provider": result.provider,
            "error": str(result.error) if result.error is not None else None,
            "error_type": type(result.error).__name__ if result.error is not None else None,
        }
        if isinstance(result.data, Address):
            for column in ADDRESS_COLUMNS:
                row[f"address_{column}"] = getattr(result.data, column)
        elif result.data is not None:
            row["data"] = result.data
        rows.append(row)

    columns = ["input_cep", "provider", "error", "error_type"] + [f"address_{c}" for c in ADDRESS_COLUMNS]
    frame = pd.DataFrame(rows)
    for column in columns:
        if column not in frame.columns:
            frame[column] = None
    extra = [c for c in frame.columns if c not in columns]
    return frame[columns + extra]
