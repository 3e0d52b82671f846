"""
pandas conversion for records.
"""

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd


def records_to_frame(
    records: Sequence[Dict[str, Any]],
    headers: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Build a DataFrame from records, ordering columns by sheet header order.

    Columns are the keys present in any record; those listed in ``headers``
    come first, in header order, followed by any others in first-seen order.
    Missing values become None.

    Args:
        records: Records as returned by SheetTable reads
        headers: Sheet header order, usually ``ColumnInfo.headers``

    Returns:
        A DataFrame with one row per record
    """
    seen: List[str] = []
    for record in records:
        for key in record:
            if key not in seen:
                seen.append(key)

    order = [h for h in (headers or []) if h in seen]
    order += [k for k in seen if k not in order]
    if not order:
        order = list(headers or [])

    return pd.DataFrame.from_records(
        [[record.get(col) for col in order] for record in records],
        columns=order,
    )
