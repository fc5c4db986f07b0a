"""
Performance aggregation helpers.

Groups performance entry records with pandas for the dashboard breakdowns
(by channel, by publication, by placement and daily trends).
"""

from typing import Any, Dict, List, Optional
import pandas as pd

from hubmarket.utils.numbers import compute_ctr

SUM_METRICS = [
    "impressions",
    "clicks",
    "reach",
    "insertions",
    "spots_aired",
    "downloads",
    "circulation",
    "posts",
]

UNIT_METRICS = ["insertions", "spots_aired", "downloads", "posts"]

def entry_record(entry) -> Dict[str, Any]:
    """Flatten a PerformanceEntry row into an aggregation record."""
    record = {
        "order_id": entry.order_id,
        "publication_id": entry.publication_id,
        "publication_name": entry.publication_name,
        "item_path": entry.item_path,
        "item_name": entry.item_name,
        "channel": (entry.channel or "").strip().lower(),
        "date": entry.date_start,
        "source": entry.source,
    }
    for metric in SUM_METRICS:
        record[metric] = getattr(entry, metric) or 0
    return record

def _empty_row(group_by: List[str]) -> Dict[str, Any]:
    row = {key: None for key in group_by}
    row.update({metric: 0 for metric in SUM_METRICS})
    row.update({"units": 0, "entries": 0, "ctr": None})
    return row

def aggregate_performance_data(
    data: List[Dict[str, Any]],
    group_by: Optional[List[str]] = None,
    time_window: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Aggregate performance records by the given dimensions.

    Args:
        data: Records from ``entry_record``
        group_by: Dimensions to group by; empty for a single totals row
        time_window: Optional bucket for the ``date`` dimension (daily, weekly, monthly)

    Returns:
        List[Dict[str, Any]]: One row per group with summed metrics, ``units``,
        ``entries`` and ``ctr`` (percent, two decimals, None without impressions)
    """
    group_by = list(group_by or [])

    if time_window and "date" not in group_by:
        group_by.append("date")

    if not data:
        return [] if group_by else [_empty_row(group_by)]

    df = pd.DataFrame(data)
    for metric in SUM_METRICS:
        if metric not in df.columns:
            df[metric] = 0
        df[metric] = df[metric].fillna(0).astype("int64")
    df["units"] = df[UNIT_METRICS].sum(axis=1)
    df["entries"] = 1

    if time_window:
        dates = pd.to_datetime(df["date"])
        if time_window == "daily":
            df["date"] = dates.dt.strftime("%Y-%m-%d")
        elif time_window == "weekly":
            df["date"] = dates.dt.to_period("W").dt.start_time.dt.strftime("%Y-%m-%d")
        elif time_window == "monthly":
            df["date"] = dates.dt.strftime("%Y-%m")
        else:
            raise ValueError(f"Unsupported time window: {time_window}")

    agg_columns = SUM_METRICS + ["units", "entries"]
    if group_by:
        grouped_df = df.groupby(group_by, as_index=False, dropna=False)[agg_columns].sum()
        grouped_df = grouped_df.sort_values(group_by)
    else:
        grouped_df = df[agg_columns].sum().to_frame().T

    rows = grouped_df.to_dict("records")
    for row in rows:
        for column in agg_columns:
            row[column] = int(row[column])
        for key in group_by:
            if pd.isna(row.get(key)):
                row[key] = None
        row["ctr"] = compute_ctr(row["clicks"], row["impressions"])
    return rows
