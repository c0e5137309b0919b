from __future__ import annotations
from typing import Any, Dict, Optional

import pandas as pd

from audit import MemoryAuditLog
from batching import parse_heuristic
from data_io import (
    allocations_to_frame,
    build_plan_csv,
    eligibility_to_frame,
    read_bays,
    read_items,
    read_orders,
    read_returns,
    read_wagons,
)
from kpis import compute_allocation_kpis, compute_plan_kpis
from models import AllocationMode, PipelineCfg
from simulation import FulfillmentEngine, RunResult


def _execute(items_df: pd.DataFrame, bays_df: pd.DataFrame, wagons_df: pd.DataFrame,
             orders_df: pd.DataFrame, lines_df: pd.DataFrame, returns_df: Optional[pd.DataFrame],
             mode: str, heuristic: str, capacity: float):
    cfg = PipelineCfg(trolley_capacity=capacity, heuristic=parse_heuristic(heuristic),
                      mode=AllocationMode(mode.lower()))
    items = read_items(items_df)
    # every request gets its own engine, nothing is shared between calls
    audit = MemoryAuditLog()
    engine = FulfillmentEngine(read_bays(bays_df), items=items, audit=audit, cfg=cfg)
    returns = read_returns(returns_df) if returns_df is not None else []
    result = engine.run(read_orders(orders_df, lines_df), wagons=read_wagons(wagons_df, items), returns=returns)
    return result, audit


def _records(df: pd.DataFrame):
    return df.astype(object).where(df.notna(), None).to_dict("records")


def summarize(result: RunResult, audit: MemoryAuditLog) -> Dict[str, Any]:
    plan_kpis = compute_plan_kpis(result.plan)
    per_trolley = plan_kpis.pop("Per Trolley")
    return {
        "eligibility": _records(eligibility_to_frame(result.allocation)),
        "allocations": _records(allocations_to_frame(result.allocation)),
        "allocation_kpis": compute_allocation_kpis(result.allocation),
        "plan": {**plan_kpis, "trolleys": _records(per_trolley)},
        "paths": {
            strategy.value: {
                "path": [[loc.aisle, loc.bay] for loc in path.path],
                "total_distance": path.total_distance,
            }
            for strategy, path in result.paths.items()
        },
        "audit": list(audit.lines),
    }


def run_batch(items_df, bays_df, wagons_df, orders_df, lines_df, returns_df=None,
              mode: str = "partial", heuristic: str = "ffd", capacity: float = 60.0) -> Dict[str, Any]:
    result, audit = _execute(items_df, bays_df, wagons_df, orders_df, lines_df, returns_df, mode, heuristic, capacity)
    return summarize(result, audit)


def run_plan_csv(items_df, bays_df, wagons_df, orders_df, lines_df, returns_df=None,
                 mode: str = "partial", heuristic: str = "ffd", capacity: float = 60.0) -> str:
    result, _ = _execute(items_df, bays_df, wagons_df, orders_df, lines_df, returns_df, mode, heuristic, capacity)
    return build_plan_csv(result.plan)
