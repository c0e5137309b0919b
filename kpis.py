from typing import Dict

import numpy as np
import pandas as pd

from models import AllocationResult, PathResult, PathStrategy, PickingPlan, Status


def compute_plan_kpis(plan):
    per_trolley_kpis = []
    for t in plan.trolleys:
        per_trolley_kpis.append({
            "Trolley": t.trolley_id,
            "Items": len(t.assignments),
            "Weight (kg)": t.current_weight,
            "Capacity (kg)": t.max_capacity,
            "Utilization (%)": t.utilization,
            "Over Capacity": t.current_weight > t.max_capacity,
        })
    utilizations = [t.utilization for t in plan.trolleys]
    return {
        "Plan": plan.plan_id,
        "Heuristic": plan.heuristic.name,
        "Total Trolleys": plan.total_trolleys,
        "Total Weight (kg)": plan.total_weight,
        "Avg Utilization (%)": float(np.mean(utilizations)) if utilizations else 0.0,
        "Min Utilization (%)": float(np.min(utilizations)) if utilizations else 0.0,
        "Max Utilization (%)": float(np.max(utilizations)) if utilizations else 0.0,
        "Per Trolley": pd.DataFrame(per_trolley_kpis),
    }


def compute_path_kpis(paths: Dict[PathStrategy, PathResult]) -> pd.DataFrame:
    rows = []
    for strategy, result in paths.items():
        stops = len(result.path) - 1
        rows.append({
            "Strategy": strategy.value,
            "Stops": stops,
            "Distance": result.total_distance,
            "Distance per Stop": result.total_distance / stops if stops else 0.0,
            "Path": " -> ".join(str(loc) for loc in result.path),
        })
    return pd.DataFrame(rows)


def compute_allocation_kpis(result: AllocationResult):
    requested = sum(e.requested_qty for e in result.eligibility)
    allocated = sum(e.allocated_qty for e in result.eligibility)
    kpis = {
        "Lines": len(result.eligibility),
        "Allocations": len(result.allocations),
        "Requested Qty": requested,
        "Allocated Qty": allocated,
        # unit fill rate across all lines
        "Fill Rate (%)": (allocated / requested) * 100 if requested > 0 else 0.0,
    }
    for s in Status:
        kpis[f"{s.value} Lines"] = sum(1 for e in result.eligibility if e.status == s)
    return kpis
