from __future__ import annotations
from typing import Dict

from models import Heuristic

# Thin registry so the HTTP layer never hardcodes heuristic names
_HEURISTICS: Dict[str, str] = {h.value: h.name for h in Heuristic}


def list_heuristics():
    return sorted(_HEURISTICS.keys())
