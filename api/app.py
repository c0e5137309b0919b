from __future__ import annotations
from fastapi import FastAPI, UploadFile, File, Form, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import pandas as pd
import io

from models import FulfillmentError
from .registry import list_heuristics
from .runner import run_batch, run_plan_csv

app = FastAPI(title="Fulfillment API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _read_csv(f: UploadFile) -> pd.DataFrame:
    return pd.read_csv(io.BytesIO(f.file.read()), sep=None, engine="python", dtype=str,
                       keep_default_na=False, encoding="utf-8-sig")


@app.get("/api/heuristics")
def get_heuristics():
    return {"heuristics": list_heuristics()}


def _frames(items, bays, wagons, orders, order_lines, returns):
    return dict(
        items_df=_read_csv(items),
        bays_df=_read_csv(bays),
        wagons_df=_read_csv(wagons),
        orders_df=_read_csv(orders),
        lines_df=_read_csv(order_lines),
        returns_df=_read_csv(returns) if returns is not None else None,
    )


@app.post("/api/run")
async def api_run(
    mode: str = Form("partial"),
    heuristic: str = Form("ffd"),
    capacity: float = Form(60.0),
    items: UploadFile = File(...),
    bays: UploadFile = File(...),
    wagons: UploadFile = File(...),
    orders: UploadFile = File(...),
    order_lines: UploadFile = File(...),
    returns: UploadFile | None = File(None),
):
    try:
        result = run_batch(**_frames(items, bays, wagons, orders, order_lines, returns),
                           mode=mode, heuristic=heuristic, capacity=capacity)
    except (FulfillmentError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return JSONResponse(result)


@app.post("/api/export/plan")
async def api_export_plan(
    mode: str = Form("partial"),
    heuristic: str = Form("ffd"),
    capacity: float = Form(60.0),
    items: UploadFile = File(...),
    bays: UploadFile = File(...),
    wagons: UploadFile = File(...),
    orders: UploadFile = File(...),
    order_lines: UploadFile = File(...),
    returns: UploadFile | None = File(None),
):
    try:
        csv_text = run_plan_csv(**_frames(items, bays, wagons, orders, order_lines, returns),
                                mode=mode, heuristic=heuristic, capacity=capacity)
    except (FulfillmentError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PlainTextResponse(content=csv_text, media_type="text/csv")
