from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pathlib import Path
from datetime import date
import json
import os

app = FastAPI(title="Mock Rates Server", version="1.0.0")
# Support both local development and Docker
DATA_DIR = Path("/rates_stub") if os.path.exists("/rates_stub") else Path(__file__).resolve().parent / "data"

@app.get("/health")
def health(): return {"status": "ok"}

def _published() -> dict:
    """Snapshots keyed by ISO date, units per 1 USD"""
    return json.loads((DATA_DIR / "rates.json").read_text())

def _respond(day: str, base: str, to: str | None):
    if base.upper() != "USD":
        raise HTTPException(status_code=422, detail="only USD base is published")
    rates = _published()[day]
    if to:
        wanted = {code.strip().upper() for code in to.split(",")}
        rates = {code: value for code, value in rates.items() if code in wanted}
    return JSONResponse(content={"amount": 1.0, "base": "USD", "date": day, "rates": rates})

@app.get("/latest")
def latest(to: str | None = None, base: str = Query("USD", alias="from")):
    return _respond(max(_published()), base, to)

@app.get("/{on}")
def historical(on: date, to: str | None = None, base: str = Query("USD", alias="from")):
    published = sorted(_published())
    # Like Frankfurter: fall back to the last publication on or before the date
    candidates = [d for d in published if d <= on.isoformat()]
    if not candidates:
        raise HTTPException(status_code=404, detail="no rates published for that date")
    return _respond(candidates[-1], base, to)
