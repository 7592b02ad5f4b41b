# src/bag_planner/ingest/loader.py
from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Dict, Set

import pandas as pd

from ..scheduling.catalog import MachineSpec, machine_from_record

logger = logging.getLogger("bag_planner.ingest")

# ===================== Header synonyms (lowercase) =====================

ORDER_SYNONYMS: Dict[str, Set[str]] = {
    "order_id": {"order_id", "order id", "order", "order no", "po"},
    "bag_name": {"bag_name", "bag name", "bagname", "name", "product", "description"},
    "sku": {"sku", "sap code", "sap_code", "sapcode", "material", "article"},
    "quantity": {"quantity", "qty", "orderqty", "order qty", "order_qty", "cartons", "bags"},
    "unit": {"unit", "orderunit", "order unit", "order_unit", "uom"},
    "bags_per_carton": {"bags_per_carton", "bags per carton", "bagspercarton", "pcs/carton"},
    "width": {"width", "w", "width (mm)", "width_mm"},
    "height": {"height", "h", "height (mm)", "height_mm"},
    "gusset": {"gusset", "g", "gusset (mm)", "gusset_mm"},
    "gsm": {"gsm", "paper gsm", "paper_gsm", "grammage"},
    "handle_type": {"handle_type", "handle type", "handletype", "handle"},
    "colors": {"colors", "colours", "color", "no of colors", "print colors"},
    "delivery_days": {"delivery_days", "delivery days", "deliverydays", "lead time", "delivery"},
}

MACHINE_SYNONYMS: Dict[str, Set[str]] = {
    "machine_id": {"machine_id", "machine id", "id", "machine"},
    "name": {"name", "machine name"},
    "category": {"category", "family", "type"},
    "description": {"description"},
    "supported_handles": {"supported_handles", "handle type", "handle_type", "handles"},
    "max_colors": {"max_colors", "max colors", "colors"},
    "min_width": {"min_width", "min width", "minwidth"},
    "max_width": {"max_width", "max width", "maxwidth"},
    "max_height": {"max_height", "max height", "maxheight"},
    "max_gusset": {"max_gusset", "max gusset", "maxgusset"},
    "min_gsm": {"min_gsm", "min gsm", "mingsm"},
    "max_gsm": {"max_gsm", "max gsm", "maxgsm"},
    "daily_capacity": {"daily_capacity", "daily capacity", "dailycapacity", "capacity"},
    "hourly_capacity": {"hourly_capacity", "hourly capacity", "bags per hour", "bagsperhour"},
    "working_hours_per_day": {"working_hours_per_day", "working hours", "hours per day"},
    "setup_time_minutes": {"setup_time_minutes", "setup time", "setuptime", "setup (min)", "setup"},
    "efficiency": {"efficiency"},
    "operator_cost_per_hour": {"operator_cost_per_hour", "operator cost", "operatorcost"},
    "energy_cost_per_hour": {"energy_cost_per_hour", "energy cost", "energycost"},
    "maintenance_cost_per_day": {"maintenance_cost_per_day", "maintenance", "maintenance cost"},
    "status": {"status"},
}

NUMERIC_ORDER_COLS = ("quantity", "bags_per_carton", "width", "height", "gusset", "gsm", "colors", "delivery_days")

# ===================== Helpers =====================


def read_table(path: str | Path) -> pd.DataFrame:
    p = Path(path)
    if p.suffix.lower() == ".csv":
        return pd.read_csv(p, dtype=object)
    return pd.read_excel(p, sheet_name=0, dtype=object, engine="openpyxl")


def _rename_by_synonyms(df: pd.DataFrame, synonyms: dict[str, Set[str]]) -> pd.DataFrame:
    lower_map = {str(c).strip().lower(): c for c in df.columns}
    rename = {}
    for canon, syns in synonyms.items():
        for s in [canon, *sorted(syns)]:
            if s in lower_map and lower_map[s] not in rename:
                rename[lower_map[s]] = canon
                break
    return df.rename(columns=rename)


def _clean(v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, float) and math.isnan(v):
        return None
    if isinstance(v, str):
        s = v.strip()
        if not s or s.lower() in {"nan", "none", "null", "-"}:
            return None
        return s
    return v


def _text(v: Any) -> str | None:
    v = _clean(v)
    if v is None:
        return None
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    return str(v)


def _to_number(v: Any) -> Any:
    v = _clean(v)
    if v is None or isinstance(v, (int, float)):
        return v
    s = str(v).replace(",", "").replace(" ", "")
    try:
        return float(s)
    except ValueError:
        # keep the raw text so validation reports it against the row
        return v

# --------------------- Orders ---------------------


def orders_from_frame(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Normalize an order sheet into raw order records (not yet validated)."""
    if df is None or df.empty:
        return []
    df = _rename_by_synonyms(df, ORDER_SYNONYMS)
    if "quantity" not in df.columns:
        raise ValueError(f"orders: no quantity column. Found: {list(df.columns)}")
    known = [c for c in ORDER_SYNONYMS if c in df.columns]
    rows = []
    for rec in df[known].to_dict(orient="records"):
        row = {}
        for k, v in rec.items():
            row[k] = _to_number(v) if k in NUMERIC_ORDER_COLS else _text(v)
        if all(v is None for v in row.values()):
            continue
        rows.append(row)
    logger.info("orders: %d rows read", len(rows))
    return rows


def load_orders(path: str | Path) -> list[dict[str, Any]]:
    return orders_from_frame(read_table(path))

# --------------------- Machines ---------------------


def machines_from_frame(df: pd.DataFrame) -> list[MachineSpec]:
    df = _rename_by_synonyms(df, MACHINE_SYNONYMS)
    missing = {"machine_id", "daily_capacity", "hourly_capacity"} - set(df.columns)
    if missing:
        raise ValueError(f"machines: missing {sorted(missing)}. Found: {list(df.columns)}")
    text_cols = {"machine_id", "name", "category", "description", "supported_handles", "status"}
    out = []
    for rec in df[[c for c in MACHINE_SYNONYMS if c in df.columns]].to_dict(orient="records"):
        row = {k: (_text(v) if k in text_cols else _to_number(v)) for k, v in rec.items()}
        if row.get("machine_id") is None:
            continue
        if row.get("status"):
            row["status"] = str(row["status"]).lower()
        if row.get("max_colors") is not None:
            row["max_colors"] = int(row["max_colors"])
        out.append(machine_from_record(row))
    logger.info("machines: %d rows read", len(out))
    return out


def load_machines(path: str | Path) -> list[MachineSpec]:
    return machines_from_frame(read_table(path))
