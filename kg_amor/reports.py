"""Dashboard aggregates built with pandas."""
from datetime import date, datetime, time, timedelta
from typing import Optional

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

from .logging_config import get_logger
from .models import Cell, HistoricoEntry, Network, Product, Receipt, StockMovement, Withdrawal

logger = get_logger("reports")

NO_SUPERVISOR = "N/D"
NO_NETWORK = "SEM REDE"


def _cells_frame(db: Session) -> pd.DataFrame:
    rows = (
        db.query(
            Cell.id, Cell.name, Cell.leader, Cell.supervisors, Cell.quantity_kg,
            Network.color.label("network"),
        )
        .outerjoin(Network, Cell.network_id == Network.id)
        .filter(Cell.is_active.is_(True))
        .all()
    )
    df = pd.DataFrame(
        [tuple(r) for r in rows],
        columns=["id", "name", "leader", "supervisors", "quantity_kg", "network"],
    )
    df["kg"] = df["quantity_kg"].astype(float) if not df.empty else pd.Series(dtype=float)
    return df


def summary(db: Session) -> dict:
    cells = _cells_frame(db)
    total_kg = float(cells["kg"].sum()) if not cells.empty else 0.0
    average_kg = float(cells["kg"].mean()) if not cells.empty else 0.0

    recent = (
        db.query(Receipt)
        .filter(Receipt.status != "void")
        .order_by(Receipt.created_at.desc(), Receipt.id.desc())
        .limit(5)
        .all()
    )
    return {
        "active_cells": len(cells),
        "total_kg": round(total_kg, 3),
        "average_kg": round(average_kg, 3),
        "active_products": db.query(func.count(Product.id)).filter(Product.is_active.is_(True)).scalar() or 0,
        "receipts": db.query(func.count(Receipt.id)).filter(Receipt.status == "posted").scalar() or 0,
        "withdrawals": db.query(func.count(Withdrawal.id)).filter(Withdrawal.status == "posted").scalar() or 0,
        "recent_receipts": [
            {
                "id": r.id,
                "reference": r.reference,
                "status": r.status,
                "created_at": r.created_at.isoformat() if r.created_at else None,
                "items": len(r.items),
            }
            for r in recent
        ],
    }


def rankings(db: Session, top_n: int = 15, network: Optional[str] = None,
             supervisor: Optional[str] = None) -> dict:
    """
    Top cells and supervisors by delivered kg, and every network's total.

    ``network`` and ``supervisor`` narrow the cell set (case-insensitive).
    """
    df = _cells_frame(db)
    if df.empty:
        return {"cells": [], "supervisors": [], "networks": []}

    df["network"] = df["network"].fillna(NO_NETWORK)
    df["supervisors"] = df["supervisors"].fillna("").str.strip().replace("", NO_SUPERVISOR)

    if network:
        df = df[df["network"].str.lower() == network.strip().lower()]
    if supervisor:
        df = df[df["supervisors"].str.lower().str.contains(supervisor.strip().lower(), regex=False)]

    top_cells = df.sort_values(["kg", "name"], ascending=[False, True]).head(top_n)
    by_supervisor = (
        df.groupby("supervisors", as_index=False)["kg"].sum()
        .sort_values(["kg", "supervisors"], ascending=[False, True])
        .head(top_n)
    )
    by_network = (
        df.groupby("network", as_index=False)["kg"].sum()
        .sort_values(["kg", "network"], ascending=[False, True])
    )

    return {
        "cells": [
            {"name": r.name, "kg": round(r.kg, 3), "network": r.network, "leader": r.leader}
            for r in top_cells.itertuples()
        ],
        "supervisors": [
            {"name": r.supervisors, "kg": round(r.kg, 3)} for r in by_supervisor.itertuples()
        ],
        "networks": [
            {"name": r.network, "kg": round(r.kg, 3)} for r in by_network.itertuples()
        ],
    }


def _window(start: date, end: date) -> tuple[datetime, datetime]:
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def activity(db: Session, start: date, end: date, top_n: int = 15) -> dict:
    """
    Active/inactive cells per network and product flow within [start, end].

    A cell is active when it delivered at least once in the window.
    """
    window_start, window_end = _window(start, end)
    logger.info(f"[REPORT] activity {start} .. {end}")

    cells = _cells_frame(db)
    delivered = {
        cell_id
        for (cell_id,) in db.query(HistoricoEntry.cell_id)
        .filter(
            HistoricoEntry.movement_type == "IN",
            HistoricoEntry.delivered_at >= window_start,
            HistoricoEntry.delivered_at < window_end,
        )
        .distinct()
    }

    networks = []
    if not cells.empty:
        cells["network"] = cells["network"].fillna(NO_NETWORK)
        cells["active"] = cells["id"].isin(delivered)
        grouped = cells.groupby("network").agg(active=("active", "sum"), total=("id", "count"))
        for name, row in grouped.sort_index().iterrows():
            networks.append({
                "network": name,
                "active": int(row["active"]),
                "inactive": int(row["total"] - row["active"]),
                "total": int(row["total"]),
            })

    movements = (
        db.query(Product.name, Product.unit, StockMovement.movement_type, StockMovement.quantity_delta)
        .join(Product, StockMovement.product_id == Product.id)
        .filter(StockMovement.created_at >= window_start, StockMovement.created_at < window_end)
        .all()
    )
    flows = pd.DataFrame(
        [tuple(m) for m in movements], columns=["name", "unit", "movement_type", "delta"]
    )
    product_in, product_out = [], []
    if not flows.empty:
        flows["product"] = flows["name"] + " (" + flows["unit"] + ")"
        flows["quantity"] = flows["delta"].astype(float).abs()
        for movement_type, target in (("IN", product_in), ("OUT", product_out)):
            totals = (
                flows[flows["movement_type"] == movement_type]
                .groupby("product", as_index=False)["quantity"].sum()
                .sort_values(["quantity", "product"], ascending=[False, True])
                .head(top_n)
            )
            target.extend(
                {"product": r.product, "quantity": round(r.quantity, 3)} for r in totals.itertuples()
            )

    return {
        "start": start,
        "end": end,
        "networks": networks,
        "product_in": product_in,
        "product_out": product_out,
    }
