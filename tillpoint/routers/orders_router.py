import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query

from tillpoint.db.session import Till, get_till
from tillpoint.schemas import (
    AddItemsRequest,
    CreateOrderRequest,
    ItemAdjustment,
    OrderWithItems,
    UpdateNotesRequest,
)
from tillpoint.services.orders import OrderLedger
from tillpoint.services.reports import Reports

router = APIRouter()


def get_ledger(till: Till = Depends(get_till)) -> OrderLedger:
    return OrderLedger(till)


def get_reports(till: Till = Depends(get_till)) -> Reports:
    return Reports(till)


@router.post("", response_model=OrderWithItems)
def create_order(req: CreateOrderRequest, ledger: OrderLedger = Depends(get_ledger)):
    return ledger.create_order(
        req.staff_id, req.table_number, req.items,
        customer_name=req.customer_name, notes=req.notes,
    )


@router.get("/open", response_model=list[OrderWithItems])
def open_orders(reports: Reports = Depends(get_reports)):
    return reports.open_orders()


@router.get("/today", response_model=list[OrderWithItems])
def today_orders(reports: Reports = Depends(get_reports)):
    return reports.today_orders()


@router.get("/range", response_model=list[OrderWithItems])
def orders_by_date_range(
    start: dt.date = Query(...),
    end: dt.date = Query(...),
    reports: Reports = Depends(get_reports),
):
    if start > end:
        raise HTTPException(status_code=400, detail="start must be on or before end")
    return reports.orders_by_date_range(start, end)


@router.get("/{order_id}", response_model=OrderWithItems)
def get_order(order_id: int, reports: Reports = Depends(get_reports)):
    return reports.get_order(order_id)


@router.post("/{order_id}/items", response_model=OrderWithItems)
def add_items(order_id: int, req: AddItemsRequest, ledger: OrderLedger = Depends(get_ledger)):
    return ledger.add_items(order_id, req.items)


@router.post("/{order_id}/pay", response_model=OrderWithItems)
def mark_paid(order_id: int, ledger: OrderLedger = Depends(get_ledger)):
    return ledger.mark_paid(order_id)


@router.patch("/{order_id}/notes", response_model=OrderWithItems)
def update_notes(order_id: int, req: UpdateNotesRequest, ledger: OrderLedger = Depends(get_ledger)):
    return ledger.update_order_notes(order_id, req.customer_name, req.notes)


@router.post("/items/{item_id}/decrease", response_model=ItemAdjustment)
def decrease_item(item_id: int, ledger: OrderLedger = Depends(get_ledger)):
    order = ledger.decrease_item_quantity(item_id)
    return ItemAdjustment(order_deleted=order is None, order=order)


@router.post("/items/{item_id}/increase", response_model=OrderWithItems)
def increase_item(item_id: int, ledger: OrderLedger = Depends(get_ledger)):
    return ledger.increase_item_quantity(item_id)
