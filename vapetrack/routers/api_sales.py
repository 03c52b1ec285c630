from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.sales import (
    adjust_sale,
    create_sale,
    customer_summary,
    delete_sale,
    flag_sale,
    get_sale,
    list_sales,
    resolve_flag,
    settle_sale_due,
)
from ..db.session import get_db
from ..deps.auth import get_current_user, require_admin
from ..models.sale import Sale
from ..models.user import ManagedUser
from ..schemas.sale import (
    CustomerSummaryOut,
    ResolveFlagRequest,
    SaleAdjust,
    SaleCreate,
    SaleFlagRequest,
    SaleOut,
    SettlePaymentRequest,
)

router = APIRouter(prefix="/api/sales", tags=["sales"], dependencies=[Depends(get_current_user)])


def _sale_or_404(db: Session, sale_id: int) -> Sale:
    sale = get_sale(db, sale_id)
    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found")
    return sale


@router.get("", response_model=list[SaleOut])
def api_list_sales(
    date: str | None = None,
    month_year: str | None = None,
    status: str | None = None,
    flagged_comment_text: str | None = None,
    customer: str | None = None,
    db: Session = Depends(get_db),
):
    return list_sales(
        db,
        date=date,
        month_year=month_year,
        status=status,
        flagged_comment_text=flagged_comment_text,
        customer=customer,
    )


@router.post("", response_model=SaleOut, status_code=201)
def api_create_sale(
    payload: SaleCreate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(get_current_user),
):
    return create_sale(db, payload.model_dump(), actor=user.name)


@router.get("/customers", response_model=list[CustomerSummaryOut])
def api_customers(db: Session = Depends(get_db)):
    return customer_summary(db)


@router.get("/{sale_id}", response_model=SaleOut)
def api_get_sale(sale_id: int, db: Session = Depends(get_db)):
    return _sale_or_404(db, sale_id)


@router.put("/{sale_id}", response_model=SaleOut)
def api_adjust_sale(
    sale_id: int,
    payload: SaleAdjust,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(get_current_user),
):
    sale = _sale_or_404(db, sale_id)
    return adjust_sale(db, sale, payload.model_dump(exclude_unset=True), actor=user.name)


@router.post("/{sale_id}/flag", response_model=SaleOut)
def api_flag_sale(
    sale_id: int,
    payload: SaleFlagRequest,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(get_current_user),
):
    sale = _sale_or_404(db, sale_id)
    return flag_sale(db, sale, payload.model_dump(), actor=user.name)


@router.post("/{sale_id}/resolve-flag", response_model=SaleOut)
def api_resolve_flag(
    sale_id: int,
    payload: ResolveFlagRequest,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(get_current_user),
):
    sale = _sale_or_404(db, sale_id)
    return resolve_flag(db, sale, payload.comment, actor=user.name)


@router.post("/{sale_id}/payments", response_model=SaleOut)
def api_settle_sale(
    sale_id: int,
    payload: SettlePaymentRequest,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(get_current_user),
):
    sale = _sale_or_404(db, sale_id)
    return settle_sale_due(db, sale, payload.amount, payload.method.value, actor=user.name)


@router.delete("/{sale_id}")
def api_delete_sale(
    sale_id: int,
    reason: str | None = None,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    sale = _sale_or_404(db, sale_id)
    delete_sale(db, sale, reason, actor=user.name)
    return {"message": f"Sale {sale_id} deleted successfully."}
