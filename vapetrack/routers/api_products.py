from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.products import (
    create_product,
    create_variants,
    get_product,
    list_damaged_products,
    list_products,
    list_tester_products,
    mark_damaged,
    restock_product,
    set_tester_quantity,
    update_product,
)
from ..db.session import get_db
from ..deps.auth import get_current_user, require_admin
from ..models.product import Product
from ..models.user import ManagedUser
from ..schemas.product import (
    AcquisitionBatchOut,
    DamagedProductOut,
    DamageRequest,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    ProductUpdateOut,
    ProductVariantsCreate,
    RestockRequest,
    TesterProductOut,
    TesterUpdate,
)

router = APIRouter(prefix="/api/products", tags=["products"], dependencies=[Depends(get_current_user)])


def _product_or_404(db: Session, product_id: int) -> Product:
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("", response_model=list[ProductOut])
def api_list_products(category: str | None = None, db: Session = Depends(get_db)):
    return list_products(db, category=category)


@router.post("", response_model=ProductOut, status_code=201)
def api_create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    return create_product(db, payload.model_dump(), actor=user.name)


@router.post("/variants", response_model=list[ProductOut], status_code=201)
def api_create_variants(
    payload: ProductVariantsCreate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    return create_variants(db, payload.model_dump(), actor=user.name)


@router.get("/testers", response_model=list[TesterProductOut])
def api_list_testers(db: Session = Depends(get_db)):
    return list_tester_products(db)


@router.get("/damaged", response_model=list[DamagedProductOut])
def api_list_damaged(db: Session = Depends(get_db)):
    return list_damaged_products(db)


@router.get("/{product_id}", response_model=ProductOut)
def api_get_product(product_id: int, db: Session = Depends(get_db)):
    return _product_or_404(db, product_id)


@router.put("/{product_id}", response_model=ProductUpdateOut)
def api_update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    product = _product_or_404(db, product_id)
    product, changed = update_product(db, product, payload.model_dump(exclude_unset=True), actor=user.name)
    message = "Product updated." if changed else "No changes detected."
    return {"message": message, "product": product}


@router.get("/{product_id}/batches", response_model=list[AcquisitionBatchOut])
def api_product_batches(product_id: int, db: Session = Depends(get_db)):
    return _product_or_404(db, product_id).acquisition_batches


@router.post("/{product_id}/restock", response_model=ProductOut)
def api_restock_product(
    product_id: int,
    payload: RestockRequest,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    product = _product_or_404(db, product_id)
    return restock_product(db, product, payload.model_dump(), actor=user.name)


@router.put("/{product_id}/testers", response_model=ProductUpdateOut)
def api_set_testers(
    product_id: int,
    payload: TesterUpdate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    product = _product_or_404(db, product_id)
    product, changed = set_tester_quantity(db, product, payload.tester_quantity, actor=user.name)
    message = "Tester quantity updated." if changed else "No change in tester quantity."
    return {"message": message, "product": product}


@router.post("/{product_id}/damage", response_model=ProductOut)
def api_mark_damaged(
    product_id: int,
    payload: DamageRequest,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    product = _product_or_404(db, product_id)
    return mark_damaged(db, product, payload.quantity, actor=user.name, comment=payload.comment)
