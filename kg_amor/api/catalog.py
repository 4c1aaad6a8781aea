"""
Category and product endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..error_handlers import AppException, DuplicateResourceError, ResourceNotFoundError
from ..logging_config import get_logger
from ..models import Category, Product
from ..schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)

logger = get_logger("api.catalog")

router = APIRouter(tags=["Catalog"])


def _get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise ResourceNotFoundError("Category", category_id)
    return category


def _get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise ResourceNotFoundError("Product", product_id)
    return product


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    return db.query(Category).order_by(Category.name).all()


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    if db.query(Category).filter(Category.name == payload.name).first():
        raise DuplicateResourceError("Category", "name", payload.name)
    category = Category(**payload.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(category_id: int, payload: CategoryUpdate, db: Session = Depends(get_db)):
    category = _get_category(db, category_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") and changes["name"] != category.name:
        if db.query(Category).filter(Category.name == changes["name"]).first():
            raise DuplicateResourceError("Category", "name", changes["name"])
    for field, value in changes.items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/categories/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db)):
    """Hard delete; refused while products reference the category."""
    category = _get_category(db, category_id)
    in_use = db.query(Product.id).filter(Product.category_id == category_id).count()
    if in_use:
        raise AppException(
            message=f"Category '{category.name}' is used by {in_use} product(s)",
            status_code=409,
            details={"resource": "Category", "identifier": str(category_id), "products": in_use}
        )
    db.delete(category)
    db.commit()
    logger.info(f"[CATALOG] deleted category id={category_id}")
    return {"id": category_id, "deleted": True}


@router.get("/products", response_model=List[ProductResponse])
def list_products(
    category_id: Optional[int] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db)
):
    query = db.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    return query.order_by(Product.name).all()


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    _get_category(db, payload.category_id)
    product = Product(**payload.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info(f"[CATALOG] created product id={product.id} name={product.name}")
    return product


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return _get_product(db, product_id)


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    """Products are never deleted; set ``is_active`` to false instead."""
    product = _get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        _get_category(db, changes["category_id"])
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return product
