from datetime import datetime

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base

QUANTITY = Numeric(12, 3)


class Network(Base):
    __tablename__ = "networks"
    id = Column(Integer, primary_key=True)
    color = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    hex = Column(String(9), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    cells = relationship("Cell", back_populates="network")


class Cell(Base):
    __tablename__ = "cells"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    leader = Column(String(255), nullable=False)
    supervisors = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    network_id = Column(Integer, ForeignKey("networks.id"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    # cached balance of historico_kg, written only by the ledger
    quantity_kg = Column(QUANTITY, nullable=False, default=0)
    kg_version = Column(Integer, nullable=False, default=0)
    kg_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    network = relationship("Network", back_populates="cells")


class HistoricoEntry(Base):
    __tablename__ = "historico_kg"
    __table_args__ = (
        UniqueConstraint("source_transaction_id", "line_index", name="uq_historico_kg_source_line"),
    )
    id = Column(Integer, primary_key=True)
    cell_id = Column(Integer, ForeignKey("cells.id"), nullable=False, index=True)
    quantity = Column(QUANTITY, nullable=False)
    movement_type = Column(String(3), nullable=False)  # IN / OUT
    source_transaction_id = Column(String(100), nullable=False)
    line_index = Column(Integer, nullable=False)
    delivered_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    color = Column(String(9), nullable=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    unit = Column(String(20), nullable=False, default="kg")
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    barcode = Column(String(50), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    category = relationship("Category", back_populates="products")
    stock = relationship("StockBalance", back_populates="product", uselist=False)


class Receipt(Base):
    __tablename__ = "receipts"
    id = Column(Integer, primary_key=True)
    reference = Column(String(100), unique=True, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    status = Column(String(10), nullable=False, default="draft")  # draft / posted / void
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    posted_at = Column(DateTime, nullable=True)

    items = relationship("ReceiptItem", back_populates="receipt", order_by="ReceiptItem.line_index")


class ReceiptItem(Base):
    __tablename__ = "receipt_items"
    __table_args__ = (UniqueConstraint("receipt_id", "line_index", name="uq_receipt_items_line"),)
    id = Column(Integer, primary_key=True)
    receipt_id = Column(Integer, ForeignKey("receipts.id"), nullable=False, index=True)
    line_index = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(QUANTITY, nullable=False)
    unit = Column(String(20), nullable=True)
    expires_at = Column(Date, nullable=True)
    priority = Column(String(10), nullable=False, default="normal")  # normal / urgent
    barcode = Column(String(50), nullable=True)
    lot_code = Column(String(50), nullable=True)

    receipt = relationship("Receipt", back_populates="items")
    product = relationship("Product")


class Withdrawal(Base):
    __tablename__ = "withdrawals"
    id = Column(Integer, primary_key=True)
    reference = Column(String(100), unique=True, nullable=False, index=True)
    responsible_person = Column(String(255), nullable=False)
    sector = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(10), nullable=False, default="draft")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    posted_at = Column(DateTime, nullable=True)

    items = relationship("WithdrawalItem", back_populates="withdrawal", order_by="WithdrawalItem.line_index")


class WithdrawalItem(Base):
    __tablename__ = "withdrawal_items"
    __table_args__ = (UniqueConstraint("withdrawal_id", "line_index", name="uq_withdrawal_items_line"),)
    id = Column(Integer, primary_key=True)
    withdrawal_id = Column(Integer, ForeignKey("withdrawals.id"), nullable=False, index=True)
    line_index = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(QUANTITY, nullable=False)
    unit = Column(String(20), nullable=True)

    withdrawal = relationship("Withdrawal", back_populates="items")
    product = relationship("Product")


class StockBalance(Base):
    __tablename__ = "stock"
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), unique=True, nullable=False)
    quantity_on_hand = Column(QUANTITY, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    last_updated_at = Column(DateTime, default=datetime.utcnow)

    product = relationship("Product", back_populates="stock")


class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (
        UniqueConstraint("source_transaction_id", "line_index", name="uq_stock_movements_source_line"),
    )
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity_delta = Column(QUANTITY, nullable=False)
    movement_type = Column(String(3), nullable=False)  # IN / OUT
    unit = Column(String(20), nullable=True)
    source_transaction_id = Column(String(100), nullable=False, index=True)
    line_index = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    product = relationship("Product")
