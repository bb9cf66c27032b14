"""SQLAlchemy models for the unified business schema."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()
DocumentBase = declarative_base()


class ProductCategory(Base):
    """High-level product grouping, unique by name within a business."""

    __tablename__ = "product_category"

    category_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    category_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    __table_args__ = (Index("idx_category_business_name", "business_id", "category_name"),)

    def __repr__(self):
        return f"<ProductCategory(id={self.category_id}, name={self.category_name})>"


class ProductBrand(Base):
    """Product brand, unique by name within a business."""

    __tablename__ = "product_brand"

    brand_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    brand_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    unit_price = Column(Float, nullable=True)

    __table_args__ = (Index("idx_brand_business_name", "business_id", "brand_name"),)

    def __repr__(self):
        return f"<ProductBrand(id={self.brand_id}, name={self.brand_name})>"


class Supplier(Base):
    __tablename__ = "supplier"

    supplier_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    supplier_name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)


class Customer(Base):
    __tablename__ = "customer"

    customer_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    billing_address = Column(Text, nullable=True)
    shipping_address = Column(Text, nullable=True)
    customer_type = Column(String(50), nullable=True)


class Investor(Base):
    __tablename__ = "investor"

    investor_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    investor_name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    initial_investment_date = Column(String(40), nullable=True)
    investment_terms = Column(Text, nullable=True)
    status = Column(String(50), nullable=True)


class Investment(Base):
    __tablename__ = "investment"

    investment_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    investor_id = Column(Integer, nullable=True)
    investment_amount = Column(Float, nullable=True)
    investment_date = Column(String(40), nullable=True)


class InvestorsCapital(Base):
    __tablename__ = "investors_capital"

    capital_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    investor_id = Column(Integer, nullable=True)
    calculation_date = Column(String(40), nullable=True)
    current_capital = Column(Float, nullable=True)
    total_invested = Column(Float, nullable=True)
    total_returned = Column(Float, nullable=True)
    net_capital = Column(Float, nullable=True)
    current_roi = Column(Float, nullable=True)
    profit_share_paid = Column(Float, nullable=True)
    last_profit_calculation_date = Column(String(40), nullable=True)
    notes = Column(Text, nullable=True)


class Product(Base):
    """One physical unit of stock. The key is supplied by the caller."""

    __tablename__ = "product"

    product_id = Column(String(100), primary_key=True)
    business_id = Column(String(36), nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("product_category.category_id"), nullable=True)
    brand_id = Column(Integer, ForeignKey("product_brand.brand_id"), nullable=True)
    supplier_id = Column(Integer, ForeignKey("supplier.supplier_id"), nullable=True)
    price = Column(Float, nullable=True)
    selling_price = Column(Float, nullable=True)
    status = Column(String(50), nullable=True)
    created_date = Column(String(40), nullable=True)
    expense = Column(Float, nullable=True)
    stored_location = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<Product(id={self.product_id}, name={self.product_name})>"


class PurchaseOrder(Base):
    __tablename__ = "purchase_order"

    purchase_order_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    supplier_id = Column(Integer, nullable=True)
    order_date = Column(String(40), nullable=True)
    delivery_date = Column(String(40), nullable=True)
    status = Column(String(50), nullable=True)
    total_amount = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    # Internal row key; not part of the mapping catalog
    line_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    purchase_order_id = Column(Integer, nullable=True)
    product_brand_id = Column(Integer, nullable=True)
    quantity_ordered = Column(Integer, nullable=True)
    unit_cost = Column(Float, nullable=True)
    line_total = Column(Float, nullable=True)


class SalesOrder(Base):
    __tablename__ = "sales_order"

    sales_order_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    customer_id = Column(Integer, nullable=True)
    order_date = Column(String(40), nullable=True)
    status = Column(String(50), nullable=True)
    total_amount = Column(Float, nullable=True)
    shipping_address = Column(Text, nullable=True)
    product_received_date = Column(String(40), nullable=True)


class SalesOrderItem(Base):
    __tablename__ = "sales_order_items"

    line_id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), nullable=False, index=True)
    sales_order_id = Column(Integer, nullable=True)
    product_id = Column(String(100), nullable=True)
    line_total = Column(Float, nullable=True)


class SourceDocument(DocumentBase):
    """Schema-less spreadsheet row, stored per collection."""

    __tablename__ = "source_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection_id = Column(String(255), nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
