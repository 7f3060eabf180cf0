"""
Billing, pharmacy stock, general inventory and the clinic service catalogue.
"""

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text

from ..base import EntityMixin, JSONValue, TenantBase


class Invoice(TenantBase, EntityMixin):
    """Invoice with line items stored as a list of {description, quantity, rate, amount}."""

    __tablename__ = "invoices"

    invoice_number = Column(String(50), unique=True, nullable=False)
    doctor_id = Column(String(36), nullable=False)
    patient_id = Column(String(36), nullable=False, index=True)
    appointment_id = Column(String(36), nullable=True)
    items = Column(JSONValue, default=list, nullable=False)
    subtotal = Column(Float, nullable=False)
    tax_percent = Column(Float, default=0, nullable=False)
    discount_percent = Column(Float, default=0, nullable=False)
    tax = Column(Float, default=0, nullable=False)
    discount = Column(Float, default=0, nullable=False)
    total = Column(Float, nullable=False)
    status = Column(String(20), default="draft", nullable=False, index=True, comment="draft | sent | paid | cancelled")
    due_date = Column(DateTime(timezone=True), nullable=False)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, default="", nullable=False)

    __table_args__ = (Index("idx_invoices_doctor_created", "doctor_id", "created_at"),)


class ServiceItem(TenantBase, EntityMixin):
    __tablename__ = "service_items"

    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    description = Column(Text, default="", nullable=False)
    price = Column(Float, nullable=False)
    duration = Column(Integer, default=30, nullable=False, comment="Minutes")
    is_active = Column(Boolean, default=True, nullable=False)


class PharmacyItem(TenantBase, EntityMixin):
    __tablename__ = "pharmacy_items"

    name = Column(String(255), nullable=False)
    generic_name = Column(String(255), nullable=True)
    category = Column(String(100), nullable=False)
    manufacturer = Column(String(255), nullable=True)
    batch_number = Column(String(100), nullable=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    quantity = Column(Integer, default=0, nullable=False)
    unit = Column(String(20), default="units", nullable=False)
    purchase_price = Column(Float, default=0, nullable=False)
    selling_price = Column(Float, default=0, nullable=False)
    reorder_level = Column(Integer, default=10, nullable=False)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    requires_prescription = Column(Boolean, default=False, nullable=False)
    added_by = Column(String(36), nullable=True)


class PharmacyTransaction(TenantBase, EntityMixin):
    __tablename__ = "pharmacy_transactions"

    item_id = Column(String(36), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    transaction_type = Column(
        String(20),
        nullable=False,
        comment="purchase | sale | adjustment | return | expired",
    )
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, default=0, nullable=False)
    performed_by = Column(String(36), nullable=True)
    patient_id = Column(String(36), nullable=True)
    notes = Column(Text, default="", nullable=False)
    reference_number = Column(String(100), nullable=True)


class InventoryItem(TenantBase, EntityMixin):
    __tablename__ = "inventory_items"

    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    description = Column(Text, default="", nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    unit = Column(String(20), default="units", nullable=False)
    purchase_price = Column(Float, default=0, nullable=False)
    selling_price = Column(Float, default=0, nullable=False)
    reorder_level = Column(Integer, default=5, nullable=False)
    supplier = Column(String(255), default="", nullable=False)
    location = Column(String(255), default="", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    added_by = Column(String(36), nullable=True)
