"""
SQLAlchemy 2.x ORM models for the pallet planner.

Models use the Mapped[] type annotation syntax and mapped_column.
Every table carries soft-delete metadata through SoftDeleteMixin.

Ownership runs one way: orders own their items and pallets, pallets own
their pallet items. A pallet item points back at its order item by id
only, and an invoice is looked up by order id.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from pallet_planner.db.validators import (
    validate_gln,
    validate_packing_coefficient,
    validate_positive_quantity,
    validate_tax_id,
    validate_unit_price,
)
from pallet_planner.domain.enums import ProductGroupName


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "pk": "pk_%(table_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "chk_%(table_name)s_%(constraint_name)s",
        }
    )


class SoftDeleteMixin:
    """
    Soft-delete metadata shared by all entities.

    Soft delete is a state flag, never a physical removal. Queries filter
    on ``is_deleted = false`` unless asked to include deleted rows.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def soft_delete(self) -> None:
        self.is_deleted = True
        self.updated_at = utcnow()

    def restore(self) -> None:
        self.is_deleted = False
        self.updated_at = utcnow()

    @property
    def is_active(self) -> bool:
        return not self.is_deleted


class Counteragent(SoftDeleteMixin, Base):
    """Counterparty (customer or supplier) identified by its tax id."""

    __tablename__ = "counteragents"
    __table_args__ = (CheckConstraint("length(inn) IN (10, 12)", name="inn_length"),)

    inn: Mapped[str] = mapped_column(String(12), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    @validates("inn")
    def _validate_inn(self, key: str, value: str) -> str:
        return validate_tax_id(key, value)

    def __repr__(self) -> str:
        return f"<Counteragent(inn={self.inn}, name={self.name})>"


class Warehouse(SoftDeleteMixin, Base):
    """Delivery warehouse identified by its 13-digit GLN."""

    __tablename__ = "warehouses"
    __table_args__ = (CheckConstraint("length(gln) = 13", name="gln_length"),)

    gln: Mapped[str] = mapped_column(String(13), primary_key=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    short_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @validates("gln")
    def _validate_gln(self, key: str, value: str) -> str:
        return validate_gln(key, value)

    def __repr__(self) -> str:
        return f"<Warehouse(gln={self.gln}, region={self.region})>"


class ProductGroup(SoftDeleteMixin, Base):
    """Material family that decides which products may share a pallet."""

    __tablename__ = "product_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[ProductGroupName] = mapped_column(
        Enum(
            ProductGroupName,
            name="product_group_name",
            create_constraint=True,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        unique=True,
    )

    def __repr__(self) -> str:
        return f"<ProductGroup(id={self.id}, name={self.name})>"


class Product(SoftDeleteMixin, Base):
    """
    Catalog product.

    The packing coefficient is the number of capacity-units one item
    occupies on a pallet. It may be unset for products that were never
    measured; the packer then refuses to place them.
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint(
            "packing_coefficient IS NULL OR packing_coefficient > 0",
            name="packing_coefficient_positive",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    internal_barcode: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    external_barcode: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    internal_sku: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    external_sku: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    packing_coefficient: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 4, asdecimal=True), nullable=True
    )
    group_id: Mapped[int] = mapped_column(ForeignKey("product_groups.id"), nullable=False)

    # Relationships
    group: Mapped["ProductGroup"] = relationship("ProductGroup")

    @validates("packing_coefficient")
    def _validate_coefficient(self, key: str, value: Decimal | None) -> Decimal | None:
        return validate_packing_coefficient(key, value)

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, internal_sku={self.internal_sku}, name={self.name})>"


class Order(SoftDeleteMixin, Base):
    """Customer order owning its line items and pallets."""

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("delivery_date >= order_date", name="delivery_after_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    counteragent_inn: Mapped[str] = mapped_column(
        ForeignKey("counteragents.inn"), nullable=False, index=True
    )
    warehouse_gln: Mapped[str] = mapped_column(
        ForeignKey("warehouses.gln"), nullable=False, index=True
    )

    # Relationships
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    pallets: Mapped[list["Pallet"]] = relationship(
        "Pallet", cascade="all, delete-orphan", order_by="Pallet.id"
    )

    @validates("order_date", "delivery_date")
    def _validate_dates(self, key: str, value: date) -> date:
        other = self.delivery_date if key == "order_date" else self.order_date
        if other is not None and value is not None:
            order_date, delivery_date = (value, other) if key == "order_date" else (other, value)
            if delivery_date < order_date:
                raise ValueError(
                    f"Delivery date {delivery_date} is before order date {order_date}"
                )
        return value

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, number={self.number}, delivery_date={self.delivery_date})>"


class OrderItem(SoftDeleteMixin, Base):
    """One product line of an order."""

    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2, asdecimal=True), nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship("Product")

    @validates("quantity")
    def _validate_quantity(self, key: str, value: int) -> int:
        return validate_positive_quantity(key, value)

    @validates("unit_price")
    def _validate_unit_price(self, key: str, value: Decimal) -> Decimal:
        return validate_unit_price(key, value)

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

    def __repr__(self) -> str:
        return (
            f"<OrderItem(id={self.id}, order_id={self.order_id}, "
            f"product_id={self.product_id}, quantity={self.quantity})>"
        )


class Pallet(SoftDeleteMixin, Base):
    """
    A pallet of one order.

    The pallet number is its position among the order's pallets (by id),
    not a stored column.
    """

    __tablename__ = "pallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships
    items: Mapped[list["PalletItem"]] = relationship(
        "PalletItem", cascade="all, delete-orphan", order_by="PalletItem.position"
    )

    def __repr__(self) -> str:
        return f"<Pallet(id={self.id}, order_id={self.order_id})>"


class PalletItem(SoftDeleteMixin, Base):
    """Quantity of one order item placed on one pallet."""

    __tablename__ = "pallet_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="quantity_positive"),)

    pallet_id: Mapped[int] = mapped_column(
        ForeignKey("pallets.id", ondelete="CASCADE"), primary_key=True
    )
    order_item_id: Mapped[int] = mapped_column(
        ForeignKey("order_items.id", ondelete="CASCADE"), primary_key=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # Placement order within the pallet
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @validates("quantity")
    def _validate_quantity(self, key: str, value: int) -> int:
        return validate_positive_quantity(key, value)

    def __repr__(self) -> str:
        return (
            f"<PalletItem(pallet_id={self.pallet_id}, order_item_id={self.order_item_id}, "
            f"quantity={self.quantity})>"
        )


class Invoice(SoftDeleteMixin, Base):
    """Invoice issued for an order; at most one per order."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    counteragent_inn: Mapped[str] = mapped_column(
        ForeignKey("counteragents.inn"), nullable=False, index=True
    )
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2, asdecimal=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.number}, order_id={self.order_id})>"
