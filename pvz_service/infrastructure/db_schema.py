from sqlalchemy import (
    Table, Column, String, Integer, Enum, DateTime, MetaData, ForeignKey, Index, UniqueConstraint, text
)

from pvz_service.domain.models import Role, City, ProductType, ReceptionStatus

metadata = MetaData()


def _values(enum_cls):
    return [member.value for member in enum_cls]


users_tbl = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("email", String, unique=True, nullable=False),
    Column("password", String, nullable=False),
    Column("role", Enum(Role, name="user_role", values_callable=_values), nullable=False),
)


pvz_tbl = Table(
    "pvz",
    metadata,
    Column("id", String, primary_key=True),
    Column("registration_date", DateTime(timezone=True), nullable=False, index=True),
    Column("city", Enum(City, name="pvz_city", values_callable=_values), nullable=False),
)


receptions_tbl = Table(
    "receptions",
    metadata,
    Column("id", String, primary_key=True),
    Column("date_time", DateTime(timezone=True), nullable=False),
    Column("pvz_id", String, ForeignKey("pvz.id"), nullable=False),
    Column("seq", Integer, nullable=False),
    Column(
        "status",
        Enum(ReceptionStatus, name="reception_status", values_callable=_values),
        nullable=False,
        default=ReceptionStatus.IN_PROGRESS,
    ),
    UniqueConstraint("pvz_id", "seq", name="uq_receptions_pvz_seq"),
)

# Не больше одной открытой приемки на ПВЗ
Index(
    "uq_receptions_open_per_pvz",
    receptions_tbl.c.pvz_id,
    unique=True,
    postgresql_where=text("status = 'in_progress'"),
    sqlite_where=text("status = 'in_progress'"),
)

Index("ix_receptions_date_time", receptions_tbl.c.date_time)


products_tbl = Table(
    "products",
    metadata,
    Column("id", String, primary_key=True),
    Column("date_time", DateTime(timezone=True), nullable=False),
    Column("type", Enum(ProductType, name="product_type", values_callable=_values), nullable=False),
    Column("reception_id", String, ForeignKey("receptions.id"), nullable=False),
    Column("seq", Integer, nullable=False),
    UniqueConstraint("reception_id", "seq", name="uq_products_reception_seq"),
)
