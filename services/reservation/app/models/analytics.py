from sqlalchemy import BigInteger, Column, Integer, String, Table, Text
from app.core.database import analytics_metadata

# Linhas já transformadas: chaves em snake_case, datas em ISO-8601, JSON serializado em texto
reservations_history = Table(
    "reservations_history",
    analytics_metadata,
    Column("id", String(36), primary_key=True),
    Column("tenant_id", String(36), nullable=False, index=True),
    Column("org_id", String(36), nullable=False, index=True),
    Column("staff_id", String(36), nullable=False),
    Column("customer_id", String(36), nullable=True),
    Column("customer_name", String(255), nullable=True),
    Column("staff_name", String(255), nullable=True),
    Column("menus", Text, nullable=True),
    Column("start_time", String(40), nullable=False),
    Column("end_time", String(40), nullable=False),
    Column("duration_minutes", BigInteger, nullable=True),
    Column("status", String(16), nullable=False),
    Column("payment_method", String(16), nullable=True),
    Column("payment_status", String(16), nullable=True),
    Column("total_price", Integer, nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", String(40), nullable=True),
    Column("updated_at", String(40), nullable=True),
    Column("migrated_at", String(40), nullable=False),
)
