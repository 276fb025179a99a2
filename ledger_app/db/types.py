"""Column types shared by the ledger tables."""
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# Free-form dimension tags: JSONB on PostgreSQL, JSON text elsewhere (SQLite in tests)
Dimensions = JSON().with_variant(JSONB(), "postgresql")
