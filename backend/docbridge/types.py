from sqlalchemy.types import TypeDecorator, JSON as SAJSON
from sqlalchemy.dialects.postgresql import JSONB

class JSONBCompat(TypeDecorator):
    """
    JSON column stored as JSONB on PostgreSQL and as plain JSON elsewhere.
    Lets the mapping model table be created on the SQLite engine used in tests.
    """
    impl = SAJSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(SAJSON())
