from flask_sqlalchemy import SQLAlchemy

# Shared database instance for ORM models
# expire_on_commit=False: merge results are serialised after the commit

db = SQLAlchemy(session_options={"expire_on_commit": False})

# SQLite only auto-increments INTEGER primary keys
BigInt = db.BigInteger().with_variant(db.Integer, "sqlite")

__all__ = ["db", "BigInt"]
