"""Create all tables for local development (no migrations yet)."""
from app.db import registry  # noqa: F401  (registers every table on Base.metadata)
from app.db.base import Base
from app.db.session import engine

def main():
    Base.metadata.create_all(bind=engine)
    print("Created tables:", sorted(Base.metadata.tables))

if __name__ == "__main__":
    main()
