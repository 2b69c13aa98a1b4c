
def _normalize_db_url(url: str | None) -> str | None:
    # hosted postgres hands out "postgres://..." , SQLAlchemy async needs "postgresql+asyncpg://..."
    if not url:
        return None
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url
