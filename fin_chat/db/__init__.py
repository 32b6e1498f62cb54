# =============================================================================
# Database Package - Async SQLAlchemy engine, ORM models and repositories
# =============================================================================
