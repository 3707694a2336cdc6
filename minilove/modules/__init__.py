"""Domain modules: ORM models and pydantic schemas per area."""
