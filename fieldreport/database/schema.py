from fieldreport.database.connection import get_connection

# Two independent tables; audit rows are not tied to documents by a foreign key.
SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS report_documents (
        local_id TEXT PRIMARY KEY,
        payload JSONB NOT NULL,
        lifecycle_state TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_events (
        event_id TEXT PRIMARY KEY,
        occurred_at TIMESTAMPTZ NOT NULL,
        actor TEXT NOT NULL,
        action_kind TEXT NOT NULL,
        field_path TEXT,
        old_value TEXT,
        new_value TEXT,
        metadata JSONB
    )
    """,
)


def create_schema() -> None:
    """Create the local store tables if they do not exist yet."""
    with get_connection() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
        conn.commit()
