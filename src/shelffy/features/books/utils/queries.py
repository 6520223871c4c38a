"""Books SQL query constants.

All queries are parameterized by schema so the table can live outside
``public``.
"""

# =====================================================================================
# SCHEMA
# =====================================================================================

BOOKS_TABLE_CREATE = """
    CREATE TABLE IF NOT EXISTS {schema}.books (
        id UUID PRIMARY KEY,
        title TEXT NOT NULL,
        path TEXT NOT NULL UNIQUE,
        hash BYTEA NOT NULL CHECK (octet_length(hash) = 32),
        uploaded_by UUID NOT NULL,
        uploaded_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

BOOKS_INDEX_OWNER_TITLE = """
    CREATE INDEX IF NOT EXISTS books_uploaded_by_title_idx
    ON {schema}.books (uploaded_by, title)
"""

BOOKS_INDEX_HASH = """
    CREATE INDEX IF NOT EXISTS books_hash_idx
    ON {schema}.books (hash)
"""

# =====================================================================================
# BOOK QUERIES
# =====================================================================================

BOOK_INSERT = """
    INSERT INTO {schema}.books (id, title, path, hash, uploaded_by)
    VALUES ($1, $2, $3, $4, $5)
    RETURNING id, title, path, hash, uploaded_by, uploaded_at
"""

BOOK_GET_BY_ID = """
    SELECT id, title, path, hash, uploaded_by, uploaded_at
    FROM {schema}.books
    WHERE id = $1
"""

BOOK_GET_BY_ID_FOR_UPDATE = BOOK_GET_BY_ID + "    FOR UPDATE\n"

BOOK_GET_BY_TITLE_AND_USER_ID = """
    SELECT id, title, path, hash, uploaded_by, uploaded_at
    FROM {schema}.books
    WHERE title = $1 AND uploaded_by = $2
    ORDER BY uploaded_at DESC
    LIMIT 1
"""

BOOK_GET_MANY_BY_USER_ID = """
    SELECT id, title, path, hash, uploaded_by, uploaded_at
    FROM {schema}.books
    WHERE uploaded_by = $1
    ORDER BY uploaded_at DESC, id
    LIMIT $2 OFFSET $3
"""

BOOK_GET_BY_HASH = """
    SELECT id, title, path, hash, uploaded_by, uploaded_at
    FROM {schema}.books
    WHERE hash = $1
    ORDER BY uploaded_at
"""

BOOK_DELETE = """
    DELETE FROM {schema}.books WHERE id = $1
"""
