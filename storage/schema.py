"""Database schema definitions for Usage Stats.

Three relations:
- auth_users: credentialed dashboard accounts (read by the auth gate)
- users: people that appear in usage reports
- daily_stats: one row per (user, date), unique on (user_id, date)

Each dialect gets its own statement list. Statements are executed one at
a time so an "already exists" race on one does not stop the others.
"""

SQLITE_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS auth_users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        name TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL,
        user_name TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_stats (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        date TEXT NOT NULL,
        total_emails INTEGER DEFAULT 0,
        emails_sent INTEGER DEFAULT 0,
        emails_received INTEGER DEFAULT 0,
        files_edited INTEGER DEFAULT 0,
        files_viewed INTEGER DEFAULT 0,
        gmail_imap_last_used TEXT,
        gmail_web_last_used TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id),
        UNIQUE(user_id, date)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_date ON daily_stats(date)",
]

POSTGRES_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS auth_users (
        id SERIAL PRIMARY KEY,
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        name TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        email TEXT UNIQUE NOT NULL,
        user_name TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_stats (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id),
        date TEXT NOT NULL,
        total_emails INTEGER DEFAULT 0,
        emails_sent INTEGER DEFAULT 0,
        emails_received INTEGER DEFAULT 0,
        files_edited INTEGER DEFAULT 0,
        files_viewed INTEGER DEFAULT 0,
        gmail_imap_last_used TEXT,
        gmail_web_last_used TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(user_id, date)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_date ON daily_stats(date)",
]

TABLES = ("auth_users", "users", "daily_stats")

# Errors with these fragments mean another process created the object first.
ALREADY_EXISTS_MARKERS = ("already exists", "pg_type_typname_nsp_index")
