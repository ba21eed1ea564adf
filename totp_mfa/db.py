import os
import sqlite3
from contextlib import contextmanager


def data_dir() -> str:
    base_dir = os.environ.get("TOTP_MFA_DATA_DIR")
    if not base_dir:
        base_dir = os.path.join(os.getcwd(), "data")
    os.makedirs(base_dir, exist_ok=True)
    return base_dir


def _db_path() -> str:
    return os.path.join(data_dir(), "totp_mfa.db")


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            """
            create table if not exists settings (
                key text primary key,
                value text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists totp_secrets (
                user_id text primary key,
                secret_b32 text not null,
                algorithm text not null default 'SHA1',
                digits integer not null default 6,
                period integer not null default 30,
                enabled integer not null default 0,
                last_counter integer not null default -1,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists audit_log (
                id integer primary key autoincrement,
                actor text not null,
                action text not null,
                details text not null,
                created_at text not null
            )
            """
        )
        conn.commit()


@contextmanager
def get_conn():
    conn = sqlite3.connect(_db_path())
    try:
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()
