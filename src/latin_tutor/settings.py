"""Key/value user settings stored in the database."""
from latin_tutor.db import get_connection


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def delete_setting(db_path: str, key: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM user_settings WHERE key = ?", (key,))
    conn.commit()
    conn.close()


def get_int_setting(db_path: str, key: str, default: int) -> int:
    value = get_setting(db_path, key)
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default
