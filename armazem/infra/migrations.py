# armazem/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabela chave/valor com documentos JSON (uma chave por coleção)
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS kv_store (
        chave TEXT PRIMARY KEY,
        valor TEXT NOT NULL,
        updated_at TEXT DEFAULT (datetime('now'))
    );
    """,
]


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.execute(sql)


def migrar(conn) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

    if ver < 1:
        _apply_v1(conn)
        conn.execute("PRAGMA user_version = 1;")
        ver = 1

    # versões futuras: if ver < 2: _apply_v2(...)


def apply_migrations(db_path: str) -> None:
    with connect(db_path) as conn:
        migrar(conn)
