# armazem/infra/kv.py
"""
Armazenamento chave/valor de documentos JSON sobre SQLite.

Cada coleção do sistema (itens, movimentações, vendas...) é gravada
inteira sob uma única chave. ``transaction()`` abre uma conexão que pode
ser repassada a várias leituras/escritas para que sejam confirmadas
juntas ou descartadas juntas.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from .db import connect
from .migrations import migrar
from .logger import log_database_operation


class KeyValueStore:
    def __init__(self, db_path: str):
        self.db_path = str(db_path)

    @contextmanager
    def transaction(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        """Abre uma transação, ou reaproveita ``conn`` se já houver uma aberta."""
        if conn is not None:
            yield conn
            return
        with connect(self.db_path) as c:
            # o schema é conferido na própria conexão da transação
            migrar(c)
            yield c

    def get(self, key: str, default: Any = None, conn: Optional[sqlite3.Connection] = None) -> Any:
        with self.transaction(conn) as c:
            row = c.execute("SELECT valor FROM kv_store WHERE chave = ?", (key,)).fetchone()
        if row is None:
            return default
        return json.loads(row[0])

    def set(self, key: str, value: Any, conn: Optional[sqlite3.Connection] = None) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self.transaction(conn) as c:
            c.execute(
                """
                INSERT INTO kv_store (chave, valor, updated_at)
                VALUES (?, ?, datetime('now'))
                ON CONFLICT(chave) DO UPDATE SET
                    valor=excluded.valor,
                    updated_at=excluded.updated_at
                """,
                (key, payload),
            )
        log_database_operation("kv_store", "SET", 1, chave=key)
