# armazem/infra/repositories.py
"""
Repositórios para acesso e manipulação das coleções persistidas.

Cada coleção é um documento JSON (lista de registros) sob uma chave do
armazenamento chave/valor. Os métodos leem a coleção inteira, alteram e
gravam a coleção inteira; o parâmetro opcional ``conn`` permite que
várias operações, inclusive de repositórios diferentes, participem da
mesma transação.

Classes:
- ItemRepo
- MovimentoRepo
- UserRepo
- SaleRepo
- CustomerRepo
- TaskRepo
- AdjustmentRepo
- SettingsRepo
"""

from __future__ import annotations

import sqlite3
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from werkzeug.security import generate_password_hash

from armazem.config import DEFAULTS, MASTER_USER, STORAGE_KEYS
from armazem.domain.models import (
    GERENCIA,
    Customer,
    InventoryItem,
    KanbanTask,
    Movement,
    Permissions,
    Sale,
    StockAdjustment,
    User,
)
from .kv import KeyValueStore
from .logger import log_database_operation, log_system_event

T = TypeVar("T")
Conn = Optional[sqlite3.Connection]


# -------------------------
# Base
# -------------------------

class _CollectionRepo(Generic[T]):
    key: str = ""
    model: Type = dict
    id_field: str = "id"

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self.store = KeyValueStore(self.db_path)

    def transaction(self, conn: Conn = None):
        return self.store.transaction(conn)

    def _load(self, conn: Conn) -> List[Dict[str, Any]]:
        return self.store.get(self.key, [], conn=conn)

    def _save(self, rows: List[Dict[str, Any]], conn: Conn) -> None:
        self.store.set(self.key, rows, conn=conn)

    def get_all(self, conn: Conn = None) -> List[T]:
        return [self.model.from_dict(r) for r in self._load(conn)]

    def get_by_id(self, obj_id: str, conn: Conn = None) -> Optional[T]:
        for r in self._load(conn):
            if r.get(self.id_field) == obj_id:
                return self.model.from_dict(r)
        return None

    def append(self, obj: T, conn: Conn = None) -> T:
        with self.transaction(conn) as c:
            rows = self._load(c)
            rows.append(obj.to_dict())
            self._save(rows, c)
        log_database_operation(self.key, "APPEND", 1, id=getattr(obj, self.id_field))
        return obj

    def upsert(self, obj: T, conn: Conn = None) -> T:
        """Substitui o registro de mesmo id, ou acrescenta no fim."""
        obj_id = getattr(obj, self.id_field)
        with self.transaction(conn) as c:
            rows = self._load(c)
            for idx, r in enumerate(rows):
                if r.get(self.id_field) == obj_id:
                    rows[idx] = obj.to_dict()
                    break
            else:
                rows.append(obj.to_dict())
            self._save(rows, c)
        log_database_operation(self.key, "UPSERT", 1, id=obj_id)
        return obj

    def delete(self, obj_id: str, conn: Conn = None) -> bool:
        with self.transaction(conn) as c:
            rows = self._load(c)
            kept = [r for r in rows if r.get(self.id_field) != obj_id]
            removed = len(rows) - len(kept)
            if removed:
                self._save(kept, c)
        log_database_operation(self.key, "DELETE", removed, id=obj_id)
        return removed > 0

    def update_where(self, obj_id: str, fn: Callable[[T], T], conn: Conn = None) -> Optional[T]:
        """Lê, aplica ``fn`` e grava o registro ``obj_id`` numa só transação."""
        with self.transaction(conn) as c:
            current = self.get_by_id(obj_id, conn=c)
            if current is None:
                return None
            updated = fn(current)
            self.upsert(updated, conn=c)
        return updated


# -------------------------
# Catálogo e livro
# -------------------------

class ItemRepo(_CollectionRepo[InventoryItem]):
    key = STORAGE_KEYS["items"]
    model = InventoryItem


class MovimentoRepo(_CollectionRepo[Movement]):
    """Livro de movimentações: só aceita acréscimos."""
    key = STORAGE_KEYS["movements"]
    model = Movement

    def upsert(self, obj, conn: Conn = None):
        raise TypeError("Movimentações são imutáveis; use append()")

    def delete(self, obj_id, conn: Conn = None):
        raise TypeError("Movimentações são imutáveis")

    def by_item(self, item_id: str, conn: Conn = None) -> List[Movement]:
        return [m for m in self.get_all(conn) if m.item_id == item_id]


class StockLedger:
    """Grava item e movimentação como uma única unidade (tudo ou nada)."""

    def __init__(self, db_path: str):
        self.items = ItemRepo(db_path)
        self.movements = MovimentoRepo(db_path)

    def transaction(self, conn: Conn = None):
        return self.items.transaction(conn)

    def commit_movement(self, item: InventoryItem, movement: Movement, conn: Conn = None) -> Movement:
        with self.transaction(conn) as c:
            self.items.upsert(item, conn=c)
            self.movements.append(movement, conn=c)
        return movement


# -------------------------
# Usuários
# -------------------------

class UserRepo(_CollectionRepo[User]):
    key = STORAGE_KEYS["users"]
    model = User

    def get_all(self, conn: Conn = None) -> List[User]:
        """Garante a conta de gerência padrão quando a coleção está vazia."""
        with self.transaction(conn) as c:
            rows = self._load(c)
            if not rows:
                master = User(
                    id=MASTER_USER.id,
                    username=MASTER_USER.username,
                    password_hash=generate_password_hash(MASTER_USER.password),
                    role=GERENCIA,
                    permissions=Permissions.all_granted(),
                )
                rows = [master.to_dict()]
                self._save(rows, c)
                log_system_event("master_user_created", {"username": master.username})
        return [User.from_dict(r) for r in rows]

    def get_by_id(self, obj_id: str, conn: Conn = None) -> Optional[User]:
        return next((u for u in self.get_all(conn) if u.id == obj_id), None)

    def get_by_username(self, username: str, conn: Conn = None) -> Optional[User]:
        alvo = (username or "").strip().lower()
        return next((u for u in self.get_all(conn) if u.username.lower() == alvo), None)


# -------------------------
# Vendas, clientes, tarefas, ajustes
# -------------------------

class SaleRepo(_CollectionRepo[Sale]):
    key = STORAGE_KEYS["sales"]
    model = Sale


class CustomerRepo(_CollectionRepo[Customer]):
    key = STORAGE_KEYS["customers"]
    model = Customer
    id_field = "uuid"


class TaskRepo(_CollectionRepo[KanbanTask]):
    key = STORAGE_KEYS["tasks"]
    model = KanbanTask


class AdjustmentRepo(_CollectionRepo[StockAdjustment]):
    key = STORAGE_KEYS["adjustments"]
    model = StockAdjustment


# -------------------------
# Configurações
# -------------------------

class SettingsRepo:
    """Parâmetros globais (objeto JSON único), com fallback para DEFAULTS."""

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self.store = KeyValueStore(self.db_path)
        self.key = STORAGE_KEYS["settings"]

    def get_all(self, conn: Conn = None) -> Dict[str, Any]:
        return self.store.get(self.key, {}, conn=conn)

    def get(self, name: str, default: Any = None, conn: Conn = None) -> Any:
        return self.get_all(conn).get(name, default)

    def set(self, name: str, value: Any, conn: Conn = None) -> None:
        with self.store.transaction(conn) as c:
            settings = self.get_all(c)
            settings[name] = value
            self.store.set(self.key, settings, conn=c)

    def get_float(self, name: str, default: float, conn: Conn = None) -> float:
        v = self.get(name, None, conn)
        if v is None:
            return default
        try:
            return float(v)
        except (TypeError, ValueError):
            return default

    def interest_rate(self, conn: Conn = None) -> float:
        return self.get_float("interest_rate", DEFAULTS.interest_rate, conn)

    def max_discount_rate(self, conn: Conn = None) -> float:
        return self.get_float("max_discount_rate", DEFAULTS.max_discount_rate, conn)
