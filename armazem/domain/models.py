# armazem/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios persistem dicionários JSON; ``to_dict``/``from_dict``
  fazem a conversão. Campos desconhecidos no dicionário são ignorados,
  o que permite ler coleções gravadas por versões anteriores.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional


ENTRADA = "ENTRADA"
SAIDA = "SAIDA"
AJUSTE = "AJUSTE"
MOVEMENT_TYPES = (ENTRADA, SAIDA, AJUSTE)

PENDENTE = "PENDENTE"
APROVADO = "APROVADO"
REJEITADO = "REJEITADO"
ADJUSTMENT_STATUSES = (PENDENTE, APROVADO, REJEITADO)

PAYMENT_METHODS = ("PIX", "DINHEIRO", "DEBITO", "CREDITO")
CREDITO = "CREDITO"

GERENCIA = "GERENCIA"
OPERADOR = "OPERADOR"
ROLES = (GERENCIA, OPERADOR)

TASK_STATUSES = ("PENDENTE", "EM_ANDAMENTO", "RESOLVIDA")
TASK_PRIORITIES = ("BAIXA", "MEDIA", "ALTA")


def now_ms() -> int:
    """Timestamp atual em milissegundos (mesma escala do armazenamento)."""
    return int(time.time() * 1000)


def _pick(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


class _Record:
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(**_pick(cls, data))


@dataclass
class Location(_Record):
    corridor: str = ""
    shelf: str = ""
    floor: str = ""

    def __str__(self) -> str:
        return f"C:{self.corridor} P:{self.shelf} A:{self.floor}"


@dataclass
class InventoryItem(_Record):
    """Item do catálogo. ``current_quantity`` só muda pelo motor de estoque."""
    id: str
    sku: str
    name: str
    ean: str = ""
    category: str = ""
    location: Location = field(default_factory=Location)
    unit_price: float = 0.0
    sale_price: float = 0.0
    min_quantity: float = 0.0
    current_quantity: float = 0.0
    foto_url: Optional[str] = None
    updated_at: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InventoryItem":
        d = _pick(cls, data)
        loc = d.get("location")
        if isinstance(loc, dict):
            d["location"] = Location.from_dict(loc)
        elif loc is None:
            d["location"] = Location()
        return cls(**d)

    @property
    def abaixo_do_minimo(self) -> bool:
        return self.current_quantity < self.min_quantity


@dataclass(frozen=True)
class Movement(_Record):
    """Registro imutável do livro de movimentações.

    Para AJUSTE, ``quantity`` é o saldo alvo absoluto e não um delta.
    """
    id: str
    item_id: str
    sku: str
    item_name: str
    type: str
    quantity: float
    user_id: str
    username: str
    timestamp: int
    notes: Optional[str] = None


@dataclass
class StockAdjustment(_Record):
    id: str
    item_id: str
    requested_by: str
    requested_at: int
    old_quantity: float
    new_quantity: float
    adjustment_type: str
    delta_quantity: float
    reason: str
    status: str = PENDENTE
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[int] = None

    @property
    def terminal(self) -> bool:
        return self.status in (APROVADO, REJEITADO)


@dataclass
class SaleItem(_Record):
    item_id: str
    item_name: str
    ean: str
    quantity: float
    unit_price: float
    sale_price: float
    total_price: float


@dataclass
class Sale(_Record):
    id: str
    customer_id: Optional[str]
    customer_name: str
    customer_doc: str
    customer_contact: str
    items: List[SaleItem]
    subtotal: float
    discount: float
    total_price: float
    payment_method: str
    installments: int
    interest_value: float
    timestamp: int
    user_id: str
    user_name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sale":
        d = _pick(cls, data)
        d["items"] = [SaleItem.from_dict(i) for i in d.get("items") or []]
        return cls(**d)


@dataclass
class Customer(_Record):
    id: str
    uuid: str
    name: str
    doc: str = ""
    email: str = ""
    contact: str = ""
    created_at: int = 0


@dataclass
class Permissions(_Record):
    dashboard: bool = True
    estoque: bool = True
    movimentacoes: bool = True
    enderecamento: bool = True
    relatorios: bool = False
    ajustes: bool = True
    atividades: bool = True
    gestao_dia: bool = False
    admin: bool = False

    @classmethod
    def all_granted(cls) -> "Permissions":
        return cls(**{f.name: True for f in fields(cls)})


@dataclass
class User(_Record):
    id: str
    username: str
    password_hash: str
    role: str = OPERADOR
    permissions: Permissions = field(default_factory=Permissions)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        d = _pick(cls, data)
        perms = d.get("permissions")
        d["permissions"] = Permissions.from_dict(perms) if isinstance(perms, dict) else Permissions()
        return cls(**d)

    @property
    def is_manager(self) -> bool:
        return self.role == GERENCIA


@dataclass
class KanbanTask(_Record):
    id: str
    title: str
    description: str = ""
    status: str = "PENDENTE"
    priority: str = "MEDIA"
    assigned_to: Optional[str] = None
    created_at: int = 0
