# armazem/usecases/cadastros.py
"""
UC: Cadastros de apoio.

- Itens do catálogo (criação com SKU gerado, edição, remoção)
- Clientes (id sequencial amigável C-<n> + uuid estável)
- Usuários (conta de gerência padrão, papéis e permissões, autenticação)
- Tarefas (quadro kanban)
- Configurações (taxa de juros e desconto máximo)

Não há invariantes entre entidades aqui; o saldo dos itens só é
alterado pelo motor de estoque.
"""

from __future__ import annotations

import random
import string
import uuid
from dataclasses import fields, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from armazem.config import CUSTOMER_ID_START, DB_PATH, SKU_PREFIX
from armazem.domain.errors import NotFound, ValidationError, ensure
from armazem.domain.models import (
    GERENCIA,
    ROLES,
    TASK_PRIORITIES,
    TASK_STATUSES,
    Customer,
    InventoryItem,
    KanbanTask,
    Location,
    Permissions,
    User,
    now_ms,
)
from armazem.infra.repositories import CustomerRepo, ItemRepo, SettingsRepo, TaskRepo, UserRepo
from armazem.infra.logger import log_system_event


# -------------------------
# Itens
# -------------------------

_SKU_ALFABETO = string.digits + string.ascii_uppercase
_CAMPOS_ITEM_PROTEGIDOS = {"id", "sku", "current_quantity", "updated_at"}


def gerar_sku(seq: int, ano: Optional[int] = None) -> str:
    """``LGS-<ano>-<seq com 4 dígitos>-<3 caracteres aleatórios>``."""
    ano = ano or datetime.now().year
    sufixo = "".join(random.choices(_SKU_ALFABETO, k=3))
    return f"{SKU_PREFIX}-{ano}-{seq:04d}-{sufixo}"


def _to_float(val: Any, campo: str) -> float:
    if val is None or val == "":
        return 0.0
    try:
        return float(val)
    except (TypeError, ValueError):
        raise ValidationError(f"Valor inválido para {campo}: {val!r}") from None


def _location(val: Any) -> Location:
    if isinstance(val, Location):
        return val
    if isinstance(val, dict):
        return Location.from_dict(val)
    return Location()


def adicionar_item(dados: Dict[str, Any], db_path: str = DB_PATH, conn=None) -> InventoryItem:
    """Cadastra um item com saldo zero; o estoque entra por movimentação.

    Com ``conn``, o item só é confirmado junto com a transação de quem a abriu.
    """
    nome = (dados.get("name") or "").strip()
    ensure(bool(nome), "Nome do produto obrigatório")
    repo = ItemRepo(db_path)
    with repo.transaction(conn) as c:
        existentes = repo.get_all(conn=c)
        item = InventoryItem(
            id=str(uuid.uuid4()),
            sku=gerar_sku(len(existentes) + 1),
            name=nome,
            ean=str(dados.get("ean") or "").strip(),
            category=str(dados.get("category") or "").strip(),
            location=_location(dados.get("location")),
            unit_price=_to_float(dados.get("unit_price"), "unit_price"),
            sale_price=_to_float(dados.get("sale_price"), "sale_price"),
            min_quantity=_to_float(dados.get("min_quantity"), "min_quantity"),
            current_quantity=0.0,
            foto_url=dados.get("foto_url") or None,
            updated_at=now_ms(),
        )
        ensure(item.unit_price >= 0 and item.sale_price >= 0, "Preços não podem ser negativos")
        ensure(item.min_quantity >= 0, "Quantidade mínima não pode ser negativa")
        repo.append(item, conn=c)
    log_system_event("item_created", {"id": item.id, "sku": item.sku})
    return item


def atualizar_item(item_id: str, dados: Dict[str, Any], db_path: str = DB_PATH) -> InventoryItem:
    editaveis = {f.name for f in fields(InventoryItem)} - _CAMPOS_ITEM_PROTEGIDOS
    mudancas: Dict[str, Any] = {}
    for k, v in dados.items():
        if k not in editaveis:
            continue
        if k == "location":
            v = _location(v)
        elif k in {"unit_price", "sale_price", "min_quantity"}:
            v = _to_float(v, k)
            ensure(v >= 0, f"{k} não pode ser negativo")
        mudancas[k] = v

    atualizado = ItemRepo(db_path).update_where(
        item_id, lambda it: replace(it, updated_at=now_ms(), **mudancas)
    )
    if atualizado is None:
        raise NotFound(f"Produto não localizado: {item_id}")
    return atualizado


def remover_item(item_id: str, db_path: str = DB_PATH) -> bool:
    return ItemRepo(db_path).delete(item_id)


def listar_itens(db_path: str = DB_PATH) -> List[InventoryItem]:
    return ItemRepo(db_path).get_all()


def obter_item(item_id: str, db_path: str = DB_PATH) -> InventoryItem:
    item = ItemRepo(db_path).get_by_id(item_id)
    if item is None:
        raise NotFound(f"Produto não localizado: {item_id}")
    return item


# -------------------------
# Clientes
# -------------------------

def _proximo_id_cliente(clientes: List[Customer]) -> str:
    ultimo = CUSTOMER_ID_START
    if clientes:
        try:
            ultimo = int(clientes[-1].id.split("-")[1])
        except (IndexError, ValueError):
            ultimo = CUSTOMER_ID_START + len(clientes)
    return f"C-{ultimo + 1}"


def adicionar_cliente(
    name: str,
    doc: str = "",
    email: str = "",
    contact: str = "",
    db_path: str = DB_PATH,
) -> Customer:
    name = (name or "").strip()
    ensure(bool(name), "Nome do cliente obrigatório")
    repo = CustomerRepo(db_path)
    with repo.transaction() as c:
        clientes = repo.get_all(conn=c)
        cliente = Customer(
            id=_proximo_id_cliente(clientes),
            uuid=str(uuid.uuid4()),
            name=name,
            doc=(doc or "").strip(),
            email=(email or "").strip(),
            contact=(contact or "").strip(),
            created_at=now_ms(),
        )
        repo.append(cliente, conn=c)
    return cliente


def atualizar_cliente(cliente_uuid: str, dados: Dict[str, Any], db_path: str = DB_PATH) -> Customer:
    editaveis = {"name", "doc", "email", "contact"}
    mudancas = {k: v for k, v in dados.items() if k in editaveis}
    atualizado = CustomerRepo(db_path).update_where(cliente_uuid, lambda cl: replace(cl, **mudancas))
    if atualizado is None:
        raise NotFound(f"Cliente não encontrado: {cliente_uuid}")
    return atualizado


def listar_clientes(busca: Optional[str] = None, db_path: str = DB_PATH) -> List[Customer]:
    clientes = CustomerRepo(db_path).get_all()
    q = (busca or "").strip().lower()
    if not q:
        return clientes
    return [
        c for c in clientes
        if q in c.name.lower() or q in c.doc.lower() or q in c.id.lower() or q in c.email.lower()
    ]


# -------------------------
# Usuários
# -------------------------

def listar_usuarios(db_path: str = DB_PATH) -> List[User]:
    return UserRepo(db_path).get_all()


def adicionar_usuario(
    username: str,
    password: str,
    role: str = "OPERADOR",
    permissions: Optional[Permissions] = None,
    db_path: str = DB_PATH,
) -> User:
    username = (username or "").strip()
    ensure(bool(username), "Nome de usuário obrigatório")
    ensure(bool(password), "Senha obrigatória")
    ensure(role in ROLES, f"Papel inválido: {role!r}")
    repo = UserRepo(db_path)
    with repo.transaction() as c:
        ensure(repo.get_by_username(username, conn=c) is None, f"Usuário já existe: {username}")
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            password_hash=generate_password_hash(password),
            role=role,
            permissions=permissions or (Permissions.all_granted() if role == GERENCIA else Permissions()),
        )
        repo.append(user, conn=c)
    log_system_event("user_created", {"id": user.id, "username": username, "role": role})
    return user


def atualizar_permissoes(user_id: str, permissions: Permissions, db_path: str = DB_PATH) -> User:
    atualizado = UserRepo(db_path).update_where(user_id, lambda u: replace(u, permissions=permissions))
    if atualizado is None:
        raise NotFound(f"Usuário não encontrado: {user_id}")
    return atualizado


def atualizar_papel(user_id: str, role: str, db_path: str = DB_PATH) -> User:
    ensure(role in ROLES, f"Papel inválido: {role!r}")
    atualizado = UserRepo(db_path).update_where(user_id, lambda u: replace(u, role=role))
    if atualizado is None:
        raise NotFound(f"Usuário não encontrado: {user_id}")
    return atualizado


def autenticar(username: str, password: str, db_path: str = DB_PATH) -> Optional[User]:
    user = UserRepo(db_path).get_by_username(username)
    if user is None or not check_password_hash(user.password_hash, password or ""):
        log_system_event("login_failed", {"username": username}, level="warning")
        return None
    return user


# -------------------------
# Tarefas
# -------------------------

def adicionar_tarefa(
    title: str,
    description: str = "",
    priority: str = "MEDIA",
    assigned_to: Optional[str] = None,
    db_path: str = DB_PATH,
) -> KanbanTask:
    title = (title or "").strip()
    ensure(bool(title), "Título da tarefa obrigatório")
    ensure(priority in TASK_PRIORITIES, f"Prioridade inválida: {priority!r}")
    task = KanbanTask(
        id=str(uuid.uuid4()),
        title=title,
        description=(description or "").strip(),
        status="PENDENTE",
        priority=priority,
        assigned_to=assigned_to or None,
        created_at=now_ms(),
    )
    return TaskRepo(db_path).append(task)


def atualizar_status_tarefa(task_id: str, status: str, db_path: str = DB_PATH) -> KanbanTask:
    ensure(status in TASK_STATUSES, f"Status inválido: {status!r}")
    atualizado = TaskRepo(db_path).update_where(task_id, lambda t: replace(t, status=status))
    if atualizado is None:
        raise NotFound(f"Tarefa não encontrada: {task_id}")
    return atualizado


def remover_tarefa(task_id: str, db_path: str = DB_PATH) -> bool:
    return TaskRepo(db_path).delete(task_id)


def listar_tarefas(usuario: Optional[User] = None, db_path: str = DB_PATH) -> List[KanbanTask]:
    """Gerência vê todas as tarefas; operadores, só as atribuídas a eles."""
    tarefas = TaskRepo(db_path).get_all()
    if usuario is None or usuario.is_manager:
        return tarefas
    return [t for t in tarefas if t.assigned_to == usuario.username]


# -------------------------
# Configurações
# -------------------------

def obter_taxa_juros(db_path: str = DB_PATH) -> float:
    return SettingsRepo(db_path).interest_rate()


def definir_taxa_juros(taxa: float, db_path: str = DB_PATH) -> None:
    taxa = _to_float(taxa, "interest_rate")
    ensure(taxa >= 0, "Taxa de juros não pode ser negativa")
    SettingsRepo(db_path).set("interest_rate", taxa)


def obter_taxa_desconto_max(db_path: str = DB_PATH) -> float:
    return SettingsRepo(db_path).max_discount_rate()


def definir_taxa_desconto_max(taxa: float, db_path: str = DB_PATH) -> None:
    taxa = _to_float(taxa, "max_discount_rate")
    ensure(0 <= taxa <= 100, "Desconto máximo deve estar entre 0 e 100%")
    SettingsRepo(db_path).set("max_discount_rate", taxa)
