# armazem/usecases/relatorios.py
"""
Relatórios de estoque e vendas:
- histórico de movimentações com saldo após cada lançamento
- conferência de saldos (livro x catálogo)
- itens abaixo do mínimo (com valor em estoque e valor de ruptura)
- resumo do painel (valor, unidades, fluxo dos últimos dias)
- gestão do dia (faturamento, fluxo, alertas e tarefas críticas)
- busca de endereçamento

As funções recebem coleções já carregadas; as variantes ``run_*``
leem do banco e servem à CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time as dtime
from typing import Dict, Iterable, List, Optional

import pandas as pd

from armazem.config import DB_PATH
from armazem.domain.models import ENTRADA, SAIDA, InventoryItem, KanbanTask, Movement, Sale
from armazem.domain.saldos import MovimentoComSaldo, historico_movimentos, saldos_finais
from armazem.infra.repositories import ItemRepo, MovimentoRepo, SaleRepo, TaskRepo
from armazem.infra.logger import log_system_event, system_logger


# ----------------------
# util
# ----------------------

def _inicio_do_dia_ms(agora: datetime) -> int:
    return int(datetime.combine(agora.date(), dtime.min).timestamp() * 1000)


# ----------------------
# 1) Histórico de movimentações
# ----------------------

def run_historico(
    tipo: Optional[str] = None,
    busca: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[MovimentoComSaldo]:
    movimentos = MovimentoRepo(db_path).get_all()
    system_logger.debug(f"REPORT_HISTORICO: {len(movimentos)} movimentos")
    return historico_movimentos(movimentos, tipo=tipo, busca=busca)


# ----------------------
# 2) Conferência livro x catálogo
# ----------------------

@dataclass(frozen=True)
class Divergencia:
    item_id: str
    item_name: str
    saldo_catalogo: float
    saldo_livro: float


def conferir_saldos(itens: Iterable[InventoryItem], movimentos: Iterable[Movement]) -> List[Divergencia]:
    """Itens cujo saldo reconstruído pelo livro difere do saldo do catálogo.

    Itens sem nenhum movimento são comparados com zero.
    """
    finais = saldos_finais(movimentos)
    out: List[Divergencia] = []
    for item in itens:
        livro = finais.get(item.id, 0.0)
        if abs(livro - item.current_quantity) > 1e-9:
            out.append(Divergencia(item.id, item.name, item.current_quantity, livro))
    if out:
        log_system_event("divergencia_saldos", {"itens": [d.item_id for d in out]}, level="warning")
    return out


# ----------------------
# 3) Estoque baixo
# ----------------------

@dataclass(frozen=True)
class RelatorioEstoqueBaixo:
    itens: List[InventoryItem]
    valor_total: float
    valor_critico: float


def relatorio_estoque_baixo(itens: Iterable[InventoryItem]) -> RelatorioEstoqueBaixo:
    itens = list(itens)
    baixos = [i for i in itens if i.abaixo_do_minimo]
    return RelatorioEstoqueBaixo(
        itens=baixos,
        valor_total=sum(i.current_quantity * i.unit_price for i in itens),
        valor_critico=sum((i.min_quantity - i.current_quantity) * i.unit_price for i in baixos),
    )


# ----------------------
# 4) Painel
# ----------------------

@dataclass(frozen=True)
class ResumoPainel:
    valor_total: float
    unidades: float
    itens_baixos: int
    fluxo: pd.DataFrame   # colunas: data, entradas, saidas


def fluxo_diario(movimentos: Iterable[Movement], dias: int = 7, hoje: Optional[date] = None) -> pd.DataFrame:
    """Soma de ENTRADAS e SAÍDAS por dia, para os últimos ``dias`` dias (inclui hoje)."""
    hoje = hoje or date.today()
    calendario = pd.date_range(end=pd.Timestamp(hoje), periods=dias, freq="D").date
    base = pd.DataFrame({"data": calendario})

    registros = [
        {"data": datetime.fromtimestamp(m.timestamp / 1000).date(), "type": m.type, "quantity": m.quantity}
        for m in movimentos
        if m.type in (ENTRADA, SAIDA)
    ]
    if not registros:
        base["entradas"] = 0.0
        base["saidas"] = 0.0
        return base

    df = pd.DataFrame(registros)
    pivot = (
        df.pivot_table(index="data", columns="type", values="quantity", aggfunc="sum", fill_value=0.0)
        .reindex(columns=[ENTRADA, SAIDA], fill_value=0.0)
        .rename(columns={ENTRADA: "entradas", SAIDA: "saidas"})
        .reset_index()
    )
    out = base.merge(pivot, on="data", how="left").fillna({"entradas": 0.0, "saidas": 0.0})
    out.columns.name = None
    return out


def resumo_painel(
    itens: Iterable[InventoryItem],
    movimentos: Iterable[Movement],
    dias: int = 7,
    hoje: Optional[date] = None,
) -> ResumoPainel:
    itens = list(itens)
    return ResumoPainel(
        valor_total=sum(i.current_quantity * i.unit_price for i in itens),
        unidades=sum(i.current_quantity for i in itens),
        itens_baixos=sum(1 for i in itens if i.abaixo_do_minimo),
        fluxo=fluxo_diario(movimentos, dias=dias, hoje=hoje),
    )


# ----------------------
# 5) Gestão do dia
# ----------------------

@dataclass
class GestaoDia:
    faturamento: float = 0.0
    vendas: int = 0
    total_entradas: float = 0.0
    total_saidas: float = 0.0
    itens_criticos: List[InventoryItem] = field(default_factory=list)
    valor_ruptura: float = 0.0
    tarefas_urgentes: List[KanbanTask] = field(default_factory=list)
    ultimos_movimentos: List[Movement] = field(default_factory=list)


def gestao_do_dia(
    itens: Iterable[InventoryItem],
    movimentos: Iterable[Movement],
    tarefas: Iterable[KanbanTask],
    vendas: Iterable[Sale],
    agora: Optional[datetime] = None,
) -> GestaoDia:
    inicio = _inicio_do_dia_ms(agora or datetime.now())
    movimentos = list(movimentos)

    vendas_hoje = [s for s in vendas if s.timestamp >= inicio]
    movs_hoje = [m for m in movimentos if m.timestamp >= inicio]
    criticos = [i for i in itens if i.abaixo_do_minimo]

    return GestaoDia(
        faturamento=sum(s.total_price for s in vendas_hoje),
        vendas=len(vendas_hoje),
        total_entradas=sum(m.quantity for m in movs_hoje if m.type == ENTRADA),
        total_saidas=sum(m.quantity for m in movs_hoje if m.type == SAIDA),
        itens_criticos=criticos,
        valor_ruptura=sum((i.min_quantity - i.current_quantity) * i.unit_price for i in criticos),
        tarefas_urgentes=[t for t in tarefas if t.status != "RESOLVIDA" and t.priority == "ALTA"],
        ultimos_movimentos=list(reversed(movimentos[-5:])),
    )


def run_gestao_dia(db_path: str = DB_PATH, agora: Optional[datetime] = None) -> GestaoDia:
    return gestao_do_dia(
        ItemRepo(db_path).get_all(),
        MovimentoRepo(db_path).get_all(),
        TaskRepo(db_path).get_all(),
        SaleRepo(db_path).get_all(),
        agora=agora,
    )


# ----------------------
# 6) Endereçamento
# ----------------------

def buscar_enderecos(itens: Iterable[InventoryItem], busca: str) -> List[Dict[str, str]]:
    """Localiza itens por nome, SKU ou EAN (inclusive só os últimos dígitos) e devolve o endereço."""
    q = (busca or "").strip().lower()
    if not q:
        return []
    out: List[Dict[str, str]] = []
    for i in itens:
        ean = (i.ean or "").lower()
        if q in i.name.lower() or q in i.sku.lower() or (ean and q in ean):
            out.append({"sku": i.sku, "nome": i.name, "endereco": str(i.location)})
    return out


def run_estoque_baixo(db_path: str = DB_PATH) -> RelatorioEstoqueBaixo:
    return relatorio_estoque_baixo(ItemRepo(db_path).get_all())


def run_painel(dias: int = 7, db_path: str = DB_PATH) -> ResumoPainel:
    return resumo_painel(ItemRepo(db_path).get_all(), MovimentoRepo(db_path).get_all(), dias=dias)
