# armazem/usecases/vendas.py
"""
UC: Vendas no PDV.

- simular_venda(): calcula o resumo de preços sem gravar nada.
- processar_venda(): valida cliente e itens, confere saldo de todas as
  linhas e, numa única transação, registra uma SAÍDA por linha e a venda.
- historico_vendas(): filtra vendas e resume os totais do período.

Se qualquer linha não tiver saldo, nenhuma saída é registrada e a venda
não é gravada.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from armazem.config import DB_PATH
from armazem.domain.errors import EstoqueError, InsufficientStock, NotFound, ValidationError
from armazem.domain.models import SAIDA, Sale, now_ms
from armazem.domain.precificacao import ResumoVenda, calcular_resumo, montar_itens_venda
from armazem.infra.repositories import CustomerRepo, ItemRepo, SaleRepo, SettingsRepo
from armazem.infra.logger import log_transaction, log_venda
from armazem.usecases.registrar_movimento import registrar_movimento

Linha = Tuple[Optional[str], float]


def simular_venda(
    linhas: Iterable[Linha],
    forma_pagamento: str,
    desconto_solicitado: float = 0.0,
    parcelas: int = 1,
    db_path: str = DB_PATH,
) -> ResumoVenda:
    """Resumo de preços para o rascunho atual, usando as taxas configuradas."""
    settings = SettingsRepo(db_path)
    itens = montar_itens_venda(ItemRepo(db_path).get_all(), linhas)
    return calcular_resumo(
        itens,
        forma_pagamento,
        desconto_solicitado,
        parcelas,
        settings.interest_rate(),
        settings.max_discount_rate(),
    )


def processar_venda(
    operador_id: str,
    operador_nome: str,
    cliente_uuid: Optional[str],
    linhas: Sequence[Linha],
    forma_pagamento: str,
    desconto_solicitado: float = 0.0,
    parcelas: int = 1,
    db_path: str = DB_PATH,
) -> Sale:
    """Confirma a venda.

    Raises:
        ValidationError: sem cliente, sem itens ou dados de pagamento inválidos.
        NotFound: cliente ou produto inexistente.
        InsufficientStock: alguma linha excede o saldo do item.
    """
    linhas = list(linhas)
    dados = {"cliente": cliente_uuid, "linhas": linhas, "pagamento": forma_pagamento}
    items_repo = ItemRepo(db_path)
    try:
        if not cliente_uuid:
            raise ValidationError("Selecione um cliente")
        with items_repo.transaction() as c:
            cliente = CustomerRepo(db_path).get_by_id(cliente_uuid, conn=c)
            if cliente is None:
                raise NotFound(f"Cliente não encontrado: {cliente_uuid}")

            catalogo = items_repo.get_all(conn=c)
            itens = montar_itens_venda(catalogo, linhas)
            if not itens:
                raise ValidationError("Adicione ao menos um item à venda")

            settings = SettingsRepo(db_path)
            resumo = calcular_resumo(
                itens,
                forma_pagamento,
                desconto_solicitado,
                parcelas,
                settings.interest_rate(conn=c),
                settings.max_discount_rate(conn=c),
            )

            # confere o saldo de todas as linhas antes da primeira saída
            pedido: Dict[str, float] = defaultdict(float)
            for it in itens:
                pedido[it.item_id] += it.quantity
            por_id = {i.id: i for i in catalogo}
            for item_id, qtd in pedido.items():
                item = por_id[item_id]
                if item.current_quantity < qtd:
                    raise InsufficientStock(item.name, item.current_quantity, qtd)

            nota = f"Venda PDV para: {cliente.name}"
            for it in itens:
                registrar_movimento(operador_id, operador_nome, it.item_id, SAIDA, it.quantity,
                                    nota, db_path=db_path, conn=c)

            venda = Sale(
                id=str(uuid.uuid4()),
                customer_id=cliente.uuid,
                customer_name=cliente.name,
                customer_doc=cliente.doc,
                customer_contact=cliente.contact,
                items=itens,
                subtotal=resumo.subtotal,
                discount=resumo.discount,
                total_price=resumo.final_total,
                payment_method=forma_pagamento,
                installments=resumo.installments,
                interest_value=resumo.interest_value,
                timestamp=now_ms(),
                user_id=operador_id,
                user_name=operador_nome,
            )
            SaleRepo(db_path).append(venda, conn=c)
    except EstoqueError as e:
        log_transaction("processar_venda", dados, error=str(e))
        raise

    log_venda("confirmar", venda.id, venda.total_price, cliente=cliente.name,
              itens=len(itens), pagamento=forma_pagamento, desconto=venda.discount,
              juros=venda.interest_value)
    log_transaction("processar_venda", dados, result=venda.id)
    return venda


def listar_vendas(db_path: str = DB_PATH) -> List[Sale]:
    return SaleRepo(db_path).get_all()


@dataclass(frozen=True)
class HistoricoVendas:
    vendas: List[Sale]
    total: float
    total_discount: float
    total_interest: float
    count: int
    average_ticket: float


def _dia(ts_ms: int) -> date:
    return datetime.fromtimestamp(ts_ms / 1000).date()


def historico_vendas(
    vendas: Iterable[Sale],
    busca: Optional[str] = None,
    inicio: Optional[date] = None,
    fim: Optional[date] = None,
) -> HistoricoVendas:
    """Filtra por nome, documento ou id do cliente e por intervalo de datas."""
    q = (busca or "").strip().lower()
    out: List[Sale] = []
    for s in vendas:
        if q and not (
            q in s.customer_name.lower()
            or q in (s.customer_doc or "").lower()
            or q in (s.customer_id or "").lower()
        ):
            continue
        d = _dia(s.timestamp)
        if inicio and d < inicio:
            continue
        if fim and d > fim:
            continue
        out.append(s)
    total = sum(s.total_price for s in out)
    return HistoricoVendas(
        vendas=sorted(out, key=lambda s: s.timestamp, reverse=True),
        total=total,
        total_discount=sum(s.discount or 0.0 for s in out),
        total_interest=sum(s.interest_value or 0.0 for s in out),
        count=len(out),
        average_ticket=total / len(out) if out else 0.0,
    )
