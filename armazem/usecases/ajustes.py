# armazem/usecases/ajustes.py
"""
UC: Ajustes de estoque com aprovação da gerência.

Fluxo em duas fases:
1) solicitar_ajuste(): qualquer usuário registra a proposta (PENDENTE),
   com saldo anterior/novo calculados no momento da solicitação apenas
   para exibição.
2) processar_ajuste(): um usuário GERENCIA aprova ou rejeita. A aprovação
   registra exatamente uma movimentação com o tipo e o delta originais,
   na mesma transação que marca o ajuste como APROVADO.

Estados: PENDENTE -> APROVADO | REJEITADO (ambos terminais).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import replace
from typing import List, Optional

from armazem.config import DB_PATH
from armazem.domain.errors import (
    EstoqueError,
    InvalidState,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from armazem.domain.models import (
    APROVADO,
    ENTRADA,
    PENDENTE,
    REJEITADO,
    SAIDA,
    StockAdjustment,
    now_ms,
)
from armazem.infra.repositories import AdjustmentRepo, ItemRepo, UserRepo
from armazem.infra.logger import log_ajuste, log_transaction
from armazem.usecases.registrar_movimento import registrar_movimento


def solicitar_ajuste(
    item_id: str,
    solicitante: str,
    tipo_ajuste: str,
    delta: float,
    motivo: str,
    db_path: str = DB_PATH,
) -> StockAdjustment:
    """Cria um ajuste PENDENTE para o item."""
    tipo_ajuste = (tipo_ajuste or "").strip().upper()
    if tipo_ajuste not in (ENTRADA, SAIDA):
        raise ValidationError("Tipo de ajuste deve ser ENTRADA ou SAIDA")
    try:
        delta = float(delta)
    except (TypeError, ValueError):
        raise ValidationError(f"Quantidade inválida: {delta!r}") from None
    if not math.isfinite(delta):
        raise ValidationError(f"Quantidade inválida: {delta!r}")
    if delta <= 0:
        raise ValidationError("Quantidade do ajuste deve ser positiva")

    item = ItemRepo(db_path).get_by_id(item_id)
    if item is None:
        raise NotFound(f"Produto não localizado: {item_id}")

    antigo = item.current_quantity
    novo = antigo + delta if tipo_ajuste == ENTRADA else max(0.0, antigo - delta)
    ajuste = StockAdjustment(
        id=str(uuid.uuid4()),
        item_id=item.id,
        requested_by=solicitante,
        requested_at=now_ms(),
        old_quantity=antigo,
        new_quantity=novo,
        adjustment_type=tipo_ajuste,
        delta_quantity=delta,
        reason=(motivo or "").strip(),
        status=PENDENTE,
    )
    AdjustmentRepo(db_path).append(ajuste)
    log_ajuste("solicitar", ajuste.id, ajuste.status, item_id=item.id,
               tipo=tipo_ajuste, delta=delta, solicitante=solicitante)
    return ajuste


def processar_ajuste(
    ajuste_id: str,
    decisao: str,
    revisor_id: str,
    db_path: str = DB_PATH,
) -> StockAdjustment:
    """Aprova ou rejeita um ajuste pendente.

    Raises:
        NotFound: ajuste ou revisor inexistente.
        ValidationError: decisão diferente de APROVADO/REJEITADO.
        InvalidState: ajuste já revisado.
        PermissionDenied: revisor sem papel GERENCIA.
        InsufficientStock: aprovação de SAÍDA sem saldo; o ajuste
            continua PENDENTE.
    """
    decisao = (decisao or "").strip().upper()
    if decisao not in (APROVADO, REJEITADO):
        raise ValidationError("Decisão deve ser APROVADO ou REJEITADO")

    repo = AdjustmentRepo(db_path)
    users = UserRepo(db_path)
    dados = {"ajuste_id": ajuste_id, "decisao": decisao, "revisor": revisor_id}
    try:
        with repo.transaction() as c:
            ajuste = repo.get_by_id(ajuste_id, conn=c)
            if ajuste is None:
                raise NotFound(f"Ajuste não encontrado: {ajuste_id}")
            if ajuste.terminal:
                raise InvalidState(f"Ajuste já processado ({ajuste.status})")

            revisor = users.get_by_id(revisor_id, conn=c)
            if revisor is None:
                raise NotFound(f"Usuário não encontrado: {revisor_id}")
            if not revisor.is_manager:
                raise PermissionDenied("Somente a gerência pode revisar ajustes")

            if decisao == APROVADO:
                registrar_movimento(
                    revisor.id,
                    revisor.username,
                    ajuste.item_id,
                    ajuste.adjustment_type,
                    ajuste.delta_quantity,
                    f"AJUSTE APROVADO: {ajuste.reason}",
                    db_path=db_path,
                    conn=c,
                )

            revisado = replace(ajuste, status=decisao, reviewed_by=revisor.id, reviewed_at=now_ms())
            repo.upsert(revisado, conn=c)
    except EstoqueError as e:
        log_transaction("processar_ajuste", dados, error=str(e))
        raise

    log_ajuste("processar", revisado.id, revisado.status, revisor=revisor.id)
    log_transaction("processar_ajuste", dados, result=revisado.status)
    return revisado


def listar_ajustes(status: Optional[str] = None, db_path: str = DB_PATH) -> List[StockAdjustment]:
    ajustes = AdjustmentRepo(db_path).get_all()
    if status:
        ajustes = [a for a in ajustes if a.status == status.strip().upper()]
    return ajustes
