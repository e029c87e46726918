# armazem/usecases/auditoria.py
"""
UC: Auditoria de inventário (contagem física).

Para cada item contado calcula a diferença assinada entre a contagem e
o saldo do sistema e registra uma ENTRADA (sobra) ou SAÍDA (falta) com a
magnitude da diferença. Contagem em branco vale zero. Todas as
movimentações são gravadas numa única transação.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from armazem.config import DB_PATH
from armazem.domain.errors import EstoqueError, NotFound, ValidationError
from armazem.domain.models import ENTRADA, SAIDA, Movement
from armazem.infra.repositories import ItemRepo
from armazem.infra.logger import log_system_event, log_transaction
from armazem.usecases.registrar_movimento import registrar_movimento


def _contagem(val: Any) -> float:
    if val is None or (isinstance(val, str) and not val.strip()):
        return 0.0
    try:
        qtd = float(val)
    except (TypeError, ValueError):
        raise ValidationError(f"Contagem inválida: {val!r}") from None
    if not math.isfinite(qtd):
        raise ValidationError(f"Contagem inválida: {val!r}")
    if qtd < 0:
        raise ValidationError("Contagem física não pode ser negativa")
    return qtd


def finalizar_auditoria(
    operador_id: str,
    operador_nome: str,
    contagens: Dict[str, Any],
    categoria: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Movement]:
    """Concilia o estoque com a contagem física.

    Args:
        contagens: ``{item_id: quantidade contada}``.
        categoria: Rótulo da auditoria (apenas para a observação).

    Returns:
        As movimentações registradas (vazio se não houve divergência).
    """
    nota = f"Ajuste de Auditoria ({categoria or 'TODAS'})"
    repo = ItemRepo(db_path)
    criados: List[Movement] = []
    try:
        with repo.transaction() as c:
            por_id = {i.id: i for i in repo.get_all(conn=c)}
            for item_id, valor in contagens.items():
                item = por_id.get(item_id)
                if item is None:
                    raise NotFound(f"Produto não localizado: {item_id}")
                fisico = _contagem(valor)
                diff = fisico - item.current_quantity
                if diff == 0:
                    continue
                tipo = ENTRADA if diff > 0 else SAIDA
                criados.append(
                    registrar_movimento(operador_id, operador_nome, item_id, tipo, abs(diff),
                                        nota, db_path=db_path, conn=c)
                )
    except EstoqueError as e:
        log_transaction("finalizar_auditoria", {"itens": len(contagens)}, error=str(e))
        raise

    log_system_event("auditoria_finalizada", {"categoria": categoria or "TODAS",
                                              "itens": len(contagens), "divergencias": len(criados)})
    return criados
