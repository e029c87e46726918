# armazem/domain/saldos.py
"""
Reconstrução de saldos a partir do livro de movimentações.

O livro é reprocessado em ordem crescente de ``timestamp`` (e não na
ordem de inserção), encadeando um saldo por item que começa em zero:
ENTRADA soma, SAÍDA subtrai e AJUSTE sobrescreve. O resultado serve
apenas para exibição histórica e nunca é gravado de volta no catálogo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from armazem.domain.models import Movement
from armazem.domain.movimentos import aplicar_sem_validar


@dataclass(frozen=True)
class MovimentoComSaldo:
    movement: Movement
    balance_after: float


def reconstruir_saldos(movimentos: Iterable[Movement]) -> List[MovimentoComSaldo]:
    """Retorna cada movimento com o saldo do item logo após aplicá-lo.

    A ordenação é estável: movimentos com o mesmo timestamp mantêm a
    ordem em que foram registrados.
    """
    ordenados = sorted(movimentos, key=lambda m: m.timestamp)
    saldos: Dict[str, float] = {}
    out: List[MovimentoComSaldo] = []
    for m in ordenados:
        novo = aplicar_sem_validar(m.type, m.quantity, saldos.get(m.item_id, 0.0))
        saldos[m.item_id] = novo
        out.append(MovimentoComSaldo(m, novo))
    return out


def saldos_finais(movimentos: Iterable[Movement]) -> Dict[str, float]:
    """Saldo de cada item após o seu último movimento."""
    out: Dict[str, float] = {}
    for r in reconstruir_saldos(movimentos):
        out[r.movement.item_id] = r.balance_after
    return out


def historico_movimentos(
    movimentos: Iterable[Movement],
    tipo: Optional[str] = None,
    busca: Optional[str] = None,
) -> List[MovimentoComSaldo]:
    """Histórico filtrado, do mais recente para o mais antigo.

    Os saldos são calculados sobre o livro completo antes do filtro,
    para que a trajetória de cada item não dependa do que está visível.
    """
    q = (busca or "").strip().lower()
    tipo = (tipo or "").strip().upper() or None

    def _match(m: Movement) -> bool:
        if tipo and m.type != tipo:
            return False
        if not q:
            return True
        return (
            q in (m.item_name or "").lower()
            or q in (m.sku or "").lower()
            or q in (m.notes or "").lower()
            or q in (m.username or "").lower()
        )

    enriquecidos = reconstruir_saldos(movimentos)
    return [r for r in reversed(enriquecidos) if _match(r.movement)]
