# armazem/usecases/importar_itens.py
"""
UC: Importar o catálogo de itens a partir de uma planilha.

Cada linha vira um item novo (saldo zero). Se a planilha trouxer saldo
inicial positivo, ele entra no livro como uma ENTRADA, para que o saldo
continue reconstruível a partir das movimentações.
"""

from __future__ import annotations

from typing import Any, Dict, List

from armazem.config import DB_PATH, MASTER_USER
from armazem.adapters.planilhas import load_itens_from_planilha
from armazem.domain.errors import EstoqueError
from armazem.domain.models import ENTRADA
from armazem.infra.repositories import ItemRepo
from armazem.infra.logger import log_file_operation, log_system_event, log_transaction, print_system
from armazem.usecases.cadastros import adicionar_item
from armazem.usecases.registrar_movimento import registrar_movimento


def run_importar_itens(
    path: str,
    operador_id: str = MASTER_USER.id,
    operador_nome: str = MASTER_USER.username,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Importa itens de XLSX/CSV. Linhas com erro são reportadas e puladas."""
    log_system_event("importar_itens_start", {"file_path": path})
    rows = load_itens_from_planilha(path)
    log_file_operation("import", path, rows_processed=len(rows))
    if not rows:
        log_system_event("planilha_vazia", {"file_path": path}, level="warning")
        print_system("Nenhum item com nome encontrado na planilha.")

    sucessos = 0
    erros: List[Dict[str, Any]] = []
    for n, row in enumerate(rows, start=1):
        inicial = row.pop("quantidade_inicial", None)
        try:
            # item e saldo inicial entram juntos ou a linha inteira é descartada
            with ItemRepo(db_path).transaction() as c:
                item = adicionar_item(row, db_path=db_path, conn=c)
                if inicial and inicial > 0:
                    registrar_movimento(operador_id, operador_nome, item.id, ENTRADA, inicial,
                                        "Saldo inicial (importação)", db_path=db_path, conn=c)
            sucessos += 1
        except EstoqueError as e:
            erros.append({"registro": n, "mensagem": str(e)})

    result = {"tipo": "Itens", "total": len(rows), "sucessos": sucessos, "erros": erros}
    log_transaction("importar_itens", {"file": path, "rows_count": len(rows)},
                    result={"sucessos": sucessos, "erros": len(erros)})
    return result
