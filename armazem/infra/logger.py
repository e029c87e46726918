# armazem/infra/logger.py
"""
Sistema de logging para transações do armazém.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: movimentações de estoque, vendas, ajustes e
operações no armazenamento.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.getenv("ARMAZEM_LOGGING", "0") == "1"
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = False


def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Diretório base para logs
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.getenv("ARMAZEM_LOGS_DIR", str(BASE_DIR / "logs")))


class _LazyDirFileHandler(logging.FileHandler):
    """FileHandler que só cria o diretório/arquivo na primeira emissão."""

    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove todos os handlers existentes
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = _LazyDirFileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


# Loggers específicos para cada operação
transaction_logger = setup_logger('armazem.transactions', str(LOGS_DIR / 'transactions.log'))
movimento_logger = setup_logger('armazem.movimentos', str(LOGS_DIR / 'movimentos.log'))
venda_logger = setup_logger('armazem.vendas', str(LOGS_DIR / 'vendas.log'))
ajuste_logger = setup_logger('armazem.ajustes', str(LOGS_DIR / 'ajustes.log'))
database_logger = setup_logger('armazem.database', str(LOGS_DIR / 'database.log'))
system_logger = setup_logger('armazem.system', str(LOGS_DIR / 'system.log'))


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (movimento, venda, ajuste...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not ENABLE_LOGGING:
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_movimento(action: str, item_id: str, tipo: str, quantidade: float, **kwargs) -> None:
    """
    Log específico para movimentações de estoque.

    Args:
        action: Ação realizada (registrar, auditoria...)
        item_id: Identificador do item
        tipo: ENTRADA, SAIDA ou AJUSTE
        quantidade: Quantidade movimentada (ou saldo alvo no AJUSTE)
        **kwargs: Dados adicionais
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"action": action, "item_id": item_id, "tipo": tipo, "quantidade": quantidade, **kwargs}
    movimento_logger.info(f"MOVIMENTO_{tipo}: {log_data}")


def log_venda(action: str, sale_id: str, total: float, **kwargs) -> None:
    if not ENABLE_LOGGING:
        return
    log_data = {"action": action, "sale_id": sale_id, "total": total, **kwargs}
    venda_logger.info(f"VENDA_{action.upper()}: {log_data}")


def log_ajuste(action: str, ajuste_id: str, status: str, **kwargs) -> None:
    if not ENABLE_LOGGING:
        return
    log_data = {"action": action, "ajuste_id": ajuste_id, "status": status, **kwargs}
    ajuste_logger.info(f"AJUSTE_{action.upper()}: {log_data}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no armazenamento.

    Args:
        table: Nome da tabela/coleção
        operation: Operação (GET, SET, APPEND, UPSERT, DELETE)
        affected_rows: Número de registros afetados
        **kwargs: Dados adicionais
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"table": table, "operation": operation, "affected_rows": affected_rows, **kwargs}
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"event": event, "details": details or {}}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Log para operações de arquivo (importação/exportação)."""
    if not ENABLE_LOGGING:
        return
    log_data = {"operation": operation, "file_path": file_path, "rows_processed": rows_processed, **kwargs}
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> str:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, movimentos, vendas, ajustes, database, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    log_files = {
        "transactions": LOGS_DIR / "transactions.log",
        "movimentos": LOGS_DIR / "movimentos.log",
        "vendas": LOGS_DIR / "vendas.log",
        "ajustes": LOGS_DIR / "ajustes.log",
        "database": LOGS_DIR / "database.log",
        "system": LOGS_DIR / "system.log",
    }

    log_file = log_files.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
    except OSError as e:
        return f"Erro ao ler log {log_type}: {e}"
    stamp = datetime.now().strftime(DATE_FORMAT)
    recent = all_lines[-lines:]
    return f"# {log_type} @ {stamp}\n" + ''.join(recent)
