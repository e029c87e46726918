# armazem/config.py
"""
Configurações globais e valores padrão do sistema de armazém.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.getenv("ARMAZEM_DB", os.path.join(os.getcwd(), "armazem.db"))


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    interest_rate: float = 2.5        # % de juros por parcela no crédito
    max_discount_rate: float = 10.0   # % máximo de desconto sobre o subtotal


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()


# Uma chave por coleção no armazenamento chave/valor
STORAGE_KEYS = {
    "items": "logos_items",
    "movements": "logos_movements",
    "users": "logos_users",
    "sales": "logos_sales",
    "customers": "logos_customers",
    "tasks": "logos_tasks",
    "adjustments": "logos_adjustments",
    "settings": "logos_settings",
}


@dataclass
class MasterUser:
    """Conta de gerência criada quando não há nenhum usuário cadastrado."""
    id: str = "master-user-id"
    username: str = os.getenv("ARMAZEM_ADMIN_USER", "admin")
    password: str = os.getenv("ARMAZEM_ADMIN_PASSWORD", "logos")


MASTER_USER = MasterUser()

SKU_PREFIX = "LGS"
CUSTOMER_ID_START = 1000
