# scges/config.py
"""
Configurações globais e valores padrão do SCGES.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite (sobrescrito por SCGES_DB)
DB_PATH = os.environ.get("SCGES_DB") or os.path.join(os.getcwd(), "scges.db")


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    limiar_estoque_baixo: float = 0.3  # fração do total histórico de entradas
    largura_codigo: int = 3            # códigos "001", "002", ...
    modo_estrito: bool = False         # revalida a saída sob lock antes de gravar
    limite_recentes: int = 5           # movimentações recentes no painel
    limite_estoque_baixo: int = 5      # produtos com estoque baixo no painel


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
