# scges/domain/errors.py
"""
Hierarquia de erros do SCGES.

Todas as falhas são síncronas e reportadas a quem chamou a operação; nada
é repetido automaticamente. Cada classe tem um atributo `code` estável para
que a camada de transporte (CLI, HTTP) identifique o erro sem depender da
mensagem.

    ScgesError
    +-- ValidationError
    +-- InsufficientStockError
    +-- NotFoundError
    +-- ConflictError
    +-- StorageError
"""

from __future__ import annotations

from typing import Any, Optional


class ScgesError(Exception):
    """Base de todos os erros do sistema."""

    code: str = "SCGES_ERROR"


class ValidationError(ScgesError):
    """Campo obrigatório ausente ou inválido."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InsufficientStockError(ScgesError):
    """Saída maior que a quantidade derivada atual do produto."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, produto_id: str, disponivel: int, solicitado: int):
        self.produto_id = produto_id
        self.disponivel = disponivel
        self.solicitado = solicitado
        super().__init__(
            f"Estoque insuficiente: disponível {disponivel}, solicitado {solicitado}"
        )


class NotFoundError(ScgesError):
    """Entidade referenciada não existe."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} não encontrado: {entity_id}")


class ConflictError(ScgesError):
    """Violação de unicidade na camada de armazenamento (código de produto)."""

    code: str = "CONFLICT"

    def __init__(self, message: str, value: Any = None):
        self.value = value
        super().__init__(message)


class StorageError(ScgesError):
    """Falha opaca do armazenamento ou do blob store."""

    code: str = "STORAGE_ERROR"
