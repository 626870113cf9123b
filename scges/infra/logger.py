"""
Sistema de logging para transações do SCGES.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: cadastro de produtos, entradas, saídas, anexos e
operações no banco de dados.

O logging é opcional: fica desligado até que `ENABLE_LOGGING` seja
verdadeiro (variável de ambiente SCGES_LOGGING=1) ou `enable_logging()`
seja chamado. Os arquivos só são abertos na primeira mensagem.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.environ.get("SCGES_LOGGING", "").strip().lower() in {"1", "true", "sim", "yes"}
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = False

def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Diretório base para logs (sobrescrito por SCGES_LOGS_DIR)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("SCGES_LOGS_DIR") or BASE_DIR / "logs")

LOG_FILES = {
    "transactions": "transactions.log",
    "entradas": "entradas.log",
    "saidas": "saidas.log",
    "database": "database.log",
    "system": "system.log",
}


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

    # Remove handlers anteriores (reconfiguração via enable_logging)
    while logger.handlers:
        handler = logger.handlers[0]
        logger.removeHandler(handler)
        handler.close()

    # delay=True: o arquivo só é criado na primeira mensagem
    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


def _setup_all() -> None:
    global transaction_logger, entrada_logger, saida_logger, database_logger, system_logger
    if ENABLE_LOGGING:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
    transaction_logger = setup_logger('scges.transactions', str(LOGS_DIR / LOG_FILES["transactions"]))
    entrada_logger = setup_logger('scges.entradas', str(LOGS_DIR / LOG_FILES["entradas"]))
    saida_logger = setup_logger('scges.saidas', str(LOGS_DIR / LOG_FILES["saidas"]))
    database_logger = setup_logger('scges.database', str(LOGS_DIR / LOG_FILES["database"]))
    system_logger = setup_logger('scges.system', str(LOGS_DIR / LOG_FILES["system"]))


_setup_all()


def enable_logging(logs_dir: Optional[str] = None) -> Path:
    """Liga o logging em arquivo, opcionalmente em outro diretório."""
    global ENABLE_LOGGING, LOGS_DIR
    ENABLE_LOGGING = True
    if logs_dir:
        LOGS_DIR = Path(logs_dir)
    _setup_all()
    return LOGS_DIR


def disable_logging() -> None:
    global ENABLE_LOGGING
    ENABLE_LOGGING = False
    for lg in (transaction_logger, entrada_logger, saida_logger, database_logger, system_logger):
        for handler in lg.handlers:
            handler.close()


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (entrada, saida, produto_criar, etc.)
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


def log_entrada(action: str, produto: str, quantidade: Any, **kwargs) -> None:
    """
    Log específico para operações de entrada.

    Args:
        action: Ação realizada (insert, batch_row, ...)
        produto: Descrição ou código do produto
        quantidade: Quantidade movimentada
        **kwargs: Dados adicionais
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"action": action, "produto": produto, "quantidade": quantidade, **kwargs}
    entrada_logger.info(f"ENTRADA_{action.upper()}: {log_data}")


def log_saida(action: str, produto: str, quantidade: Any, **kwargs) -> None:
    """Log específico para operações de saída (mesmos campos de `log_entrada`)."""
    if not ENABLE_LOGGING:
        return
    log_data = {"action": action, "produto": produto, "quantidade": quantidade, **kwargs}
    saida_logger.info(f"SAIDA_{action.upper()}: {log_data}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """Log de operações no banco (tabela, operação SQL e linhas afetadas)."""
    if not ENABLE_LOGGING:
        return
    log_data = {"table": table, "operation": operation, "affected_rows": affected_rows, **kwargs}
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """Evento do sistema no nível `level` (info, warning, error)."""
    if not ENABLE_LOGGING:
        return
    log_data = {"event": event, "details": details or {}}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Log para operações de arquivo (importação/exportação/anexos)."""
    if not ENABLE_LOGGING:
        return
    log_data = {"operation": operation, "file_path": file_path, "rows_processed": rows_processed, **kwargs}
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> str:
    """
    Obtém as linhas mais recentes de um log.

    Args:
        log_type: Tipo de log (transactions, entradas, saidas, database, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    nome = LOG_FILES.get(log_type)
    if not nome:
        return f"Log {log_type} não encontrado."
    log_file = LOGS_DIR / nome
    if not log_file.exists():
        return f"Log {log_type} não encontrado."

    for lg in (transaction_logger, entrada_logger, saida_logger, database_logger, system_logger):
        for handler in lg.handlers:
            handler.flush()
    with open(log_file, 'r', encoding='utf-8') as f:
        all_lines = f.readlines()
    recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines
    return ''.join(recent_lines)
