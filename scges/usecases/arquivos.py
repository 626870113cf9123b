# scges/usecases/arquivos.py
"""
UC: Documentos em PDF guardados no blob store.

Nota fiscal do produto:
- anexar_nota_fiscal: valida o PDF, guarda no blob store e grava a
  referência no produto (substituindo a anterior, que é apagada);
- registrar_entrada_com_nota: guarda o PDF, registra a entrada com a
  referência (na movimentação e no produto) e apaga a nota anterior do
  produto; se a entrada for recusada, o PDF recém-guardado é apagado;
- obter_nota_fiscal: devolve o arquivo anexado;
- remover_nota_fiscal: apaga o arquivo e limpa a referência.

Formulários (metadata tipo="formulario", com data_inicial/data_final):
- listar_formularios, anexar_formulario, obter_formulario, remover_formulario.

Obs.:
- O nome guardado é "<epoch-ms>-<nome original>", como no upload web.
- Excluir o produto não apaga o arquivo anexado.
"""

from __future__ import annotations

import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from scges.adapters.parsers import parse_data
from scges.domain.errors import NotFoundError, ValidationError
from scges.domain.models import Arquivo, Movimentacao, NotaFiscalRef, Produto
from scges.infra.logger import log_file_operation, log_system_event, log_transaction
from scges.usecases.servicos import Servicos

PDF_MAGIC = b"%PDF"
TIPO_NOTA = "nota_fiscal"
TIPO_FORMULARIO = "formulario"


def eh_pdf(conteudo: bytes, filename: str) -> bool:
    """Aceita pela extensão .pdf ou pela assinatura %PDF no início."""
    return filename.lower().endswith(".pdf") or bytes(conteudo[:4]) == PDF_MAGIC


def _nome_pdf(conteudo: bytes, filename: str) -> str:
    """Valida o upload e devolve o nome a guardar ("<epoch-ms>-<nome>")."""
    if not conteudo:
        raise ValidationError("Nenhum arquivo enviado", field="arquivo")
    nome = os.path.basename(filename or "").strip()
    if not nome:
        raise ValidationError("Nome do arquivo é obrigatório", field="filename")
    if not eh_pdf(conteudo, nome):
        raise ValidationError("Apenas arquivos PDF são permitidos", field="arquivo")
    return f"{int(time.time() * 1000)}-{nome}"


def _produto(srv: Servicos, produto_id: str) -> Produto:
    produto = srv.catalogo.obter(produto_id)
    if produto is None:
        raise NotFoundError("Produto", produto_id)
    return produto


def _apaga_arquivo(srv: Servicos, file_id: str) -> None:
    try:
        srv.arquivos.delete(file_id)
    except NotFoundError:
        log_system_event("arquivo_ausente", {"id": file_id}, level="warning")
        return
    log_file_operation("delete", file_id)


# ----------------------
# Nota fiscal
# ----------------------

def anexar_nota_fiscal(
    srv: Servicos,
    produto_id: str,
    conteudo: bytes,
    filename: str,
    tipo: str = TIPO_NOTA,
) -> NotaFiscalRef:
    dados = {"produto_id": produto_id, "filename": filename, "tamanho": len(conteudo or b"")}
    try:
        armazenado = _nome_pdf(conteudo, filename)
        produto = _produto(srv, produto_id)
        file_id = srv.arquivos.save(conteudo, armazenado, {"produto_id": produto_id, "tipo": tipo})
        ref = NotaFiscalRef(file_id, armazenado)
        srv.catalogo.definir_nota_fiscal(produto_id, ref)
    except Exception as e:
        log_transaction("nota_fiscal_anexar", dados, error=str(e))
        raise

    log_file_operation("upload", armazenado, id=file_id, produto_id=produto_id)
    anterior = produto.nota_fiscal
    if anterior is not None:
        _apaga_arquivo(srv, anterior.id)
    log_transaction("nota_fiscal_anexar", dados, result=file_id)
    return ref


def registrar_entrada_com_nota(
    srv: Servicos,
    conteudo: bytes,
    filename: str,
    produto: str,
    quantidade: Any,
    **entrada: Any,
) -> Movimentacao:
    """Registra uma entrada já ligada à nota fiscal em PDF.

    O PDF é guardado antes da entrada para que a movimentação nasça com a
    referência. Se a entrada for recusada, o arquivo é apagado e o erro
    propaga; nada fica no livro nem no blob store.
    """
    dados = {"produto": produto, "filename": filename, "tamanho": len(conteudo or b"")}
    armazenado = _nome_pdf(conteudo, filename)
    existente = srv.catalogo.buscar_por_descricao(str(produto or ""))
    anterior = existente.nota_fiscal if existente else None

    file_id = srv.arquivos.save(conteudo, armazenado, {
        "produto_id": existente.id if existente else None,
        "produto": produto,
        "tipo": TIPO_NOTA,
    })
    ref = NotaFiscalRef(file_id, armazenado)
    try:
        mov = srv.livro.registrar_entrada(produto, quantidade, nota_fiscal=ref, **entrada)
    except Exception as e:
        _apaga_arquivo(srv, file_id)
        log_transaction("entrada_com_nota", dados, error=str(e))
        raise

    log_file_operation("upload", armazenado, id=file_id, produto_id=mov.produto_id)
    if anterior is not None and anterior.id != file_id:
        _apaga_arquivo(srv, anterior.id)
    log_transaction("entrada_com_nota", dados, result=mov.id)
    return mov


def obter_nota_fiscal(srv: Servicos, produto_id: str) -> Arquivo:
    ref: Optional[NotaFiscalRef] = _produto(srv, produto_id).nota_fiscal
    if ref is None:
        raise NotFoundError("Nota fiscal do produto", produto_id)
    return srv.arquivos.get(ref.id)


def remover_nota_fiscal(srv: Servicos, produto_id: str) -> Produto:
    produto = _produto(srv, produto_id)
    ref = produto.nota_fiscal
    if ref is None:
        raise NotFoundError("Nota fiscal do produto", produto_id)
    atualizado = srv.catalogo.definir_nota_fiscal(produto_id, None)
    _apaga_arquivo(srv, ref.id)
    log_transaction("nota_fiscal_remover", {"produto_id": produto_id}, result=ref.id)
    return atualizado


# ----------------------
# Formulários
# ----------------------

def _data_iso(valor: Any, campo: str) -> Optional[str]:
    try:
        d = parse_data(valor)
    except ValidationError as e:
        raise ValidationError(str(e), field=campo) from None
    if d is None:
        return None
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()


def formulario_para_dict(arq: Arquivo) -> Dict[str, Any]:
    return {
        "id": arq.id,
        "filename": arq.filename,
        "data_inicial": arq.metadata.get("data_inicial"),
        "data_final": arq.metadata.get("data_final"),
        "upload_date": arq.upload_date,
        "tamanho": arq.tamanho,
    }


def listar_formularios(srv: Servicos) -> List[Dict[str, Any]]:
    """Formulários guardados, do upload mais recente ao mais antigo."""
    return [formulario_para_dict(a) for a in srv.arquivos.list(tipo=TIPO_FORMULARIO)]


def anexar_formulario(
    srv: Servicos,
    conteudo: bytes,
    filename: str,
    data_inicial: Any = None,
    data_final: Any = None,
) -> str:
    """Guarda um formulário em PDF com o período de vigência (opcional)."""
    dados = {"filename": filename, "data_inicial": str(data_inicial or ""), "data_final": str(data_final or "")}
    try:
        armazenado = _nome_pdf(conteudo, filename)
        inicio = _data_iso(data_inicial, "data_inicial")
        fim = _data_iso(data_final, "data_final")
        if inicio and fim and inicio > fim:
            raise ValidationError("Data inicial posterior à data final", field="data_inicial")
        file_id = srv.arquivos.save(conteudo, armazenado, {
            "tipo": TIPO_FORMULARIO,
            "data_inicial": inicio,
            "data_final": fim,
        })
    except Exception as e:
        log_transaction("formulario_anexar", dados, error=str(e))
        raise

    log_file_operation("upload", armazenado, id=file_id, tipo=TIPO_FORMULARIO)
    log_transaction("formulario_anexar", dados, result=file_id)
    return file_id


def obter_formulario(srv: Servicos, file_id: str) -> Arquivo:
    arq = srv.arquivos.get(file_id)
    if arq.metadata.get("tipo") != TIPO_FORMULARIO:
        raise NotFoundError("Formulário", file_id)
    return arq


def remover_formulario(srv: Servicos, file_id: str) -> None:
    obter_formulario(srv, file_id)
    srv.arquivos.delete(file_id)
    log_file_operation("delete", file_id, tipo=TIPO_FORMULARIO)
    log_transaction("formulario_remover", {"id": file_id}, result=file_id)
