# core/importacao_csv.py
"""
Importação de clientes a partir de CSV.

O upload é gravado em UPLOAD_DIR e removido ao final em qualquer caminho de
saída. Cada linha passa pelas mesmas regras do cadastro pela API; erros de
validação e de duplicidade viram ``{row, reason}`` e a importação segue.
"""
import csv
import logging
import os
import random
import time
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from core.clientes import normalizar_cliente, verificar_unicidade
from core.errors import ConflictError, UnsupportedMediaError, ValidationError

logger = logging.getLogger(__name__)

TIPOS_CSV = {"text/csv", "application/csv"}
COLUNAS = ("nome", "email", "nascimento", "telefone", "cpf")
OBRIGATORIAS = ("nome", "email", "nascimento")
CHUNK = 64 * 1024


def validar_tipo(filename: Optional[str], content_type: Optional[str]) -> None:
    ctype = (content_type or "").split(";")[0].strip().lower()
    nome = (filename or "").lower()
    if ctype in TIPOS_CSV or nome.endswith(".csv"):
        return
    raise UnsupportedMediaError("Apenas arquivos CSV são permitidos")


@contextmanager
def upload_temporario(upload, upload_dir: str, max_bytes: int):
    """
    Grava o UploadFile em disco (limitado a max_bytes) e devolve o caminho.
    O arquivo é apagado na saída do bloco, com ou sem exceção.
    """
    if upload is None:
        raise ValidationError("Arquivo CSV é obrigatório")
    validar_tipo(upload.filename, upload.content_type)

    os.makedirs(upload_dir, exist_ok=True)
    nome = f"clientes-{int(time.time() * 1000)}-{random.randint(0, 10**9)}.csv"
    caminho = Path(upload_dir) / nome
    try:
        escritos = 0
        with open(caminho, "wb") as destino:
            while True:
                chunk = upload.file.read(CHUNK)
                if not chunk:
                    break
                escritos += len(chunk)
                if escritos > max_bytes:
                    raise ValidationError(
                        f"Arquivo excede o tamanho máximo de {max_bytes // (1024 * 1024)} MB"
                    )
                destino.write(chunk)
        yield caminho
    finally:
        try:
            caminho.unlink()
        except FileNotFoundError:
            pass


def _ler_linhas(caminho: Path) -> List[Tuple[int, List[str]]]:
    """(linha inicial no arquivo, campos) de cada registro; campos entre aspas podem ocupar várias linhas."""
    registros = []
    try:
        with open(caminho, newline="", encoding="utf-8-sig") as f:
            reader = csv.reader(f)
            anterior = 0
            for campos in reader:
                registros.append((anterior + 1, campos))
                anterior = reader.line_num
        return registros
    except UnicodeDecodeError:
        raise ValidationError("Arquivo CSV deve estar em UTF-8") from None
    except csv.Error as e:
        raise ValidationError(f"CSV malformado: {e}") from None


def _indices_cabecalho(cabecalho: List[str]) -> Dict[str, int]:
    normalizado = [c.strip().lower() for c in cabecalho]
    indices = {c: normalizado.index(c) for c in COLUNAS if c in normalizado}
    faltando = [c for c in OBRIGATORIAS if c not in indices]
    if faltando:
        raise ValidationError("Cabeçalho inválido, colunas ausentes: " + ", ".join(faltando))
    return indices


def importar_clientes(conn, caminho: Path, hoje: Optional[date] = None) -> Dict[str, Any]:
    """
    Lê o CSV e grava os clientes válidos. Linhas numeradas como no arquivo
    (cabeçalho = 1). Erros de banco que não sejam de unicidade são fatais.
    """
    linhas = _ler_linhas(caminho)
    if not linhas:
        raise ValidationError("Arquivo CSV vazio")
    indices = _indices_cabecalho(linhas[0][1])

    importados: List[Dict[str, Any]] = []
    erros: List[Dict[str, Any]] = []
    emails_lote: Dict[str, int] = {}
    cpfs_lote: Dict[str, int] = {}
    total = 0

    for numero, linha in linhas[1:]:
        if not any(cel.strip() for cel in linha):
            continue
        total += 1
        dados = {c: (linha[i] if i < len(linha) else "") for c, i in indices.items()}

        try:
            faltando = [c for c in OBRIGATORIAS if not dados.get(c, "").strip()]
            if faltando:
                raise ValidationError("Campos obrigatórios ausentes: " + ", ".join(faltando))

            cliente = normalizar_cliente(dados, hoje=hoje)

            email, cpf = cliente["email"], cliente["cpf"]
            if email in emails_lote:
                raise ConflictError(f"Email duplicado no arquivo ({email}, linha {emails_lote[email]})")
            if cpf and cpf in cpfs_lote:
                raise ConflictError(f"CPF duplicado no arquivo ({cpf}, linha {cpfs_lote[cpf]})")

            verificar_unicidade(conn, email, cpf)
            criado = conn.insert_cliente(cliente)
        except (ValidationError, ConflictError) as e:
            logger.debug("Linha %s rejeitada: %s", numero, e.message)
            erros.append({"row": numero, "reason": e.message})
            continue

        emails_lote[email] = numero
        if cpf:
            cpfs_lote[cpf] = numero
        importados.append(criado)

    logger.info("Importação CSV: %s linhas, %s importadas, %s com erro",
                total, len(importados), len(erros))
    return {
        "total": total,
        "imported": len(importados),
        "failed": len(erros),
        "errors": erros,
        "clientes": importados,
    }
