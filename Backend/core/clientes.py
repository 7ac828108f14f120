# core/clientes.py
from datetime import date
from typing import Any, Dict, Optional

from core.date_utils import parse_data
from core.errors import ConflictError, ValidationError
from core.validators import (
    formatar_telefone,
    limpar_digitos,
    validar_cpf,
    validar_email,
    validar_telefone,
)

CAMPOS_OBRIGATORIOS = ("nome", "email", "nascimento")


def _texto(valor) -> str:
    return "" if valor is None else str(valor).strip()


def normalizar_cliente(dados: Dict[str, Any], parcial: bool = False,
                       hoje: Optional[date] = None) -> Dict[str, Any]:
    """
    Valida e normaliza os campos de um cliente (API e importação CSV usam a
    mesma regra). Com parcial=True só os campos presentes são validados.
    Devolve {nome, email, nascimento, telefone, cpf} prontos para gravar.
    """
    if hoje is None:
        hoje = date.today()
    out: Dict[str, Any] = {}

    if not parcial:
        faltando = [c for c in CAMPOS_OBRIGATORIOS if not _texto(dados.get(c))]
        if faltando:
            raise ValidationError("Nome, email e nascimento são obrigatórios")

    if "nome" in dados and dados["nome"] is not None:
        nome = _texto(dados["nome"])
        if not nome:
            raise ValidationError("Nome não pode ser vazio")
        out["nome"] = nome

    if "email" in dados and dados["email"] is not None:
        email = _texto(dados["email"]).lower()
        if not validar_email(email):
            raise ValidationError(f"Email inválido ({email})")
        out["email"] = email

    if "nascimento" in dados and dados["nascimento"] is not None:
        nascimento = parse_data(dados["nascimento"], "Data de nascimento")
        if nascimento > hoje:
            raise ValidationError("Data de nascimento não pode estar no futuro")
        out["nascimento"] = nascimento

    # telefone/cpf: string vazia grava NULL
    if "telefone" in dados or not parcial:
        telefone = _texto(dados.get("telefone"))
        if telefone and not validar_telefone(telefone):
            raise ValidationError(f"Telefone inválido ({telefone})")
        out["telefone"] = formatar_telefone(telefone) if telefone else None

    if "cpf" in dados or not parcial:
        cpf = _texto(dados.get("cpf"))
        if cpf and not validar_cpf(cpf):
            raise ValidationError(f"CPF inválido ({cpf})")
        out["cpf"] = limpar_digitos(cpf) if cpf else None

    return out


def verificar_unicidade(conn, email: Optional[str], cpf: Optional[str],
                        ignorar_id: Optional[int] = None) -> None:
    """Email e CPF não podem estar em uso por outro cliente ativo."""
    if email:
        existente = conn.get_by_email(email)
        if existente and existente["id"] != ignorar_id:
            raise ConflictError(f"Email já cadastrado ({email})")
    if cpf:
        existente = conn.get_by_cpf(cpf)
        if existente and existente["id"] != ignorar_id:
            raise ConflictError(f"CPF já cadastrado ({cpf})")
