# schema/cliente_schema.py
from typing import Optional

from pydantic import BaseModel, Field

# As regras (email, CPF, telefone, nascimento) ficam em core.clientes para
# valerem igual na API e na importação CSV; aqui só o formato do corpo.


class ClienteSchema(BaseModel):
    nome: str = Field(..., examples=["Maria Silva Santos"])
    email: str = Field(..., examples=["maria.silva@email.com"])
    nascimento: str = Field(..., description="AAAA-MM-DD", examples=["1990-05-15"])
    telefone: Optional[str] = Field(default=None, examples=["11999999999"])
    cpf: Optional[str] = Field(default=None, examples=["11144477735"])


class ClienteUpdateSchema(BaseModel):
    nome: Optional[str] = None
    email: Optional[str] = None
    nascimento: Optional[str] = None
    telefone: Optional[str] = None
    cpf: Optional[str] = None


def _iso(valor):
    return valor.isoformat() if valor is not None else None


def cliente_to_dict(row) -> dict:
    return {
        "id": row["id"],
        "nome": row["nome"],
        "email": row["email"],
        "nascimento": _iso(row["nascimento"]),
        "telefone": row["telefone"],
        "cpf": row["cpf"],
        "createdAt": _iso(row["created_at"]),
        "updatedAt": _iso(row["updated_at"]),
        "deletedAt": _iso(row["deleted_at"]),
    }
