# schema/usuario_schema.py
from pydantic import BaseModel


class UsuarioSchema(BaseModel):
    name: str
    email: str
    password: str


class LoginSchema(BaseModel):
    email: str
    password: str


class UsuarioAutenticado(BaseModel):
    """Identidade extraída do JWT, repassada aos handlers via Depends."""
    id: int
    email: str


def usuario_to_dict(row) -> dict:
    # nunca devolve o hash da senha
    return {"id": row["id"], "name": row["name"], "email": row["email"]}
