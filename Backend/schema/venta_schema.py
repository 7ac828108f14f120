# schema/venta_schema.py
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class VentaSchema(BaseModel):
    valor: Decimal = Field(..., gt=0, examples=[149.90])
    data: Optional[str] = Field(
        default=None,
        description="AAAA-MM-DD ou data/hora ISO 8601; sem valor usa o momento atual",
        examples=["2025-01-10T14:30:00"],
    )
    clienteId: int


def venta_to_dict(row) -> dict:
    return {
        "id": row["id"],
        "valor": float(row["valor"]),
        "data": row["data"].isoformat() if row["data"] else None,
        "clienteId": row["cliente_id"],
        "createdAt": row["created_at"].isoformat() if row.get("created_at") else None,
        "cliente": {
            "id": row["cliente_id"],
            "nome": row["cliente_nome"],
            "email": row["cliente_email"],
        },
    }
