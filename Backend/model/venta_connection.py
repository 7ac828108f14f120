# model/venta_connection.py
from core.estatisticas import arredondar

from model.database import BaseConnection

SELECT_VENDA = """
    SELECT v.id, v.valor, v.data, v.cliente_id, v.created_at,
           c.nome AS cliente_nome, c.email AS cliente_email
    FROM vendas v
    JOIN clientes c ON c.id = v.cliente_id
"""


class VentaConnection(BaseConnection):

    # ----------------- CRUD -----------------
    def insert_venta(self, data: dict):
        """
        data = { valor, data, cliente_id }
        O valor é gravado com 2 casas (meio para cima).
        """
        valor = arredondar(data["valor"])
        row = self._executar(
            """
            INSERT INTO vendas (valor, data, cliente_id)
            VALUES (%(valor)s, %(data)s, %(cliente_id)s)
            RETURNING id
            """,
            {**data, "valor": valor},
        )
        return self.filtrar_venta(row["id"])

    def filtrar_venta(self, id_venta: int):
        return self._executar(SELECT_VENDA + " WHERE v.id = %s", (id_venta,))

    def read_venta(self, cliente_id: int | None = None):
        if cliente_id is None:
            return self._executar(SELECT_VENDA + " ORDER BY v.data DESC, v.id DESC", muitos=True)
        return self._executar(
            SELECT_VENDA + " WHERE v.cliente_id = %s ORDER BY v.data DESC, v.id DESC",
            (cliente_id,),
            muitos=True,
        )

    # ----------------- ESTATÍSTICAS -----------------
    def read_venta_periodo(self, inicio, fim):
        """Vendas com inicio <= data < fim (fim exclusivo)."""
        return self._executar(
            """
            SELECT id, valor, data, cliente_id
            FROM vendas
            WHERE data >= %s AND data < %s
            ORDER BY data ASC, id ASC
            """,
            (inicio, fim),
            muitos=True,
        )

    def read_venta_clientes_ativos(self):
        """Todas as vendas de clientes não removidos, para o ranking."""
        return self._executar(
            """
            SELECT v.cliente_id, c.nome, v.valor, v.data
            FROM vendas v
            JOIN clientes c ON c.id = v.cliente_id
            WHERE c.deleted_at IS NULL
            ORDER BY v.cliente_id ASC, v.data ASC
            """,
            muitos=True,
        )
