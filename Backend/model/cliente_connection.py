# model/cliente_connection.py
import psycopg
from psycopg import sql

from core.errors import ConflictError
from model.database import BaseConnection

COLUNAS = "id, nome, email, nascimento, telefone, cpf, created_at, updated_at, deleted_at"

# sortBy da API -> coluna
ORDENACAO = {
    "nome": "nome",
    "email": "email",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

def escapar_like(texto: str) -> str:
    """Busca literal: \\, % e _ deixam de ser curingas do ILIKE."""
    return texto.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


MENSAGENS_UNICIDADE = {
    "clientes_email_key": "Email já cadastrado",
    "clientes_cpf_key": "CPF já cadastrado",
}


class ClienteConnection(BaseConnection):

    def _gravar(self, query, params):
        # a UNIQUE do banco vale também para clientes removidos (soft delete)
        try:
            return self._executar(query, params)
        except psycopg.errors.UniqueViolation as err:
            constraint = getattr(err.diag, "constraint_name", None)
            raise ConflictError(MENSAGENS_UNICIDADE.get(constraint, "Registro duplicado")) from err

    # C
    def insert_cliente(self, data):
        """data = { nome, email, nascimento, telefone, cpf } já normalizados."""
        return self._gravar(
            f"""
            INSERT INTO clientes (nome, email, nascimento, telefone, cpf)
            VALUES (%(nome)s, %(email)s, %(nascimento)s, %(telefone)s, %(cpf)s)
            RETURNING {COLUNAS}
            """,
            data,
        )

    # R (listar)
    def _filtro(self, search, incluir_deletados):
        condicoes = []
        params = {}
        if not incluir_deletados:
            condicoes.append(sql.SQL("deleted_at IS NULL"))
        if search:
            condicoes.append(sql.SQL(
                "(nome ILIKE %(search)s ESCAPE '\\' OR email ILIKE %(search)s ESCAPE '\\')"
            ))
            params["search"] = f"%{escapar_like(search)}%"
        if not condicoes:
            return sql.SQL(""), params
        return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(condicoes), params

    def read_cliente(self, search=None, limit=10, offset=0, sort_by="createdAt",
                     sort_order="desc", incluir_deletados=False):
        where, params = self._filtro(search, incluir_deletados)
        direcao = sql.SQL("ASC" if sort_order == "asc" else "DESC")
        query = sql.SQL(
            "SELECT {cols} FROM clientes{where} ORDER BY {col} {dir}, id {dir} "
            "LIMIT %(limit)s OFFSET %(offset)s"
        ).format(
            cols=sql.SQL(COLUNAS),
            where=where,
            col=sql.Identifier(ORDENACAO.get(sort_by, "created_at")),
            dir=direcao,
        )
        return self._executar(query, {**params, "limit": limit, "offset": offset}, muitos=True)

    def count_cliente(self, search=None, incluir_deletados=False):
        where, params = self._filtro(search, incluir_deletados)
        query = sql.SQL("SELECT count(*) AS total FROM clientes{where}").format(where=where)
        return self._executar(query, params)["total"]

    # R (uno) - inclui removidos
    def filtrar_cliente(self, id_cliente):
        return self._executar(f"SELECT {COLUNAS} FROM clientes WHERE id = %s", (id_cliente,))

    def get_by_email(self, email):
        """Só clientes ativos."""
        return self._executar(
            f"SELECT {COLUNAS} FROM clientes WHERE email = %s AND deleted_at IS NULL",
            (email,),
        )

    def get_by_cpf(self, cpf):
        """Só clientes ativos."""
        return self._executar(
            f"SELECT {COLUNAS} FROM clientes WHERE cpf = %s AND deleted_at IS NULL",
            (cpf,),
        )

    # U (parcial)
    def update_cliente(self, id_cliente, data):
        if not data:
            return self.filtrar_cliente(id_cliente)
        campos = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(k), sql.Placeholder(k)) for k in data
        )
        query = sql.SQL(
            "UPDATE clientes SET {campos}, updated_at = now() "
            "WHERE id = %(id_cliente)s RETURNING {cols}"
        ).format(campos=campos, cols=sql.SQL(COLUNAS))
        return self._gravar(query, {**data, "id_cliente": id_cliente})

    # D (soft delete)
    def soft_delete_cliente(self, id_cliente):
        return self._executar(
            f"""
            UPDATE clientes
            SET deleted_at = now(), updated_at = now()
            WHERE id = %s AND deleted_at IS NULL
            RETURNING {COLUNAS}
            """,
            (id_cliente,),
        )
