# model/usuario_connection.py
import psycopg

from core.errors import ConflictError
from model.database import BaseConnection


class UsuarioConnection(BaseConnection):

    def insert_usuario(self, data):
        """data = { name, email, password (hash) }"""
        try:
            return self._executar(
                """
                INSERT INTO users (name, email, password)
                VALUES (%(name)s, %(email)s, %(password)s)
                RETURNING id, name, email, password, created_at
                """,
                data,
            )
        except psycopg.errors.UniqueViolation as err:
            raise ConflictError("Email já cadastrado") from err

    def get_by_email(self, email: str):
        return self._executar(
            "SELECT id, name, email, password, created_at FROM users WHERE email = %s", (email,)
        )
