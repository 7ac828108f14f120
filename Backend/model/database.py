# model/database.py
import logging

import psycopg
from psycopg.rows import dict_row

import config

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id          SERIAL PRIMARY KEY,
    name        TEXT NOT NULL,
    email       TEXT NOT NULL UNIQUE,
    password    TEXT NOT NULL,
    created_at  TIMESTAMP NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS clientes (
    id          SERIAL PRIMARY KEY,
    nome        TEXT NOT NULL,
    email       TEXT NOT NULL,
    nascimento  DATE NOT NULL,
    telefone    TEXT,
    cpf         VARCHAR(11),
    created_at  TIMESTAMP NOT NULL DEFAULT now(),
    updated_at  TIMESTAMP NOT NULL DEFAULT now(),
    deleted_at  TIMESTAMP,
    CONSTRAINT clientes_email_key UNIQUE (email),
    CONSTRAINT clientes_cpf_key UNIQUE (cpf)
);

CREATE TABLE IF NOT EXISTS vendas (
    id          SERIAL PRIMARY KEY,
    valor       NUMERIC(12, 2) NOT NULL CHECK (valor > 0),
    data        TIMESTAMP NOT NULL,
    cliente_id  INTEGER NOT NULL REFERENCES clientes (id),
    created_at  TIMESTAMP NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS vendas_data_idx ON vendas (data);
CREATE INDEX IF NOT EXISTS vendas_cliente_idx ON vendas (cliente_id);
"""


def connect(url: str | None = None) -> psycopg.Connection:
    """Abre uma conexão com linhas como dict. Falha de conexão propaga (OperationalError)."""
    url = url or config.DATABASE_URL
    if not url:
        raise psycopg.OperationalError("DATABASE_URL não configurada")
    try:
        conn = psycopg.connect(url, row_factory=dict_row)
    except psycopg.OperationalError as err:
        logger.error("Erro conectando ao PostgreSQL: %s", err)
        raise
    logger.info("Conectado ao PostgreSQL")
    return conn


def init_schema(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        cur.execute(SCHEMA_SQL)
    conn.commit()


def limpar_dados(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        cur.execute("TRUNCATE vendas, clientes, users RESTART IDENTITY CASCADE")
    conn.commit()


class BaseConnection:
    """Uma conexão psycopg por instância; commit/rollback a cada operação."""
    conn = None

    def __init__(self, conn: psycopg.Connection | None = None):
        # conexão recebida pertence a quem chamou e não é fechada aqui
        self._propria = conn is None
        self.conn = conn if conn is not None else connect()

    def __del__(self):
        if getattr(self, "_propria", False) and getattr(self, "conn", None):
            try:
                self.conn.close()
            except Exception:
                pass

    def _executar(self, query, params=None, muitos=False):
        """Executa, faz commit e devolve fetchone()/fetchall(); rollback em erro."""
        try:
            with self.conn.cursor() as cur:
                cur.execute(query, params)
                if cur.description is None:
                    resultado = None
                else:
                    resultado = cur.fetchall() if muitos else cur.fetchone()
            self.conn.commit()
            return resultado
        except Exception:
            self.conn.rollback()
            raise
