# seed.py
"""
Popula o banco com dados de demonstração (apaga o que existir).

    python seed.py            # usa DATABASE_URL do .env
"""
import logging
import random
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import config
from core.seguranca import hash_senha
from core.validators import formatar_telefone, gerar_cpf
from model.cliente_connection import ClienteConnection
from model.database import connect, init_schema, limpar_dados
from model.usuario_connection import UsuarioConnection
from model.venta_connection import VentaConnection

logger = logging.getLogger("seed")

USUARIOS = [
    ("Administrador", "admin@loja.com"),
    ("Gerente da Loja", "gerente@loja.com"),
]
SENHA_PADRAO = "admin123"

CLIENTES = [
    ("Maria Silva Santos", "maria.santos@email.com", date(1985, 3, 15), "11999991234"),
    ("João Pedro Oliveira", "joao.pedro@email.com", date(1990, 7, 22), "11988885678"),
    ("Ana Carolina Lima", "ana.lima@email.com", date(1988, 11, 8), "11977779012"),
    ("Carlos Eduardo Costa", "carlos.costa@email.com", date(1982, 5, 30), "11966663456"),
    ("Fernanda Rodrigues", "fernanda.rodrigues@email.com", date(1992, 9, 12), "11955557890"),
    ("Ricardo Almeida", "ricardo.almeida@email.com", date(1979, 1, 3), "1133334444"),
    ("Juliana Ferreira", "juliana.ferreira@email.com", date(1995, 12, 19), None),
    ("Paulo Henrique Souza", "paulo.souza@email.com", date(1987, 6, 25), "21999990000"),
]

DIAS_HISTORICO = 30


def seed(url: str | None = None, rng: random.Random | None = None) -> dict:
    rng = rng or random.Random()
    conn = connect(url)
    try:
        init_schema(conn)
        logger.info("Limpando dados existentes...")
        limpar_dados(conn)

        usuarios = UsuarioConnection(conn)
        senha = hash_senha(SENHA_PADRAO)
        for nome, email in USUARIOS:
            usuarios.insert_usuario({"name": nome, "email": email, "password": senha})
        logger.info("Usuários criados: %s", ", ".join(e for _, e in USUARIOS))

        clientes = ClienteConnection(conn)
        ids = []
        for nome, email, nascimento, telefone in CLIENTES:
            row = clientes.insert_cliente({
                "nome": nome,
                "email": email,
                "nascimento": nascimento,
                "telefone": formatar_telefone(telefone) if telefone else None,
                "cpf": gerar_cpf(rng),
            })
            ids.append(row["id"])
        logger.info("Clientes criados: %s", len(ids))

        vendas = VentaConnection(conn)
        hoje = date.today()
        total_vendas = 0
        for offset in range(DIAS_HISTORICO):
            dia = hoje - timedelta(days=offset)
            for _ in range(rng.randint(0, 5)):
                momento = datetime.combine(dia, time(rng.randint(9, 19), rng.randint(0, 59)))
                vendas.insert_venta({
                    "valor": Decimal(rng.randint(1990, 59990)) / 100,
                    "data": momento,
                    "cliente_id": rng.choice(ids),
                })
                total_vendas += 1
        logger.info("Vendas criadas: %s", total_vendas)
        return {"usuarios": len(USUARIOS), "clientes": len(ids), "vendas": total_vendas}
    finally:
        conn.close()


if __name__ == "__main__":
    config.configure_logging()
    resumo = seed()
    logger.info("Seed concluído: %s", resumo)
    logger.info("Login: admin@loja.com / %s", SENHA_PADRAO)
