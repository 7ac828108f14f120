import io
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

import config
import main
from core.auditoria import AuditLogger
from core.errors import ConflictError
from core.estatisticas import arredondar
from core.seguranca import create_access_token, hash_senha


class FakeClienteConnection:
    """Mesma interface de ClienteConnection, em memória.

    Como no banco, a unicidade de email/cpf no insert/update é global
    (inclui clientes removidos).
    """

    ORDENACAO = {"nome": "nome", "email": "email", "createdAt": "created_at", "updatedAt": "updated_at"}

    def __init__(self):
        self.rows = {}
        self._seq = 0
        self._relogio = datetime(2024, 1, 1, 12, 0, 0)

    def _agora(self):
        self._relogio += timedelta(seconds=1)
        return self._relogio

    def _checar_unicidade(self, data, ignorar_id=None):
        for row in self.rows.values():
            if row["id"] == ignorar_id:
                continue
            if data.get("email") and row["email"] == data["email"]:
                raise ConflictError("Email já cadastrado")
            if data.get("cpf") and row["cpf"] == data["cpf"]:
                raise ConflictError("CPF já cadastrado")

    def insert_cliente(self, data):
        self._checar_unicidade(data)
        self._seq += 1
        agora = self._agora()
        row = {
            "id": self._seq,
            "nome": data["nome"],
            "email": data["email"],
            "nascimento": data["nascimento"],
            "telefone": data.get("telefone"),
            "cpf": data.get("cpf"),
            "created_at": agora,
            "updated_at": agora,
            "deleted_at": None,
        }
        self.rows[row["id"]] = row
        return dict(row)

    def _filtrados(self, search, incluir_deletados):
        out = []
        for row in self.rows.values():
            if not incluir_deletados and row["deleted_at"] is not None:
                continue
            if search:
                s = search.lower()
                if s not in row["nome"].lower() and s not in row["email"].lower():
                    continue
            out.append(row)
        return out

    def read_cliente(self, search=None, limit=10, offset=0, sort_by="createdAt",
                     sort_order="desc", incluir_deletados=False):
        coluna = self.ORDENACAO.get(sort_by, "created_at")
        rows = sorted(
            self._filtrados(search, incluir_deletados),
            key=lambda r: (r[coluna], r["id"]),
            reverse=(sort_order != "asc"),
        )
        return [dict(r) for r in rows[offset:offset + limit]]

    def count_cliente(self, search=None, incluir_deletados=False):
        return len(self._filtrados(search, incluir_deletados))

    def filtrar_cliente(self, id_cliente):
        row = self.rows.get(id_cliente)
        return dict(row) if row else None

    def _ativo_por(self, campo, valor):
        for row in self.rows.values():
            if row[campo] == valor and row["deleted_at"] is None:
                return dict(row)
        return None

    def get_by_email(self, email):
        return self._ativo_por("email", email)

    def get_by_cpf(self, cpf):
        return self._ativo_por("cpf", cpf)

    def update_cliente(self, id_cliente, data):
        self._checar_unicidade(data, ignorar_id=id_cliente)
        row = self.rows.get(id_cliente)
        if row is None:
            return None
        row.update(data)
        row["updated_at"] = self._agora()
        return dict(row)

    def soft_delete_cliente(self, id_cliente):
        row = self.rows.get(id_cliente)
        if row is None or row["deleted_at"] is not None:
            return None
        row["deleted_at"] = row["updated_at"] = self._agora()
        return dict(row)


class FakeVentaConnection:
    def __init__(self, clientes: FakeClienteConnection):
        self.clientes = clientes
        self.rows = []

    def _com_cliente(self, row):
        cliente = self.clientes.rows[row["cliente_id"]]
        return {**row, "cliente_nome": cliente["nome"], "cliente_email": cliente["email"]}

    def insert_venta(self, data):
        row = {
            "id": len(self.rows) + 1,
            "valor": arredondar(data["valor"]),
            "data": data["data"],
            "cliente_id": data["cliente_id"],
            "created_at": datetime.now(),
        }
        self.rows.append(row)
        return self._com_cliente(row)

    def read_venta(self, cliente_id=None):
        rows = [r for r in self.rows if cliente_id is None or r["cliente_id"] == cliente_id]
        rows.sort(key=lambda r: (r["data"], r["id"]), reverse=True)
        return [self._com_cliente(r) for r in rows]

    def read_venta_periodo(self, inicio, fim):
        rows = [dict(r) for r in self.rows if inicio <= r["data"] < fim]
        return sorted(rows, key=lambda r: (r["data"], r["id"]))

    def read_venta_clientes_ativos(self):
        out = []
        for r in self.rows:
            cliente = self.clientes.rows[r["cliente_id"]]
            if cliente["deleted_at"] is None:
                out.append({"cliente_id": r["cliente_id"], "nome": cliente["nome"],
                            "valor": r["valor"], "data": r["data"]})
        return sorted(out, key=lambda r: (r["cliente_id"], r["data"]))


class FakeUsuarioConnection:
    def __init__(self):
        self.rows = {}

    def insert_usuario(self, data):
        if self.get_by_email(data["email"]):
            raise ConflictError("Email já cadastrado")
        row = {"id": len(self.rows) + 1, "created_at": datetime.now(), **data}
        self.rows[row["id"]] = row
        return dict(row)

    def get_by_email(self, email):
        for row in self.rows.values():
            if row["email"] == email:
                return dict(row)
        return None


class FakeUpload:
    """O mínimo de UploadFile usado por upload_temporario."""

    def __init__(self, conteudo: bytes, filename="clientes.csv", content_type="text/csv"):
        self.file = io.BytesIO(conteudo)
        self.filename = filename
        self.content_type = content_type


@pytest.fixture
def clientes_conn():
    return FakeClienteConnection()


@pytest.fixture
def vendas_conn(clientes_conn):
    return FakeVentaConnection(clientes_conn)


@pytest.fixture
def usuarios_conn():
    conn = FakeUsuarioConnection()
    conn.insert_usuario({"name": "Administrador", "email": "admin@loja.com",
                         "password": hash_senha("admin123")})
    return conn


@pytest.fixture
def audit():
    return AuditLogger()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    pasta = tmp_path / "uploads"
    monkeypatch.setattr(config, "UPLOAD_DIR", str(pasta))
    return pasta


@pytest.fixture
def client(clientes_conn, vendas_conn, usuarios_conn, audit, upload_dir):
    main.app.dependency_overrides[main.get_cliente_conn] = lambda: clientes_conn
    main.app.dependency_overrides[main.get_venta_conn] = lambda: vendas_conn
    main.app.dependency_overrides[main.get_usuario_conn] = lambda: usuarios_conn
    main.app.dependency_overrides[main.get_audit] = lambda: audit
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": "1", "email": "admin@loja.com"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def novo_cliente(client, auth_headers):
    """Cria um cliente pela API e devolve o JSON."""
    def _criar(**campos):
        payload = {"nome": "Maria Silva", "email": "maria@email.com", "nascimento": "1990-05-15"}
        payload.update(campos)
        resp = client.post("/api/clientes", json=payload, headers=auth_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _criar
