import os
from datetime import date, timedelta

import pytest


def test_rotas_protegidas_exigem_token(client):
    assert client.get("/api/clientes").status_code == 401
    assert client.post("/api/clientes", json={}).status_code == 401
    resp = client.get("/api/clientes", headers={"Authorization": "Bearer nao-e-um-jwt"})
    assert resp.status_code == 401
    assert resp.json()["tipo"] == "AuthError"


def test_criar_cliente(client, auth_headers, audit):
    resp = client.post("/api/clientes", headers=auth_headers, json={
        "nome": "Maria Silva",
        "email": "Maria@Email.com",
        "nascimento": "1990-05-15",
        "telefone": "11999991234",
        "cpf": "111.444.777-35",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] == 1
    assert body["email"] == "maria@email.com"
    assert body["nascimento"] == "1990-05-15"
    assert body["telefone"] == "(11) 99999-1234"
    assert body["cpf"] == "11144477735"
    assert body["deletedAt"] is None
    assert audit.get_logs()[0]["action"] == "CREATE"


@pytest.mark.parametrize("campos,trecho", [
    ({"cpf": "111.444.777-36"}, "CPF inválido"),
    ({"email": "sem-arroba"}, "Email inválido"),
    ({"nascimento": "15/05/1990"}, "nascimento"),
    ({"nascimento": (date.today() + timedelta(days=1)).isoformat()}, "futuro"),
    ({"telefone": "12"}, "Telefone inválido"),
    ({"nome": "   "}, "obrigatórios"),
])
def test_criar_cliente_invalido(client, auth_headers, campos, trecho):
    payload = {"nome": "Maria", "email": "maria@email.com", "nascimento": "1990-05-15", **campos}
    resp = client.post("/api/clientes", headers=auth_headers, json=payload)
    assert resp.status_code == 400
    assert resp.json()["tipo"] == "ValidationError"
    assert trecho in resp.json()["error"]


def test_criar_cliente_sem_campo_obrigatorio(client, auth_headers):
    resp = client.post("/api/clientes", headers=auth_headers, json={"nome": "Maria"})
    assert resp.status_code == 400
    campos = {d["campo"] for d in resp.json()["detalhes"]}
    assert {"body.email", "body.nascimento"} <= campos


@pytest.mark.parametrize("ordem", [("Primeira", "Segunda"), ("Segunda", "Primeira")])
def test_email_duplicado_um_sucesso_um_conflito(client, auth_headers, ordem):
    status = []
    for nome in ordem:
        resp = client.post("/api/clientes", headers=auth_headers, json={
            "nome": nome, "email": "igual@email.com", "nascimento": "1990-05-15",
        })
        status.append(resp.status_code)
    assert sorted(status) == [201, 409]


def test_cpf_duplicado(client, auth_headers, novo_cliente):
    novo_cliente(cpf="11144477735")
    resp = client.post("/api/clientes", headers=auth_headers, json={
        "nome": "Outra", "email": "outra@email.com", "nascimento": "1990-05-15", "cpf": "111.444.777-35",
    })
    assert resp.status_code == 409
    assert resp.json()["tipo"] == "ConflictError"


def test_listar_paginado_com_busca(client, auth_headers, novo_cliente):
    for i in range(12):
        novo_cliente(nome=f"Cliente {i:02d}", email=f"cliente{i}@email.com")
    novo_cliente(nome="Zuleica", email="zuleica@loja.com")

    resp = client.get("/api/clientes?page=2&limit=5&sortBy=nome&sortOrder=asc", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"] == {"page": 2, "limit": 5, "total": 13, "totalPages": 3}
    assert [c["nome"] for c in body["data"]] == [f"Cliente {i:02d}" for i in range(5, 10)]

    resp = client.get("/api/clientes?search=LOJA", headers=auth_headers)
    assert [c["nome"] for c in resp.json()["data"]] == ["Zuleica"]


def test_listar_parametros_invalidos(client, auth_headers):
    assert client.get("/api/clientes?sortBy=senha", headers=auth_headers).status_code == 400
    assert client.get("/api/clientes?limit=0", headers=auth_headers).status_code == 400
    assert client.get("/api/clientes?limit=101", headers=auth_headers).status_code == 400


def test_soft_delete(client, auth_headers, novo_cliente):
    cliente = novo_cliente()
    outro = novo_cliente(nome="Ana", email="ana@email.com")

    resp = client.delete(f"/api/clientes/{cliente['id']}", headers=auth_headers)
    assert resp.status_code == 204

    lista = client.get("/api/clientes", headers=auth_headers).json()
    assert [c["id"] for c in lista["data"]] == [outro["id"]]
    assert lista["pagination"]["total"] == 1

    detalhe = client.get(f"/api/clientes/{cliente['id']}", headers=auth_headers)
    assert detalhe.status_code == 200
    assert detalhe.json()["deletedAt"] is not None

    todos = client.get("/api/clientes?incluirDeletados=true", headers=auth_headers).json()
    assert todos["pagination"]["total"] == 2


def test_remover_duas_vezes_ou_inexistente(client, auth_headers, novo_cliente):
    cliente = novo_cliente()
    assert client.delete(f"/api/clientes/{cliente['id']}", headers=auth_headers).status_code == 204
    assert client.delete(f"/api/clientes/{cliente['id']}", headers=auth_headers).status_code == 404
    resp = client.delete("/api/clientes/999", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Cliente não encontrado", "tipo": "NotFoundError"}


def test_email_de_cliente_removido_nao_e_liberado(client, auth_headers, novo_cliente):
    cliente = novo_cliente()
    client.delete(f"/api/clientes/{cliente['id']}", headers=auth_headers)
    resp = client.post("/api/clientes", headers=auth_headers, json={
        "nome": "Nova Maria", "email": "maria@email.com", "nascimento": "1991-01-01",
    })
    assert resp.status_code == 409


def test_obter_cliente_inexistente(client, auth_headers):
    assert client.get("/api/clientes/42", headers=auth_headers).status_code == 404


def test_obter_cliente_com_vendas(client, auth_headers, novo_cliente):
    cliente = novo_cliente()
    client.post("/api/vendas", headers=auth_headers,
                json={"valor": 10, "data": "2025-01-01", "clienteId": cliente["id"]})
    client.post("/api/vendas", headers=auth_headers,
                json={"valor": 20, "data": "2025-01-02", "clienteId": cliente["id"]})
    body = client.get(f"/api/clientes/{cliente['id']}", headers=auth_headers).json()
    assert [v["valor"] for v in body["vendas"]] == [20.0, 10.0]


def test_atualizar_parcial(client, auth_headers, novo_cliente):
    cliente = novo_cliente(telefone="11999991234")
    resp = client.put(f"/api/clientes/{cliente['id']}", headers=auth_headers,
                      json={"nome": "Maria S. Santos", "telefone": ""})
    assert resp.status_code == 200
    body = resp.json()
    assert body["nome"] == "Maria S. Santos"
    assert body["email"] == "maria@email.com"
    assert body["telefone"] is None


def test_atualizar_mantendo_o_proprio_email(client, auth_headers, novo_cliente):
    cliente = novo_cliente(cpf="11144477735")
    resp = client.put(f"/api/clientes/{cliente['id']}", headers=auth_headers,
                      json={"email": "maria@email.com", "cpf": "111.444.777-35"})
    assert resp.status_code == 200


def test_atualizar_com_email_de_outro(client, auth_headers, novo_cliente):
    novo_cliente()
    outro = novo_cliente(nome="Ana", email="ana@email.com")
    resp = client.put(f"/api/clientes/{outro['id']}", headers=auth_headers, json={"email": "maria@email.com"})
    assert resp.status_code == 409


def test_atualizar_removido_ou_inexistente(client, auth_headers, novo_cliente):
    cliente = novo_cliente()
    client.delete(f"/api/clientes/{cliente['id']}", headers=auth_headers)
    assert client.put(f"/api/clientes/{cliente['id']}", headers=auth_headers, json={"nome": "X"}).status_code == 404
    assert client.put("/api/clientes/999", headers=auth_headers, json={"nome": "X"}).status_code == 404


def test_importar_csv(client, auth_headers, upload_dir, audit):
    conteudo = (
        "nome,email,nascimento,telefone,cpf\n"
        "Maria Silva,maria@email.com,1990-05-15,11999991234,111.444.777-35\n"
        "João Pedro,joao@email.com,1985-03-20,,\n"
        "Sem Email,,1980-01-01,,\n"
        "Ana Lima,ana@email.com,1988-11-08,,52998224725\n"
    ).encode("utf-8")
    resp = client.post(
        "/api/clientes/import",
        headers=auth_headers,
        files={"file": ("clientes.csv", conteudo, "text/csv")},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["imported"] == 3
    assert body["failed"] == 1
    assert body["errors"][0]["row"] == 4
    assert {c["email"] for c in body["clientes"]} == {"maria@email.com", "joao@email.com", "ana@email.com"}
    assert os.listdir(upload_dir) == []
    assert audit.get_logs(resource="cliente")[0]["action"] == "IMPORT"


def test_importar_tipo_nao_suportado(client, auth_headers, upload_dir):
    resp = client.post(
        "/api/clientes/import",
        headers=auth_headers,
        files={"file": ("foto.png", b"\x89PNG", "image/png")},
    )
    assert resp.status_code == 415
    assert resp.json()["tipo"] == "UnsupportedMediaError"
    assert not upload_dir.exists() or os.listdir(upload_dir) == []


def test_importar_sem_arquivo(client, auth_headers):
    resp = client.post("/api/clientes/import", headers=auth_headers)
    assert resp.status_code == 400


def test_importar_arquivo_grande_demais(client, auth_headers, upload_dir, monkeypatch):
    import config
    monkeypatch.setattr(config, "MAX_UPLOAD_BYTES", 100)
    conteudo = ("nome,email,nascimento\n" + "Maria,maria@email.com,1990-05-15\n" * 10).encode()
    resp = client.post("/api/clientes/import", headers=auth_headers,
                       files={"file": ("clientes.csv", conteudo, "text/csv")})
    assert resp.status_code == 400
    assert os.listdir(upload_dir) == []


def test_importar_cabecalho_invalido_remove_arquivo(client, auth_headers, upload_dir):
    resp = client.post("/api/clientes/import", headers=auth_headers,
                       files={"file": ("clientes.csv", b"a,b,c\n1,2,3\n", "text/csv")})
    assert resp.status_code == 400
    assert os.listdir(upload_dir) == []


def test_logs_de_auditoria(client, auth_headers, novo_cliente):
    cliente = novo_cliente()
    client.delete(f"/api/clientes/{cliente['id']}", headers=auth_headers)

    logs = client.get("/api/audit/logs", headers=auth_headers).json()
    assert [l["action"] for l in logs] == ["DELETE", "CREATE"]
    assert logs[0]["userId"] == "1"
    assert logs[0]["resourceId"] == str(cliente["id"])

    assert client.get("/api/audit/logs?resource=venda", headers=auth_headers).json() == []
    assert client.get("/api/audit/logs").status_code == 401
