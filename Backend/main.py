import logging
from datetime import datetime
from typing import Literal, Optional

import psycopg
from fastapi import APIRouter, Depends, FastAPI, File, Query, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

import config
from core.auditoria import AuditLogger
from core.clientes import normalizar_cliente, verificar_unicidade
from core.date_utils import limites_periodo, parse_data_hora, resolver_janela, resolver_periodo
from core.errors import AppError, AuthError, ConflictError, NotFoundError, ValidationError
from core.estatisticas import VALOR_MAXIMO, arredondar, ranking_clientes, resumo_periodo, vendas_por_dia
from core.importacao_csv import importar_clientes, upload_temporario
from core.seguranca import create_access_token, decode_access_token, hash_senha, verificar_senha
from core.validators import validar_email

from model.database import connect
from model.cliente_connection import ClienteConnection
from schema.cliente_schema import ClienteSchema, ClienteUpdateSchema, cliente_to_dict

from model.venta_connection import VentaConnection
from schema.venta_schema import VentaSchema, venta_to_dict

from model.usuario_connection import UsuarioConnection
from schema.usuario_schema import LoginSchema, UsuarioAutenticado, UsuarioSchema, usuario_to_dict

config.configure_logging()
logger = logging.getLogger(__name__)
config.avisar_configuracao_insegura()


# --- Conexões (uma por request, fechada ao final) ---

def get_db():
    conn = connect()
    try:
        yield conn
    finally:
        conn.close()


def get_usuario_conn(db=Depends(get_db)) -> UsuarioConnection:
    return UsuarioConnection(db)


def get_cliente_conn(db=Depends(get_db)) -> ClienteConnection:
    return ClienteConnection(db)


def get_venta_conn(db=Depends(get_db)) -> VentaConnection:
    return VentaConnection(db)


audit_logger = AuditLogger()


def get_audit() -> AuditLogger:
    return audit_logger


# --- Autenticação (Bearer JWT) ---

bearer_scheme = HTTPBearer(auto_error=False)


def get_usuario_atual(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> UsuarioAutenticado:
    """Valida o token e deixa a identidade em request.state.usuario."""
    if credentials is None:
        raise AuthError("Token de acesso requerido")
    claims = decode_access_token(credentials.credentials)
    try:
        usuario = UsuarioAutenticado(id=int(claims["sub"]), email=claims.get("email") or "")
    except (TypeError, ValueError):
        raise AuthError("Token inválido") from None
    request.state.usuario = usuario
    return usuario


def _auditar(audit: AuditLogger, request: Request, usuario: UsuarioAutenticado,
             action: str, resource: str, resource_id=None, details=None):
    audit.log(
        str(usuario.id),
        action,
        resource,
        resource_id=resource_id,
        details=details,
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# --- Configuração FastAPI e CORS ---

app = FastAPI(
    title="Reino dos Brinquedos API",
    description="Cadastro de clientes, registro de vendas, estatísticas e importação CSV.",
    version="1.0.0",
    openapi_tags=[
        {"name": "Autenticação", "description": "Login e cadastro de operadores"},
        {"name": "Clientes", "description": "Gestão completa de clientes da loja"},
        {"name": "Vendas", "description": "Registro de vendas e estatísticas"},
        {"name": "Auditoria", "description": "Últimas ações registradas"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


# --- Tratamento de erros ---

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    detalhes = [
        {"campo": ".".join(str(p) for p in e.get("loc", ())), "mensagem": e.get("msg")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"error": "Dados inválidos", "tipo": "ValidationError", "detalhes": detalhes},
    )


@app.exception_handler(psycopg.OperationalError)
async def database_unavailable_handler(request: Request, exc: psycopg.OperationalError):
    logger.error("Banco indisponível em %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "Banco de dados indisponível"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Erro não tratado em %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Erro interno do servidor"},
    )


# --------- HEALTH ---------

@app.get("/health")
def health():
    return {"status": "OK", "timestamp": datetime.now().isoformat()}


# --------- AUTH ---------

auth_router = APIRouter(prefix="/api/auth", tags=["Autenticação"])


def _resposta_auth(row) -> dict:
    token = create_access_token({"sub": str(row["id"]), "email": row["email"]})
    return {"token": token, "user": usuario_to_dict(row)}


@auth_router.post("/register", status_code=HTTP_201_CREATED)
def register(payload: UsuarioSchema, conn: UsuarioConnection = Depends(get_usuario_conn)):
    name = payload.name.strip()
    email = payload.email.strip().lower()
    if not name or not email or not payload.password:
        raise ValidationError("Nome, email e senha são obrigatórios")
    if not validar_email(email):
        raise ValidationError(f"Email inválido ({email})")
    if conn.get_by_email(email):
        raise ConflictError("Email já cadastrado")

    row = conn.insert_usuario({"name": name, "email": email, "password": hash_senha(payload.password)})
    logger.info("Usuário %s cadastrado", email)
    return _resposta_auth(row)


@auth_router.post("/login")
def login(payload: LoginSchema, conn: UsuarioConnection = Depends(get_usuario_conn)):
    """
    Recebe: { "email": "...", "password": "..." }
    Devolve: { "token": "...", "user": { id, name, email } }
    """
    email = payload.email.strip().lower()
    if not email or not payload.password:
        raise ValidationError("Email e senha são obrigatórios")

    row = conn.get_by_email(email)
    if not row or not verificar_senha(payload.password, row["password"]):
        logger.info("Login recusado para %s", email)
        raise AuthError("Credenciais inválidas")
    return _resposta_auth(row)


# --------- CLIENTE ---------

clientes_router = APIRouter(
    prefix="/api/clientes",
    tags=["Clientes"],
    dependencies=[Depends(get_usuario_atual)],
)


@clientes_router.post("", status_code=HTTP_201_CREATED)
def criar_cliente(
    payload: ClienteSchema,
    request: Request,
    conn: ClienteConnection = Depends(get_cliente_conn),
    usuario: UsuarioAutenticado = Depends(get_usuario_atual),
    audit: AuditLogger = Depends(get_audit),
):
    data = normalizar_cliente(payload.model_dump())
    verificar_unicidade(conn, data["email"], data["cpf"])
    row = conn.insert_cliente(data)
    _auditar(audit, request, usuario, "CREATE", "cliente", row["id"])
    return cliente_to_dict(row)


@clientes_router.get("")
def listar_clientes(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sortBy: Literal["nome", "email", "createdAt", "updatedAt"] = "createdAt",
    sortOrder: Literal["asc", "desc"] = "desc",
    incluirDeletados: bool = False,
    conn: ClienteConnection = Depends(get_cliente_conn),
):
    """Lista paginada; clientes removidos só aparecem com incluirDeletados=true."""
    search = (search or "").strip() or None
    rows = conn.read_cliente(
        search=search,
        limit=limit,
        offset=(page - 1) * limit,
        sort_by=sortBy,
        sort_order=sortOrder,
        incluir_deletados=incluirDeletados,
    )
    total = conn.count_cliente(search=search, incluir_deletados=incluirDeletados)
    return {
        "data": [cliente_to_dict(r) for r in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": -(-total // limit),
        },
    }


@clientes_router.post("/import")
def importar_clientes_csv(
    request: Request,
    file: Optional[UploadFile] = File(None),
    conn: ClienteConnection = Depends(get_cliente_conn),
    usuario: UsuarioAutenticado = Depends(get_usuario_atual),
    audit: AuditLogger = Depends(get_audit),
):
    """
    CSV com cabeçalho nome,email,nascimento,telefone,cpf (máx. 5 MB).
    Linhas inválidas não interrompem a importação; vão para `errors`.
    """
    with upload_temporario(file, config.UPLOAD_DIR, config.MAX_UPLOAD_BYTES) as caminho:
        resultado = importar_clientes(conn, caminho)

    resultado["clientes"] = [cliente_to_dict(c) for c in resultado["clientes"]]
    _auditar(audit, request, usuario, "IMPORT", "cliente", details={
        "arquivo": file.filename,
        "imported": resultado["imported"],
        "failed": resultado["failed"],
    })
    return resultado


@clientes_router.get("/{id_cliente}")
def obter_cliente(
    id_cliente: int,
    conn: ClienteConnection = Depends(get_cliente_conn),
    venta_conn: VentaConnection = Depends(get_venta_conn),
):
    """Busca direta por id: devolve também clientes removidos (deletedAt preenchido)."""
    row = conn.filtrar_cliente(id_cliente)
    if not row:
        raise NotFoundError("Cliente não encontrado")
    vendas = venta_conn.read_venta(cliente_id=id_cliente)
    return {**cliente_to_dict(row), "vendas": [venta_to_dict(v) for v in vendas]}


@clientes_router.put("/{id_cliente}")
def atualizar_cliente(
    id_cliente: int,
    payload: ClienteUpdateSchema,
    request: Request,
    conn: ClienteConnection = Depends(get_cliente_conn),
    usuario: UsuarioAutenticado = Depends(get_usuario_atual),
    audit: AuditLogger = Depends(get_audit),
):
    atual = conn.filtrar_cliente(id_cliente)
    if not atual or atual["deleted_at"] is not None:
        raise NotFoundError("Cliente não encontrado")

    data = normalizar_cliente(payload.model_dump(exclude_unset=True), parcial=True)
    verificar_unicidade(conn, data.get("email"), data.get("cpf"), ignorar_id=id_cliente)
    row = conn.update_cliente(id_cliente, data)
    _auditar(audit, request, usuario, "UPDATE", "cliente", id_cliente, details=sorted(data))
    return cliente_to_dict(row)


@clientes_router.delete("/{id_cliente}", status_code=HTTP_204_NO_CONTENT)
def deletar_cliente(
    id_cliente: int,
    request: Request,
    conn: ClienteConnection = Depends(get_cliente_conn),
    usuario: UsuarioAutenticado = Depends(get_usuario_atual),
    audit: AuditLogger = Depends(get_audit),
):
    """Soft delete: só marca deleted_at, histórico de vendas é preservado."""
    row = conn.soft_delete_cliente(id_cliente)
    if not row:
        raise NotFoundError("Cliente não encontrado")
    _auditar(audit, request, usuario, "DELETE", "cliente", id_cliente)
    return Response(status_code=HTTP_204_NO_CONTENT)


# --------- VENDA ---------

vendas_router = APIRouter(
    prefix="/api/vendas",
    tags=["Vendas"],
    dependencies=[Depends(get_usuario_atual)],
)


@vendas_router.post("", status_code=HTTP_201_CREATED)
def criar_venda(
    payload: VentaSchema,
    request: Request,
    conn: VentaConnection = Depends(get_venta_conn),
    cliente_conn: ClienteConnection = Depends(get_cliente_conn),
    usuario: UsuarioAutenticado = Depends(get_usuario_atual),
    audit: AuditLogger = Depends(get_audit),
):
    cliente = cliente_conn.filtrar_cliente(payload.clienteId)
    if not cliente or cliente["deleted_at"] is not None:
        raise NotFoundError("Cliente não encontrado")

    # a regra valor > 0 vale para o valor já em centavos
    valor = arredondar(payload.valor)
    if valor <= 0:
        raise ValidationError("Valor deve ser maior que zero após arredondar para centavos")
    if valor > VALOR_MAXIMO:
        raise ValidationError(f"Valor excede o máximo permitido ({VALOR_MAXIMO})")

    data_venda = parse_data_hora(payload.data) if payload.data else datetime.now()
    row = conn.insert_venta({
        "valor": valor,
        "data": data_venda,
        "cliente_id": payload.clienteId,
    })
    _auditar(audit, request, usuario, "CREATE", "venda", row["id"],
             details={"clienteId": payload.clienteId, "valor": float(row["valor"])})
    return venta_to_dict(row)


@vendas_router.get("")
def listar_vendas(
    clienteId: Optional[int] = None,
    conn: VentaConnection = Depends(get_venta_conn),
):
    return [venta_to_dict(v) for v in conn.read_venta(cliente_id=clienteId)]


@vendas_router.get("/estatisticas")
def obter_estatisticas(
    inicio: Optional[str] = Query(None, description="AAAA-MM-DD (padrão: hoje)"),
    fim: Optional[str] = Query(None, description="AAAA-MM-DD (padrão: inicio)"),
    conn: VentaConnection = Depends(get_venta_conn),
):
    """
    Total, quantidade e ticket médio do período (padrão: hoje) e o ranking de
    clientes ativos por volume, média e frequência.
    """
    d_inicio, d_fim = resolver_periodo(inicio, fim)
    vendas = conn.read_venta_periodo(*limites_periodo(d_inicio, d_fim))
    return {
        "periodo": {"inicio": d_inicio.isoformat(), "fim": d_fim.isoformat()},
        **resumo_periodo(vendas),
        **ranking_clientes(conn.read_venta_clientes_ativos()),
    }


@vendas_router.get("/por-dia")
def obter_vendas_por_dia(
    inicio: Optional[str] = None,
    fim: Optional[str] = None,
    dias: int = 30,
    conn: VentaConnection = Depends(get_venta_conn),
):
    """Um item por dia da janela, inclusive dias sem venda (total 0)."""
    d_inicio, d_fim = resolver_janela(inicio, fim, dias)
    vendas = conn.read_venta_periodo(*limites_periodo(d_inicio, d_fim))
    return vendas_por_dia(vendas, d_inicio, d_fim)


# --------- AUDITORIA ---------

audit_router = APIRouter(
    prefix="/api/audit",
    tags=["Auditoria"],
    dependencies=[Depends(get_usuario_atual)],
)


@audit_router.get("/logs")
def listar_logs(
    limit: int = Query(50, ge=1, le=1000),
    userId: Optional[str] = None,
    resource: Optional[str] = None,
    audit: AuditLogger = Depends(get_audit),
):
    return audit.get_logs(limit=limit, usuario_id=userId, resource=resource)


app.include_router(auth_router)
app.include_router(clientes_router)
app.include_router(vendas_router)
app.include_router(audit_router)
