# config.py
import logging
import os

from dotenv import load_dotenv
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

# --- JWT ---
SECRET_KEY_PADRAO = "fallback-secret"
SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY_PADRAO)   # defina uma segura no .env
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# --- Upload CSV ---
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str | None = None) -> None:
    """Handler de console único para toda a app (idempotente)."""
    root = logging.getLogger()
    root.setLevel(level or LOG_LEVEL)
    if any(getattr(h, "_reino_handler", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s"))
    handler._reino_handler = True
    root.addHandler(handler)


def avisar_configuracao_insegura() -> bool:
    """Loga um aviso quando JWT_SECRET_KEY não foi definida. Devolve True nesse caso."""
    if SECRET_KEY != SECRET_KEY_PADRAO:
        return False
    logging.getLogger("config").warning(
        "JWT_SECRET_KEY não definida; tokens assinados com a chave padrão (não use em produção)"
    )
    return True
