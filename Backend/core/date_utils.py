# core/date_utils.py
from datetime import date, datetime, time, timedelta
import re

from core.errors import ValidationError

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MAX_JANELA_DIAS = 366


def parse_data(valor, campo: str = "data") -> date:
    """
    Aceita somente 'YYYY-MM-DD' (ou date). Formatos como 03/04/2020 são
    ambíguos (dia/mês x mês/dia) e são rejeitados.
    """
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    txt = str(valor or "").strip()
    if not ISO_DATE_RE.match(txt):
        raise ValidationError(f"{campo} inválida ({txt or 'vazia'}), use o formato AAAA-MM-DD")
    try:
        return date.fromisoformat(txt)
    except ValueError:
        raise ValidationError(f"{campo} inválida ({txt})") from None


def parse_data_hora(valor, campo: str = "data") -> datetime:
    """
    Data da venda: 'YYYY-MM-DD' ou datetime ISO 8601. Valores com fuso são
    convertidos para o horário local do servidor e gravados sem fuso.
    """
    if isinstance(valor, datetime):
        dt = valor
    elif isinstance(valor, date):
        return datetime.combine(valor, time.min)
    else:
        txt = str(valor or "").strip()
        if txt.endswith("Z"):
            txt = txt[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(txt)
        except ValueError:
            raise ValidationError(f"{campo} inválida ({txt or 'vazia'})") from None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def inicio_do_dia(d: date) -> datetime:
    return datetime.combine(d, time.min)


def limites_periodo(inicio: date, fim: date) -> tuple[datetime, datetime]:
    """[inicio 00:00, fim+1 00:00): início inclusivo, fim exclusivo."""
    return inicio_do_dia(inicio), inicio_do_dia(fim + timedelta(days=1))


def dias_entre(inicio: date, fim: date) -> list[date]:
    return [inicio + timedelta(days=i) for i in range((fim - inicio).days + 1)]


def resolver_periodo(inicio: str | None, fim: str | None, hoje: date | None = None) -> tuple[date, date]:
    """Sem parâmetros -> hoje. Só um dos limites -> aquele dia."""
    if hoje is None:
        hoje = date.today()
    d_inicio = parse_data(inicio, "inicio") if inicio else None
    d_fim = parse_data(fim, "fim") if fim else None
    if d_inicio is None and d_fim is None:
        return hoje, hoje
    d_inicio = d_inicio or d_fim
    d_fim = d_fim or d_inicio
    if d_inicio > d_fim:
        raise ValidationError("Período inválido: inicio posterior a fim")
    return d_inicio, d_fim


def resolver_janela(inicio: str | None, fim: str | None, dias: int = 30,
                    hoje: date | None = None) -> tuple[date, date]:
    """Janela do relatório por dia: inicio/fim explícitos ou os últimos `dias` até hoje."""
    if hoje is None:
        hoje = date.today()
    if inicio or fim:
        d_inicio, d_fim = resolver_periodo(inicio, fim, hoje)
    else:
        if dias < 1 or dias > MAX_JANELA_DIAS:
            raise ValidationError(f"dias deve estar entre 1 e {MAX_JANELA_DIAS}")
        d_fim = hoje
        d_inicio = hoje - timedelta(days=dias - 1)
    if (d_fim - d_inicio).days + 1 > MAX_JANELA_DIAS:
        raise ValidationError(f"Janela máxima de {MAX_JANELA_DIAS} dias")
    return d_inicio, d_fim
