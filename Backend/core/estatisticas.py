# core/estatisticas.py
"""
Agregações sobre vendas: resumo do período, ranking de clientes e série por
dia. Toda a aritmética é Decimal; o arredondamento (meio para cima, 2 casas)
acontece só no valor exibido.
"""
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

from core.date_utils import dias_entre

CENTAVOS = Decimal("0.01")
# maior valor que cabe em NUMERIC(12, 2)
VALOR_MAXIMO = Decimal("9999999999.99")
SEM_CLIENTE = "Nenhum"


def arredondar(valor) -> Decimal:
    if not isinstance(valor, Decimal):
        valor = Decimal(str(valor))
    return valor.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def _dia(valor) -> date:
    return valor.date() if isinstance(valor, datetime) else valor


def resumo_periodo(vendas: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    vendas: linhas {valor, data, ...} já filtradas pelo período.
    Devolve totalDia, count e ticketMedio (0 quando não há vendas).
    """
    total = Decimal("0")
    count = 0
    for v in vendas:
        total += Decimal(str(v["valor"]))
        count += 1
    ticket = (total / count) if count else Decimal("0")
    return {
        "totalDia": float(arredondar(total)),
        "count": count,
        "ticketMedio": float(arredondar(ticket)),
    }


def ranking_clientes(vendas: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    vendas: linhas {cliente_id, nome, valor, data} de clientes ativos.
    Maior volume, maior média por venda e maior frequência (dias distintos).
    Empates ficam com o menor cliente_id.
    """
    por_cliente: Dict[int, Dict[str, Any]] = {}
    for v in vendas:
        c = por_cliente.setdefault(v["cliente_id"], {
            "nome": v["nome"], "total": Decimal("0"), "qtd": 0, "dias": set(),
        })
        c["total"] += Decimal(str(v["valor"]))
        c["qtd"] += 1
        c["dias"].add(_dia(v["data"]))

    if not por_cliente:
        return {
            "maiorVolume": {"cliente": SEM_CLIENTE, "valor": 0},
            "maiorMedia": {"cliente": SEM_CLIENTE, "media": 0},
            "maiorFrequencia": {"cliente": SEM_CLIENTE, "diasUnicos": 0},
        }

    ordenados = [por_cliente[k] for k in sorted(por_cliente)]
    for c in ordenados:
        c["media"] = c["total"] / c["qtd"]

    # max() devolve o primeiro máximo encontrado -> menor id em empate
    volume = max(ordenados, key=lambda c: c["total"])
    media = max(ordenados, key=lambda c: c["media"])
    frequencia = max(ordenados, key=lambda c: len(c["dias"]))

    return {
        "maiorVolume": {"cliente": volume["nome"], "valor": float(arredondar(volume["total"]))},
        "maiorMedia": {"cliente": media["nome"], "media": float(arredondar(media["media"]))},
        "maiorFrequencia": {"cliente": frequencia["nome"], "diasUnicos": len(frequencia["dias"])},
    }


def vendas_por_dia(vendas: Iterable[Dict[str, Any]], inicio: date, fim: date) -> List[Dict[str, Any]]:
    """Um item por dia de [inicio, fim], dias sem venda com total 0."""
    totais: Dict[date, Decimal] = defaultdict(Decimal)
    contagem: Dict[date, int] = defaultdict(int)
    for v in vendas:
        d = _dia(v["data"])
        if d < inicio or d > fim:
            continue
        totais[d] += Decimal(str(v["valor"]))
        contagem[d] += 1

    return [
        {
            "data": d.isoformat(),
            "total": float(arredondar(totais.get(d, Decimal("0")))),
            "count": contagem.get(d, 0),
        }
        for d in dias_entre(inicio, fim)
    ]
