# core/validators.py
import random
import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def limpar_digitos(valor: str) -> str:
    return re.sub(r"\D", "", valor or "")


def _digito_cpf(digitos: str) -> int:
    """Dígito verificador módulo 11 sobre os dígitos dados (pesos n+1 .. 2)."""
    peso = len(digitos) + 1
    soma = sum(int(d) * (peso - i) for i, d in enumerate(digitos))
    resto = 11 - (soma % 11)
    return 0 if resto >= 10 else resto


def validar_cpf(cpf: str) -> bool:
    limpo = limpar_digitos(cpf)
    if len(limpo) != 11:
        return False
    # 000.000.000-00, 111.111.111-11 ... passam no módulo 11 mas não existem
    if limpo == limpo[0] * 11:
        return False
    if int(limpo[9]) != _digito_cpf(limpo[:9]):
        return False
    return int(limpo[10]) == _digito_cpf(limpo[:10])


def gerar_cpf(rng: random.Random | None = None) -> str:
    """Gera um CPF válido (só dígitos). Usado pelo seed e pelos testes."""
    rng = rng or random
    while True:
        base = "".join(str(rng.randint(0, 9)) for _ in range(9))
        if base != base[0] * 9:
            break
    d1 = _digito_cpf(base)
    d2 = _digito_cpf(base + str(d1))
    return f"{base}{d1}{d2}"


def validar_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def validar_telefone(telefone: str) -> bool:
    # 10 ou 11 dígitos (com ou sem o 9 do celular)
    return len(limpar_digitos(telefone)) in (10, 11)


def formatar_telefone(telefone: str) -> str:
    limpo = limpar_digitos(telefone)
    if len(limpo) == 11:
        return f"({limpo[:2]}) {limpo[2:7]}-{limpo[7:]}"
    if len(limpo) == 10:
        return f"({limpo[:2]}) {limpo[2:6]}-{limpo[6:]}"
    return telefone
