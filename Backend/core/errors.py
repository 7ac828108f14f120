# core/errors.py
"""
Erros de domínio da API.

Cada erro carrega o status HTTP com que é respondido; o handler registrado em
main.py converte para ``{"error": ..., "tipo": ...}``. Durante a importação CSV
ValidationError e ConflictError são coletados por linha em vez de propagados.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "tipo": type(self).__name__}


class ValidationError(AppError):
    status_code = 400


class UnsupportedMediaError(ValidationError):
    status_code = 415


class AuthError(AppError):
    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409
