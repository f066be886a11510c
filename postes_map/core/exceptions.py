"""Exceções do app.

Define a hierarquia de todas as exceções levantadas pelo painel. Cada camada
usa exceções próprias para que o tratamento de erro na UI seja explícito.
"""

from __future__ import annotations


class PosteMapError(Exception):
    """Exceção base do app.

    Classe pai de todas as exceções customizadas.
    """

    def __init__(self, message: str = "Ocorreu um erro desconhecido.") -> None:
        self.message = message
        super().__init__(self.message)


class CoordinateFormatError(PosteMapError):
    """Texto de coordenada fora do formato `lat,lon`."""

    def __init__(self, message: str = "Use o formato: lat,lon") -> None:
        super().__init__(message)


class EmptyInputError(PosteMapError):
    """Entrada obrigatória vazia (ex.: lista de IDs sem nenhum ID)."""

    def __init__(self, message: str = "Nenhum ID fornecido.") -> None:
        super().__init__(message)


class PosteNotFoundError(PosteMapError):
    """ID(s) sem poste correspondente na coleção carregada."""

    def __init__(
        self,
        message: str = "Poste não encontrado.",
        ids: list[str] | None = None,
    ) -> None:
        self.ids = list(ids or [])
        super().__init__(message)


class NoResultsError(PosteMapError):
    """Filtro válido, mas sem nenhum poste no resultado."""

    def __init__(self, message: str = "Nenhum poste encontrado com esses filtros.") -> None:
        super().__init__(message)


class PosteAPIError(PosteMapError):
    """Falha ao chamar/interpretar a API de postes."""

    def __init__(
        self,
        message: str = "Erro ao chamar a API de postes.",
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message)


class AuthExpiredError(PosteAPIError):
    """Sessão ausente ou expirada (HTTP 401).

    Sempre leva de volta ao login, independente de qualquer outro tratamento.
    """

    def __init__(self, message: str = "Não autorizado. Faça login novamente.") -> None:
        super().__init__(message, status_code=401)


class ReportExportError(PosteAPIError):
    """Falha ao gerar o relatório Excel no servidor."""

    def __init__(
        self,
        message: str = "Falha ao gerar Excel no servidor.",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)


class DataLoadError(PosteMapError):
    """Erro ao carregar dados de arquivo

    Falha ao interpretar CSV/Excel/JSON enviado ou dados de exemplo.
    """

    def __init__(
        self,
        message: str = "Erro ao carregar os dados.",
    ) -> None:
        super().__init__(message)
