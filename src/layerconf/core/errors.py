# src/layerconf/core/errors.py
"""
Exceções canônicas da camada de configuração do layerconf.

Este módulo define a hierarquia oficial de exceções utilizadas durante
a leitura de arquivos, normalização e resolução de valores da configuração.

As exceções aqui definidas representam **violações explícitas do contrato
de deploy** (arquivos malformados, chaves inválidas, referências cíclicas),
e não erros genéricos de execução.

Princípios fundamentais:
    - Exceções são tipadas e semânticas
    - Erros de parse em arquivos são falhas fatais (fail fast)
    - Mensagens de erro são claras e direcionadas ao operador

Situações que **não** são erros (e portanto não possuem exceção):
    - Arquivo de configuração ausente → contribuição vazia no merge
    - Valor de variável de ambiente não parseável → string bruta preservada
    - Chave inexistente em `get` → valor `not_found` do chamador

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`

Limites explícitos:
    - Não realiza fallback ou recovery
    - Não registra logs
"""

from __future__ import annotations

from typing import Optional, Sequence


class ConfigError(Exception):
    """
    Exceção base para erros relacionados à configuração do layerconf.

    Todas as exceções levantadas durante carregamento, parse e resolução
    de configuração devem herdar desta classe, permitindo captura genérica
    na inicialização da aplicação.
    """


class ConfigParseError(ConfigError, ValueError):
    """
    Exceção levantada quando o conteúdo de um arquivo de configuração
    não respeita a gramática de literais estruturados (EDN, YAML ou JSON).

    Decisões arquiteturais:
        - Arquivos de configuração são contrato de deploy, não input não confiável
        - O load é abortado por completo; nenhuma configuração parcial é instalada

    Atributos:
        source: nome lógico do recurso (quando conhecido)
        line / column: posição (1-based) do erro (quando conhecida)
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.message = message
        self.source = source
        self.line = line
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.source is not None:
            where.append(self.source)
        if self.line is not None:
            where.append(f"linha {self.line}, coluna {self.column}")
        if not where:
            return self.message
        return f"{self.message} ({', '.join(where)})"

    def with_source(self, source: str) -> "ConfigParseError":
        """Retorna uma cópia do erro anotada com o nome do recurso."""
        return ConfigParseError(
            self.message, source=source, line=self.line, column=self.column
        )


class InvalidConfigRootTypeError(ConfigError):
    """
    Exceção levantada quando o conteúdo raiz de um arquivo de configuração
    não é um mapa.

    Decisões arquiteturais:
        - Cada arquivo contribui com exatamente um mapa chave-valor
        - Listas ou valores escalares no root são inválidos
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando um recurso possui extensão não suportada.

    Formatos suportados:
        - EDN (.edn)
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidKeyError(ConfigError, ValueError):
    """
    Exceção levantada quando uma chave que deveria estar em forma canônica
    (minúscula, separada por hífens) não está.

    Usada para validar a chave seletora de ambiente passada a `load`.
    """


class IndirectionCycleError(ConfigError):
    """
    Exceção levantada quando a resolução de uma indireção entra em ciclo
    ou excede a profundidade máxima permitida.

    Atributos:
        chain: sequência de chaves visitadas até a detecção
    """

    def __init__(self, message: str, *, chain: Sequence[str] = ()):
        self.chain = tuple(chain)
        super().__init__(message)
