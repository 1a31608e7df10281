# src/layerconf/core/values.py
"""
Modelo de valores da configuração do layerconf.

Um valor de configuração é uma união etiquetada (tagged union) dos tipos
produzidos pela gramática de literais estruturados:

    str | int | float | Decimal | bool | None
    | Keyword | Symbol
    | list (vetor) | tuple (lista) | frozenset (conjunto) | dict (mapa)
    | Indirection | Tagged

Tipos nativos do Python cobrem escalares e coleções. Este módulo define
apenas os tipos que não possuem equivalente nativo.

Invariantes:
    - Todos os tipos definidos aqui são imutáveis e hasheáveis
    - `Indirection` é armazenada literalmente no snapshot e resolvida
      apenas em tempo de leitura
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Keyword:
    """Átomo do tipo keyword (`:nome` ou `:ns/nome`)."""

    name: str
    namespace: Optional[str] = None

    def __str__(self) -> str:
        if self.namespace:
            return f":{self.namespace}/{self.name}"
        return f":{self.name}"


@dataclass(frozen=True)
class Symbol:
    """Identificador sem aspas (`nome` ou `ns/nome`)."""

    name: str
    namespace: Optional[str] = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name


@dataclass(frozen=True)
class Indirection:
    """
    Referência adiada para o valor resolvido de outra chave.

    Campos:
    - target_key: chave canônica referenciada
    - fallback: valor devolvido quando a chave referenciada não existe

    Uma Indirection nunca é substituída pelo valor resolvido no snapshot:
    alterações na chave alvo (via `set`) são refletidas na leitura seguinte.
    """

    target_key: str
    fallback: Any = None


@dataclass(frozen=True)
class Tagged:
    """Literal etiquetado (`#tag valor`) sem leitor conhecido."""

    tag: str
    value: Any


ConfigMap = Dict[str, Any]


def key_name(key: Any) -> Any:
    """
    Converte uma chave de mapa para sua forma de chave de configuração.

    Keywords e símbolos viram o nome (com namespace, quando houver, no
    formato `ns/nome`); demais chaves são mantidas como estão.
    """
    if isinstance(key, (Keyword, Symbol)):
        if key.namespace:
            return f"{key.namespace}/{key.name}"
        return key.name
    return key
