# src/layerconf/core/indirection.py
"""
Resolução de indireções (`#conf/ref`) em tempo de leitura.

Uma indireção permite que uma chave espelhe o valor atual de outra, o que
facilita renomear chaves mantendo o nome antigo funcional:

    {:database-url "sql://db/app"
     :db-url       #conf/ref :database-url}

Política de resolução:
    - O alvo é buscado no snapshot atual
    - Alvo ausente → fallback da indireção
    - Alvo que também é indireção → resolução transitiva
    - Ciclo ou cadeia maior que `max_depth` → IndirectionCycleError

Decisões arquiteturais:
    - O snapshot nunca armazena o valor resolvido, apenas a Indirection
    - O fallback é devolvido literalmente (não é resolvido)
    - Ciclos são erro explícito: uma referência cíclica é configuração
      inválida, e devolver o fallback esconderia o problema
"""

from __future__ import annotations

from typing import Any, List, Mapping

from .errors import IndirectionCycleError
from .values import Indirection

DEFAULT_MAX_DEPTH = 32


def resolve(config: Mapping[str, Any], value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """
    Resolve `value` contra `config` caso seja uma Indirection.

    Valores que não são Indirection são devolvidos sem alteração.

    Raises:
        IndirectionCycleError: Em caso de ciclo ou profundidade excedida.
    """
    chain: List[str] = []

    while isinstance(value, Indirection):
        target = value.target_key
        if target in chain:
            chain.append(target)
            raise IndirectionCycleError(
                f"Indireção cíclica: {' -> '.join(chain)}", chain=chain
            )
        chain.append(target)
        if len(chain) > max_depth:
            raise IndirectionCycleError(
                f"Indireção excede profundidade máxima ({max_depth}): {' -> '.join(chain)}",
                chain=chain,
            )

        if target not in config:
            return value.fallback
        value = config[target]

    return value


def resolve_key(
    config: Mapping[str, Any],
    key: str,
    not_found: Any = None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """Busca `key` em `config` e resolve indireções transitivamente."""
    if key not in config:
        return not_found
    return resolve(config, Indirection(target_key=key, fallback=not_found), max_depth=max_depth)
