# src/layerconf/core/merge.py
"""
Merge por precedência das fontes de configuração.

Política de merge:
    - As fontes são aplicadas da menor para a maior precedência
    - Para uma mesma chave, a última fonte vence
    - O merge é raso: mapas aninhados são substituídos por inteiro,
      nunca mesclados recursivamente

Invariantes:
    - O resultado é sempre um novo dicionário
    - Nenhuma fonte é mutada
    - A mesma sequência de fontes sempre produz o mesmo resultado

Limites explícitos:
    - Não lê arquivos nem tabelas externas
    - Não resolve indireções
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .values import ConfigMap

RawSource = Tuple[str, Mapping[str, Any]]


def merge_maps(*maps: Optional[Mapping[str, Any]]) -> ConfigMap:
    """Mescla mapas da esquerda para a direita (o último vence). `None` é ignorado."""
    result: Dict[str, Any] = {}
    for m in maps:
        if m:
            result.update(m)
    return result


def merge_sources(sources: Iterable[RawSource]) -> ConfigMap:
    """
    Mescla uma sequência ordenada de fontes nomeadas.

    Args:
        sources: Pares (nome da fonte, mapa) em ordem crescente de precedência.

    Returns:
        ConfigMap resultante.
    """
    return merge_maps(*(m for _, m in sources))


def winning_sources(sources: Sequence[RawSource]) -> Dict[str, str]:
    """
    Indica, para cada chave, o nome da fonte cujo valor prevaleceu.

    Útil para diagnóstico ("de onde veio este valor?").
    """
    origin: Dict[str, str] = {}
    for name, m in sources:
        for key in m or {}:
            origin[key] = name
    return origin
