# src/layerconf/core/hashing.py
"""
Hashing canônico do snapshot de configuração.

O hash gerado representa a identidade estrutural da configuração carregada
e é registrado no evento `config.loaded`, permitindo comparar deploys sem
registrar valores (que podem conter segredos).

Política de hashing:
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - Tipos sem equivalente JSON são codificados em forma etiquetada
      estável (ex.: Keyword → {"~kw": ":a"})
    - Conjuntos são ordenados pela sua forma serializada
    - Mapas com chaves não-string viram pares etiquetados ({"~map": [[k, v], ...]}),
      de modo que `{1: ...}` e `{"1": ...}` não colidem
    - UTF-8 + SHA-256

Invariantes:
    - O valor gerado é sempre uma string hexadecimal de 64 caracteres
    - Configurações estruturalmente equivalentes produzem o mesmo hash
    - Nenhuma mutação ocorre sobre o input
"""

import hashlib
import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict
from uuid import UUID

from .values import Indirection, Keyword, Symbol, Tagged


def _canonical(value: Any) -> Any:
    if isinstance(value, dict):
        if all(isinstance(k, str) for k in value):
            return {k: _canonical(v) for k, v in value.items()}
        pairs = [[_canonical(k), _canonical(v)] for k, v in value.items()]
        return {"~map": sorted(pairs, key=lambda p: json.dumps(p, sort_keys=True, default=repr))}
    if isinstance(value, list):
        return [_canonical(v) for v in value]
    if isinstance(value, tuple):
        return {"~list": [_canonical(v) for v in value]}
    if isinstance(value, frozenset):
        items = [_canonical(v) for v in value]
        return {"~set": sorted(items, key=lambda i: json.dumps(i, sort_keys=True, default=repr))}
    if isinstance(value, Keyword):
        return {"~kw": str(value)}
    if isinstance(value, Symbol):
        return {"~sym": str(value)}
    if isinstance(value, Indirection):
        return {"~ref": value.target_key, "fallback": _canonical(value.fallback)}
    if isinstance(value, Tagged):
        return {"~tag": value.tag, "value": _canonical(value.value)}
    if isinstance(value, Decimal):
        return {"~dec": str(value)}
    if isinstance(value, datetime):
        return {"~inst": value.isoformat()}
    if isinstance(value, UUID):
        return {"~uuid": str(value)}
    if isinstance(value, float) and value != value:
        return {"~float": "NaN"}
    if isinstance(value, float) and value in (float("inf"), float("-inf")):
        return {"~float": "Inf" if value > 0 else "-Inf"}
    return value


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera um hash determinístico de um mapa de configuração.

    Args:
        config: Snapshot de configuração.

    Returns:
        Hash SHA-256 hexadecimal.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )

    canonical_json = json.dumps(
        _canonical(config),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=repr,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
