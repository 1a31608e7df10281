# src/layerconf/core/normalize.py
"""
Normalização de tabelas externas de variáveis (ambiente e propriedades).

Variáveis de ambiente costumam ser escritas em UPPER_UNDERSCORE_CASE e
propriedades em lower.dot.case. Este módulo converte ambas para a forma
canônica de chave usada no mapa de configuração (lower-dash-case) e,
opcionalmente, interpreta valores string como literais estruturados.

Política de normalização de valores:
    - "123"    → 123
    - "true"   → True
    - ":blah"  → Keyword("blah")
    - "abcdef" → "abcdef" (símbolo solto é mantido como string bruta)
    - texto não parseável → string bruta (nunca falha o load)

Decisões arquiteturais:
    - Colisões de chave após normalização (ex.: `DB_URL` e `db.url`) são
      resolvidas pela ordem de enumeração da tabela de origem: a última
      entrada enumerada vence. Para `os.environ` essa ordem é definida pela
      implementação e não deve ser usada como contrato.

Limites explícitos:
    - Não valida semântica dos valores
    - Não resolve indireções
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .edn import loads
from .errors import ConfigError, InvalidKeyError
from .log import get_logger
from .values import ConfigMap, Symbol

logger = get_logger(__name__)


def normalize_key_name(name: Optional[str]) -> Optional[str]:
    """
    Converte um nome externo de variável para a forma canônica de chave.

    Regras: minúsculas; todo `_` e todo `.` viram `-`.

        >>> normalize_key_name("DATABASE_URL")
        'database-url'
        >>> normalize_key_name("database.url")
        'database-url'
    """
    if name is None:
        return None
    return name.lower().replace("_", "-").replace(".", "-")


def is_canonical_key(key: Any) -> bool:
    """Indica se `key` é uma string não vazia já em forma canônica."""
    return isinstance(key, str) and bool(key) and normalize_key_name(key) == key


def require_canonical_key(key: Any) -> str:
    """
    Valida que `key` está em forma canônica.

    Raises:
        InvalidKeyError: Se a chave não for canônica.
    """
    if not is_canonical_key(key):
        raise InvalidKeyError(f"Chave não canônica: {key!r}")
    return key


def normalize_value(raw: Any) -> Any:
    """
    Interpreta uma string como literal estruturado, quando fizer sentido.

    O texto é lido com a gramática EDN. O resultado é descartado (e a string
    original devolvida) quando:
        - o parse falha por qualquer motivo
        - o texto contém mais de uma forma
        - o texto usa uma tag sem leitor registrado (ex.: `#foo bar`)
        - a forma lida é um símbolo solto (provavelmente uma string comum)

    Valores que não são string são devolvidos sem alteração.
    """
    if not isinstance(raw, str):
        return raw

    try:
        value = loads(raw, allow_unknown_tags=False)
    except (ConfigError, ValueError, RecursionError):
        logger.debug("config.value_kept_raw", reason="parse_error")
        return raw

    if isinstance(value, Symbol):
        return raw

    return value


def normalize_table(table: Optional[Mapping[str, Any]], *, parse_values: bool = True) -> ConfigMap:
    """
    Normaliza uma tabela de variáveis externas em um mapa de configuração.

    Args:
        table: Mapeamento nome bruto → valor bruto (ex.: `os.environ`).
        parse_values: Quando True, aplica `normalize_value` a cada valor.

    Returns:
        Novo dicionário com chaves canônicas.
    """
    result: ConfigMap = {}
    if not table:
        return result

    for name, value in table.items():
        if not isinstance(name, str):
            continue
        result[normalize_key_name(name)] = normalize_value(value) if parse_values else value
    return result
