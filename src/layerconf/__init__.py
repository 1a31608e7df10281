# src/layerconf/__init__.py
"""
layerconf — configuração em camadas com carregamento preguiçoso.

A configuração de uma aplicação é lida de arquivos (EDN, YAML ou JSON),
de variáveis de ambiente e de uma tabela de propriedades, e mesclada em um
único mapa com precedência explícita:

    conf/base < conf/default < conf/defaults/{env} < conf/{env}
      < variáveis de ambiente < propriedades

O ambiente é selecionado por `CONF_ENV` (ou pela propriedade `conf.env`).
Nomes de variáveis são normalizados de UPPER_UNDERSCORE_CASE e
lower.dot.case para lower-dash-case: `DATABASE_URL` → `database-url`.

Uso típico:

    import layerconf

    port = layerconf.get("port", 8080)
    layerconf.get_all()

As funções deste módulo delegam para um `ConfigStore` global criado sob
demanda. Aplicações e testes que precisam de isolamento podem instanciar
`ConfigStore` diretamente ou instalar um store próprio via `use_store`.

A tabela `properties` é a camada de override de maior precedência e deve
ser preenchida antes do load:

    layerconf.properties["database.url"] = "sql://override"
"""

from typing import Any, Dict, Optional

from .core.errors import (
    ConfigError,
    ConfigParseError,
    IndirectionCycleError,
    InvalidConfigRootTypeError,
    InvalidKeyError,
    UnsupportedConfigFormatError,
)
from .core.normalize import normalize_key_name, normalize_value
from .core.store import DEFAULT_ENV_KEY, ConfigStore
from .core.values import ConfigMap, Indirection, Keyword, Symbol

__version__ = "0.12.0"

# Tabela de propriedades do processo (equivalente a `-Dchave=valor`).
properties: Dict[str, Any] = {}

_store: Optional[ConfigStore] = None


def _properties() -> Dict[str, Any]:
    return properties


def default_store() -> ConfigStore:
    """Retorna o store global, criando-o no primeiro uso."""
    global _store
    if _store is None:
        _store = ConfigStore(properties=_properties)
    return _store


def use_store(store: Optional[ConfigStore]) -> None:
    """Instala `store` como store global (None recria o padrão no próximo uso)."""
    global _store
    _store = store


def load(env_key: str = DEFAULT_ENV_KEY) -> ConfigMap:
    """
    Carrega a configuração. Normalmente não é necessário chamar esta função:
    a configuração é carregada automaticamente no primeiro acesso.
    """
    return default_store().load(env_key)


def unload() -> None:
    """Descarrega a configuração. Existe principalmente para testes."""
    default_store().unload()


def is_loaded() -> bool:
    return default_store().is_loaded()


def get_all() -> ConfigMap:
    """Retorna o mapa de configuração completo."""
    return default_store().get_all()


def get(key: Any, not_found: Any = None) -> Any:
    """Retorna o valor de `key`, ou `not_found` se não houver valor."""
    return default_store().get(key, not_found)


def set(key: Any, value: Any) -> None:  # noqa: A001
    """Define o valor de `key`. Útil para depuração interativa."""
    default_store().set(key, value)


__all__ = [
    "ConfigError",
    "ConfigMap",
    "ConfigParseError",
    "ConfigStore",
    "Indirection",
    "IndirectionCycleError",
    "InvalidConfigRootTypeError",
    "InvalidKeyError",
    "Keyword",
    "Symbol",
    "UnsupportedConfigFormatError",
    "default_store",
    "get",
    "get_all",
    "is_loaded",
    "load",
    "normalize_key_name",
    "normalize_value",
    "properties",
    "set",
    "unload",
    "use_store",
]
