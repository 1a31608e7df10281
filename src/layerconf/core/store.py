# src/layerconf/core/store.py
"""
ConfigStore: resolução em camadas e ciclo de vida do snapshot de configuração.

O store monta um único mapa de configuração a partir de seis fontes, da
menor para a maior precedência:

    1. conf/base
    2. conf/default
    3. conf/defaults/{env}   (somente com ambiente selecionado)
    4. conf/{env}            (somente com ambiente selecionado)
    5. variáveis de ambiente (normalizadas)
    6. propriedades          (normalizadas)

O ambiente é selecionado pela chave `conf-env` (configurável por load),
lida primeiro das propriedades e depois das variáveis de ambiente. Assim,
`CONF_ENV=prod` ou a propriedade `conf.env=prod` ativam `conf/prod`.

Ciclo de vida:
    - descarregado na criação
    - carregado no primeiro acesso (`get`, `get_all`, `set`) ou em `load`
    - `load` sempre recalcula, independentemente do estado atual
    - `unload` volta ao estado descarregado

Decisões arquiteturais:
    - O snapshot é substituído por atribuição única de um novo dicionário
      (load e set), de modo que leitores concorrentes observam sempre o mapa
      antigo completo ou o novo completo
    - Corridas entre escritores são responsabilidade do chamador
    - Falha de parse aborta o load e preserva o snapshot anterior
    - Indireções são resolvidas na leitura, nunca no merge

Limites explícitos:
    - Não valida tipos nem schema
    - Não observa mudanças em arquivos
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .hashing import compute_config_hash
from .indirection import DEFAULT_MAX_DEPTH, resolve_key
from .log import get_logger
from .merge import RawSource, merge_sources, winning_sources
from .normalize import normalize_table, require_canonical_key
from .resources import ResourceReader, default_reader, load_config_file
from .values import ConfigMap, Keyword, key_name

logger = get_logger(__name__)

DEFAULT_ENV_KEY = "conf-env"
DEFAULT_RESOURCE_PREFIX = "conf"

ENV_SOURCE = "env"
PROPERTIES_SOURCE = "properties"
SET_SOURCE = "set"

TableProvider = Callable[[], Optional[Mapping[str, Any]]]


def _os_environ() -> Mapping[str, str]:
    return os.environ


def _as_key(key: Any) -> Any:
    return key_name(key) if isinstance(key, Keyword) else key


def select_environment(env_key: str, *tables: Mapping[str, Any]) -> Optional[str]:
    """
    Retorna o nome do ambiente a partir do primeiro valor não nulo de
    `env_key` nas tabelas, em ordem, convertido para minúsculas.
    """
    for table in tables:
        value = table.get(env_key)
        if value is not None:
            return str(key_name(value)).lower()
    return None


class ConfigStore:
    """
    Store explícito e injetável de configuração em camadas.

    Args:
        reader: Leitor de recursos nomeados (padrão: `default_reader()`).
        environ: Provedor da tabela de variáveis de ambiente.
        properties: Provedor da tabela de propriedades (camada de override
            de maior precedência).
        parse_values: Interpreta valores de ambiente/propriedades como
            literais EDN quando possível.
        resource_prefix: Prefixo dos nomes lógicos dos arquivos.
        max_indirection_depth: Limite de saltos na resolução de indireções.
    """

    def __init__(
        self,
        *,
        reader: Optional[ResourceReader] = None,
        environ: Optional[TableProvider] = None,
        properties: Optional[TableProvider] = None,
        parse_values: bool = True,
        resource_prefix: str = DEFAULT_RESOURCE_PREFIX,
        max_indirection_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.reader = reader if reader is not None else default_reader()
        self.environ = environ if environ is not None else _os_environ
        self.properties = properties if properties is not None else dict
        self.parse_values = parse_values
        self.resource_prefix = resource_prefix
        self.max_indirection_depth = max_indirection_depth

        self._snapshot: Optional[ConfigMap] = None
        self._environment: Optional[str] = None
        self._origins: Dict[str, str] = {}
        self._sources: Tuple[str, ...] = ()

    # -----------------------------
    # Leitura das fontes
    # -----------------------------
    def _resource_name(self, name: str) -> str:
        return f"{self.resource_prefix}/{name}" if self.resource_prefix else name

    def _read_file(self, name: str) -> RawSource:
        resource_name = self._resource_name(name)
        data = load_config_file(self.reader, resource_name)
        logger.debug(
            "config.source_read",
            source=resource_name,
            found=data is not None,
            keys=len(data or {}),
        )
        return resource_name, data or {}

    def _read_table(self, provider: TableProvider) -> ConfigMap:
        return normalize_table(provider(), parse_values=self.parse_values)

    def read_sources(self, env_key: str = DEFAULT_ENV_KEY) -> Tuple[Optional[str], List[RawSource]]:
        """
        Lê todas as fontes em ordem crescente de precedência.

        Returns:
            (ambiente selecionado, lista de fontes nomeadas)
        """
        env_key = require_canonical_key(env_key)

        props = self._read_table(self.properties)
        env = self._read_table(self.environ)
        environment = select_environment(env_key, props, env)

        sources: List[RawSource] = [
            self._read_file("base"),
            self._read_file("default"),
        ]
        if environment:
            sources.append(self._read_file(f"defaults/{environment}"))
            sources.append(self._read_file(environment))
        sources.append((ENV_SOURCE, env))
        sources.append((PROPERTIES_SOURCE, props))

        return environment, sources

    # -----------------------------
    # Ciclo de vida
    # -----------------------------
    def load(self, env_key: str = DEFAULT_ENV_KEY) -> ConfigMap:
        """
        Carrega (ou recarrega) a configuração e instala o novo snapshot.

        Args:
            env_key: Chave canônica que seleciona o ambiente.

        Returns:
            O snapshot instalado.

        Raises:
            InvalidKeyError: Se `env_key` não for canônica.
            ConfigParseError: Se algum arquivo estiver malformado.
            InvalidConfigRootTypeError: Se algum arquivo não contiver um mapa.
        """
        environment, sources = self.read_sources(env_key)
        snapshot = merge_sources(sources)

        self._origins = winning_sources(sources)
        self._sources = tuple(name for name, _ in sources)
        self._environment = environment
        self._snapshot = snapshot

        logger.info(
            "config.loaded",
            environment=environment,
            sources=list(self._sources),
            keys=len(snapshot),
            fingerprint=compute_config_hash(snapshot),
        )
        return snapshot

    def unload(self) -> None:
        """Volta ao estado descarregado. Idempotente."""
        self._snapshot = None
        self._environment = None
        self._origins = {}
        self._sources = ()
        logger.debug("config.unloaded")

    def is_loaded(self) -> bool:
        return self._snapshot is not None

    # -----------------------------
    # Acesso
    # -----------------------------
    def get_all(self) -> ConfigMap:
        """Retorna o snapshot atual (o próprio objeto), carregando se necessário."""
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = self.load()
        return snapshot

    def get(self, key: Any, not_found: Any = None) -> Any:
        """
        Retorna o valor de `key`, ou `not_found` se a chave não existir.

        Valores Indirection são resolvidos contra o snapshot atual.
        `key` pode ser uma string canônica ou uma Keyword.
        """
        return resolve_key(
            self.get_all(),
            _as_key(key),
            not_found,
            max_depth=self.max_indirection_depth,
        )

    def set(self, key: Any, value: Any) -> None:
        """
        Sobrescreve `key` no snapshot com `value` (sem normalização).

        Destinado a depuração e uso interativo.
        """
        key = _as_key(key)
        updated = dict(self.get_all())
        updated[key] = value
        self._origins = {**self._origins, key: SET_SOURCE}
        self._snapshot = updated
        logger.debug("config.set", key=key)

    # -----------------------------
    # Diagnóstico
    # -----------------------------
    @property
    def environment(self) -> Optional[str]:
        """Ambiente selecionado no último load (None se nenhum)."""
        return self._environment

    @property
    def sources(self) -> Tuple[str, ...]:
        """Nomes das fontes do último load, em ordem de precedência."""
        return self._sources

    def origin(self, key: Any) -> Optional[str]:
        """Nome da fonte cujo valor prevaleceu para `key` (None se ausente)."""
        key = _as_key(key)
        if key not in self.get_all():
            return None
        return self._origins.get(key)

    def fingerprint(self) -> str:
        """Hash SHA-256 do snapshot atual."""
        return compute_config_hash(self.get_all())

    def __repr__(self) -> str:
        state = "loaded" if self.is_loaded() else "unloaded"
        return f"ConfigStore({state}, environment={self._environment!r})"
