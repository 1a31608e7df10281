# tests/conftest.py
"""
Fixtures compartilhados para testes do layerconf.

Este módulo define fixtures reutilizáveis que fornecem:
- documentos EDN mínimos e determinísticos (base, default, dev, prod)
- um leitor de recursos em memória
- uma fábrica de ConfigStore com ambiente e propriedades controlados

O objetivo destas fixtures é permitir testes do core sem depender de:
- filesystem real do projeto
- variáveis de ambiente do processo
- estado global do módulo `layerconf`

Invariantes:
    - Nenhuma fixture lê `os.environ` implicitamente
    - Cada teste recebe stores novos e isolados
"""

import pytest

from layerconf.core.resources import MappingResourceReader
from layerconf.core.store import ConfigStore


MOCK_CONF_BASE_EDN = """\
{
  :port 5000
}
"""

MOCK_CONF_DEFAULT_EDN = """\
{
  :database-url "sql://fake:1234/foobar"
  :log-level :debug ;; verbose!
}
"""

MOCK_CONF_DEV_EDN = """\
{
  :database-url "sql://fake:1234/devdb"
}
"""

MOCK_CONF_PROD_EDN = """\
{
  :database-url "sql://fake:1234/proddb"
}
"""


@pytest.fixture
def conf_files() -> dict:
    """
    Fixture que fornece o conjunto padrão de arquivos de configuração.

    Os nomes seguem a convenção de recursos lógicos (`conf/<nome>`) e o
    conteúdo é EDN. Testes podem copiar e alterar o dicionário antes de
    construir o leitor.

    Returns:
        dict: nome lógico → conteúdo EDN.
    """
    return {
        "conf/base": MOCK_CONF_BASE_EDN,
        "conf/default": MOCK_CONF_DEFAULT_EDN,
        "conf/dev": MOCK_CONF_DEV_EDN,
        "conf/prod": MOCK_CONF_PROD_EDN,
    }


@pytest.fixture
def make_store(conf_files):
    """
    Fábrica de ConfigStore isolado.

    Uso:
        store = make_store(env={"CONF_ENV": "dev"}, props={})
        store = make_store(files={...})

    Ambiente e propriedades são dicionários mutáveis lidos a cada load,
    permitindo simular mudanças entre loads.
    """

    def _make(*, files=None, env=None, props=None, **kwargs) -> ConfigStore:
        env_table = {} if env is None else env
        props_table = {} if props is None else props
        return ConfigStore(
            reader=MappingResourceReader(conf_files if files is None else files),
            environ=lambda: env_table,
            properties=lambda: props_table,
            **kwargs,
        )

    return _make
