# src/layerconf/core/resources.py
"""
Leitura de recursos nomeados e parse de arquivos de configuração.

Um recurso é identificado por um nome lógico sem extensão (ex.:
`conf/base`, `conf/defaults/prod`). Leitores procuram o recurso nas
extensões suportadas e devolvem seu texto junto com o formato detectado.

Formatos suportados:
    - EDN  (.edn)          → leitor dedicado (`layerconf.core.edn`)
    - YAML (.yaml, .yml)   → PyYAML, com a tag `!ref` para indireções
    - JSON (.json)         → json da biblioteca padrão

Um leitor é qualquer callable `nome -> Optional[Resource | str]`. Strings
simples são interpretadas como EDN, o que permite usar um `dict.get` como
leitor em testes e scripts.

Decisões arquiteturais:
    - Recurso ausente não é erro: contribui com um mapa vazio
    - Arquivo vazio equivale a um mapa vazio
    - Conteúdo raiz diferente de mapa é erro fatal
    - Erros de parse são fatais e carregam o nome do recurso

Limites explícitos:
    - Não realiza merge entre fontes
    - Não normaliza nomes de chaves além da conversão keyword → string
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

import yaml  # PyYAML

from . import edn
from .errors import (
    ConfigParseError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .values import ConfigMap, Indirection, key_name

RESOURCE_DIR_ENV = "LAYERCONF_RESOURCE_DIR"

# Ordem de busca quando mais de uma extensão existe para o mesmo nome.
SUFFIX_FORMATS = (
    (".edn", "edn"),
    (".yaml", "yaml"),
    (".yml", "yaml"),
    (".json", "json"),
)


@dataclass(frozen=True)
class Resource:
    """Conteúdo bruto de um recurso nomeado."""

    name: str
    text: str
    format: str = "edn"
    location: Optional[str] = None


ResourceReader = Callable[[str], Optional[Union[Resource, str]]]


class DirectoryResourceReader:
    """
    Lê recursos de uma ou mais raízes no filesystem.

    Para o nome lógico `conf/base` e a raiz `resources/`, os caminhos
    `resources/conf/base.edn`, `.yaml`, `.yml` e `.json` são testados nessa
    ordem. Raízes anteriores têm prioridade sobre as seguintes.
    """

    def __init__(self, roots: Sequence[Union[str, Path]]):
        self.roots = [Path(r) for r in roots]

    def __call__(self, name: str) -> Optional[Resource]:
        for root in self.roots:
            for suffix, fmt in SUFFIX_FORMATS:
                path = root / f"{name}{suffix}"
                if path.is_file():
                    return Resource(
                        name=name,
                        text=path.read_text(encoding="utf-8"),
                        format=fmt,
                        location=str(path),
                    )
        return None

    def __repr__(self) -> str:
        return f"DirectoryResourceReader({[str(r) for r in self.roots]!r})"


class PackageResourceReader:
    """Lê recursos empacotados dentro de um pacote Python instalado."""

    def __init__(self, package: str):
        self.package = package

    def __call__(self, name: str) -> Optional[Resource]:
        base = importlib_resources.files(self.package)
        for suffix, fmt in SUFFIX_FORMATS:
            entry = base.joinpath(f"{name}{suffix}")
            if entry.is_file():
                return Resource(
                    name=name,
                    text=entry.read_text(encoding="utf-8"),
                    format=fmt,
                    location=f"{self.package}:{name}{suffix}",
                )
        return None


class MappingResourceReader:
    """
    Lê recursos de um mapeamento em memória.

    Chaves podem ser o nome lógico puro (conteúdo EDN) ou o nome com
    extensão (`conf/base.yaml`), caso em que o formato segue a extensão.
    O mapeamento é consultado a cada leitura (não é copiado).
    """

    def __init__(self, entries: Mapping[str, str]):
        self.entries = entries

    def __call__(self, name: str) -> Optional[Resource]:
        for suffix, fmt in SUFFIX_FORMATS:
            if f"{name}{suffix}" in self.entries:
                return Resource(name=name, text=self.entries[f"{name}{suffix}"], format=fmt)
        if name in self.entries:
            return Resource(name=name, text=self.entries[name])
        return None


def default_reader() -> DirectoryResourceReader:
    """
    Leitor padrão do store global.

    Usa as raízes de `LAYERCONF_RESOURCE_DIR` (separadas por `os.pathsep`)
    ou, na ausência da variável, o diretório `resources` relativo ao
    diretório de trabalho.
    """
    configured = os.environ.get(RESOURCE_DIR_ENV)
    if configured:
        return DirectoryResourceReader([p for p in configured.split(os.pathsep) if p])
    return DirectoryResourceReader(["resources"])


# -----------------------------
# YAML
# -----------------------------
class _ConfYamlLoader(yaml.SafeLoader):
    """SafeLoader com suporte à tag `!ref`."""


def _construct_ref(loader: yaml.SafeLoader, node: yaml.Node) -> Indirection:
    if isinstance(node, yaml.ScalarNode):
        return Indirection(target_key=loader.construct_scalar(node))
    if isinstance(node, yaml.SequenceNode):
        items = loader.construct_sequence(node, deep=True)
        if len(items) in (1, 2) and isinstance(items[0], str):
            return Indirection(target_key=items[0], fallback=items[1] if len(items) == 2 else None)
    raise yaml.constructor.ConstructorError(
        None, None, "!ref espera chave ou [chave, fallback]", node.start_mark
    )


_ConfYamlLoader.add_constructor("!ref", _construct_ref)


def _parse_yaml(resource: Resource) -> Any:
    try:
        return yaml.load(resource.text, Loader=_ConfYamlLoader)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise ConfigParseError(
            f"YAML inválido: {getattr(e, 'problem', None) or e}",
            source=resource.name,
            line=mark.line + 1 if mark is not None else None,
            column=mark.column + 1 if mark is not None else None,
        ) from e


def _parse_json(resource: Resource) -> Any:
    if not resource.text.strip():
        return None
    try:
        return json.loads(resource.text)
    except json.JSONDecodeError as e:
        raise ConfigParseError(
            f"JSON inválido: {e.msg}", source=resource.name, line=e.lineno, column=e.colno
        ) from e


def _parse_edn(resource: Resource) -> Any:
    try:
        forms = edn.loads_all(resource.text)
    except ConfigParseError as e:
        raise e.with_source(resource.name) from e
    if not forms:
        return None
    if len(forms) > 1:
        raise ConfigParseError(
            "arquivo EDN deve conter um único mapa", source=resource.name
        )
    return forms[0]


_PARSERS: Dict[str, Callable[[Resource], Any]] = {
    "edn": _parse_edn,
    "yaml": _parse_yaml,
    "json": _parse_json,
}


def parse_resource(resource: Resource) -> ConfigMap:
    """
    Interpreta o conteúdo de um recurso como mapa de configuração.

    Raises:
        UnsupportedConfigFormatError: Se o formato não for suportado.
        ConfigParseError: Se o conteúdo não respeitar a gramática do formato.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um mapa.
    """
    parser = _PARSERS.get(resource.format)
    if parser is None:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {resource.format}")

    data = parser(resource)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser mapa em {resource.name}, recebido: {type(data).__name__}"
        )

    return {key_name(k): v for k, v in data.items()}


def load_config_file(reader: ResourceReader, name: str) -> Optional[ConfigMap]:
    """
    Lê e interpreta o recurso `name`.

    Returns:
        O mapa do arquivo, ou None quando o recurso não existe.
    """
    resource = reader(name)
    if resource is None:
        return None
    if isinstance(resource, str):
        resource = Resource(name=name, text=resource)
    return parse_resource(resource)
