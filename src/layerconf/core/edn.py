# src/layerconf/core/edn.py
"""
Leitor dedicado da gramática de literais estruturados (EDN) do layerconf.

Arquivos de configuração `.edn` e valores de variáveis de ambiente são
interpretados por este leitor. Ele reconhece sintaticamente a tag de
indireção `#conf/ref`, produzindo um valor `Indirection` em vez de depender
de um mecanismo genérico de plugins de leitura.

Gramática suportada:
    - nil, true, false
    - inteiros (sufixo `N` aceito), floats, decimais (sufixo `M`)
    - ##Inf, ##-Inf, ##NaN
    - strings com escapes (\\t \\r \\n \\b \\f \\" \\\\ \\uXXXX)
    - caracteres (\\c, \\newline, \\space, \\tab, \\return, \\uXXXX)
    - keywords (`:a`, `:ns/a`) e símbolos (`a`, `ns/a`)
    - listas `()` → tuple, vetores `[]` → list, mapas `{}` → dict,
      conjuntos `#{}` → frozenset
    - comentários `;`, descarte `#_`, vírgula como espaço em branco
    - literais etiquetados: `#conf/ref`, `#inst`, `#uuid` e tags
      desconhecidas (preservadas como `Tagged`)

Decisões arquiteturais:
    - Chaves de mapa keyword/símbolo são convertidas para string (nome),
      de modo que todo mapa lido seja `Dict[str, Value]`
    - Chaves duplicadas em um mapa ou conjunto são erro de parse; a
      comparação distingue tipos (`1`, `1.0` e `true` são formas distintas)
    - Formas distintas que o Python considera iguais (`1` e `true`, `1` e
      `1.0`) não cabem no mesmo dict/frozenset e são rejeitadas com erro
      de parse próprio
    - Aninhamento acima de `MAX_NESTING` níveis é erro de parse
    - Razões (`1/2`) não são suportadas

Limites explícitos:
    - Não realiza coerção de tipos além da gramática
    - Não resolve indireções (responsabilidade de `indirection`)
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

from .errors import ConfigParseError
from .values import Indirection, Keyword, Symbol, Tagged, key_name

REF_TAG = "conf/ref"

_DELIMITERS = frozenset("()[]{}\";")
_WHITESPACE = frozenset(" \t\r\n\f,")

MAX_NESTING = 128

_INT_RE = re.compile(r"^[+-]?(0|[1-9]\d*)N?$")
_FLOAT_RE = re.compile(r"^[+-]?(0|[1-9]\d*)(\.\d*)?([eE][+-]?\d+)?M?$")
_SYMBOL_RE = re.compile(r"^[A-Za-z0-9.*+!\-_?$%&=<>'/:#|]+$")

_STRING_ESCAPES = {
    "t": "\t",
    "r": "\r",
    "n": "\n",
    "b": "\b",
    "f": "\f",
    '"': '"',
    "\\": "\\",
}

_NAMED_CHARS = {
    "newline": "\n",
    "return": "\r",
    "space": " ",
    "tab": "\t",
    "formfeed": "\f",
    "backspace": "\b",
}

_SYMBOLIC_VALUES = {
    "Inf": float("inf"),
    "-Inf": float("-inf"),
    "NaN": float("nan"),
}

TagReader = Callable[[Any], Any]

# Marcador interno para formas descartadas via `#_`.
_DISCARD = object()


def _read_ref(value: Any) -> Indirection:
    """
    Constrói uma Indirection a partir do valor etiquetado com `#conf/ref`.

    Formas aceitas:
        #conf/ref :chave
        #conf/ref "chave"
        #conf/ref [:chave fallback]
    """
    fallback = None
    if isinstance(value, (list, tuple)):
        if len(value) not in (1, 2):
            raise ValueError("#conf/ref espera [chave] ou [chave fallback]")
        if len(value) == 2:
            fallback = value[1]
        value = value[0]

    if isinstance(value, (Keyword, Symbol)):
        return Indirection(target_key=key_name(value), fallback=fallback)
    if isinstance(value, str) and value:
        return Indirection(target_key=value, fallback=fallback)

    raise ValueError(f"#conf/ref requer keyword ou string, recebido: {type(value).__name__}")


def _read_inst(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError("#inst requer string")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    return datetime.fromisoformat(text)


def _read_uuid(value: Any) -> uuid.UUID:
    if not isinstance(value, str):
        raise ValueError("#uuid requer string")
    return uuid.UUID(value)


DEFAULT_TAG_READERS: Dict[str, TagReader] = {
    REF_TAG: _read_ref,
    "inst": _read_inst,
    "uuid": _read_uuid,
}


class _Reader:
    """Leitor recursivo descendente sobre um texto completo."""

    def __init__(
        self,
        text: str,
        tag_readers: Dict[str, TagReader],
        allow_unknown_tags: bool = True,
    ):
        self.text = text
        self.pos = 0
        self.depth = 0
        self.tag_readers = tag_readers
        self.allow_unknown_tags = allow_unknown_tags

    # -----------------------------
    # Posição e erros
    # -----------------------------
    def error(self, message: str, pos: Optional[int] = None) -> ConfigParseError:
        at = self.pos if pos is None else pos
        line = self.text.count("\n", 0, at) + 1
        column = at - (self.text.rfind("\n", 0, at) + 1) + 1
        return ConfigParseError(message, line=line, column=column)

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_whitespace(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch in _WHITESPACE:
                self.pos += 1
            elif ch == ";":
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            else:
                break

    def read_token(self) -> str:
        start = self.pos
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch in _WHITESPACE or ch in _DELIMITERS:
                break
            self.pos += 1
        return text[start:self.pos]

    # -----------------------------
    # Formas
    # -----------------------------
    def read_next(self) -> Any:
        """Lê a próxima forma não descartada (erro se o texto terminar)."""
        while True:
            form = self.read_form()
            if form is not _DISCARD:
                return form

    def read_form(self) -> Any:
        self.skip_whitespace()
        if self.at_end():
            raise self.error("fim inesperado do texto")

        start = self.pos
        ch = self.peek()

        if ch == "(":
            self.pos += 1
            return tuple(self.read_sequence(")", start))
        if ch == "[":
            self.pos += 1
            return self.read_sequence("]", start)
        if ch == "{":
            self.pos += 1
            return self.read_map(start)
        if ch in ")]}":
            raise self.error(f"delimitador inesperado '{ch}'")
        if ch == '"':
            return self.read_string()
        if ch == "\\":
            return self.read_char()
        if ch == "#":
            return self.read_dispatch()
        if ch == ":":
            return self.read_keyword()

        return self.read_atom()

    def read_sequence(self, closing: str, start: int) -> List[Any]:
        if self.depth >= MAX_NESTING:
            raise self.error(f"aninhamento acima de {MAX_NESTING} níveis", start)
        self.depth += 1
        items: List[Any] = []
        try:
            while True:
                self.skip_whitespace()
                if self.at_end():
                    raise self.error(f"coleção não fechada, esperado '{closing}'", start)
                if self.peek() == closing:
                    self.pos += 1
                    return items
                form = self.read_form()
                if form is not _DISCARD:
                    items.append(form)
        finally:
            self.depth -= 1

    def check_distinct(self, items: List[Any], what: str, start: int) -> None:
        """
        Rejeita elementos repetidos e elementos distintos que o Python
        trataria como o mesmo membro de dict/frozenset.
        """
        seen: Dict[Any, Any] = {}
        strict = set()
        for item in items:
            try:
                marker = _strict_key(item)
                clash = item in seen
            except TypeError:
                raise self.error(f"{what} não hasheável: {type(item).__name__}", start) from None
            if marker in strict:
                raise self.error(f"duplicata de {what}: {item!r}", start)
            if clash:
                raise self.error(
                    f"{what} {item!r} e {seen[item]!r} são indistinguíveis em Python", start
                )
            strict.add(marker)
            seen[item] = item

    def read_map(self, start: int) -> Dict[Any, Any]:
        items = self.read_sequence("}", start)
        if len(items) % 2:
            raise self.error("mapa com número ímpar de formas", start)

        keys = [key_name(k) for k in items[::2]]
        self.check_distinct(keys, "chave de mapa", start)
        return dict(zip(keys, items[1::2]))

    def read_set(self, start: int) -> frozenset:
        items = self.read_sequence("}", start)
        self.check_distinct(items, "elemento de conjunto", start)
        return frozenset(items)

    def read_string(self) -> str:
        start = self.pos
        self.pos += 1
        text = self.text
        chunks: List[str] = []
        while True:
            if self.pos >= len(text):
                raise self.error("string não terminada", start)
            ch = text[self.pos]
            if ch == '"':
                self.pos += 1
                return "".join(chunks)
            if ch == "\\":
                self.pos += 1
                if self.pos >= len(text):
                    raise self.error("string não terminada", start)
                esc = text[self.pos]
                if esc == "u":
                    chunks.append(self.read_unicode_escape())
                    continue
                if esc not in _STRING_ESCAPES:
                    raise self.error(f"escape inválido '\\{esc}'")
                chunks.append(_STRING_ESCAPES[esc])
                self.pos += 1
                continue
            chunks.append(ch)
            self.pos += 1

    def read_unicode_escape(self) -> str:
        # self.pos aponta para o 'u'
        digits = self.text[self.pos + 1:self.pos + 5]
        if len(digits) != 4 or not all(c in "0123456789abcdefABCDEF" for c in digits):
            raise self.error("escape unicode inválido")
        self.pos += 5
        return chr(int(digits, 16))

    def read_char(self) -> str:
        start = self.pos
        self.pos += 1
        if self.at_end():
            raise self.error("caractere vazio", start)
        # o primeiro caractere sempre pertence ao literal, mesmo sendo delimitador
        first = self.text[self.pos]
        self.pos += 1
        token = first + self.read_token()
        if len(token) == 1:
            return token
        if token in _NAMED_CHARS:
            return _NAMED_CHARS[token]
        if token[0] == "u" and len(token) == 5:
            try:
                return chr(int(token[1:], 16))
            except ValueError:
                pass
        raise self.error(f"caractere inválido '\\{token}'", start)

    def read_keyword(self) -> Keyword:
        start = self.pos
        self.pos += 1
        token = self.read_token()
        if not token or token.startswith(":") or not _SYMBOL_RE.match(token):
            raise self.error(f"keyword inválida ':{token}'", start)
        namespace, name = _split_name(token)
        if not name:
            raise self.error(f"keyword inválida ':{token}'", start)
        return Keyword(name=name, namespace=namespace)

    def read_dispatch(self) -> Any:
        start = self.pos
        self.pos += 1
        ch = self.peek()

        if ch == "{":
            self.pos += 1
            return self.read_set(start)
        if ch == "_":
            self.pos += 1
            self.read_next()
            return _DISCARD
        if ch == "#":
            self.pos += 1
            token = self.read_token()
            if token not in _SYMBOLIC_VALUES:
                raise self.error(f"valor simbólico desconhecido '##{token}'", start)
            return _SYMBOLIC_VALUES[token]
        if ch.isalpha():
            tag = self.read_token()
            value = self.read_next()
            return self.apply_tag(tag, value, start)

        raise self.error(f"dispatch inválido '#{ch}'", start)

    def apply_tag(self, tag: str, value: Any, start: int) -> Any:
        reader = self.tag_readers.get(tag)
        if reader is None:
            if not self.allow_unknown_tags:
                raise self.error(f"tag desconhecida '#{tag}'", start)
            return Tagged(tag=tag, value=value)
        try:
            return reader(value)
        except (ValueError, TypeError) as e:
            raise self.error(f"literal #{tag} inválido: {e}", start) from e

    def read_atom(self) -> Any:
        start = self.pos
        token = self.read_token()
        if not token:
            raise self.error(f"caractere inesperado '{self.peek()}'")

        if token == "nil":
            return None
        if token == "true":
            return True
        if token == "false":
            return False

        first = token[0]
        if first.isdigit() or (first in "+-" and len(token) > 1 and token[1].isdigit()):
            return self.parse_number(token, start)

        if not _SYMBOL_RE.match(token):
            raise self.error(f"símbolo inválido '{token}'", start)
        if token == "/":
            return Symbol(name="/")
        namespace, name = _split_name(token)
        if not name:
            raise self.error(f"símbolo inválido '{token}'", start)
        return Symbol(name=name, namespace=namespace)

    def parse_number(self, token: str, start: int) -> Any:
        if _INT_RE.match(token):
            try:
                return int(token.rstrip("N"))
            except ValueError:
                # limite de dígitos da conversão str → int do interpretador
                raise self.error(f"inteiro longo demais ({len(token)} caracteres)", start) from None
        if _FLOAT_RE.match(token):
            if token.endswith("M"):
                try:
                    return Decimal(token[:-1])
                except InvalidOperation:
                    raise self.error(f"número inválido '{token}'", start) from None
            return float(token)
        raise self.error(f"número inválido '{token}'", start)


def _split_name(token: str):
    if "/" in token and token != "/":
        namespace, _, name = token.partition("/")
        return (namespace or None), name
    return None, token


def _strict_key(value: Any) -> Any:
    # igualdade sensível ao tipo: True != 1 != 1.0
    if isinstance(value, (list, tuple)):
        return type(value), tuple(_strict_key(v) for v in value)
    if isinstance(value, frozenset):
        return frozenset, frozenset(_strict_key(v) for v in value)
    if isinstance(value, dict):
        return dict, frozenset((_strict_key(k), _strict_key(v)) for k, v in value.items())
    return type(value), value


def _tag_readers(extra: Optional[Dict[str, TagReader]]) -> Dict[str, TagReader]:
    if not extra:
        return DEFAULT_TAG_READERS
    readers = dict(DEFAULT_TAG_READERS)
    readers.update(extra)
    return readers


def _read_one(reader: _Reader) -> Any:
    reader.skip_whitespace()
    if reader.at_end():
        raise reader.error("nenhuma forma encontrada")
    form = reader.read_next()

    while True:
        reader.skip_whitespace()
        if reader.at_end():
            return form
        if reader.read_form() is not _DISCARD:
            raise reader.error("conteúdo adicional após a forma")


def _read_all(reader: _Reader) -> List[Any]:
    forms: List[Any] = []
    while True:
        reader.skip_whitespace()
        if reader.at_end():
            return forms
        form = reader.read_form()
        if form is not _DISCARD:
            forms.append(form)


def _run(reader: _Reader, read: Callable[[_Reader], Any]) -> Any:
    try:
        return read(reader)
    except RecursionError:
        # cadeias de tags sem coleção (`#a #a #a ...`) não passam por MAX_NESTING
        raise reader.error("aninhamento excessivo") from None


def loads(
    text: str,
    *,
    tag_readers: Optional[Dict[str, TagReader]] = None,
    allow_unknown_tags: bool = True,
) -> Any:
    """
    Lê exatamente uma forma EDN a partir de `text`.

    Formas descartadas (`#_`) e comentários ao redor são ignorados.
    Texto vazio ou conteúdo adicional após a forma são erro de parse.

    Args:
        allow_unknown_tags: Quando False, tags sem leitor registrado são
            erro de parse em vez de produzirem `Tagged`.

    Raises:
        ConfigParseError: Se o texto não respeitar a gramática.
    """
    reader = _Reader(text, _tag_readers(tag_readers), allow_unknown_tags)
    return _run(reader, _read_one)


def loads_all(text: str, *, tag_readers: Optional[Dict[str, TagReader]] = None) -> List[Any]:
    """Lê todas as formas EDN de `text`, em ordem."""
    reader = _Reader(text, _tag_readers(tag_readers))
    return _run(reader, _read_all)
