# tests/core/test_merge.py
"""
Testes do merge raso por precedência.

Invariantes verificados:
    - a última fonte vence para uma mesma chave
    - mapas aninhados são substituídos, não mesclados
    - nenhuma fonte é mutada
"""

from layerconf.core.merge import merge_maps, merge_sources, winning_sources


def test_later_source_wins():
    assert merge_maps({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}


def test_nested_maps_are_replaced():
    base = {"db": {"host": "localhost", "port": 5432}}
    override = {"db": {"host": "prod"}}
    assert merge_maps(base, override) == {"db": {"host": "prod"}}


def test_inputs_not_mutated():
    base = {"a": 1}
    override = {"a": 2}
    out = merge_maps(base, override)
    assert base == {"a": 1}
    assert out is not base


def test_none_and_empty_ignored():
    assert merge_maps(None, {}, {"a": 1}) == {"a": 1}
    assert merge_maps() == {}


def test_merge_sources_order():
    sources = [("base", {"port": 5000}), ("default", {"port": 6000}), ("env", {})]
    assert merge_sources(sources) == {"port": 6000}


def test_winning_sources():
    sources = [
        ("conf/base", {"port": 5000, "host": "a"}),
        ("env", {"port": 1}),
        ("properties", {}),
    ]
    assert winning_sources(sources) == {"port": "env", "host": "conf/base"}
