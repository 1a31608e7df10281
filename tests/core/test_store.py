# tests/core/test_store.py
"""
Testes do ConfigStore: precedência, seleção de ambiente e ciclo de vida.

Este módulo valida o comportamento central do layerconf:
- precedência: propriedades > ambiente > {env} > defaults/{env} > default > base
- tolerância a arquivos ausentes
- seleção de ambiente (propriedade vence, case-insensitive)
- carregamento preguiçoso, unload e reload
- set/get e resolução de indireções no snapshot atual

Decisões arquiteturais:
    - Cada teste usa um store isolado criado por `make_store`
    - Ambiente e propriedades são dicionários controlados pelo teste

Invariantes:
    - Nenhum teste depende de os.environ ou do filesystem real
"""

import pytest
from structlog.testing import capture_logs

from layerconf.core.errors import (
    ConfigParseError,
    IndirectionCycleError,
    InvalidKeyError,
)
from layerconf.core.store import ConfigStore, select_environment
from layerconf.core.values import Indirection, Keyword


# =====================================================
# Fontes e precedência
# =====================================================

def test_file_not_found():
    """
    Verifica que a ausência de todos os arquivos não é erro.

    O load deve produzir um mapa vazio (exceto variáveis externas) e
    `get` deve devolver o valor `not_found`.
    """
    store = ConfigStore(reader=lambda name: None, environ=dict, properties=dict)
    store.load()
    assert store.get("log-level") is None
    assert store.get_all() == {}


def test_get_from_base(make_store):
    store = make_store()
    store.load()
    assert store.get("port") == 5000


def test_get_from_default(make_store):
    store = make_store()
    store.load()
    assert store.get("database-url") == "sql://fake:1234/foobar"
    assert store.get("log-level") == Keyword("debug")


@pytest.mark.parametrize(
    "props, env, expected",
    [
        ({}, {"CONF_ENV": "dev"}, "sql://fake:1234/devdb"),
        ({}, {"conf.env": "PrOd"}, "sql://fake:1234/proddb"),
        ({"conf.env": "dev"}, {}, "sql://fake:1234/devdb"),
        ({"conf.env": "PrOd"}, {}, "sql://fake:1234/proddb"),
    ],
)
def test_get_from_selected_environment(make_store, props, env, expected):
    store = make_store(props=props, env=env)
    store.load()
    assert store.get("database-url") == expected


def test_property_selector_wins_over_env(make_store):
    store = make_store(props={"conf.env": "PrOd"}, env={"CONF_ENV": "dev"})
    store.load()
    assert store.environment == "prod"
    assert store.get("database-url") == "sql://fake:1234/proddb"


def test_environment_is_lowercased(make_store):
    store = make_store(props={"conf.env": "PrOd"})
    store.load()
    assert store.environment == "prod"


def test_no_environment_by_default(make_store):
    store = make_store()
    store.load()
    assert store.environment is None
    assert "conf/dev" not in store.sources


def test_get_from_env(make_store):
    store = make_store(env={"DATABASE_URL": "sql://dev.fake:1234/foobar"})
    store.load()
    assert store.get("database-url") == "sql://dev.fake:1234/foobar"
    assert store.get_all() == {
        "database-url": "sql://dev.fake:1234/foobar",
        "log-level": Keyword("debug"),
        "port": 5000,
    }


def test_get_from_props(make_store):
    store = make_store(
        props={"database.url": "sql://props:1234"},
        env={"DATABASE_URL": "sql://dev.fake:1234/foobar"},
    )
    store.load()
    assert store.get("database-url") == "sql://props:1234"


def test_get_all(make_store):
    store = make_store(props={"foo": "bar"}, env={"baz": "quux"})
    store.load()
    assert store.get_all() == {
        "database-url": "sql://fake:1234/foobar",
        "log-level": Keyword("debug"),
        "port": 5000,
        "foo": "bar",
        "baz": "quux",
    }


def test_full_precedence_chain():
    """
    Verifica a ordem completa de precedência das seis fontes.

    Cada fonte define `winner` e uma chave própria; a fonte de maior
    precedência deve prevalecer para `winner`, e todas as chaves
    próprias devem estar presentes.
    """
    files = {
        "conf/base": '{:winner "base" :from-base 1}',
        "conf/default": '{:winner "default" :from-default 2}',
        "conf/defaults/staging": '{:winner "defaults/staging" :from-env-defaults 3}',
        "conf/staging": '{:winner "staging" :from-env-file 4}',
    }
    env = {"CONF_ENV": "staging", "WINNER": "env", "FROM_ENV": "5"}
    props = {"winner": "properties", "from.props": "6"}

    layers = [
        ("properties", props),
        ("env", env),
    ]
    for expected, table in layers:
        store = ConfigStore(
            reader=files.get, environ=lambda: env, properties=lambda: props
        )
        assert store.get("winner") == expected
        table.pop("winner", None)
        table.pop("WINNER", None)

    for expected in ["staging", "defaults/staging", "default", "base"]:
        store = ConfigStore(reader=files.get, environ=lambda: env, properties=lambda: props)
        assert store.get("winner") == expected
        name = "conf/" + expected
        files[name] = files[name].replace(f':winner "{expected}"', "")

    store = ConfigStore(reader=files.get, environ=lambda: env, properties=lambda: props)
    all_values = store.get_all()
    assert "winner" not in all_values
    assert [all_values[k] for k in (
        "from-base", "from-default", "from-env-defaults", "from-env-file", "from-env", "from-props"
    )] == [1, 2, 3, 4, 5, 6]


def test_env_defaults_file_below_env_file(make_store, conf_files):
    files = dict(conf_files)
    files["conf/defaults/prod"] = "{:database-url \"sql://x/defaults\" :pool 10}"
    store = make_store(files=files, env={"CONF_ENV": "prod"})
    store.load()
    assert store.get("database-url") == "sql://fake:1234/proddb"
    assert store.get("pool") == 10


def test_missing_environment_files_tolerated(make_store):
    store = make_store(env={"CONF_ENV": "qa", "LOG_LEVEL": ":warn"})
    store.load()
    assert store.environment == "qa"
    assert store.get("database-url") == "sql://fake:1234/foobar"
    assert store.get("port") == 5000
    assert store.get("log-level") == Keyword("warn")
    assert store.sources == (
        "conf/base", "conf/default", "conf/defaults/qa", "conf/qa", "env", "properties",
    )


def test_shallow_merge_replaces_nested_maps(make_store):
    files = {
        "conf/base": "{:db {:host \"localhost\" :port 5432}}",
        "conf/default": "{:db {:host \"db.internal\"}}",
    }
    store = make_store(files=files)
    assert store.get("db") == {"host": "db.internal"}


def test_env_values_are_parsed(make_store):
    store = make_store(env={"PORT": "123", "FLAG": "true", "MODE": ":blah", "NAME": "abcdef"})
    store.load()
    assert store.get("port") == 123
    assert store.get("flag") is True
    assert store.get("mode") == Keyword("blah")
    assert store.get("name") == "abcdef"


def test_pathological_env_values_do_not_abort_load(make_store):
    huge = "9" * 5000
    nested = "[" * 5000
    store = make_store(env={"BIG": huge, "DEEP": nested, "TAGGED": "#foo bar"})
    store.load()
    assert store.get("big") == huge
    assert store.get("deep") == nested
    assert store.get("tagged") == "#foo bar"


def test_file_with_python_equal_keys_is_rejected(make_store):
    store = make_store(files={"conf/base": "{:flags {1 :one true :yes}}"})
    with pytest.raises(ConfigParseError, match="indistinguíveis"):
        store.load()


def test_parse_values_disabled(make_store):
    store = make_store(env={"PORT": "123"}, parse_values=False)
    assert store.get("port") == "123"


def test_origin(make_store):
    store = make_store(env={"DATABASE_URL": "sql://env"})
    assert store.origin("database-url") == "env"
    assert store.origin("port") == "conf/base"
    assert store.origin("xxx") is None
    store.set("port", 1)
    assert store.origin("port") == "set"


# =====================================================
# Chave seletora de ambiente
# =====================================================

def test_custom_env_key(make_store):
    store = make_store(env={"APP_ENV": "dev", "CONF_ENV": "prod"})
    store.load(env_key="app-env")
    assert store.environment == "dev"
    assert store.get("database-url") == "sql://fake:1234/devdb"


@pytest.mark.parametrize("bad_key", ["APP_ENV", "app.env", "", None])
def test_invalid_env_key_raises(make_store, bad_key):
    store = make_store()
    with pytest.raises(InvalidKeyError):
        store.load(env_key=bad_key)
    assert not store.is_loaded()


def test_select_environment_order():
    assert select_environment("conf-env", {}, {"conf-env": "Dev"}) == "dev"
    assert select_environment("conf-env", {"conf-env": "a"}, {"conf-env": "b"}) == "a"
    assert select_environment("conf-env", {"conf-env": None}, {"conf-env": "b"}) == "b"
    assert select_environment("conf-env", {}, {}) is None
    assert select_environment("conf-env", {"conf-env": Keyword("Prod")}) == "prod"


# =====================================================
# Ciclo de vida
# =====================================================

def test_lazy_load_on_get(make_store):
    store = make_store()
    assert not store.is_loaded()
    assert store.get("port") == 5000
    assert store.is_loaded()


def test_get_all_returns_same_snapshot(make_store):
    store = make_store()
    assert store.get_all() is store.get_all()


def test_unload_then_get_reloads(make_store):
    """
    Verifica que `unload` força a releitura de todas as fontes.

    Alterações no ambiente entre loads devem ser refletidas após
    `unload` + `get`, e nunca antes.
    """
    env = {"PORT": "6000"}
    store = make_store(env=env)
    assert store.get("port") == 6000

    env["PORT"] = "7000"
    assert store.get("port") == 6000

    store.unload()
    assert not store.is_loaded()
    assert store.get("port") == 7000


def test_unload_is_idempotent(make_store):
    store = make_store()
    store.unload()
    store.unload()
    assert not store.is_loaded()
    assert store.environment is None


def test_load_always_recomputes(make_store):
    env = {}
    store = make_store(env=env)
    first = store.load()
    env["EXTRA"] = "1"
    second = store.load()
    assert first is not second
    assert "extra" not in first
    assert second["extra"] == 1


def test_load_is_deterministic(make_store):
    store = make_store(env={"CONF_ENV": "dev", "X": "1"})
    assert store.load() == store.load()


def test_parse_failure_keeps_previous_snapshot(make_store, conf_files):
    files = dict(conf_files)
    store = make_store(files=files)
    previous = store.load()

    files["conf/default"] = "{:database-url"
    with pytest.raises(ConfigParseError) as exc_info:
        store.load()
    assert exc_info.value.source == "conf/default"
    assert store.get_all() is previous


def test_parse_failure_on_first_access_propagates(make_store):
    store = make_store(files={"conf/base": "{:port 5000"})
    with pytest.raises(ConfigParseError):
        store.get("port")
    assert not store.is_loaded()


# =====================================================
# get / set
# =====================================================

def test_get_not_found_arg(make_store):
    store = make_store()
    assert store.get("xxx") is None
    assert store.get("xxx", Keyword("foobar")) == Keyword("foobar")


def test_get_accepts_keyword(make_store):
    store = make_store()
    assert store.get(Keyword("port")) == 5000


def test_set(make_store):
    store = make_store()
    assert store.get("port") == 5000
    assert store.get("color") is None
    store.set("color", "red")
    store.set("port", 5001)
    assert store.get("port") == 5001
    assert store.get("color") == "red"


def test_set_loads_first(make_store):
    store = make_store()
    store.set("color", "red")
    assert store.is_loaded()
    assert store.get("port") == 5000


def test_set_value_is_not_normalized(make_store):
    store = make_store()
    store.set("port", "5001")
    assert store.get("port") == "5001"


def test_set_swaps_snapshot(make_store):
    store = make_store()
    before = store.get_all()
    store.set("port", 1)
    after = store.get_all()
    assert before is not after
    assert before["port"] == 5000
    assert after["port"] == 1


def test_reload_discards_set_values(make_store):
    store = make_store()
    store.set("port", 1)
    store.load()
    assert store.get("port") == 5000


# =====================================================
# Indireções
# =====================================================

def test_indirection_from_file(make_store, conf_files):
    files = dict(conf_files)
    files["conf/default"] = (
        '{:database-url "sql://fake/foobar" :db-url #conf/ref :database-url}'
    )
    store = make_store(files=files)
    assert store.get("db-url") == "sql://fake/foobar"
    assert store.get_all()["db-url"] == Indirection("database-url")


def test_indirection_reflects_later_changes(make_store, conf_files):
    files = dict(conf_files)
    files["conf/default"] = '{:database-url "sql://a" :db-url #conf/ref :database-url}'
    store = make_store(files=files)
    assert store.get("db-url") == "sql://a"
    store.set("database-url", "sql://b")
    assert store.get("db-url") == "sql://b"


def test_indirection_target_from_higher_precedence_source(make_store, conf_files):
    files = dict(conf_files)
    files["conf/base"] = "{:db-url #conf/ref :database-url}"
    store = make_store(files=files, env={"DATABASE_URL": "sql://env"})
    assert store.get("db-url") == "sql://env"


def test_indirection_fallback(make_store):
    files = {"conf/base": '{:cache-url #conf/ref [:redis-url "redis://localhost"]}'}
    store = make_store(files=files)
    assert store.get("cache-url") == "redis://localhost"


def test_indirection_from_env_value(make_store):
    store = make_store(env={"DB_URL": "#conf/ref :database-url"})
    assert store.get("db-url") == "sql://fake:1234/foobar"


def test_indirection_cycle_raises(make_store):
    files = {"conf/base": "{:a #conf/ref :b :b #conf/ref :a}"}
    store = make_store(files=files)
    with pytest.raises(IndirectionCycleError):
        store.get("a")


def test_indirection_depth_is_configurable(make_store):
    files = {"conf/base": "{:a #conf/ref :b :b #conf/ref :c :c 1}"}
    assert make_store(files=files).get("a") == 1
    with pytest.raises(IndirectionCycleError):
        make_store(files=files, max_indirection_depth=2).get("a")


# =====================================================
# Diagnóstico e logging
# =====================================================

def test_fingerprint_is_stable(make_store):
    a = make_store()
    b = make_store()
    assert a.fingerprint() == b.fingerprint()
    a.set("port", 1)
    assert a.fingerprint() != b.fingerprint()


def test_load_emits_structured_event(make_store):
    store = make_store(env={"CONF_ENV": "dev", "SECRET_TOKEN": "hunter2"})
    with capture_logs() as logs:
        store.load()

    loaded = [e for e in logs if e["event"] == "config.loaded"]
    assert len(loaded) == 1
    event = loaded[0]
    assert event["log_level"] == "info"
    assert event["environment"] == "dev"
    assert event["sources"][0] == "conf/base"
    assert event["fingerprint"] == store.fingerprint()
    assert "hunter2" not in repr(logs)

    reads = [e for e in logs if e["event"] == "config.source_read"]
    assert {e["source"]: e["found"] for e in reads} == {
        "conf/base": True,
        "conf/default": True,
        "conf/defaults/dev": False,
        "conf/dev": True,
    }


def test_unload_and_set_emit_events(make_store):
    store = make_store()
    store.load()
    with capture_logs() as logs:
        store.set("color", "red")
        store.unload()
    assert [e["event"] for e in logs] == ["config.set", "config.unloaded"]
    assert logs[0]["key"] == "color"


def test_repr(make_store):
    store = make_store()
    assert "unloaded" in repr(store)
    store.load()
    assert repr(store).startswith("ConfigStore(loaded")
