# src/layerconf/core/__init__.py
"""
Core do layerconf.

Componentes:
    - values      → união etiquetada de valores (Keyword, Symbol, Indirection, ...)
    - edn         → leitor dedicado da gramática de literais estruturados
    - resources   → leitores de recursos nomeados e parse de arquivos
    - normalize   → normalização de nomes e valores de variáveis externas
    - merge       → merge raso por precedência
    - indirection → resolução de indireções em tempo de leitura
    - store       → ConfigStore (load, unload, get, set)
    - hashing     → fingerprint canônico do snapshot
    - log         → logging estruturado (structlog)

Princípios fundamentais:
    - A mesma entrada sempre produz a mesma configuração final
    - Arquivos malformados falham cedo e alto
    - Nenhum estado global no core: o estado vive em instâncias de ConfigStore
"""
