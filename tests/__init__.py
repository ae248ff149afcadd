"""
Shooting / COVID-19 EDA Test Suite

Shared pipeline:
- test_ingest.py - CSV retrieval, retry session, fail-loud on bad bodies
- test_prune.py - column selection
- test_prepare.py - type normalization and calendar derivations
- test_aggregate.py - group-by counts/sums and daily series
- test_validate.py - daily series integrity gate
- test_modeling.py - linear trend and AutoARIMA forecast
- test_config.py - defaults, env vars and overrides
- test_cli.py - command wiring and per-dataset failure isolation

Datasets:
- shootings/ - NYPD shooting incidents
- covid19/ - JHU CSSE US time series
"""
