"""
Shooting & COVID-19 EDA - shared data-preparation pipeline

Modules:
- pipeline: Load, prune, normalize, aggregate, trend/forecast
- shootings: NYPD shooting incident data (NYC Open Data)
- covid19: JHU CSSE US case/death time series
- cli: Typer runner printing summaries
"""
