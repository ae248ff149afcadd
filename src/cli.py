# file: src/cli.py
from __future__ import annotations

import logging
import sys
from typing import Callable, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from src.covid19.tasks import CovidReport, run_covid_pipeline
from src.pipeline.config import PipelineConfig, load_config
from src.pipeline.errors import PipelineError
from src.pipeline.modeling import ForecastResult, LinearTrend
from src.shootings.tasks import ShootingsReport, run_shootings_pipeline

logger = logging.getLogger(__name__)
app = typer.Typer(add_completion=False)
console = Console()


def _strip_ipykernel_args(argv: list[str]) -> list[str]:
    """Jupyter/ipykernel injects `-f <connection_file>` into sys.argv."""
    out = [argv[0]]
    i = 1
    while i < len(argv):
        a = argv[i]
        if a in ("-f", "--f"):
            i += 2  # skip flag + value
            continue
        if a.startswith("--f="):
            i += 1
            continue
        out.append(a)
        i += 1
    return out


def _build_config(
    horizon: Optional[int],
    season_length: Optional[int],
    time_policy: Optional[str],
) -> PipelineConfig:
    cfg = load_config(horizon=horizon, season_length=season_length, time_parse_policy=time_policy)
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )
    return cfg


def _model_rows(trend: LinearTrend, forecast: Optional[ForecastResult]) -> Dict[str, str]:
    rows = {
        "trend_slope_per_day": f"{trend.slope:.4f}",
        "trend_p_value": f"{trend.p_value:.3g}",
        "trend_r_squared": f"{trend.r_squared:.3f}",
    }
    if forecast is not None:
        rows["forecast_horizon"] = str(forecast.horizon)
        rows["forecast_mean_first"] = f"{forecast.mean[0]:.1f}"
        rows["forecast_mean_last"] = f"{forecast.mean[-1]:.1f}"
        rows[f"forecast_{forecast.level}_band_last"] = (
            f"[{forecast.lower[-1]:.1f}, {forecast.upper[-1]:.1f}]"
        )
    return rows


def _print_table(title: str, rows: Dict[str, object]) -> None:
    table = Table(title=title)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for k, v in rows.items():
        table.add_row(str(k), str(v))
    console.print(table)


def _print_shootings(report: ShootingsReport) -> None:
    rows: Dict[str, object] = dict(report.meta)
    for name in ("borough", "season", "weekday"):
        for key, value in report.summaries[name].items():
            rows[f"{name}:{key}"] = int(value)
    rows.update(_model_rows(report.trend, report.forecast))
    _print_table("NYPD Shooting Incidents", rows)


def _print_covid(report: CovidReport) -> None:
    rows: Dict[str, object] = dict(report.meta)
    top = report.state_cases.sort_values(ascending=False).head(5)
    for state, value in top.items():
        rows[f"cases:{state}"] = int(value)
    rows["mortality_slope"] = f"{report.mortality.slope:.4f}"
    rows["mortality_p_value"] = f"{report.mortality.p_value:.3g}"
    rows.update(_model_rows(report.trend, report.forecast))
    _print_table("COVID-19 US", rows)


def _run_guarded(name: str, step: Callable[[], None]) -> bool:
    """Run one dataset; a pipeline failure aborts only that dataset."""
    try:
        step()
    except PipelineError:
        logger.exception("[cli] %s pipeline failed", name)
        console.print(f"[red]{name}: failed (see log)[/red]")
        return False
    return True


@app.command()
def shootings(
    horizon: Optional[int] = None,
    season_length: Optional[int] = None,
    time_policy: Optional[str] = None,
    no_forecast: bool = False,
):
    """
    NYPD shooting incidents: summaries, daily trend and forecast.

    The default yearly season (--season-length 365) over ~6,500 days of
    history makes AutoARIMA run for a long time; pass --season-length 7
    for a weekly season or --no-forecast to skip it.
    """
    cfg = _build_config(horizon, season_length, time_policy)
    report = run_shootings_pipeline(cfg, forecast=not no_forecast)
    _print_shootings(report)


@app.command()
def covid(
    horizon: Optional[int] = None,
    season_length: Optional[int] = None,
    no_forecast: bool = False,
):
    """COVID-19 US: state summaries, mortality fit and new-case forecast."""
    cfg = _build_config(horizon, season_length, None)
    report = run_covid_pipeline(cfg, forecast=not no_forecast)
    _print_covid(report)


@app.command(name="all")
def run_all(
    horizon: Optional[int] = None,
    season_length: Optional[int] = None,
    time_policy: Optional[str] = None,
    no_forecast: bool = False,
):
    """
    Run both datasets independently; exit code 1 if either failed.

    Forecast cost follows the shootings command: a yearly season is slow.
    """
    cfg = _build_config(horizon, season_length, time_policy)
    ok_shootings = _run_guarded(
        "shootings",
        lambda: _print_shootings(run_shootings_pipeline(cfg, forecast=not no_forecast)),
    )
    ok_covid = _run_guarded(
        "covid",
        lambda: _print_covid(run_covid_pipeline(cfg, forecast=not no_forecast)),
    )
    if not (ok_shootings and ok_covid):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    sys.argv = _strip_ipykernel_args(sys.argv)
    app()
