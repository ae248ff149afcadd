"""
Loader: fetch a remote CSV into a DataFrame.

- Uses requests.Session with a bounded urllib3 Retry (backoff, 5xx only)
- Every GET carries a timeout so a stalled endpoint fails fast
- All columns are read as strings; typing happens in prepare
"""

from __future__ import annotations

import io
import logging
from typing import Optional

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import PipelineConfig
from .errors import RetrievalError

logger = logging.getLogger(__name__)


def create_session(retries: int = 1, backoff_factor: float = 0.5) -> requests.Session:
    """Create session with retry logic"""
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def parse_csv_text(text: str, source: str = "<memory>") -> pd.DataFrame:
    """
    Parse CSV text with a header row into a DataFrame of strings.

    Raises RetrievalError if the body is empty or not parseable CSV.
    """
    if not text or not text.strip():
        raise RetrievalError(f"Empty CSV body from {source}")

    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise RetrievalError(f"Body from {source} is not parseable CSV: {exc}") from exc

    if df.columns.empty:
        raise RetrievalError(f"CSV from {source} has no header row")

    return df


def load_csv(
    url: str,
    *,
    timeout: Optional[float] = None,
    session: Optional[requests.Session] = None,
    config: Optional[PipelineConfig] = None,
) -> pd.DataFrame:
    """
    Fetch a CSV over HTTP GET and parse it.

    Args:
        url: CSV endpoint
        timeout: Seconds before the request is abandoned (default from config)
        session: Optional pre-built session (tests pass a stub)
        config: Pipeline configuration for timeout/retry defaults

    Returns:
        DataFrame with one column per header cell, values as strings

    Raises:
        RetrievalError: network failure, non-2xx status or unparseable body
    """
    config = config or PipelineConfig()
    if timeout is None:
        timeout = config.http_timeout
    if session is None:
        session = create_session(config.http_retries, config.backoff_factor)

    logger.info("[ingest] GET %s (timeout=%ss)", url, timeout)

    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise RetrievalError(f"Failed to fetch {url}: {exc}") from exc

    df = parse_csv_text(response.text, source=url)
    logger.info("[ingest] %s rows x %s columns from %s", len(df), len(df.columns), url)
    return df
